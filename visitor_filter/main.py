"""Demo site protected by the visitor filter.

  - create_app() — testable application factory
  - lifespan     — closes the evaluator's HTTP client on shutdown
  - app          — module-level instance for uvicorn (``visitor_filter.main:app``)

Routes:
  /          — protected landing page
  /blocked   — page blocked visitors are sent to (set unwanted_visitor_to: /blocked)
  /health    — excluded from evaluation
"""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import httpx
from fastapi import FastAPI
from fastapi.responses import HTMLResponse

from visitor_filter.config import FilterConfig, load_config
from visitor_filter.evaluator import VisitorEvaluator
from visitor_filter.middleware import VisitorFilterMiddleware
from visitor_filter.utils.logger import configure_logging, get_logger

DEBUG = os.getenv("DEBUG", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO" if not DEBUG else "DEBUG")
JSON_LOGS = os.getenv("JSON_LOGS", "true").lower() == "true"

configure_logging(log_level=LOG_LEVEL, json_output=JSON_LOGS)
logger = get_logger(__name__)

HEALTH_PATH = "/health"


def create_app(
    config: Optional[FilterConfig] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    fail_open: bool = False,
) -> FastAPI:
    """Build the demo application.

    Args:
        config:      Filter settings; ``load_config()`` is used when omitted.
        http_client: Optional shared client handed to the evaluator (tests inject
                     an ``httpx.MockTransport``-backed client here).
        fail_open:   Let visitors through when the analytics service fails.
    """
    filter_config = config if config is not None else load_config()
    evaluator = VisitorEvaluator(filter_config, http_client=http_client)

    @asynccontextmanager
    async def lifespan(application: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Visitor filter ready", is_protected=filter_config.is_protected)
        yield
        await evaluator.aclose()
        logger.info("Visitor filter stopped")

    application = FastAPI(title="Visitor Filter Demo", lifespan=lifespan)
    application.state.evaluator = evaluator
    application.add_middleware(
        VisitorFilterMiddleware,
        evaluator=evaluator,
        exclude_paths=(HEALTH_PATH,),
        fail_open=fail_open,
    )

    @application.get("/", response_class=HTMLResponse)
    async def index() -> str:
        return "<h1>Welcome</h1><p>You made it past the visitor filter.</p>"

    @application.get("/blocked", response_class=HTMLResponse)
    async def blocked_page() -> str:
        return "<h1>Not available</h1><p>This site is not available to automated traffic.</p>"

    @application.get(HEALTH_PATH)
    async def health() -> dict[str, object]:
        return {"status": "ok", "protected": filter_config.is_protected}

    return application


app = create_app()
