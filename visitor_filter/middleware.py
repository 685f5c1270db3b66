"""Starlette middleware running inline visitor evaluation on every request.

Registration::

    evaluator = VisitorEvaluator(load_config())
    app.add_middleware(
        VisitorFilterMiddleware,
        evaluator=evaluator,
        exclude_paths=("/health",),
    )

Behaviour:
  - Excluded path prefixes skip evaluation entirely (no analytics call).
  - A blocked visitor receives the evaluator's response; the route never runs.
  - Evaluation errors propagate into Starlette's normal error handling
    (HTTP 500 from ServerErrorMiddleware, or a registered exception handler).
    With ``fail_open=True`` a RemoteServiceError/TransportError is logged and the
    request proceeds instead. InvalidIpError always propagates.
"""

from __future__ import annotations

from typing import Iterable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from visitor_filter.errors import RemoteServiceError, TransportError
from visitor_filter.evaluator import VisitorEvaluator
from visitor_filter.utils.logger import get_logger

logger = get_logger(__name__)


class VisitorFilterMiddleware(BaseHTTPMiddleware):
    """Gate every request (except excluded prefixes) through a VisitorEvaluator."""

    def __init__(
        self,
        app: ASGIApp,
        evaluator: VisitorEvaluator,
        exclude_paths: Iterable[str] = (),
        fail_open: bool = False,
    ) -> None:
        super().__init__(app)
        self.evaluator = evaluator
        self.exclude_paths: tuple[str, ...] = tuple(exclude_paths)
        self.fail_open = fail_open

    def _is_excluded(self, path: str) -> bool:
        return any(path.startswith(prefix) for prefix in self.exclude_paths)

    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]
        path = request.scope.get("path", "")
        if self._is_excluded(path):
            return await call_next(request)

        try:
            blocked = await self.evaluator.evaluate_visitor(request)
        except (RemoteServiceError, TransportError) as exc:
            if not self.fail_open:
                raise
            logger.warning(
                "Visitor evaluation failed — failing open",
                error_type=type(exc).__name__,
                error=str(exc),
                path=path,
            )
            blocked = None

        if blocked is not None:
            return blocked
        return await call_next(request)
