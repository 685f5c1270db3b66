"""Visitor traffic filter — gate web requests on a remote analytics verdict.

Public API:
  - VisitorEvaluator          — inline (Starlette request) and manual evaluation
  - VisitorFilterMiddleware   — Starlette/FastAPI middleware around the evaluator
  - FilterConfig              — immutable evaluator settings
  - UnwantedVisitorAction     — REDIRECT / IFRAME / PROXY_CONTENT
  - BlockOutcome, Verdict     — evaluation results
  - is_valid_ip()             — syntactic IPv4/IPv6 check
  - load_config()             — optional YAML + env loader
  - VisitorFilterError, InvalidIpError, RemoteServiceError, TransportError
"""

from __future__ import annotations

from visitor_filter.config import FilterConfig, UnwantedVisitorAction, load_config
from visitor_filter.errors import (
    InvalidIpError,
    RemoteServiceError,
    TransportError,
    VisitorFilterError,
)
from visitor_filter.evaluator import VisitorEvaluator
from visitor_filter.guard.ip import is_valid_ip
from visitor_filter.middleware import VisitorFilterMiddleware
from visitor_filter.models.verdict import BlockOutcome, Verdict, VisitorSignals

__version__ = "1.0.0"

__all__ = [
    "BlockOutcome",
    "FilterConfig",
    "InvalidIpError",
    "RemoteServiceError",
    "TransportError",
    "UnwantedVisitorAction",
    "Verdict",
    "VisitorEvaluator",
    "VisitorFilterError",
    "VisitorFilterMiddleware",
    "VisitorSignals",
    "is_valid_ip",
    "load_config",
]
