"""Root test configuration for the visitor filter.

Provides:
  - isolate_config: keeps load_config() away from real ~/.vtf files and VTF_* env vars.
  - mock_analytics: factory for a MockTransport-backed stand-in for both the
    analytics service and the loopback target page.
  - make_request:   builds Starlette requests from a raw ASGI scope.
  - make_evaluator: VisitorEvaluator wired to a mock analytics service.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

import httpx
import pytest
from starlette.requests import Request

from visitor_filter.config import FilterConfig
from visitor_filter.evaluator import VisitorEvaluator

ANALYTICS_PATH = "/api/v1/analytics"


@pytest.fixture(autouse=True)
def isolate_config(monkeypatch: pytest.MonkeyPatch) -> None:
    """No test reads the developer's config file or environment."""
    monkeypatch.setattr("visitor_filter.config.DEFAULT_CONFIG_PATHS", [])
    for name in ("VTF_CONFIG", "VTF_PUBLIC_KEY", "VTF_SECRET_KEY", "VTF_PROTECTED"):
        monkeypatch.delenv(name, raising=False)


class MockAnalytics:
    """Records outbound requests and answers with configurable envelopes.

    Requests to the analytics path get the envelope, whatever the host; anything
    else is treated as the loopback fetch of the unwanted-visitor page.
    ``page_redirect`` makes that page answer 302 to another URL.
    """

    def __init__(
        self,
        *,
        need_to_block: bool = False,
        detect_activity: Any = None,
        envelope: Optional[dict] = None,
        raw_body: Optional[bytes] = None,
        analytics_error: Optional[Exception] = None,
        page_body: str = "<h1>Substitute page</h1>",
        page_error: Optional[Exception] = None,
        page_redirect: Optional[str] = None,
    ) -> None:
        self.received_requests: list[httpx.Request] = []
        self.envelope = envelope if envelope is not None else {
            "data": {
                "status": {
                    "need_to_block": need_to_block,
                    "detect_activity": detect_activity,
                }
            }
        }
        self.raw_body = raw_body
        self.analytics_error = analytics_error
        self.page_body = page_body
        self.page_error = page_error
        self.page_redirect = page_redirect

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.received_requests.append(request)
        if request.url.path == ANALYTICS_PATH:
            if self.analytics_error is not None:
                raise self.analytics_error
            if self.raw_body is not None:
                return httpx.Response(200, content=self.raw_body)
            return httpx.Response(200, json=self.envelope)

        if self.page_error is not None:
            raise self.page_error
        if self.page_redirect is not None and str(request.url) != self.page_redirect:
            return httpx.Response(302, headers={"location": self.page_redirect})
        return httpx.Response(200, text=self.page_body, headers={"content-type": "text/html"})

    def client(self) -> httpx.AsyncClient:
        """A client as a host service might inject it, redirects enabled."""
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler), follow_redirects=True)

    @property
    def analytics_requests(self) -> list[httpx.Request]:
        return [r for r in self.received_requests if r.url.path == ANALYTICS_PATH]

    @property
    def page_requests(self) -> list[httpx.Request]:
        return [r for r in self.received_requests if r.url.path != ANALYTICS_PATH]


@pytest.fixture
def mock_analytics() -> Callable[..., MockAnalytics]:
    return MockAnalytics


@pytest.fixture
def make_evaluator() -> Callable[..., VisitorEvaluator]:
    """Build an evaluator against ``mock``; keyword args go to FilterConfig."""

    def _make(mock: MockAnalytics, **config: Any) -> VisitorEvaluator:
        config.setdefault("is_protected", True)
        config.setdefault("api_public_key", "pub-key")
        config.setdefault("api_secret_key", "sec-key")
        return VisitorEvaluator(FilterConfig(**config), http_client=mock.client())

    return _make


@pytest.fixture
def make_request() -> Callable[..., Request]:
    """Build a Starlette GET request from a raw ASGI scope."""

    def _make(
        path: str = "/",
        query: str = "",
        host: str = "example.com",
        scheme: str = "https",
        headers: Optional[dict[str, str]] = None,
        client: Optional[tuple[str, int]] = ("203.0.113.7", 51000),
        server: Optional[tuple[str, Optional[int]]] = None,
    ) -> Request:
        """``server`` defaults to the host and the scheme's default port."""
        raw_headers = [(b"host", host.encode("latin-1"))]
        raw_headers += [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in (headers or {}).items()
        ]
        scope = {
            "type": "http",
            "http_version": "1.1",
            "method": "GET",
            "scheme": scheme,
            "server": server or (host.split(":")[0], 443 if scheme == "https" else 80),
            "root_path": "",
            "path": path,
            "raw_path": path.encode("latin-1"),
            "query_string": query.encode("latin-1"),
            "headers": raw_headers,
            "client": client,
        }
        return Request(scope)

    return _make
