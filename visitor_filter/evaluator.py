"""Visitor evaluation pipeline.

``VisitorEvaluator`` decides, per request, whether to consult the analytics
service and what a blocked visitor gets instead of the page. Two entry points
share one pipeline:

  evaluate_visitor(request)
      Inline mode. Takes a Starlette request, derives the signals from its
      headers and connection, and returns the Response to deliver when the
      visitor is blocked (None = let the request through).

  evaluate_visitor_manually(ip, user_agent, event, domain)
      Manual mode. Takes explicit signals and returns a BlockOutcome whose
      ``content`` the caller delivers itself.

Pipeline (in order):
  1. Protection switch        — off → allowed, no network call.
  2. Bypass headers (inline)  — X-VTF-Bypass: 1 + matching X-VTF-Token → allowed.
  3. Self-URL guard           — current URL is the unwanted-visitor target → allowed.
  4. IP validation            — InvalidIpError before any network call.
  5. Verdict query            — RemoteServiceError / TransportError propagate,
                                prefixed with "Error handling visitor".
  6. Block content            — status code | iframe | fetched page | redirect |
                                Access Denied, see ``_block_content()``.

Concurrency: the config and bypass token are fixed at construction and never
mutated, so one instance serves any number of concurrent evaluations.

Remote failure policy: evaluation errors propagate. Whether a failed verdict
lets the visitor through is decided by the caller (see
``VisitorFilterMiddleware(fail_open=...)``).
"""

from __future__ import annotations

from typing import Optional, Union
from urllib.parse import urljoin

import httpx
from starlette.requests import Request
from starlette.responses import Response

from visitor_filter.analytics.client import AnalyticsClient
from visitor_filter.config import (
    FilterConfig,
    PathTarget,
    StatusTarget,
    UnwantedVisitorAction,
    UrlTarget,
)
from visitor_filter.constants import BYPASS_HEADER, BYPASS_TOKEN_HEADER
from visitor_filter.errors import InvalidIpError, TransportError, VisitorFilterError
from visitor_filter.guard.ip import client_ip_from_headers, is_valid_ip
from visitor_filter.guard.token import BypassToken, is_bypass_request
from visitor_filter.guard.urls import (
    current_url_from_event,
    current_url_from_request,
    request_domain,
    request_event,
    trusted_origin,
    urls_match,
)
from visitor_filter.models.block import (
    ACCESS_DENIED_HTML,
    CONTENT_NOT_AVAILABLE_HTML,
    build_access_denied_response,
    build_html_response,
    build_iframe_content,
    build_redirect_content,
    build_redirect_response,
    build_status_response,
)
from visitor_filter.models.verdict import BlockContent, BlockOutcome, Verdict, VisitorSignals
from visitor_filter.utils.logger import evaluation_context, get_logger
from visitor_filter.utils.ulid import generate_ulid

logger = get_logger(__name__)

_INLINE_CONTEXT = "Error handling visitor"
_MANUAL_CONTEXT = "Error handling visitor manually"


class VisitorEvaluator:
    """Gate visitors on the analytics service's verdict.

    Args:
        config:           Filter settings (immutable).
        http_client:      Optional shared httpx.AsyncClient for both outbound calls.
        analytics_client: Optional pre-built AnalyticsClient (takes precedence).

    Use as an async context manager, or call ``aclose()``, to release a client
    the evaluator created itself.
    """

    is_valid_ip = staticmethod(is_valid_ip)

    def __init__(
        self,
        config: FilterConfig,
        http_client: Optional[httpx.AsyncClient] = None,
        analytics_client: Optional[AnalyticsClient] = None,
    ) -> None:
        self.config = config
        self._bypass_token = BypassToken()
        self._client = analytics_client or AnalyticsClient(
            config.api_public_key,
            config.api_secret_key,
            http_client=http_client,
        )

    async def __aenter__(self) -> "VisitorEvaluator":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ── Guards ────────────────────────────────────────────────────────────────

    def is_bypass_request(self, request: Request) -> bool:
        """True if the request is this instance's own loopback fetch."""
        return is_bypass_request(
            self._bypass_token,
            request.headers.get(BYPASS_HEADER),
            request.headers.get(BYPASS_TOKEN_HEADER),
        )

    def is_unwanted_target(self, current_url: str) -> bool:
        """True if ``current_url`` is the configured URL/path target."""
        target = self.config.target
        if not isinstance(target, (UrlTarget, PathTarget)):
            return False
        return urls_match(current_url, target.value)

    # ── Inline mode ───────────────────────────────────────────────────────────

    async def evaluate_visitor(self, request: Request) -> Optional[Response]:
        """Evaluate an incoming request.

        Returns:
            The Response to send instead of the route when the visitor is
            blocked, otherwise None.

        Raises:
            InvalidIpError:     No usable client IP on the request.
            RemoteServiceError: The analytics service reported an error.
            TransportError:     The analytics service could not be reached.
        """
        if not self.config.is_protected:
            return None

        if self.is_bypass_request(request):
            logger.debug("visitor_bypassed", path=request.scope.get("path"))
            return None

        current_url = current_url_from_request(request)
        if self.is_unwanted_target(current_url):
            logger.debug("visitor_self_target_skipped", url=current_url)
            return None

        peer_host = request.client.host if request.client else None
        signals = VisitorSignals(
            ip=client_ip_from_headers(request.headers.get("x-forwarded-for"), peer_host),
            user_agent=request.headers.get("user-agent", ""),
            event=request_event(request),
            domain=request_domain(request),
        )
        self._require_valid_ip(signals.ip)

        with evaluation_context(generate_ulid()):
            verdict = await self._query(signals, _INLINE_CONTEXT)
            if not verdict.need_to_block:
                logger.debug("visitor_allowed", detect_activity=verdict.detect_activity)
                return None

            logger.info(
                "visitor_blocked",
                mode="inline",
                domain=signals.domain,
                detect_activity=verdict.detect_activity,
                action=self.config.unwanted_visitor_action.name,
            )
            return await self._block_response(self.config.site_origin or trusted_origin(request))

    # ── Manual mode ───────────────────────────────────────────────────────────

    async def evaluate_visitor_manually(
        self,
        ip: str,
        user_agent: str,
        event: str,
        domain: str,
    ) -> BlockOutcome:
        """Evaluate explicit visitor signals without touching any response.

        Args:
            ip:         Visitor IP literal.
            user_agent: Visitor User-Agent.
            event:      Page URL or site-relative path being visited.
            domain:     Site domain sent to the analytics service.

        Raises:
            InvalidIpError, RemoteServiceError, TransportError — as inline mode.
        """
        if not self.config.is_protected:
            return BlockOutcome.allowed()

        if self.config.target is not None:
            current_url = current_url_from_event(event, domain)
            if self.is_unwanted_target(current_url):
                logger.debug("visitor_self_target_skipped", url=current_url)
                return BlockOutcome.allowed()

        self._require_valid_ip(ip)

        signals = VisitorSignals(ip=ip, user_agent=user_agent, event=event, domain=domain)
        with evaluation_context(generate_ulid()):
            verdict = await self._query(signals, _MANUAL_CONTEXT)
            if not verdict.need_to_block:
                return BlockOutcome.allowed(verdict.detect_activity)

            logger.info(
                "visitor_blocked",
                mode="manual",
                domain=domain,
                detect_activity=verdict.detect_activity,
                action=self.config.unwanted_visitor_action.name,
            )
            origin = self.config.site_origin or (f"https://{domain}" if domain else None)
            content = await self._block_content(origin)
            return BlockOutcome(
                need_to_block=True,
                detect_activity=verdict.detect_activity,
                content=content,
            )

    # ── Internals ─────────────────────────────────────────────────────────────

    def _require_valid_ip(self, ip: str) -> None:
        if not is_valid_ip(ip):
            logger.warning("visitor_invalid_ip", ip=ip)
            raise InvalidIpError()

    async def _query(self, signals: VisitorSignals, context: str) -> Verdict:
        try:
            return await self._client.query_verdict(signals)
        except VisitorFilterError as exc:
            logger.error(
                "analytics_request_failed",
                error_type=type(exc).__name__,
                error=str(exc),
            )
            raise exc.with_context(context) from exc

    async def _block_content(self, origin: Optional[str]) -> BlockContent:
        """Content for a blocked visitor, in precedence order.

        status target → iframe (action 2) → fetched page (action 3) →
        redirect snippet (action 1) → Access Denied (no target).
        """
        target = self.config.target
        if target is None:
            return ACCESS_DENIED_HTML
        if isinstance(target, StatusTarget):
            return target.code

        action = self.config.unwanted_visitor_action
        if action == UnwantedVisitorAction.IFRAME:
            return build_iframe_content(target.value)
        if action == UnwantedVisitorAction.PROXY_CONTENT:
            return await self._fetch_unwanted_content(self._resolve_target_url(target, origin))
        return build_redirect_content(target.value)

    async def _block_response(self, origin: Optional[str]) -> Response:
        target = self.config.target
        if target is None:
            return build_access_denied_response()
        if isinstance(target, StatusTarget):
            return build_status_response(target.code)
        if self.config.unwanted_visitor_action == UnwantedVisitorAction.REDIRECT:
            return build_redirect_response(target.value)

        content = await self._block_content(origin)
        return build_html_response(str(content))

    @staticmethod
    def _resolve_target_url(target: Union[UrlTarget, PathTarget], origin: Optional[str]) -> Optional[str]:
        """Absolute URL to fetch for action 3.

        A relative target is resolved against ``origin``, which only ever comes
        from configuration, the ASGI server address or the manual-mode caller;
        the visitor's own ``Host`` header is never used because the fetch
        carries the bypass token. None when no origin is known.
        """
        if isinstance(target, UrlTarget):
            return target.value
        if not origin:
            return None
        return urljoin(origin, target.value)

    async def _fetch_unwanted_content(self, url: Optional[str]) -> str:
        """Loopback fetch for action 3. Never raises; degrades to a placeholder."""
        if url is None:
            logger.warning("unwanted_content_origin_unknown", target=self.config.unwanted_visitor_to)
            return CONTENT_NOT_AVAILABLE_HTML
        try:
            return await self._client.fetch_with_bypass(url, self._bypass_token)
        except TransportError as exc:
            logger.error("unwanted_content_fetch_failed", url=url, error=str(exc))
            return CONTENT_NOT_AVAILABLE_HTML
