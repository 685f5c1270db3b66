"""Outbound HTTP calls made by the evaluator.

Two calls exist:

  query_verdict()     — GET to the analytics endpoint with the visitor signals as
                        query parameters and the API keys as headers. The body is
                        buffered and deserialised into a ``Verdict``.
  fetch_with_bypass() — GET of the configured unwanted-visitor page (action mode 3),
                        carrying the bypass headers so a filter protecting that page
                        lets the fetch through.

Both wrap every httpx failure in ``TransportError``. No retry, no extra timeout:
whatever the shared client is configured with applies.

Wire format (verdict request):
  GET https://moonito.net/api/v1/analytics?ip=<ip>&ua=<enc ua>&events=<enc event>&domain=<domain>
  User-Agent:   <ua>
  X-Public-Key: <api_public_key>
  X-Secret-Key: <api_secret_key>

``ua`` and ``events`` are percent-encoded component-wise before being handed to
httpx, which encodes the query string again; the service decodes both layers.
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import quote

import httpx

from visitor_filter.constants import (
    ANALYTICS_API_URL,
    CLIENT_TIMEOUT,
    POOL_KEEPALIVE_EXPIRY,
    POOL_MAX_CONNECTIONS,
    POOL_MAX_KEEPALIVE,
    PUBLIC_KEY_HEADER,
    SECRET_KEY_HEADER,
    SLOW_VERDICT_THRESHOLD_MS,
)
from visitor_filter.errors import TransportError
from visitor_filter.guard.token import BypassToken
from visitor_filter.models.verdict import Verdict, VisitorSignals
from visitor_filter.utils.logger import PerformanceLogger, get_logger

logger = get_logger(__name__)

# Characters encodeURIComponent leaves alone on top of quote()'s unreserved set.
_COMPONENT_SAFE = "!*'()"

_TRANSPORT_ERRORS = (httpx.HTTPError, httpx.InvalidURL, UnicodeError)


def create_http_client() -> httpx.AsyncClient:
    """Create the shared httpx.AsyncClient used for both outbound calls.

    Created once per evaluator (or injected by the host service), never per
    request. Redirects are not followed: httpx would replay the API key and
    bypass token headers to whatever host a redirect names.
    """
    return httpx.AsyncClient(
        limits=httpx.Limits(
            max_connections=POOL_MAX_CONNECTIONS,
            max_keepalive_connections=POOL_MAX_KEEPALIVE,
            keepalive_expiry=POOL_KEEPALIVE_EXPIRY,
        ),
        timeout=httpx.Timeout(CLIENT_TIMEOUT),
        follow_redirects=False,
    )


def encode_component(value: str) -> str:
    """Percent-encode ``value`` the way a URI component is encoded."""
    return quote(value, safe=_COMPONENT_SAFE)


class AnalyticsClient:
    """Thin async client for the analytics service and loopback fetches.

    Args:
        api_public_key: Sent as ``X-Public-Key``.
        api_secret_key: Sent as ``X-Secret-Key``. Never logged.
        http_client:    Shared client. When omitted one is created and owned by
                        this instance (closed by ``aclose()``).
        endpoint:       Verdict endpoint override (tests, staging).
    """

    def __init__(
        self,
        api_public_key: str,
        api_secret_key: str,
        http_client: Optional[httpx.AsyncClient] = None,
        endpoint: str = ANALYTICS_API_URL,
    ) -> None:
        self._public_key = api_public_key
        self._secret_key = api_secret_key
        self._owns_client = http_client is None
        self._http = http_client if http_client is not None else create_http_client()
        self.endpoint = endpoint

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    def build_verdict_request(self, signals: VisitorSignals) -> httpx.Request:
        return self._http.build_request(
            "GET",
            self.endpoint,
            params={
                "ip": signals.ip,
                "ua": encode_component(signals.user_agent),
                "events": encode_component(signals.event),
                "domain": signals.domain,
            },
            headers={
                "User-Agent": signals.user_agent,
                PUBLIC_KEY_HEADER: self._public_key,
                SECRET_KEY_HEADER: self._secret_key,
            },
        )

    async def query_verdict(self, signals: VisitorSignals) -> Verdict:
        """Ask the analytics service whether to block this visitor.

        Raises:
            TransportError:     Connection failure, timeout, invalid URL or a body
                                that is not JSON.
            RemoteServiceError: The service answered with an error envelope.
        """
        try:
            request = self.build_verdict_request(signals)
            with PerformanceLogger(
                "analytics_request", logger, warn_above_ms=SLOW_VERDICT_THRESHOLD_MS
            ):
                response = await self._http.send(request, follow_redirects=False)
        except _TRANSPORT_ERRORS as exc:
            raise TransportError("analytics", f"{type(exc).__name__}: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise TransportError(
                "analytics",
                f"malformed response body (HTTP {response.status_code})",
            ) from exc

        return Verdict.from_envelope(payload)

    async def fetch_with_bypass(self, url: str, token: BypassToken) -> str:
        """Fetch ``url`` with the bypass headers and return the body text.

        A redirect is not followed and counts as a failure.

        Raises:
            TransportError: The page could not be fetched, or answered with a redirect.
        """
        try:
            response = await self._http.get(url, headers=token.headers(), follow_redirects=False)
        except _TRANSPORT_ERRORS as exc:
            raise TransportError("unwanted_content", f"{type(exc).__name__}: {exc}") from exc
        if response.is_redirect:
            raise TransportError(
                "unwanted_content",
                f"redirect not followed (HTTP {response.status_code})",
            )
        return response.text
