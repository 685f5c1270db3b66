"""Self-URL guard.

When ``unwanted_visitor_to`` points back at the protected site, the page a
blocked visitor is sent to must not be evaluated again — otherwise the redirect
(or iframe) target would block itself forever. These helpers compute the
current URL and decide whether it is the configured target.

Matching rules:
  - Absolute target: host (with any non-default port), path and query string
    must be equal. The scheme is ignored.
  - Relative target: equal to the current path+query, or to the bare path.
  - If either URL cannot be parsed, fall back to substring containment.
    Matching never raises.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional
from urllib.parse import SplitResult, urlsplit

from visitor_filter.utils.logger import get_logger

if TYPE_CHECKING:
    from starlette.requests import Request

logger = get_logger(__name__)

_DEFAULT_PORTS: dict[str, int] = {"http": 80, "https": 443}


def is_absolute_url(value: str) -> bool:
    return value.startswith(("http://", "https://"))


def _scope_path(scope: dict) -> str:
    raw_path: Optional[bytes] = scope.get("raw_path")
    if raw_path:
        return raw_path.decode("latin-1")
    return scope.get("path") or "/"


def _scope_query(scope: dict) -> str:
    return (scope.get("query_string") or b"").decode("latin-1")


def request_event(request: "Request") -> str:
    """Path plus query string of the request, as sent to the analytics service."""
    path = request.scope.get("path") or "/"
    query = _scope_query(request.scope)
    return f"{path}?{query}" if query else path


def request_domain(request: "Request") -> str:
    """Lowercased hostname from the ``Host`` header, or "" when it does not parse."""
    host = request.headers.get("host", "")
    if not host and request.scope.get("server"):
        return str(request.scope["server"][0]).lower()
    try:
        return (urlsplit(f"//{host}").hostname or "").lower()
    except ValueError:
        return ""


def trusted_origin(request: "Request") -> Optional[str]:
    """``scheme://host[:port]`` of the server that accepted the request.

    Built from the ASGI ``server`` entry, never from client-supplied headers.
    None when the server does not report its address (e.g. a Unix socket).
    """
    server = request.scope.get("server")
    if not server or server[1] is None:
        return None
    scheme = request.scope.get("scheme") or "http"
    host, port = server
    if ":" in host:
        host = f"[{host}]"
    if port == _DEFAULT_PORTS.get(scheme):
        return f"{scheme}://{host}"
    return f"{scheme}://{host}:{port}"


def current_url_from_request(request: "Request") -> str:
    """Effective absolute URL of an incoming Starlette request.

    Uses the ``Host`` header as declared by the client and the raw request
    path (as received, before any mount or rewrite) plus the query string.
    Read straight from the ASGI scope; a malformed ``Host`` never raises here.
    """
    scope = request.scope
    scheme = scope.get("scheme") or "http"
    host = request.headers.get("host", "")
    if not host and scope.get("server"):
        host = scope["server"][0]

    path = _scope_path(scope)
    query = _scope_query(scope)
    if query and "?" not in path:
        path = f"{path}?{query}"
    return f"{scheme}://{host}{path}"


def current_url_from_event(event: str, domain: str) -> str:
    """Absolute URL for a manually supplied event.

    An event that already is an http(s) URL is used as-is; otherwise it is a
    path on ``domain`` (a leading slash is added when missing).
    """
    if is_absolute_url(event):
        return event
    path = event if event.startswith("/") else f"/{event}"
    return f"https://{domain}{path}"


def _host(parts: SplitResult) -> str:
    hostname = parts.hostname or ""
    if ":" in hostname:
        hostname = f"[{hostname}]"
    port = parts.port  # ValueError on a malformed port
    if port is not None and port != _DEFAULT_PORTS.get(parts.scheme):
        return f"{hostname}:{port}"
    return hostname


def _path(parts: SplitResult) -> str:
    return parts.path or "/"


def _search(parts: SplitResult) -> str:
    return f"?{parts.query}" if parts.query else ""


def urls_match(current_url: str, target: str) -> bool:
    """Return True if ``current_url`` is the page ``target`` refers to.

    Args:
        current_url: Absolute URL of the request being evaluated.
        target: Absolute URL or site-relative path.
    """
    try:
        current = urlsplit(current_url)
        if is_absolute_url(target):
            wanted = urlsplit(target)
            return (
                _host(current) == _host(wanted)
                and _path(current) == _path(wanted)
                and _search(current) == _search(wanted)
            )

        path = _path(current)
        return f"{path}{_search(current)}" == target or path == target
    except (ValueError, TypeError, AttributeError) as exc:
        logger.debug("URL comparison failed — falling back to substring match", error=str(exc))
        try:
            return target in current_url
        except TypeError:
            return False
