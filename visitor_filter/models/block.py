"""Blocked-visitor content and response builders.

Content builders return the HTML a blocked visitor is shown. Manual evaluation
hands these strings to the caller; inline evaluation wraps them in Starlette
responses via the ``build_*_response()`` functions below, so both modes serve
the same content for the same configuration.

  build_iframe_content()    — full-viewport, borderless iframe of the target (action 2)
  build_redirect_content()  — visible link + 1 s client-side redirect (action 1, manual)
  ACCESS_DENIED_HTML        — no target configured (403 semantics)
  CONTENT_NOT_AVAILABLE_HTML — action 3 fallback when the loopback fetch fails

Target URLs are HTML-escaped in attributes and text, and JSON-encoded inside
the redirect script.
"""

from __future__ import annotations

import html
import json

from starlette.responses import HTMLResponse, RedirectResponse, Response

from visitor_filter.constants import (
    ACCESS_DENIED_STATUS,
    REDIRECT_DELAY_MS,
    REDIRECT_STATUS,
)

ACCESS_DENIED_HTML: str = """<!DOCTYPE html>
<html lang="en">
<head>
    <title>Access Denied</title>
    <style>.sep { border-bottom: 5px black dotted; }</style>
</head>
<body>
    <div><b>Access Denied!</b></div>
</body>
</html>
"""

CONTENT_NOT_AVAILABLE_HTML: str = "<p>Content not available</p>"


def build_iframe_content(target: str) -> str:
    """Embed ``target`` in an iframe filling the viewport, with no page margin."""
    src = html.escape(target, quote=True)
    return (
        f'<iframe src="{src}" width="100%" height="100%" align="left"></iframe>\n'
        "<style>body { padding: 0; margin: 0; } "
        "iframe { margin: 0; padding: 0; border: 0; }</style>"
    )


def build_redirect_content(target: str) -> str:
    """Link to ``target`` plus a script that navigates there after one second."""
    href = html.escape(target, quote=True)
    text = html.escape(target, quote=False)
    # "</" would close the script element early
    location = json.dumps(target).replace("</", "<\\/")
    return (
        f'<p>Redirecting to <a href="{href}">{text}</a></p>\n'
        "<script>\n"
        "    setTimeout(function() {\n"
        f"        window.location.href = {location};\n"
        f"    }}, {REDIRECT_DELAY_MS});\n"
        "</script>"
    )


# ─── Inline delivery ──────────────────────────────────────────────────────────


def build_status_response(status_code: int) -> Response:
    """Bare status response for a numeric ``unwanted_visitor_to``."""
    return Response(status_code=status_code)


def build_redirect_response(location: str) -> RedirectResponse:
    """HTTP 302 to the configured target (action 1, inline)."""
    return RedirectResponse(url=location, status_code=REDIRECT_STATUS)


def build_html_response(content: str, status_code: int = 200) -> HTMLResponse:
    return HTMLResponse(content=content, status_code=status_code)


def build_access_denied_response() -> HTMLResponse:
    """HTTP 403 with the built-in Access Denied page."""
    return HTMLResponse(content=ACCESS_DENIED_HTML, status_code=ACCESS_DENIED_STATUS)
