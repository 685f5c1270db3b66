"""Loop guards and input validation run before any analytics request.

  - ip.py    — is_valid_ip(), client_ip_from_headers()
  - token.py — BypassToken, is_bypass_request()
  - urls.py  — urls_match(), current_url_from_request(), current_url_from_event()
"""

from __future__ import annotations

from visitor_filter.guard.ip import client_ip_from_headers, is_valid_ip
from visitor_filter.guard.token import BypassToken, generate_secure_token, is_bypass_request
from visitor_filter.guard.urls import (
    current_url_from_event,
    current_url_from_request,
    is_absolute_url,
    urls_match,
)

__all__ = [
    "BypassToken",
    "client_ip_from_headers",
    "current_url_from_event",
    "current_url_from_request",
    "generate_secure_token",
    "is_absolute_url",
    "is_bypass_request",
    "is_valid_ip",
    "urls_match",
]
