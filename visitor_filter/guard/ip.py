"""Client IP validation and extraction.

``is_valid_ip()`` is a purely syntactic check: the value must be an IPv4 or
IPv6 literal. No DNS resolution, no normalisation. Evaluation refuses to call
the analytics service for anything that fails it.
"""

from __future__ import annotations

import ipaddress
from typing import Any, Optional


def is_valid_ip(ip: Any) -> bool:
    """Return True if ``ip`` is an IPv4 or IPv6 address literal.

    Non-string values (None, ints, bytes) are rejected — ``ipaddress`` would
    otherwise accept a packed integer.
    """
    if not isinstance(ip, str) or not ip:
        return False
    try:
        ipaddress.ip_address(ip)
    except ValueError:
        return False
    return True


def client_ip_from_headers(forwarded_for: Optional[str], peer_host: Optional[str]) -> str:
    """Pick the visitor IP for inline evaluation.

    ``X-Forwarded-For`` wins when present; for a proxy chain the first
    (client-most) entry is used. Falls back to the connection peer address.
    Returns an empty string when neither is known, which fails validation.
    """
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return peer_host or ""
