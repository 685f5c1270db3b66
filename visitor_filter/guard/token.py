"""Per-evaluator bypass token.

The evaluator's own loopback fetch (action mode 3) carries ``X-VTF-Bypass: 1``
and ``X-VTF-Token: <token>``. A filter that sees both, with a token equal to
its own, skips evaluation so the fetched page cannot block the fetch.

Security invariants:
  - The token is generated once from ``secrets`` and never changes afterwards.
  - It never appears in ``repr``/``str`` output or in log entries.
  - Comparison is constant-time (``hmac.compare_digest``).
  - Validation fails closed: anything unexpected means "not bypassed".
"""

from __future__ import annotations

import hmac
import secrets
from dataclasses import dataclass, field
from typing import Any, Optional

from visitor_filter.constants import (
    BYPASS_HEADER,
    BYPASS_HEADER_VALUE,
    BYPASS_TOKEN_BYTES,
    BYPASS_TOKEN_HEADER,
)


def generate_secure_token(nbytes: int = BYPASS_TOKEN_BYTES) -> str:
    """Return ``nbytes`` of CSPRNG output, hex-encoded."""
    return secrets.token_hex(nbytes)


@dataclass(frozen=True)
class BypassToken:
    """Immutable secret shared by all evaluations of one evaluator instance."""

    value: str = field(default_factory=generate_secure_token, repr=False)

    def __str__(self) -> str:
        return "BypassToken(***)"

    def matches(self, candidate: Any) -> bool:
        """Constant-time comparison against ``candidate``.

        Returns False for None, empty, non-string or non-encodable candidates
        instead of raising.
        """
        if not candidate or not isinstance(candidate, str):
            return False
        try:
            return hmac.compare_digest(
                candidate.encode("utf-8"),
                self.value.encode("utf-8"),
            )
        except (TypeError, ValueError, UnicodeError):
            return False

    def headers(self) -> dict[str, str]:
        """Headers for an authenticated loopback request."""
        return {
            BYPASS_HEADER: BYPASS_HEADER_VALUE,
            BYPASS_TOKEN_HEADER: self.value,
        }


def is_bypass_request(
    token: BypassToken,
    bypass_flag: Optional[str],
    bypass_token: Optional[str],
) -> bool:
    """Return True only when the flag is ``"1"`` and the token matches."""
    if bypass_flag != BYPASS_HEADER_VALUE:
        return False
    return token.matches(bypass_token)
