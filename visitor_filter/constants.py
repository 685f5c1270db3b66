"""Shared constants for the visitor filter.

Endpoint, header names, status ranges and client sizing used across modules
are defined here. No magic values in other modules — import from here.
"""

# ─── Remote analytics service ────────────────────────────────────────────────

# Verdict endpoint. Signals are sent as query parameters on a single GET.
ANALYTICS_API_URL: str = "https://moonito.net/api/v1/analytics"

# Credential headers sent on every verdict request.
PUBLIC_KEY_HEADER: str = "X-Public-Key"
SECRET_KEY_HEADER: str = "X-Secret-Key"

# ─── Loopback bypass ─────────────────────────────────────────────────────────

# Headers carried by the evaluator's own loopback fetch (action mode 3) so the
# fetched page is not evaluated again when it is protected by a filter too.
BYPASS_HEADER: str = "X-VTF-Bypass"
BYPASS_TOKEN_HEADER: str = "X-VTF-Token"
BYPASS_HEADER_VALUE: str = "1"

# Random bytes in a bypass token. Hex-encoded → 64 characters.
BYPASS_TOKEN_BYTES: int = 32

# ─── Status directives ───────────────────────────────────────────────────────

# unwantedVisitorTo values parsing as an integer inside this range are sent
# as-is; any other integer collapses to INVALID_STATUS_FALLBACK.
MIN_STATUS_CODE: int = 100
MAX_STATUS_CODE: int = 599
INVALID_STATUS_FALLBACK: int = 500

# Status used for the built-in "Access Denied" page (no target configured).
ACCESS_DENIED_STATUS: int = 403

# Status used when redirecting a blocked visitor inline.
REDIRECT_STATUS: int = 302

# Delay before the client-side redirect fires in manual redirect content.
REDIRECT_DELAY_MS: int = 1000

# ─── HTTP client sizing ──────────────────────────────────────────────────────

POOL_MAX_CONNECTIONS: int = 100
POOL_MAX_KEEPALIVE: int = 20
POOL_KEEPALIVE_EXPIRY: float = 30.0  # seconds
CLIENT_TIMEOUT: float = 30.0  # total request timeout, seconds

# Verdict round trips slower than this are logged at WARNING.
SLOW_VERDICT_THRESHOLD_MS: float = 500.0
