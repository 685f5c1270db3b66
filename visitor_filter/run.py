"""Programmatic uvicorn entry point for the protected demo site.

Usage:
    python -m visitor_filter.run              # reads .vtf/config.yaml
    visitor-filter --port 8080                # via pyproject.toml [project.scripts]
"""

from __future__ import annotations

import argparse

import uvicorn

DEFAULT_HOST: str = "127.0.0.1"
DEFAULT_PORT: int = 8000

# Low keep-alive shortens the window slow clients can hold a connection.
UVICORN_TIMEOUT_KEEP_ALIVE: int = 5


def main() -> None:
    """Start the demo site under uvicorn."""
    parser = argparse.ArgumentParser(description="Serve a demo site behind the visitor filter.")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    args = parser.parse_args()

    uvicorn.run(
        "visitor_filter.main:app",
        host=args.host,
        port=args.port,
        timeout_keep_alive=UVICORN_TIMEOUT_KEEP_ALIVE,
    )


if __name__ == "__main__":
    main()
