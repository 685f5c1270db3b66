#!/usr/bin/env python3
"""Mock analytics service for the visitor filter demo.

Runs on port 8001 and answers like the analytics API — no real API keys needed.
Point the evaluator at it with ``AnalyticsClient(endpoint=...)``.

Verdict rules:
  - missing X-Public-Key / X-Secret-Key  → error envelope
  - user agent containing "bot"          → need_to_block: true
  - everything else                      → need_to_block: false

Usage:
    python3 demo/mock_analytics.py
"""

from urllib.parse import unquote

import uvicorn
from fastapi import FastAPI, Request

app = FastAPI(title="Mock Analytics (Visitor Filter Demo)")


@app.get("/api/v1/analytics")
async def analytics(request: Request, ip: str = "", ua: str = "", events: str = "", domain: str = ""):
    if not request.headers.get("x-public-key") or not request.headers.get("x-secret-key"):
        return {"error": {"message": ["Missing public key", "Missing secret key"]}}

    user_agent = unquote(ua)
    is_bot = "bot" in user_agent.lower()
    return {
        "data": {
            "status": {
                "need_to_block": is_bot,
                "detect_activity": "bot" if is_bot else None,
            },
            "visitor": {"ip": ip, "event": unquote(events), "domain": domain},
        }
    }


if __name__ == "__main__":
    print("Mock analytics service on http://127.0.0.1:8001")
    uvicorn.run(app, host="127.0.0.1", port=8001)
