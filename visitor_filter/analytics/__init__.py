"""Outbound calls: analytics verdict query and bypass-authenticated loopback fetch."""

from __future__ import annotations

from visitor_filter.analytics.client import AnalyticsClient, create_http_client, encode_component

__all__ = ["AnalyticsClient", "create_http_client", "encode_component"]
