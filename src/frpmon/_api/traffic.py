"""Traffic history endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import TypeAdapter

from frpmon._api._common import rfc3339, validate_data
from frpmon._transport import Transport
from frpmon.models.history import ProxyTrafficSummary, TrafficStatsPoint, TrafficSummary, TrafficTrendPoint

_SUMMARY_ENDPOINT = "/traffic/summary"
_TREND_ENDPOINT = "/traffic/trend"
_PROXIES_SUMMARY_ENDPOINT = "/traffic/proxies/summary"

_SUMMARY = TypeAdapter(TrafficSummary)
_TREND = TypeAdapter(list[TrafficTrendPoint])
_STATS = TypeAdapter(list[TrafficStatsPoint])
_PROXIES_SUMMARY = TypeAdapter(dict[int, ProxyTrafficSummary])


async def fetch_traffic_summary(transport: Transport) -> TrafficSummary:
    data = await transport.get_json(_SUMMARY_ENDPOINT)
    return validate_data(_SUMMARY, data or {}, _SUMMARY_ENDPOINT)


async def fetch_traffic_trend(transport: Transport, *, hours: int | None = None) -> list[TrafficTrendPoint]:
    data = await transport.get_json(_TREND_ENDPOINT, {"hours": hours})
    return validate_data(_TREND, data or [], _TREND_ENDPOINT)


async def fetch_proxy_history(
    transport: Transport,
    proxy_id: int,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[TrafficStatsPoint]:
    """Stored samples for one proxy. The server defaults to the last 24 hours."""
    endpoint = f"/traffic/proxy/{proxy_id}"
    params = {
        "start": rfc3339(start) if start is not None else None,
        "end": rfc3339(end) if end is not None else None,
    }
    data = await transport.get_json(endpoint, params)
    return validate_data(_STATS, data or [], endpoint)


async def fetch_proxies_summary(
    transport: Transport,
    *,
    hours: int | None = None,
) -> dict[int, ProxyTrafficSummary]:
    """Per-proxy byte totals keyed by proxy id (JSON object keys are strings on the wire)."""
    data = await transport.get_json(_PROXIES_SUMMARY_ENDPOINT, {"hours": hours})
    return validate_data(_PROXIES_SUMMARY, data or {}, _PROXIES_SUMMARY_ENDPOINT)
