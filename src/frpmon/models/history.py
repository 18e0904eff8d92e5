"""Models for the panel's historical REST endpoints."""

from __future__ import annotations

from datetime import datetime

from frpmon.models._base import FrpBaseModel


class TrafficSummary(FrpBaseModel):
    """``GET /traffic/summary``."""

    total_bytes_in: int = 0
    total_bytes_out: int = 0
    current_rate_in: float = 0
    current_rate_out: float = 0
    active_proxies: int = 0
    total_proxies: int = 0


class TrafficTrendPoint(FrpBaseModel):
    """One bucket of ``GET /traffic/trend``."""

    time: str
    inbound: int = 0
    outbound: int = 0


class TrafficStatsPoint(FrpBaseModel):
    """One stored sample of ``GET /traffic/proxy/{id}``."""

    id: int = 0
    proxy_id: int
    bytes_in: int = 0
    bytes_out: int = 0
    current_rate_in: float = 0
    current_rate_out: float = 0
    record_time: datetime | None = None


class ProxyTrafficSummary(FrpBaseModel):
    """Per-proxy totals of ``GET /traffic/proxies/summary``."""

    total_in: int = 0
    total_out: int = 0


class MonitorOverview(FrpBaseModel):
    """``GET /monitor/overview``."""

    total_clients: int = 0
    total_proxies: int = 0
    active_proxies: int = 0
    total_bytes_in: int = 0
    total_bytes_out: int = 0
    current_rate_in: float = 0
    current_rate_out: float = 0
