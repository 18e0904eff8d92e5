"""Data models for frpmon."""

from frpmon.models._base import FrpBaseModel
from frpmon.models.history import (
    MonitorOverview,
    ProxyTrafficSummary,
    TrafficStatsPoint,
    TrafficSummary,
    TrafficTrendPoint,
)
from frpmon.models.traffic import (
    HistoryPoint,
    MonitorSnapshot,
    OwnerGroup,
    TrafficSample,
    TrafficTotals,
)

__all__ = [
    "FrpBaseModel",
    "HistoryPoint",
    "MonitorOverview",
    "MonitorSnapshot",
    "OwnerGroup",
    "ProxyTrafficSummary",
    "TrafficSample",
    "TrafficStatsPoint",
    "TrafficSummary",
    "TrafficTotals",
    "TrafficTrendPoint",
]
