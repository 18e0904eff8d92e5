"""frpmon - Async realtime traffic monitor client for the FRP web panel."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyfrpmon")
except PackageNotFoundError:
    __version__ = "0+local"
from frpmon._ws import ConnectionState, RealtimeSocket, Subscription
from frpmon.client import FrpMonitorClient
from frpmon.config import MonitorConfig
from frpmon.exceptions import (
    FrpMonApiError,
    FrpMonAuthenticationError,
    FrpMonConfigError,
    FrpMonError,
    FrpMonTransportError,
)
from frpmon.formatting import format_bytes
from frpmon.models import (
    HistoryPoint,
    MonitorOverview,
    MonitorSnapshot,
    OwnerGroup,
    ProxyTrafficSummary,
    TrafficSample,
    TrafficStatsPoint,
    TrafficSummary,
    TrafficTotals,
    TrafficTrendPoint,
)
from frpmon.state.aggregator import StreamAggregator

__all__ = [
    "__version__",
    "ConnectionState",
    "FrpMonApiError",
    "FrpMonAuthenticationError",
    "FrpMonConfigError",
    "FrpMonError",
    "FrpMonTransportError",
    "FrpMonitorClient",
    "HistoryPoint",
    "MonitorConfig",
    "MonitorOverview",
    "MonitorSnapshot",
    "OwnerGroup",
    "ProxyTrafficSummary",
    "RealtimeSocket",
    "StreamAggregator",
    "Subscription",
    "TrafficSample",
    "TrafficStatsPoint",
    "TrafficSummary",
    "TrafficTotals",
    "TrafficTrendPoint",
    "format_bytes",
]
