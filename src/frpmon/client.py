"""High-level async client for the FRP panel realtime monitor."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

import aiohttp

from frpmon._api import monitor as _monitor_api
from frpmon._api import traffic as _traffic_api
from frpmon._transport import ApiTransport
from frpmon._ws import ConnectionState, RealtimeSocket, Subscription
from frpmon.config import MonitorConfig
from frpmon.exceptions import FrpMonError
from frpmon.models.history import (
    MonitorOverview,
    ProxyTrafficSummary,
    TrafficStatsPoint,
    TrafficSummary,
    TrafficTrendPoint,
)
from frpmon.models.traffic import HistoryPoint, MonitorSnapshot
from frpmon.state.aggregator import StreamAggregator

_logger = logging.getLogger(__name__)


class FrpMonitorClient:
    """Live traffic view plus historical reads for one panel.

    Usage::

        async with FrpMonitorClient(config) as client:
            client.start()
            client.add_listener(render)
            ...

    The realtime side never raises: while the channel is down the
    snapshot simply stops updating until the next successful ingest.
    """

    def __init__(
        self,
        config: MonitorConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        aggregator: StreamAggregator | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport: ApiTransport | None = None
        self._socket: RealtimeSocket | None = None
        self._subscription: Subscription | None = None
        self._aggregator = aggregator or StreamAggregator(
            top_n=config.top_n,
            proxy_history_size=config.proxy_history_size,
            chart_history_size=config.chart_history_size,
        )

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> FrpMonitorClient:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        self._transport = ApiTransport(self._config, self._http_session)
        self._socket = RealtimeSocket(
            self._http_session,
            heartbeat_interval=self._config.heartbeat_interval,
            reconnect_delay=self._config.reconnect_delay,
            logger=_logger,
        )
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._transport = None
        self._socket = None

    # ------------------------------------------------------------------
    # Realtime
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Subscribe the aggregator and open the realtime channel."""
        socket = self._require_socket()
        if self._subscription is None or not self._subscription.active:
            self._subscription = self._aggregator.attach(socket)
        socket.connect(self._config.ws_url, self._config.token)

    async def stop(self) -> None:
        """Close the realtime channel; subscriptions are released."""
        socket = self._socket
        if socket is None:
            return
        socket.disconnect()
        self._subscription = None
        await socket.wait_closed()

    @property
    def aggregator(self) -> StreamAggregator:
        return self._aggregator

    @property
    def connection_state(self) -> ConnectionState:
        """Raw transport state (``IDLE`` before entering the context)."""
        if self._socket is None:
            return ConnectionState.IDLE
        return self._socket.state

    @property
    def connected(self) -> bool:
        return self._aggregator.connection_status

    @property
    def snapshot(self) -> MonitorSnapshot:
        return self._aggregator.snapshot

    def get_proxy_history(self, proxy_id: int) -> list[HistoryPoint]:
        return self._aggregator.get_history(proxy_id)

    def add_listener(self, listener: Callable[[MonitorSnapshot], None]) -> Callable[[], None]:
        return self._aggregator.add_listener(listener)

    # ------------------------------------------------------------------
    # Historical reads
    # ------------------------------------------------------------------

    async def get_traffic_summary(self) -> TrafficSummary:
        return await _traffic_api.fetch_traffic_summary(self._require_transport())

    async def get_traffic_trend(self, *, hours: int | None = None) -> list[TrafficTrendPoint]:
        return await _traffic_api.fetch_traffic_trend(self._require_transport(), hours=hours)

    async def get_traffic_history(
        self,
        proxy_id: int,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[TrafficStatsPoint]:
        """Stored samples for *proxy_id* between *start* and *end*."""
        return await _traffic_api.fetch_proxy_history(self._require_transport(), proxy_id, start=start, end=end)

    async def get_proxies_traffic_summary(self, *, hours: int | None = None) -> dict[int, ProxyTrafficSummary]:
        return await _traffic_api.fetch_proxies_summary(self._require_transport(), hours=hours)

    async def get_overview(self) -> MonitorOverview:
        return await _monitor_api.fetch_monitor_overview(self._require_transport())

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_socket(self) -> RealtimeSocket:
        if self._socket is None:
            raise FrpMonError("Client not initialized. Use 'async with FrpMonitorClient(...) as client:'")
        return self._socket

    def _require_transport(self) -> ApiTransport:
        if self._transport is None:
            raise FrpMonError("Client not initialized. Use 'async with FrpMonitorClient(...) as client:'")
        return self._transport
