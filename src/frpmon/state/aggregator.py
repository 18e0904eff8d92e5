"""Live traffic aggregator.

Each ingest replaces the current snapshot wholesale (no diffing) and
rebuilds every derived view from it in one synchronous pass. Consumers
only ever see a complete :class:`~frpmon.models.traffic.MonitorSnapshot`:
the published snapshot is swapped by a single assignment at the end of
:meth:`StreamAggregator.ingest`.

Rolling histories survive across snapshots. A proxy missing from the
latest batch keeps its history; entries are never pruned.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Any, Protocol

from frpmon._constants import CHART_HISTORY_SIZE, PROXY_HISTORY_SIZE, TOP_N, TRAFFIC_UPDATE_MESSAGE
from frpmon.ingestion.traffic import parse_traffic_update
from frpmon.models.traffic import HistoryPoint, MonitorSnapshot, TrafficSample
from frpmon.state.views import build_totals, group_by_owner, top_n

_logger = logging.getLogger(__name__)

SnapshotListener = Callable[[MonitorSnapshot], None]


class _MessageSource(Protocol):
    """What :meth:`StreamAggregator.attach` needs from a transport."""

    def on_message(self, message_type: str, handler: Callable[[dict[str, Any]], None]) -> Any: ...


def _wall_clock() -> datetime:
    return datetime.now()


class StreamAggregator:
    """Maintains totals, owner groups, top-N and rolling histories for one feed.

    Parameters
    ----------
    top_n : int
        Size of the ranking.
    proxy_history_size : int
        Capacity of each per-proxy history.
    chart_history_size : int
        Capacity of the aggregate history.
    clock : callable
        Source of the wall-clock time used for history labels.
    """

    def __init__(
        self,
        *,
        top_n: int = TOP_N,
        proxy_history_size: int = PROXY_HISTORY_SIZE,
        chart_history_size: int = CHART_HISTORY_SIZE,
        clock: Callable[[], datetime] = _wall_clock,
    ) -> None:
        self._top_n = top_n
        self._proxy_history_size = proxy_history_size
        self._clock = clock
        self._proxy_histories: dict[int, deque[HistoryPoint]] = {}
        self._chart_history: deque[HistoryPoint] = deque(maxlen=chart_history_size)
        self._snapshot = MonitorSnapshot()
        self._connected = False
        self._listeners: list[SnapshotListener] = []

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> MonitorSnapshot:
        """Latest published view."""
        return self._snapshot

    @property
    def connection_status(self) -> bool:
        """``True`` once the first snapshot has been ingested."""
        return self._connected

    @property
    def chart_history(self) -> list[HistoryPoint]:
        return list(self._chart_history)

    def get_history(self, proxy_id: int) -> list[HistoryPoint]:
        """Rolling history for *proxy_id*, oldest first; empty if never seen."""
        history = self._proxy_histories.get(proxy_id)
        if history is None:
            return []
        return list(history)

    def add_listener(self, listener: SnapshotListener) -> Callable[[], None]:
        """Call *listener* with every new snapshot. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    # ------------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------------

    def ingest(self, samples: Sequence[TrafficSample]) -> MonitorSnapshot:
        """Replace the current world with *samples* and rebuild every view."""
        now = self._clock()
        label = now.strftime("%H:%M:%S")
        current = tuple(samples)

        totals = build_totals(current)
        groups = group_by_owner(current)
        top = top_n(current, self._top_n)

        for sample in current:
            history = self._proxy_histories.get(sample.proxy_id)
            if history is None:
                history = deque(maxlen=self._proxy_history_size)
                self._proxy_histories[sample.proxy_id] = history
            history.append(HistoryPoint(label=label, in_rate=sample.in_rate, out_rate=sample.out_rate))

        self._chart_history.append(HistoryPoint(label=label, in_rate=totals.in_rate, out_rate=totals.out_rate))
        self._connected = True

        snapshot = MonitorSnapshot(
            samples=current,
            totals=totals,
            groups=tuple(groups),
            top=tuple(top),
            chart_history=tuple(self._chart_history),
            connected=True,
            observed_at=now,
        )
        self._snapshot = snapshot

        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                _logger.debug("Snapshot listener failed", exc_info=True)
        return snapshot

    def handle_message(self, message: dict[str, Any]) -> None:
        """``traffic_update`` subscriber: validate, then ingest."""
        samples = parse_traffic_update(message)
        if samples is None:
            return
        self.ingest(samples)

    def attach(self, source: _MessageSource) -> Any:
        """Subscribe :meth:`handle_message` on *source*; returns its subscription."""
        return source.on_message(TRAFFIC_UPDATE_MESSAGE, self.handle_message)
