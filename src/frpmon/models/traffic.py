"""Realtime traffic models.

``TrafficSample`` mirrors one entry of a ``traffic_update`` frame. The
wire uses panel vocabulary (``client_id``, ``bytes_in_rate``...); the
model exposes it under owner/rate names and accepts either spelling.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from frpmon.models._base import FrpBaseModel


class TrafficSample(FrpBaseModel):
    """Live counters for a single proxy."""

    proxy_id: int
    proxy_name: str = ""
    owner_id: int = Field(..., alias="client_id")
    owner_label: str | None = Field(default=None, alias="client_name")
    in_rate: float = Field(..., alias="bytes_in_rate", description="Inbound bytes per second")
    out_rate: float = Field(..., alias="bytes_out_rate", description="Outbound bytes per second")
    cumulative_in: float = Field(default=0, alias="total_bytes_in")
    cumulative_out: float = Field(default=0, alias="total_bytes_out")
    online: bool = False

    @property
    def total_rate(self) -> float:
        """Ranking score: inbound plus outbound rate."""
        return self.in_rate + self.out_rate


class HistoryPoint(FrpBaseModel):
    """One entry of a rolling rate history."""

    label: str
    in_rate: float
    out_rate: float


class TrafficTotals(FrpBaseModel):
    """Sums over the current snapshot."""

    in_rate: float = 0
    out_rate: float = 0
    online_count: int = 0
    total_count: int = 0


class OwnerGroup(FrpBaseModel):
    """Proxies of the current snapshot sharing one owner (frpc client)."""

    owner_id: int
    label: str
    members: tuple[TrafficSample, ...] = ()
    in_rate: float = 0
    out_rate: float = 0
    online_count: int = 0

    @property
    def member_count(self) -> int:
        return len(self.members)


class MonitorSnapshot(FrpBaseModel):
    """Everything a dashboard needs, consistent as of one ingest."""

    samples: tuple[TrafficSample, ...] = ()
    totals: TrafficTotals = Field(default_factory=TrafficTotals)
    groups: tuple[OwnerGroup, ...] = ()
    top: tuple[TrafficSample, ...] = ()
    chart_history: tuple[HistoryPoint, ...] = ()
    connected: bool = False
    observed_at: datetime | None = None
