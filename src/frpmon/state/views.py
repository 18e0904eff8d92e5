"""Derived view builders.

Pure functions over one snapshot; none of them keep state between calls.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from frpmon.models.traffic import OwnerGroup, TrafficSample, TrafficTotals


def build_totals(samples: Sequence[TrafficSample]) -> TrafficTotals:
    """Sum rates and count online proxies over the whole snapshot."""
    return TrafficTotals(
        in_rate=sum(sample.in_rate for sample in samples),
        out_rate=sum(sample.out_rate for sample in samples),
        online_count=sum(1 for sample in samples if sample.online),
        total_count=len(samples),
    )


def owner_label(sample: TrafficSample) -> str:
    if sample.owner_label:
        return sample.owner_label
    return f"Client {sample.owner_id}"


@dataclass
class _GroupAccumulator:
    owner_id: int
    label: str
    members: list[TrafficSample] = field(default_factory=list)
    in_rate: float = 0
    out_rate: float = 0
    online_count: int = 0

    def add(self, sample: TrafficSample) -> None:
        self.members.append(sample)
        self.in_rate += sample.in_rate
        self.out_rate += sample.out_rate
        if sample.online:
            self.online_count += 1

    def freeze(self) -> OwnerGroup:
        return OwnerGroup(
            owner_id=self.owner_id,
            label=self.label,
            members=tuple(self.members),
            in_rate=self.in_rate,
            out_rate=self.out_rate,
            online_count=self.online_count,
        )


def group_by_owner(samples: Sequence[TrafficSample]) -> list[OwnerGroup]:
    """Group a snapshot by owner in one pass.

    The first sample seen for an owner fixes the group label. Groups come
    out in first-seen order.
    """
    groups: dict[int, _GroupAccumulator] = {}
    for sample in samples:
        group = groups.get(sample.owner_id)
        if group is None:
            group = _GroupAccumulator(owner_id=sample.owner_id, label=owner_label(sample))
            groups[sample.owner_id] = group
        group.add(sample)
    return [group.freeze() for group in groups.values()]


def top_n(samples: Sequence[TrafficSample], n: int) -> list[TrafficSample]:
    """Highest ``in_rate + out_rate`` first, ties kept in snapshot order."""
    # sorted() is stable, so reverse=True keeps equal scores in input order.
    return sorted(samples, key=lambda sample: sample.total_rate, reverse=True)[:n]
