"""``traffic_update`` frame parsing.

This is the only place realtime payloads are validated. The aggregator
downstream assumes well-typed batches.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from frpmon._constants import TRAFFIC_UPDATE_MESSAGE
from frpmon._redact import redact_for_log
from frpmon.models.traffic import TrafficSample

_logger = logging.getLogger(__name__)


class _TrafficUpdateEnvelope(BaseModel):
    """Minimal Pydantic envelope for ``traffic_update`` frames."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    type: str
    data: list[TrafficSample] = Field(default_factory=list)


def parse_traffic_update(message: dict[str, Any]) -> list[TrafficSample] | None:
    """Validate a ``traffic_update`` frame into a snapshot.

    Returns ``None`` when the frame is of another type or any sample is
    malformed; the whole frame is dropped in that case. A frame with
    ``"data": null`` is an empty snapshot.
    """
    if message.get("type") != TRAFFIC_UPDATE_MESSAGE:
        return None
    payload = dict(message)
    if payload.get("data") is None:
        payload["data"] = []
    try:
        envelope = _TrafficUpdateEnvelope.model_validate(payload)
    except ValidationError as exc:
        _logger.debug(
            "Dropping malformed traffic_update (%d errors) payload=%s",
            exc.error_count(),
            redact_for_log(message, max_string=128),
        )
        return None
    return envelope.data
