"""Monitor overview endpoint."""

from __future__ import annotations

from pydantic import TypeAdapter

from frpmon._api._common import validate_data
from frpmon._transport import Transport
from frpmon.models.history import MonitorOverview

_OVERVIEW_ENDPOINT = "/monitor/overview"
_OVERVIEW = TypeAdapter(MonitorOverview)


async def fetch_monitor_overview(transport: Transport) -> MonitorOverview:
    data = await transport.get_json(_OVERVIEW_ENDPOINT)
    return validate_data(_OVERVIEW, data or {}, _OVERVIEW_ENDPOINT)
