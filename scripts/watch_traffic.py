#!/usr/bin/env python3
"""Console probe for the panel's realtime traffic feed.

Connects to the realtime websocket, feeds every ``traffic_update`` into
the aggregator and prints totals, owner groups and the top proxies after
each snapshot. Use this to check what a dashboard would show.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
from pathlib import Path

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from frpmon import FrpMonitorClient, MonitorConfig, MonitorSnapshot, format_bytes  # noqa: E402
from frpmon.exceptions import FrpMonConfigError  # noqa: E402

_LOG = logging.getLogger("watch_traffic")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Print live FRP traffic views from the panel websocket.",
    )
    parser.add_argument(
        "--base-url",
        default=None,
        help="Panel origin (default: FRPMON_BASE_URL)",
    )
    parser.add_argument(
        "--token",
        default=None,
        help="Bearer token (default: FRPMON_TOKEN)",
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=0.0,
        help="Stop after N seconds (0 = run until interrupted)",
    )
    parser.add_argument(
        "--groups",
        action="store_true",
        help="Also print per-client groups",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable DEBUG logging",
    )
    return parser.parse_args()


def _print_snapshot(snapshot: MonitorSnapshot, *, show_groups: bool) -> None:
    totals = snapshot.totals
    stamp = snapshot.observed_at.strftime("%H:%M:%S") if snapshot.observed_at else "--:--:--"
    print(
        f"[{stamp}] in={format_bytes(totals.in_rate)}/s out={format_bytes(totals.out_rate)}/s "
        f"online={totals.online_count}/{totals.total_count}"
    )
    for rank, sample in enumerate(snapshot.top, start=1):
        print(
            f"    #{rank} {sample.proxy_name or sample.proxy_id}: "
            f"in={format_bytes(sample.in_rate)}/s out={format_bytes(sample.out_rate)}/s"
        )
    if show_groups:
        for group in snapshot.groups:
            print(
                f"    [{group.label}] proxies={group.member_count} online={group.online_count} "
                f"in={format_bytes(group.in_rate)}/s out={format_bytes(group.out_rate)}/s"
            )


async def _watch(config: MonitorConfig, args: argparse.Namespace) -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(signum, stop.set)

    async with FrpMonitorClient(config) as client:
        client.add_listener(lambda snapshot: _print_snapshot(snapshot, show_groups=args.groups))
        client.start()
        print(f"[probe] Connecting to {config.ws_url}")
        timeout = args.duration if args.duration > 0 else None
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(stop.wait(), timeout)
        print(f"[probe] Stopping (connected={client.connected} state={client.connection_state})")


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    overrides = {}
    if args.base_url:
        overrides["base_url"] = args.base_url
    if args.token:
        overrides["token"] = args.token
    try:
        config = MonitorConfig.from_env(**overrides)
    except FrpMonConfigError as exc:
        _LOG.error("%s", exc)
        return 2

    asyncio.run(_watch(config, args))
    return 0


if __name__ == "__main__":
    raise SystemExit(_main())
