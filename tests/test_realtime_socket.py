from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace
from typing import Any

import aiohttp
import pytest

from frpmon._ws import ConnectionState, RealtimeSocket, build_channel_url

URL = "ws://panel.test/api/ws/realtime"
TOKEN = "tok-123"


class FakeWebSocket:
    """In-memory stand-in for ``aiohttp.ClientWebSocketResponse``."""

    def __init__(self) -> None:
        self._inbox: asyncio.Queue[Any] = asyncio.Queue()
        self.sent: list[str] = []
        self.closed = False

    def feed(self, text: str) -> None:
        self._inbox.put_nowait(SimpleNamespace(type=aiohttp.WSMsgType.TEXT, data=text))

    def feed_json(self, payload: Any) -> None:
        self.feed(json.dumps(payload))

    def drop(self) -> None:
        """Simulate the server going away."""
        self._inbox.put_nowait(None)

    def fail(self, exc: BaseException) -> None:
        """Make the next receive raise *exc*."""
        self._inbox.put_nowait(exc)

    def exception(self) -> BaseException | None:
        return None

    async def send_str(self, data: str) -> None:
        self.sent.append(data)

    async def close(self) -> bool:
        self.closed = True
        return True

    def __aiter__(self) -> FakeWebSocket:
        return self

    async def __anext__(self) -> Any:
        if self.closed:
            raise StopAsyncIteration
        msg = await self._inbox.get()
        if msg is None:
            self.closed = True
            raise StopAsyncIteration
        if isinstance(msg, BaseException):
            raise msg
        return msg


class FakeSession:
    def __init__(self) -> None:
        self.urls: list[str] = []
        self.sockets: list[FakeWebSocket] = []
        self.gate: asyncio.Event | None = None
        self.fail_next = 0

    async def ws_connect(self, url: str, **_kwargs: Any) -> FakeWebSocket:
        self.urls.append(url)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_next:
            self.fail_next -= 1
            raise aiohttp.ClientConnectionError("connection refused")
        ws = FakeWebSocket()
        self.sockets.append(ws)
        return ws


async def _settle() -> None:
    for _ in range(10):
        await asyncio.sleep(0)


def _socket(session: FakeSession, *, heartbeat: float = 60.0, reconnect: float = 60.0) -> RealtimeSocket:
    return RealtimeSocket(session, heartbeat_interval=heartbeat, reconnect_delay=reconnect)  # type: ignore[arg-type]


def test_build_channel_url_embeds_token() -> None:
    assert build_channel_url(URL, "abc") == f"{URL}?token=abc"
    assert build_channel_url(f"{URL}?v=1", "a b") == f"{URL}?v=1&token=a+b"


@pytest.mark.asyncio
async def test_connect_twice_before_open_makes_one_attempt() -> None:
    session = FakeSession()
    session.gate = asyncio.Event()
    sock = _socket(session)

    sock.connect(URL, TOKEN)
    sock.connect(URL, TOKEN)
    await _settle()

    assert sock.state is ConnectionState.CONNECTING
    assert session.urls == [f"{URL}?token={TOKEN}"]

    session.gate.set()
    await _settle()
    assert sock.state is ConnectionState.OPEN

    sock.connect(URL, TOKEN)
    await _settle()
    assert sock.connect_attempts == 1

    sock.disconnect()
    await sock.wait_closed()


@pytest.mark.asyncio
async def test_disconnect_while_connecting_leaves_no_timers() -> None:
    session = FakeSession()
    session.gate = asyncio.Event()
    sock = _socket(session, heartbeat=0.01, reconnect=0.01)

    sock.connect(URL, TOKEN)
    await _settle()
    sock.disconnect()
    await sock.wait_closed()

    assert sock.state is ConnectionState.CLOSED
    assert not sock.heartbeat_active
    assert not sock.reconnect_pending

    session.gate.set()
    await asyncio.sleep(0.05)
    assert sock.state is ConnectionState.CLOSED
    assert len(session.urls) == 1


@pytest.mark.asyncio
async def test_frames_fan_out_in_registration_order() -> None:
    session = FakeSession()
    sock = _socket(session)
    calls: list[tuple[str, Any]] = []

    sock.on_message("traffic_update", lambda m: calls.append(("first", m["data"])))
    sock.on_message("traffic_update", lambda m: calls.append(("second", m["data"])))
    sock.on_message("other", lambda m: calls.append(("other", m["data"])))

    sock.connect(URL, TOKEN)
    await _settle()
    ws = session.sockets[0]
    ws.feed_json({"type": "traffic_update", "data": [1]})
    ws.feed("{not json")
    ws.feed("[1, 2]")
    ws.feed_json({"data": "no type"})
    ws.feed_json({"type": "traffic_update", "data": [2]})
    await _settle()

    assert calls == [("first", [1]), ("second", [1]), ("first", [2]), ("second", [2])]
    assert sock.state is ConnectionState.OPEN

    sock.disconnect()
    await sock.wait_closed()


@pytest.mark.asyncio
async def test_failing_handler_does_not_stop_fan_out() -> None:
    session = FakeSession()
    sock = _socket(session)
    seen: list[int] = []

    def _boom(_message: dict[str, Any]) -> None:
        raise RuntimeError("handler bug")

    sock.on_message("traffic_update", _boom)
    sock.on_message("traffic_update", lambda m: seen.append(m["n"]))

    sock.connect(URL, TOKEN)
    await _settle()
    session.sockets[0].feed_json({"type": "traffic_update", "n": 1})
    session.sockets[0].feed_json({"type": "traffic_update", "n": 2})
    await _settle()

    assert seen == [1, 2]
    assert sock.state is ConnectionState.OPEN
    sock.disconnect()
    await sock.wait_closed()


@pytest.mark.asyncio
async def test_unexpected_close_reconnects_after_delay() -> None:
    session = FakeSession()
    sock = _socket(session, reconnect=0.01)
    seen: list[int] = []
    sock.on_message("traffic_update", lambda m: seen.append(m["n"]))

    sock.connect(URL, TOKEN)
    await _settle()
    session.sockets[0].drop()
    await _settle()

    assert sock.state is ConnectionState.CLOSED
    assert sock.reconnect_pending
    assert not sock.heartbeat_active

    await asyncio.sleep(0.05)
    assert sock.state is ConnectionState.OPEN
    assert sock.connect_attempts == 2
    assert session.urls[1] == session.urls[0]

    # Subscriptions survive an unexpected close.
    session.sockets[1].feed_json({"type": "traffic_update", "n": 7})
    await _settle()
    assert seen == [7]

    sock.disconnect()
    await sock.wait_closed()


@pytest.mark.asyncio
async def test_handshake_failure_takes_reconnect_path() -> None:
    session = FakeSession()
    session.fail_next = 1
    sock = _socket(session, reconnect=0.01)

    sock.connect(URL, TOKEN)
    await _settle()
    assert sock.state is ConnectionState.CLOSED
    assert sock.reconnect_pending

    await asyncio.sleep(0.05)
    assert sock.state is ConnectionState.OPEN
    assert sock.connect_attempts == 2

    sock.disconnect()
    await sock.wait_closed()


@pytest.mark.asyncio
async def test_explicit_connect_replaces_pending_reconnect() -> None:
    session = FakeSession()
    sock = _socket(session, reconnect=0.02)

    sock.connect(URL, TOKEN)
    await _settle()
    session.sockets[0].drop()
    await _settle()
    assert sock.reconnect_pending

    sock.connect(URL, TOKEN)
    await _settle()
    assert not sock.reconnect_pending
    assert sock.state is ConnectionState.OPEN

    await asyncio.sleep(0.06)
    assert len(session.urls) == 2

    sock.disconnect()
    await sock.wait_closed()


@pytest.mark.asyncio
async def test_heartbeat_pings_while_open_and_stops_on_close() -> None:
    session = FakeSession()
    sock = _socket(session, heartbeat=0.01)

    sock.connect(URL, TOKEN)
    await _settle()
    assert sock.heartbeat_active
    await asyncio.sleep(0.06)

    ws = session.sockets[0]
    assert len(ws.sent) >= 2
    assert all(json.loads(frame) == {"type": "ping"} for frame in ws.sent)

    ws.drop()
    await _settle()
    assert not sock.heartbeat_active
    sent_after_close = len(ws.sent)
    await asyncio.sleep(0.05)
    assert len(ws.sent) == sent_after_close

    sock.disconnect()
    await sock.wait_closed()


@pytest.mark.asyncio
async def test_disconnect_releases_subscriptions_and_closes_channel() -> None:
    session = FakeSession()
    sock = _socket(session, heartbeat=0.01, reconnect=0.01)
    seen: list[Any] = []
    subscription = sock.on_message("traffic_update", seen.append)

    sock.connect(URL, TOKEN)
    await _settle()
    sock.disconnect()
    await sock.wait_closed()

    assert not subscription.active
    assert session.sockets[0].closed
    assert sock.state is ConnectionState.CLOSED
    assert not sock.heartbeat_active
    assert not sock.reconnect_pending

    await asyncio.sleep(0.05)
    assert sock.connect_attempts == 1

    # Consumers must re-subscribe after a new connect.
    sock.connect(URL, TOKEN)
    await _settle()
    session.sockets[1].feed_json({"type": "traffic_update"})
    await _settle()
    assert seen == []

    sock.disconnect()
    await sock.wait_closed()


@pytest.mark.asyncio
async def test_subscription_close_releases_only_its_handler() -> None:
    session = FakeSession()
    sock = _socket(session)
    first: list[Any] = []
    second: list[Any] = []

    with sock.on_message("traffic_update", first.append):
        sock.on_message("traffic_update", second.append)
        sock.connect(URL, TOKEN)
        await _settle()
        session.sockets[0].feed_json({"type": "traffic_update", "n": 1})
        await _settle()

    session.sockets[0].feed_json({"type": "traffic_update", "n": 2})
    await _settle()

    assert [m["n"] for m in first] == [1]
    assert [m["n"] for m in second] == [1, 2]

    sock.disconnect()
    await sock.wait_closed()


@pytest.mark.asyncio
async def test_state_listener_sees_lifecycle() -> None:
    session = FakeSession()
    sock = _socket(session)
    states: list[ConnectionState] = []
    sock.add_state_listener(states.append)

    sock.connect(URL, TOKEN)
    await _settle()
    sock.disconnect()
    await sock.wait_closed()

    assert states == [ConnectionState.CONNECTING, ConnectionState.OPEN, ConnectionState.CLOSED]


@pytest.mark.asyncio
async def test_send_requires_open_channel() -> None:
    session = FakeSession()
    sock = _socket(session)

    assert await sock.send({"type": "ping"}) is False

    sock.connect(URL, TOKEN)
    await _settle()
    assert await sock.send({"type": "subscribe"}) is True
    assert session.sockets[0].sent == ['{"type":"subscribe"}']

    sock.disconnect()
    await sock.wait_closed()
    assert await sock.send({"type": "ping"}) is False


@pytest.mark.asyncio
async def test_disconnect_from_idle_is_safe() -> None:
    sock = _socket(FakeSession())
    sock.disconnect()
    await sock.wait_closed()
    assert sock.state is ConnectionState.CLOSED
    assert sock.connect_attempts == 0


@pytest.mark.asyncio
async def test_unparseable_frame_is_dropped_and_channel_stays_open() -> None:
    session = FakeSession()
    sock = _socket(session)
    seen: list[int] = []
    sock.on_message("traffic_update", lambda m: seen.append(m["n"]))

    sock.connect(URL, TOKEN)
    await _settle()
    ws = session.sockets[0]
    ws.feed("[" * 200000)
    ws.feed_json({"type": "traffic_update", "n": 1})
    await _settle()

    assert seen == [1]
    assert sock.state is ConnectionState.OPEN
    assert sock.connect_attempts == 1

    sock.disconnect()
    await sock.wait_closed()


@pytest.mark.asyncio
async def test_unexpected_receive_error_takes_reconnect_path() -> None:
    session = FakeSession()
    sock = _socket(session, reconnect=0.01)

    sock.connect(URL, TOKEN)
    await _settle()
    session.sockets[0].fail(RuntimeError("decoder blew up"))
    await _settle()

    assert sock.state is ConnectionState.CLOSED
    assert sock.reconnect_pending
    assert not sock.heartbeat_active
    assert session.sockets[0].closed

    await asyncio.sleep(0.05)
    assert sock.state is ConnectionState.OPEN
    assert sock.connect_attempts == 2

    sock.disconnect()
    await sock.wait_closed()
