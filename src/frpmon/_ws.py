"""Realtime websocket channel: lifecycle, heartbeat, reconnection and typed fan-out.

The socket knows nothing about telemetry. It owns one duplex connection,
parses inbound JSON frames and hands each one to every handler registered
for the frame's ``type`` tag.

All methods must be called from the event loop thread. ``connect`` and
``disconnect`` are synchronous so they can be used from any callback; the
connection itself runs as a task on the running loop.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable, Mapping
from enum import StrEnum
from typing import Any
from urllib.parse import urlencode

import aiohttp

from frpmon._constants import HEARTBEAT_INTERVAL_S, PING_MESSAGE, RECONNECT_DELAY_S, USER_AGENT
from frpmon._redact import redact_url

MessageHandler = Callable[[dict[str, Any]], None]


class ConnectionState(StrEnum):
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class Subscription:
    """Caller-owned handle for one registered callback.

    ``close()`` releases only this callback. Usable as a context manager
    for scoped registration.
    """

    __slots__ = ("handler", "_release")

    def __init__(self, handler: Callable[[Any], None], release: Callable[[Subscription], None]) -> None:
        self.handler = handler
        self._release: Callable[[Subscription], None] | None = release

    @property
    def active(self) -> bool:
        return self._release is not None

    def close(self) -> None:
        release, self._release = self._release, None
        if release is not None:
            release(self)

    def _detach(self) -> None:
        # Registry already cleared by the owner.
        self._release = None

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


def build_channel_url(url: str, token: str) -> str:
    """Embed the credential as the ``token`` query parameter."""
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{urlencode({'token': token})}"


class RealtimeSocket:
    """Single duplex connection with heartbeat and fixed-delay reconnection.

    Timers are owned by states: ``OPEN`` owns the heartbeat task and
    ``CLOSED`` (after an unexpected close) owns the one pending reconnect
    timer. :meth:`_transition` is the only place either is started or
    stopped.
    """

    def __init__(
        self,
        http_session: aiohttp.ClientSession,
        *,
        heartbeat_interval: float = HEARTBEAT_INTERVAL_S,
        reconnect_delay: float = RECONNECT_DELAY_S,
        logger: logging.Logger | None = None,
    ) -> None:
        self._http = http_session
        self._heartbeat_interval = heartbeat_interval
        self._reconnect_delay = reconnect_delay
        self._logger = logger or logging.getLogger(__name__)

        self._state = ConnectionState.IDLE
        self._url = ""
        self._token = ""
        self._explicit_disconnect = False
        self._connect_attempts = 0

        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._task: asyncio.Task[None] | None = None
        self._draining: asyncio.Task[None] | None = None
        self._heartbeat_task: asyncio.Task[None] | None = None
        self._reconnect_handle: asyncio.TimerHandle | None = None

        self._handlers: dict[str, list[Subscription]] = {}
        self._state_listeners: list[Subscription] = []

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is ConnectionState.OPEN

    @property
    def connect_attempts(self) -> int:
        """Number of underlying connection attempts made so far."""
        return self._connect_attempts

    @property
    def heartbeat_active(self) -> bool:
        return self._heartbeat_task is not None

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None

    # ------------------------------------------------------------------
    # Public contract
    # ------------------------------------------------------------------

    def connect(self, url: str, token: str) -> None:
        """Open the channel to *url*, authenticating with *token*.

        No-op while already connecting or open. Clears the
        explicit-disconnect flag.
        """
        if self._state in (ConnectionState.CONNECTING, ConnectionState.OPEN):
            return

        loop = asyncio.get_running_loop()
        self._url = url
        self._token = token
        self._explicit_disconnect = False
        self._transition(ConnectionState.CONNECTING)
        self._task = loop.create_task(self._run(build_channel_url(url, token)))

    def disconnect(self) -> None:
        """Close the channel for good and release every subscription.

        Safe from any state. No heartbeat or reconnect fires afterwards.
        """
        self._explicit_disconnect = True

        task, self._task = self._task, None
        if task is not None and not task.done():
            self._logger.debug("Realtime disconnect requested state=%s", self._state)
            task.cancel()
            self._draining = task

        self._transition(ConnectionState.CLOSED)

        subscriptions = [sub for subs in self._handlers.values() for sub in subs]
        self._handlers.clear()
        for sub in subscriptions:
            sub._detach()  # noqa: SLF001

    def on_message(self, message_type: str, handler: MessageHandler) -> Subscription:
        """Register *handler* for inbound frames whose ``type`` equals *message_type*.

        Handlers for one tag run in registration order.
        """
        subscription = Subscription(handler, lambda sub: self._release_handler(message_type, sub))
        self._handlers.setdefault(message_type, []).append(subscription)
        return subscription

    def add_state_listener(self, callback: Callable[[ConnectionState], None]) -> Subscription:
        """Observe connection-state changes. Survives ``disconnect()``."""
        subscription = Subscription(callback, self._state_listeners.remove)
        self._state_listeners.append(subscription)
        return subscription

    async def send(self, message: Mapping[str, Any]) -> bool:
        """Send a JSON frame. Returns ``False`` unless the channel is open."""
        ws = self._ws
        if ws is None or ws.closed or not self.is_open:
            return False
        try:
            await ws.send_str(json.dumps(message, separators=(",", ":")))
        except (aiohttp.ClientError, OSError):
            self._logger.debug("Realtime send failed", exc_info=True)
            return False
        return True

    async def wait_closed(self) -> None:
        """Wait until the current (or just cancelled) connection task has finished."""
        tasks = {task for task in (self._task, self._draining) if task is not None and not task.done()}
        if tasks:
            await asyncio.wait(tasks)
        self._draining = None

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _transition(self, new_state: ConnectionState, *, reconnect: bool = False) -> None:
        previous = self._state
        self._state = new_state

        if new_state is not ConnectionState.OPEN and self._heartbeat_task is not None:
            self._heartbeat_task.cancel()
            self._heartbeat_task = None
        if (new_state is not ConnectionState.CLOSED or not reconnect) and self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

        if new_state is ConnectionState.OPEN and self._heartbeat_task is None and not self._explicit_disconnect:
            self._heartbeat_task = asyncio.get_running_loop().create_task(self._heartbeat())
        if new_state is ConnectionState.CLOSED and reconnect and self._reconnect_handle is None:
            self._reconnect_handle = asyncio.get_running_loop().call_later(
                self._reconnect_delay,
                self._on_reconnect_timer,
            )

        if previous is not new_state:
            self._logger.debug("Realtime state %s -> %s", previous, new_state)
            for listener in list(self._state_listeners):
                try:
                    listener.handler(new_state)
                except Exception:
                    self._logger.debug("State listener failed", exc_info=True)

    def _on_reconnect_timer(self) -> None:
        self._reconnect_handle = None
        if self._explicit_disconnect:
            return
        self.connect(self._url, self._token)

    def _on_closed(self) -> None:
        if asyncio.current_task() is not self._task:
            # Superseded by disconnect() or a newer attempt.
            return
        self._task = None
        if self._explicit_disconnect:
            self._transition(ConnectionState.CLOSED)
            return
        self._logger.debug("Realtime channel closed; reconnecting in %.1fs", self._reconnect_delay)
        self._transition(ConnectionState.CLOSED, reconnect=True)

    # ------------------------------------------------------------------
    # Connection task
    # ------------------------------------------------------------------

    async def _run(self, url: str) -> None:
        self._connect_attempts += 1
        self._logger.debug("Realtime connect url=%s attempt=%d", redact_url(url), self._connect_attempts)
        try:
            ws = await self._http.ws_connect(url, headers={"User-Agent": USER_AGENT})
        except (aiohttp.ClientError, OSError, TimeoutError):
            self._logger.debug("Realtime handshake failed", exc_info=True)
            self._on_closed()
            return

        self._ws = ws
        self._transition(ConnectionState.OPEN)
        try:
            async for msg in ws:
                if msg.type is aiohttp.WSMsgType.TEXT:
                    self._dispatch_frame(msg.data)
                elif msg.type is aiohttp.WSMsgType.ERROR:
                    self._logger.debug("Realtime channel error: %s", ws.exception())
                    break
        except (aiohttp.ClientError, OSError):
            self._logger.debug("Realtime receive failed", exc_info=True)
        except Exception:
            # Any failure in the receive loop is handled like a close.
            self._logger.debug("Realtime receive loop crashed", exc_info=True)
        finally:
            self._ws = None
            if self._state is ConnectionState.OPEN:
                self._transition(ConnectionState.CLOSING)
            await ws.close()
        self._on_closed()

    async def _heartbeat(self) -> None:
        while True:
            await asyncio.sleep(self._heartbeat_interval)
            if self._explicit_disconnect or self._state is not ConnectionState.OPEN:
                return
            await self.send({"type": PING_MESSAGE})

    def _dispatch_frame(self, raw: str) -> None:
        try:
            message = json.loads(raw)
        except (ValueError, RecursionError):
            self._logger.debug("Dropping non-JSON frame (%d chars)", len(raw))
            return
        if not isinstance(message, dict):
            return
        message_type = message.get("type")
        if not isinstance(message_type, str):
            return

        for subscription in list(self._handlers.get(message_type, ())):
            if not subscription.active:
                continue
            try:
                subscription.handler(message)
            except Exception:
                self._logger.debug("Handler for %s failed", message_type, exc_info=True)

    def _release_handler(self, message_type: str, subscription: Subscription) -> None:
        handlers = self._handlers.get(message_type)
        if handlers is None:
            return
        if subscription in handlers:
            handlers.remove(subscription)
        if not handlers:
            self._handlers.pop(message_type, None)
