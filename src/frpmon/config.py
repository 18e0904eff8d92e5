"""Client configuration for frpmon."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlsplit, urlunsplit

from frpmon._constants import (
    CHART_HISTORY_SIZE,
    DEFAULT_API_PREFIX,
    DEFAULT_WS_PATH,
    HEARTBEAT_INTERVAL_S,
    PROXY_HISTORY_SIZE,
    RECONNECT_DELAY_S,
    REQUEST_TIMEOUT_S,
    TOP_N,
)
from frpmon.exceptions import FrpMonConfigError

_WS_SCHEMES = {"http": "ws", "https": "wss", "ws": "ws", "wss": "wss"}


def _env_number(env: Mapping[str, str], key: str, cast: type) -> Any:
    raw = env.get(key)
    if raw is None:
        return None
    try:
        return cast(raw.strip())
    except ValueError as exc:
        raise FrpMonConfigError(f"{key} must be a number, got {raw!r}") from exc


@dataclasses.dataclass(frozen=True)
class MonitorConfig:
    """Client configuration.

    Parameters
    ----------
    base_url : str
        Origin of the FRP panel (e.g. ``"http://127.0.0.1:8080"``).
        ``ws``/``wss`` origins are accepted as well.
    token : str
        Bearer credential. Sent as a query parameter on the realtime
        channel and as an ``Authorization`` header on REST reads.
    ws_path : str
        Path of the realtime telemetry endpoint.
    api_prefix : str
        Path prefix of the REST API.
    heartbeat_interval : float
        Seconds between ``ping`` frames while the channel is open.
    reconnect_delay : float
        Fixed delay in seconds before reconnecting after an unexpected close.
    proxy_history_size : int
        Capacity of each per-proxy rate history.
    chart_history_size : int
        Capacity of the aggregate rate history.
    top_n : int
        Size of the top-proxies ranking.
    request_timeout : float
        Total timeout in seconds for a single REST read.
    """

    base_url: str
    token: str = ""
    ws_path: str = DEFAULT_WS_PATH
    api_prefix: str = DEFAULT_API_PREFIX
    heartbeat_interval: float = HEARTBEAT_INTERVAL_S
    reconnect_delay: float = RECONNECT_DELAY_S
    proxy_history_size: int = PROXY_HISTORY_SIZE
    chart_history_size: int = CHART_HISTORY_SIZE
    top_n: int = TOP_N
    request_timeout: float = REQUEST_TIMEOUT_S

    def __post_init__(self) -> None:
        scheme = urlsplit(self.base_url).scheme.lower()
        if scheme not in _WS_SCHEMES:
            raise FrpMonConfigError(f"base_url must be an http(s) or ws(s) URL, got {self.base_url!r}")
        for name in ("heartbeat_interval", "reconnect_delay", "request_timeout"):
            if getattr(self, name) <= 0:
                raise FrpMonConfigError(f"{name} must be positive")
        for name in ("proxy_history_size", "chart_history_size", "top_n"):
            if getattr(self, name) < 1:
                raise FrpMonConfigError(f"{name} must be at least 1")

    @property
    def ws_url(self) -> str:
        """Realtime endpoint URL, without the credential."""
        parts = urlsplit(self.base_url)
        scheme = _WS_SCHEMES[parts.scheme.lower()]
        return urlunsplit((scheme, parts.netloc, self.ws_path, "", ""))

    @property
    def api_url(self) -> str:
        """HTTP(S) base URL of the REST API."""
        parts = urlsplit(self.base_url)
        scheme = "https" if parts.scheme.lower() in {"https", "wss"} else "http"
        return urlunsplit((scheme, parts.netloc, self.api_prefix.rstrip("/"), "", ""))

    @classmethod
    def from_env(cls, **overrides: Any) -> MonitorConfig:
        """Create configuration from environment variables.

        Reads ``FRPMON_BASE_URL``, ``FRPMON_TOKEN`` and the optional
        ``FRPMON_*`` tuning variables. Explicit keyword arguments
        override environment values.

        Raises
        ------
        FrpMonConfigError
            If a numeric variable cannot be parsed or ``base_url`` is
            missing entirely.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "FRPMON_BASE_URL": "base_url",
            "FRPMON_TOKEN": "token",
            "FRPMON_WS_PATH": "ws_path",
            "FRPMON_API_PREFIX": "api_prefix",
        }
        _ENV_NUM_MAP: dict[str, tuple[str, type]] = {
            "FRPMON_HEARTBEAT_INTERVAL": ("heartbeat_interval", float),
            "FRPMON_RECONNECT_DELAY": ("reconnect_delay", float),
            "FRPMON_PROXY_HISTORY_SIZE": ("proxy_history_size", int),
            "FRPMON_CHART_HISTORY_SIZE": ("chart_history_size", int),
            "FRPMON_TOP_N": ("top_n", int),
            "FRPMON_REQUEST_TIMEOUT": ("request_timeout", float),
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        for env_key, (field_name, cast) in _ENV_NUM_MAP.items():
            if field_name in overrides:
                continue
            val = _env_number(env, env_key, cast)
            if val is not None:
                config_kwargs[field_name] = val

        config_kwargs.update(overrides)

        if "base_url" not in config_kwargs:
            raise FrpMonConfigError("FRPMON_BASE_URL is not set")

        return cls(**config_kwargs)
