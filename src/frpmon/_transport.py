"""HTTP transport for the panel REST API (bearer auth + response envelope)."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from frpmon._constants import USER_AGENT
from frpmon.config import MonitorConfig
from frpmon.exceptions import FrpMonApiError, FrpMonAuthenticationError, FrpMonTransportError

_logger = logging.getLogger(__name__)

_UNAUTHORIZED = 401


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Endpoint functions only need ``get_json``, so tests can pass a fake
    backend instead of the aiohttp-backed :class:`ApiTransport`.
    """

    async def get_json(self, endpoint: str, params: Mapping[str, Any] | None = None) -> Any: ...


class ApiTransport:
    """GET requests against ``config.api_url`` returning the envelope ``data``."""

    def __init__(self, config: MonitorConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session

    def _headers(self) -> dict[str, str]:
        headers = {
            "accept": "application/json",
            "user-agent": USER_AGENT,
        }
        if self._config.token:
            headers["authorization"] = f"Bearer {self._config.token}"
        return headers

    async def get_json(self, endpoint: str, params: Mapping[str, Any] | None = None) -> Any:
        """Fetch *endpoint* and unwrap ``{"code", "message", "data"}``.

        Raises
        ------
        FrpMonTransportError
            Network failure, non-200 status or a body that is not an envelope.
        FrpMonAuthenticationError
            The token was missing or rejected.
        FrpMonApiError
            The envelope carried a non-zero ``code``.
        """
        url = f"{self._config.api_url}{endpoint}"
        query = {key: str(value) for key, value in (params or {}).items() if value is not None}
        timeout = aiohttp.ClientTimeout(total=self._config.request_timeout)

        _logger.debug("GET %s params=%s", url, query)

        try:
            async with self._http.get(url, params=query, headers=self._headers(), timeout=timeout) as resp:
                status = resp.status
                text = await resp.text()
        except aiohttp.ClientError as exc:
            raise FrpMonTransportError(f"Request to {endpoint} failed: {exc}", endpoint=endpoint) from exc
        except TimeoutError as exc:
            raise FrpMonTransportError(f"Request to {endpoint} timed out", endpoint=endpoint) from exc

        if status == _UNAUTHORIZED:
            raise FrpMonAuthenticationError(
                f"Unauthorized request to {endpoint}",
                code=_UNAUTHORIZED,
                endpoint=endpoint,
            )
        if status != 200:
            raise FrpMonTransportError(
                f"HTTP {status} from {endpoint}: {text[:200]}",
                status_code=status,
                endpoint=endpoint,
            )

        try:
            body = json.loads(text)
        except json.JSONDecodeError as exc:
            raise FrpMonTransportError(f"Invalid JSON from {endpoint}: {text[:200]}", endpoint=endpoint) from exc

        if not isinstance(body, dict) or "code" not in body:
            raise FrpMonTransportError(f"Missing response envelope from {endpoint}", endpoint=endpoint)

        code = body.get("code")
        if code != 0:
            message = str(body.get("message", ""))
            exc_cls = FrpMonAuthenticationError if code == _UNAUTHORIZED else FrpMonApiError
            raise exc_cls(
                f"{endpoint} failed: code={code} message={message}",
                code=code if isinstance(code, int) else None,
                endpoint=endpoint,
            )
        return body.get("data")
