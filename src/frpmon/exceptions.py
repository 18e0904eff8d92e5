"""Custom exception hierarchy for frpmon."""

from __future__ import annotations


class FrpMonError(Exception):
    """Base exception for all frpmon errors."""


class FrpMonConfigError(FrpMonError):
    """Invalid or missing configuration."""


class FrpMonTransportError(FrpMonError):
    """HTTP-level failure (network, non-200, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class FrpMonApiError(FrpMonError):
    """Panel API returned a non-zero code (application-level error)."""

    def __init__(
        self,
        message: str,
        *,
        code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.code = code
        self.endpoint = endpoint
        super().__init__(message)


class FrpMonAuthenticationError(FrpMonApiError):
    """Bearer token missing, expired or rejected (HTTP/code 401).

    The realtime channel never raises this: a rejected websocket
    handshake is handled like any other dropped connection.
    """
