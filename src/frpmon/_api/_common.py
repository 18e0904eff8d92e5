"""Shared helpers for REST endpoint modules."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, TypeVar

from pydantic import TypeAdapter, ValidationError

from frpmon.exceptions import FrpMonApiError

T = TypeVar("T")


def rfc3339(value: datetime) -> str:
    """Format *value* the way the panel parses query timestamps (naive = UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.isoformat(timespec="seconds")


def validate_data(adapter: TypeAdapter[T], data: Any, endpoint: str) -> T:
    """Validate an unwrapped envelope ``data`` field into the endpoint's model."""
    try:
        return adapter.validate_python(data)
    except ValidationError as exc:
        raise FrpMonApiError(
            f"Unexpected payload from {endpoint}: {exc.error_count()} validation errors",
            endpoint=endpoint,
        ) from exc
