"""Base model for frpmon payloads.

Every wire model inherits from :class:`FrpBaseModel` which provides:

* frozen instances, so derived views can be shared with consumers
  without defensive copies.
* ``extra="ignore"`` so new server fields never break parsing.
* ``populate_by_name=True`` so models can be built either from wire
  keys (aliases) or from Python field names.
* A ``model_validator(mode="before")`` that drops JSON ``null`` values
  so the field default is used instead.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator


class FrpBaseModel(BaseModel):
    """Base for panel payload models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        return {key: value for key, value in values.items() if value is not None}
