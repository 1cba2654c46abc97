"""Base model and enum for HMI records and messages.

Every wire record inherits from :class:`HmiBaseModel` which provides:

* ``extra="ignore"`` so newer publishers can add fields without
  breaking older subscribers.
* A ``model_validator(mode="before")`` that drops explicit ``null``
  values so the field default is used.

Health-like enums inherit from :class:`HmiEnum` which resolves any
value without a mapped member to ``UNKNOWN`` instead of raising.
"""

from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator


class HmiEnum(enum.StrEnum):
    """Base for tolerant string enums.

    Every subclass **must** define ``UNKNOWN``. Do not use this base for
    anything safety relevant (e.g. driving modes), where an unexpected
    value must be rejected rather than coerced.
    """

    @classmethod
    def _missing_(cls, value: object) -> HmiEnum:
        if isinstance(value, str):
            for member in cls:
                if member.value == value.strip().upper():
                    return member
        unknown: HmiEnum = cls["UNKNOWN"]
        return unknown


class HmiBaseModel(BaseModel):
    """Base for HMI records and messages."""

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, values: Any) -> Any:
        """Drop ``None`` values so the field default applies."""
        if not isinstance(values, dict):
            return values
        return {key: value for key, value in values.items() if value is not None}
