"""Discovered modes, maps and vehicles."""

from __future__ import annotations

from pydantic import ConfigDict, Field

from pyhmi.models._base import HmiBaseModel


class HmiConfiguration(HmiBaseModel):
    """Display title -> absolute path, for each selectable entity kind.

    Built once at startup and read-only afterwards.
    """

    model_config = ConfigDict(frozen=True)

    modes: dict[str, str] = Field(default_factory=dict)
    maps: dict[str, str] = Field(default_factory=dict)
    vehicles: dict[str, str] = Field(default_factory=dict)
