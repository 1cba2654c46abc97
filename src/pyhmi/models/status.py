"""The canonical HMI status record."""

from __future__ import annotations

from pydantic import Field

from pyhmi.models._base import HmiBaseModel
from pyhmi.models.messages import ComponentStatus, Header


class StatusRecord(HmiBaseModel):
    """Current mode/map/vehicle plus per-module and per-component health.

    The keys of ``modules`` always equal the module names of the loaded
    mode. ``header`` stays empty in the canonical record; publish handlers
    fill it on their working copy only.
    """

    header: Header | None = None

    modes: list[str] = Field(default_factory=list)
    maps: list[str] = Field(default_factory=list)
    vehicles: list[str] = Field(default_factory=list)

    current_mode: str = ""
    current_map: str = ""
    current_vehicle: str = ""

    modules: dict[str, bool] = Field(default_factory=dict)
    monitored_components: dict[str, ComponentStatus] = Field(default_factory=dict)

    docker_image: str = ""
    utm_zone_id: int = 0
