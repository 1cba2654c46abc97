"""Mode descriptors and the modules derived from them."""

from __future__ import annotations

from pydantic import ConfigDict, Field

from pyhmi.models._base import HmiBaseModel


class ModuleLaunchSpec(HmiBaseModel):
    """How one module of a mode is launched.

    ``descriptor_files`` are the process descriptor files handed to the
    launcher, in order. A spec with no descriptor files is rejected by the
    mode loader rather than here, so the error names the mode file.
    """

    model_config = ConfigDict(frozen=True)

    descriptor_files: list[str] = Field(default_factory=list)
    process_group: str = ""
    required_for_safety: bool = True


class MonitoredComponentSpec(HmiBaseModel):
    model_config = ConfigDict(frozen=True)

    required_for_safety: bool = True


class Module(HmiBaseModel):
    """A controllable unit of software with ready-to-run commands."""

    model_config = ConfigDict(frozen=True)

    start_command: str
    stop_command: str
    required_for_safety: bool = True
    process_keywords: tuple[str, ...] = ()


class ModeDescriptor(HmiBaseModel):
    """Parsed content of a mode descriptor file."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    launch_modules: dict[str, ModuleLaunchSpec] = Field(default_factory=dict)
    modules: dict[str, Module] = Field(default_factory=dict)
    monitored_components: dict[str, MonitoredComponentSpec] = Field(default_factory=dict)


class LoadedMode(HmiBaseModel):
    """The module set of the active mode.

    Replaced wholesale on every mode change; never patched.
    """

    model_config = ConfigDict(frozen=True)

    name: str = ""
    modules: dict[str, Module] = Field(default_factory=dict)
    monitored_components: dict[str, MonitoredComponentSpec] = Field(default_factory=dict)
