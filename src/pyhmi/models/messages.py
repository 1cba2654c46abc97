"""Messages exchanged with the rest of the vehicle stack."""

from __future__ import annotations

import enum
import time

from pydantic import ConfigDict, Field

from pyhmi.models._base import HmiBaseModel, HmiEnum


class Header(HmiBaseModel):
    """Transport header attached to every outbound message."""

    timestamp_sec: float = 0.0
    module_name: str = ""
    sequence_num: int = 0

    @classmethod
    def now(cls, module_name: str, sequence_num: int = 0) -> Header:
        return cls(timestamp_sec=time.time(), module_name=module_name, sequence_num=sequence_num)


class ComponentState(HmiEnum):
    UNKNOWN = "UNKNOWN"
    OK = "OK"
    WARN = "WARN"
    ERROR = "ERROR"
    FATAL = "FATAL"


class ComponentStatus(HmiBaseModel):
    """Health summary of one module or monitored component."""

    status: ComponentState = ComponentState.UNKNOWN
    message: str = ""


class MonitoredComponent(HmiBaseModel):
    summary: ComponentStatus = Field(default_factory=ComponentStatus)


class SystemStatus(HmiBaseModel):
    """Inbound monitor report on module and component health."""

    model_config = ConfigDict(frozen=True)

    header: Header = Field(default_factory=Header)
    is_realtime_in_simulation: bool = False
    hmi_modules: dict[str, ComponentStatus] = Field(default_factory=dict)
    components: dict[str, MonitoredComponent] = Field(default_factory=dict)


class DrivingMode(enum.StrEnum):
    """Vehicle control state as reported by the chassis."""

    COMPLETE_MANUAL = "COMPLETE_MANUAL"
    COMPLETE_AUTO_DRIVE = "COMPLETE_AUTO_DRIVE"
    AUTO_STEER_ONLY = "AUTO_STEER_ONLY"
    AUTO_SPEED_ONLY = "AUTO_SPEED_ONLY"
    EMERGENCY_MODE = "EMERGENCY_MODE"


class ChassisSignal(HmiBaseModel):
    high_beam: bool = False


class ChassisMessage(HmiBaseModel):
    """Inbound vehicle feedback."""

    model_config = ConfigDict(frozen=True)

    header: Header = Field(default_factory=Header)
    driving_mode: DrivingMode
    signal: ChassisSignal = Field(default_factory=ChassisSignal)


class DrivingAction(enum.StrEnum):
    STOP = "STOP"
    START = "START"
    RESET = "RESET"


class ControlMessage(HmiBaseModel):
    """Outbound control request carrying a single driving action."""

    header: Header = Field(default_factory=Header)
    action: DrivingAction


class DriveEventType(enum.StrEnum):
    CRITICAL = "CRITICAL"
    PROBLEM = "PROBLEM"
    DESIGN = "DESIGN"
    QUESTION = "QUESTION"
    OTHER = "OTHER"


class DriveEvent(HmiBaseModel):
    """Outbound operator-reported event."""

    header: Header = Field(default_factory=Header)
    event: str = ""
    type: list[DriveEventType] = Field(default_factory=list)
    is_reportable: bool = False
