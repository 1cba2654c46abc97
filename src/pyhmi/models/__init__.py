"""Pydantic models for HMI status, mode descriptors, messages and actions."""

from pyhmi.models._base import HmiBaseModel, HmiEnum
from pyhmi.models.actions import ActionOutcome, ActionRequest, ActionResult, HmiAction
from pyhmi.models.configuration import HmiConfiguration
from pyhmi.models.messages import (
    ChassisMessage,
    ChassisSignal,
    ComponentState,
    ComponentStatus,
    ControlMessage,
    DriveEvent,
    DriveEventType,
    DrivingAction,
    DrivingMode,
    Header,
    MonitoredComponent,
    SystemStatus,
)
from pyhmi.models.mode import LoadedMode, ModeDescriptor, Module, ModuleLaunchSpec, MonitoredComponentSpec
from pyhmi.models.status import StatusRecord

__all__ = [
    "ActionOutcome",
    "ActionRequest",
    "ActionResult",
    "ChassisMessage",
    "ChassisSignal",
    "ComponentState",
    "ComponentStatus",
    "ControlMessage",
    "DriveEvent",
    "DriveEventType",
    "DrivingAction",
    "DrivingMode",
    "Header",
    "HmiAction",
    "HmiBaseModel",
    "HmiConfiguration",
    "HmiEnum",
    "LoadedMode",
    "ModeDescriptor",
    "Module",
    "ModuleLaunchSpec",
    "MonitoredComponent",
    "MonitoredComponentSpec",
    "StatusRecord",
    "SystemStatus",
]
