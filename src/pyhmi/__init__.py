"""pyhmi - Async vehicle-side HMI orchestrator."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyhmi")
except PackageNotFoundError:
    __version__ = "0+local"
from pyhmi.config import HmiConfig, HmiTopics, ProfileSwitchFailurePolicy
from pyhmi.exceptions import (
    HmiConfigError,
    HmiError,
    HmiFatalError,
    HmiTransportError,
    ModeLoadError,
    VehicleProfileError,
)
from pyhmi.models import (
    ActionOutcome,
    ActionRequest,
    ActionResult,
    ComponentState,
    ComponentStatus,
    DriveEvent,
    DriveEventType,
    DrivingMode,
    HmiAction,
    HmiConfiguration,
    LoadedMode,
    Module,
    StatusRecord,
)
from pyhmi.worker import HmiWorker

__all__ = [
    "__version__",
    "ActionOutcome",
    "ActionRequest",
    "ActionResult",
    "ComponentState",
    "ComponentStatus",
    "DriveEvent",
    "DriveEventType",
    "DrivingMode",
    "HmiAction",
    "HmiConfig",
    "HmiConfigError",
    "HmiConfiguration",
    "HmiError",
    "HmiFatalError",
    "HmiTopics",
    "HmiTransportError",
    "HmiWorker",
    "LoadedMode",
    "ModeLoadError",
    "Module",
    "ProfileSwitchFailurePolicy",
    "StatusRecord",
    "VehicleProfileError",
]
