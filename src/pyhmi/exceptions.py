"""Custom exception hierarchy for pyhmi."""

from __future__ import annotations


class HmiError(Exception):
    """Base exception for all pyhmi errors."""


class HmiConfigError(HmiError):
    """Invalid or missing configuration."""


class HmiTransportError(HmiError):
    """Message bus failure (not started, publish rejected)."""

    def __init__(self, message: str, *, topic: str = "") -> None:
        self.topic = topic
        super().__init__(message)


class HmiFatalError(HmiError):
    """The process is in a state it must not continue from.

    Raised past every best-effort boundary; the entry point terminates the
    process when one reaches it.
    """


class ModeLoadError(HmiFatalError):
    """A mode descriptor could not be parsed or violates its invariants."""

    def __init__(self, message: str, *, path: str = "") -> None:
        self.path = path
        super().__init__(message)


class VehicleProfileError(HmiFatalError):
    """Switching the vehicle calibration profile failed.

    Only raised under :attr:`ProfileSwitchFailurePolicy.FATAL`; a running
    stack with a mismatched vehicle profile is not safe to keep driving.
    """

    def __init__(self, message: str, *, vehicle: str = "", path: str = "") -> None:
        self.vehicle = vehicle
        self.path = path
        super().__init__(message)
