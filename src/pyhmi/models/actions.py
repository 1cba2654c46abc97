"""User/API actions and their results."""

from __future__ import annotations

import enum

from pydantic import ConfigDict

from pyhmi.models._base import HmiBaseModel


class HmiAction(enum.StrEnum):
    """Actions an operator can trigger.

    Variants listed in :data:`pyhmi._worker.dispatcher.UNSUPPORTED_ACTIONS`
    are part of the wire vocabulary but have no handler in this worker.
    """

    NONE = "NONE"
    SETUP_MODE = "SETUP_MODE"
    RESET_MODE = "RESET_MODE"
    ENTER_AUTO_MODE = "ENTER_AUTO_MODE"
    DISENGAGE = "DISENGAGE"
    CHANGE_MODE = "CHANGE_MODE"
    CHANGE_MAP = "CHANGE_MAP"
    CHANGE_VEHICLE = "CHANGE_VEHICLE"
    START_MODULE = "START_MODULE"
    STOP_MODULE = "STOP_MODULE"
    RECORD_AUDIO = "RECORD_AUDIO"
    CHANGE_SCENARIO = "CHANGE_SCENARIO"
    CHANGE_RECORD = "CHANGE_RECORD"


class ActionRequest(HmiBaseModel):
    """An action plus its optional string payload."""

    model_config = ConfigDict(frozen=True)

    action: HmiAction
    value: str | None = None


class ActionOutcome(enum.StrEnum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    UNSUPPORTED = "unsupported"


class ActionResult(HmiBaseModel):
    model_config = ConfigDict(frozen=True)

    action: HmiAction
    outcome: ActionOutcome
    message: str = ""

    @property
    def success(self) -> bool:
        return self.outcome == ActionOutcome.SUCCEEDED
