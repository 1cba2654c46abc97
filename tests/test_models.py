from __future__ import annotations

import pytest
from pydantic import ValidationError

from pyhmi.models import ActionRequest, ChassisMessage, ComponentStatus, HmiAction, StatusRecord
from pyhmi.models.messages import ComponentState


def test_nulls_fall_back_to_defaults() -> None:
    status = ComponentStatus.model_validate({"status": None, "message": None})
    assert status.status == ComponentState.UNKNOWN
    assert status.message == ""


def test_unknown_fields_are_ignored() -> None:
    record = StatusRecord.model_validate({"current_mode": "Pnc", "future_field": 1})
    assert record.current_mode == "Pnc"


def test_driving_mode_is_strict() -> None:
    with pytest.raises(ValidationError):
        ChassisMessage.model_validate({"driving_mode": "SORT_OF_AUTO"})


def test_action_request_parses_wire_names() -> None:
    request = ActionRequest.model_validate({"action": "CHANGE_MAP", "value": "Sunnyvale"})
    assert request.action == HmiAction.CHANGE_MAP
    assert request.value == "Sunnyvale"

    with pytest.raises(ValidationError):
        ActionRequest.model_validate({"action": "LAUNCH_ROCKET"})
