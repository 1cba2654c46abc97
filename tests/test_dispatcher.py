from __future__ import annotations

import pytest
from conftest import FakeModeLoader, FakeProfileSwitch, MemoryFlagOverrides, MemoryKeyValueStore, RecordingRunner

from pyhmi._worker.controller import ModeController
from pyhmi._worker.dispatcher import UNSUPPORTED_ACTIONS, ActionDispatcher
from pyhmi._worker.driving import DrivingModeTransition
from pyhmi._worker.processes import ModuleProcessManager
from pyhmi.config import HmiConfig, ProfileSwitchFailurePolicy
from pyhmi.exceptions import HmiConfigError, HmiTransportError, VehicleProfileError
from pyhmi.models.actions import ActionOutcome, ActionRequest, HmiAction
from pyhmi.models.configuration import HmiConfiguration
from pyhmi.models.messages import ChassisMessage, ControlMessage, DrivingMode
from pyhmi.state.store import StatusStore


class _Chassis:
    def __init__(self) -> None:
        self.sent: list[ControlMessage] = []
        self.mode = DrivingMode.COMPLETE_MANUAL
        self.fail = False

    def send(self, message: ControlMessage) -> None:
        if self.fail:
            raise HmiTransportError("bus down")
        self.sent.append(message)

    def observe(self) -> ChassisMessage:
        return ChassisMessage(driving_mode=self.mode)


async def _no_sleep(_seconds: float) -> None:
    return None


@pytest.fixture
def parts(
    configuration: HmiConfiguration,
    mode_loader: FakeModeLoader,
    runner: RecordingRunner,
    kv_store: MemoryKeyValueStore,
    flags: MemoryFlagOverrides,
    profile_switch: FakeProfileSwitch,
) -> tuple[ActionDispatcher, StatusStore, _Chassis]:
    store = StatusStore()
    processes = ModuleProcessManager(store=store, runner=runner)
    controller = ModeController(
        config=HmiConfig(profile_switch_failure=ProfileSwitchFailurePolicy.FATAL),
        configuration=configuration,
        store=store,
        processes=processes,
        kv_store=kv_store,
        flag_overrides=flags,
        profile_switch=profile_switch,
        mode_loader=mode_loader,
        environ={},
    )
    chassis = _Chassis()
    transition = DrivingModeTransition(send_control=chassis.send, latest_feedback=chassis.observe, sleep=_no_sleep)
    dispatcher = ActionDispatcher(controller=controller, processes=processes, transition=transition)
    return dispatcher, store, chassis


def test_every_action_is_covered() -> None:
    # Constructing a dispatcher asserts coverage; spot check the unsupported set too.
    assert UNSUPPORTED_ACTIONS == {HmiAction.RECORD_AUDIO, HmiAction.CHANGE_SCENARIO, HmiAction.CHANGE_RECORD}


def test_gap_in_coverage_is_rejected(
    parts: tuple[ActionDispatcher, StatusStore, _Chassis],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    dispatcher, _store, _chassis = parts
    monkeypatch.setattr(
        "pyhmi._worker.dispatcher.UNSUPPORTED_ACTIONS",
        frozenset({HmiAction.RECORD_AUDIO}),
    )
    with pytest.raises(HmiConfigError, match="CHANGE_RECORD"):
        ActionDispatcher(
            controller=dispatcher._controller,  # type: ignore[attr-defined]
            processes=dispatcher._processes,  # type: ignore[attr-defined]
            transition=dispatcher._transition,  # type: ignore[attr-defined]
        )


@pytest.mark.asyncio
@pytest.mark.parametrize("action", sorted(UNSUPPORTED_ACTIONS))
async def test_unsupported_actions_are_reported(
    parts: tuple[ActionDispatcher, StatusStore, _Chassis],
    action: HmiAction,
) -> None:
    dispatcher, store, _chassis = parts
    before = store.read()

    result = await dispatcher.dispatch(ActionRequest(action=action, value="x"))

    assert result.outcome == ActionOutcome.UNSUPPORTED
    assert result.success is False
    assert store.read() == before


@pytest.mark.asyncio
async def test_value_action_without_value_fails(parts: tuple[ActionDispatcher, StatusStore, _Chassis]) -> None:
    dispatcher, _store, _chassis = parts

    result = await dispatcher.dispatch(ActionRequest(action=HmiAction.CHANGE_MODE))

    assert result.outcome == ActionOutcome.FAILED
    assert "requires a value" in result.message


@pytest.mark.asyncio
async def test_change_mode_and_module_actions(
    parts: tuple[ActionDispatcher, StatusStore, _Chassis],
    runner: RecordingRunner,
) -> None:
    dispatcher, store, _chassis = parts

    result = await dispatcher.dispatch(ActionRequest(action=HmiAction.CHANGE_MODE, value="Pnc"))
    assert result.success
    assert store.read().current_mode == "Pnc"

    assert (await dispatcher.dispatch(ActionRequest(action=HmiAction.START_MODULE, value="Planning"))).success
    assert runner.commands[-1] == "nohup mainboard -d /apollo/dag/planning.dag &"

    assert (await dispatcher.dispatch(ActionRequest(action=HmiAction.STOP_MODULE, value="Planning"))).success
    assert runner.commands[-1] == 'pkill -f "/apollo/dag/planning.dag"'

    missing = await dispatcher.dispatch(ActionRequest(action=HmiAction.START_MODULE, value="Nope"))
    assert missing.outcome == ActionOutcome.FAILED


@pytest.mark.asyncio
async def test_setup_and_reset_mode_run_every_module(
    parts: tuple[ActionDispatcher, StatusStore, _Chassis],
    runner: RecordingRunner,
) -> None:
    dispatcher, _store, _chassis = parts
    await dispatcher.dispatch(ActionRequest(action=HmiAction.CHANGE_MODE, value="Pnc"))
    runner.commands.clear()
    runner.returncodes["nohup mainboard -d /apollo/dag/planning.dag &"] = 1

    # A failing command does not stop the loop or fail the action.
    assert (await dispatcher.dispatch(ActionRequest(action=HmiAction.SETUP_MODE))).success
    assert runner.commands == [
        "nohup mainboard -d /apollo/dag/planning.dag &",
        "nohup mainboard -d /apollo/dag/control.dag &",
    ]

    runner.commands.clear()
    runner.spawn_errors.add('pkill -f "/apollo/dag/planning.dag"')
    assert (await dispatcher.dispatch(ActionRequest(action=HmiAction.RESET_MODE, value="ignored"))).success
    assert len(runner.commands) == 2


@pytest.mark.asyncio
async def test_enter_auto_mode_and_disengage(parts: tuple[ActionDispatcher, StatusStore, _Chassis]) -> None:
    dispatcher, _store, chassis = parts

    # Chassis stays in manual: reset succeeds, start never takes.
    result = await dispatcher.dispatch(ActionRequest(action=HmiAction.ENTER_AUTO_MODE))
    assert result.outcome == ActionOutcome.FAILED
    assert len(chassis.sent) == 4

    chassis.sent.clear()
    assert (await dispatcher.dispatch(ActionRequest(action=HmiAction.DISENGAGE))).success
    assert len(chassis.sent) == 1


@pytest.mark.asyncio
async def test_none_action_succeeds(parts: tuple[ActionDispatcher, StatusStore, _Chassis]) -> None:
    dispatcher, _store, _chassis = parts
    result = await dispatcher.dispatch(ActionRequest(action=HmiAction.NONE))
    assert result.outcome == ActionOutcome.SUCCEEDED


@pytest.mark.asyncio
async def test_fatal_vehicle_failure_propagates(
    parts: tuple[ActionDispatcher, StatusStore, _Chassis],
    profile_switch: FakeProfileSwitch,
) -> None:
    dispatcher, _store, _chassis = parts
    profile_switch.result = False

    with pytest.raises(VehicleProfileError):
        await dispatcher.dispatch(ActionRequest(action=HmiAction.CHANGE_VEHICLE, value="Shuttle"))


@pytest.mark.asyncio
async def test_flag_write_failure_becomes_failed_outcome(
    parts: tuple[ActionDispatcher, StatusStore, _Chassis],
    flags: MemoryFlagOverrides,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    dispatcher, _store, _chassis = parts

    def _broken_set(name: str, value: str) -> bool:
        raise PermissionError("read-only filesystem")

    monkeypatch.setattr(flags, "set", _broken_set)

    result = await dispatcher.dispatch(ActionRequest(action=HmiAction.CHANGE_MAP, value="Sunnyvale"))

    assert result.outcome == ActionOutcome.FAILED
    assert "read-only filesystem" in result.message
