"""Action dispatch.

Every :class:`HmiAction` member is either handled here or listed in
:data:`UNSUPPORTED_ACTIONS`; building a dispatcher with a gap in that
coverage fails.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from pyhmi._worker.controller import ModeController
from pyhmi._worker.driving import DrivingModeTransition
from pyhmi._worker.processes import ModuleProcessManager
from pyhmi.exceptions import HmiConfigError, HmiTransportError
from pyhmi.models.actions import ActionOutcome, ActionRequest, ActionResult, HmiAction
from pyhmi.models.messages import DrivingMode

_logger = logging.getLogger(__name__)

UNSUPPORTED_ACTIONS: frozenset[HmiAction] = frozenset(
    {
        HmiAction.RECORD_AUDIO,
        HmiAction.CHANGE_SCENARIO,
        HmiAction.CHANGE_RECORD,
    }
)


class ActionDispatcher:
    def __init__(
        self,
        *,
        controller: ModeController,
        processes: ModuleProcessManager,
        transition: DrivingModeTransition,
    ) -> None:
        self._controller = controller
        self._processes = processes
        self._transition = transition

        self._plain_handlers: dict[HmiAction, Callable[[], Awaitable[bool]]] = {
            HmiAction.NONE: self._noop,
            HmiAction.SETUP_MODE: self._setup_mode,
            HmiAction.RESET_MODE: self._reset_mode,
            HmiAction.ENTER_AUTO_MODE: self._enter_auto_mode,
            HmiAction.DISENGAGE: self._disengage,
        }
        self._value_handlers: dict[HmiAction, Callable[[str], Awaitable[bool]]] = {
            HmiAction.CHANGE_MODE: controller.change_mode,
            HmiAction.CHANGE_MAP: controller.change_map,
            HmiAction.CHANGE_VEHICLE: controller.change_vehicle,
            HmiAction.START_MODULE: processes.start_module,
            HmiAction.STOP_MODULE: processes.stop_module,
        }

        covered = set(self._plain_handlers) | set(self._value_handlers) | UNSUPPORTED_ACTIONS
        missing = set(HmiAction) - covered
        if missing:
            raise HmiConfigError(f"Actions without a handler or unsupported marker: {sorted(missing)}")

    async def dispatch(self, request: ActionRequest) -> ActionResult:
        action = request.action
        if request.value is None:
            _logger.info("HMIAction %s was triggered!", action)
        else:
            _logger.info("HMIAction %s(%s) was triggered!", action, request.value)

        if action in UNSUPPORTED_ACTIONS:
            _logger.error("HMIAction %s not implemented, yet!", action)
            return ActionResult(action=action, outcome=ActionOutcome.UNSUPPORTED, message="not implemented")

        try:
            plain = self._plain_handlers.get(action)
            if plain is not None:
                if request.value is not None:
                    _logger.debug("Ignoring value %r for %s", request.value, action)
                ok = await plain()
            else:
                if request.value is None:
                    _logger.error("HMIAction %s requires a value", action)
                    return ActionResult(action=action, outcome=ActionOutcome.FAILED, message="requires a value")
                ok = await self._value_handlers[action](request.value)
        except (OSError, HmiTransportError) as exc:
            _logger.error("HMIAction %s failed: %s", action, exc, exc_info=True)
            return ActionResult(action=action, outcome=ActionOutcome.FAILED, message=str(exc))

        return ActionResult(action=action, outcome=ActionOutcome.SUCCEEDED if ok else ActionOutcome.FAILED)

    async def _noop(self) -> bool:
        return True

    async def _setup_mode(self) -> bool:
        await self._processes.setup_mode()
        return True

    async def _reset_mode(self) -> bool:
        await self._processes.reset_mode()
        return True

    async def _enter_auto_mode(self) -> bool:
        return await self._transition.change(DrivingMode.COMPLETE_AUTO_DRIVE)

    async def _disengage(self) -> bool:
        return await self._transition.change(DrivingMode.COMPLETE_MANUAL)
