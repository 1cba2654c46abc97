"""Driving-mode transition protocol.

Success is defined only by the driving mode the chassis reports back,
never by a control message having been sent.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from pyhmi._constants import TRANSITION_MAX_TRIES, TRANSITION_TRY_INTERVAL_S
from pyhmi.exceptions import HmiTransportError
from pyhmi.models.messages import ChassisMessage, ControlMessage, DrivingAction, DrivingMode

_logger = logging.getLogger(__name__)

_TARGET_ACTIONS: dict[DrivingMode, DrivingAction] = {
    DrivingMode.COMPLETE_MANUAL: DrivingAction.RESET,
    DrivingMode.COMPLETE_AUTO_DRIVE: DrivingAction.START,
}


class DrivingModeTransition:
    """Drive the vehicle into a target driving mode by send, settle, observe.

    Parameters
    ----------
    send_control
        Publishes one control message; a fresh header is filled per attempt.
    latest_feedback
        Returns the most recently observed chassis message, or ``None``.
    sleep
        Settle wait, ``asyncio.sleep`` outside tests.
    """

    def __init__(
        self,
        *,
        send_control: Callable[[ControlMessage], None],
        latest_feedback: Callable[[], ChassisMessage | None],
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        max_tries: int = TRANSITION_MAX_TRIES,
        try_interval: float = TRANSITION_TRY_INTERVAL_S,
    ) -> None:
        self._send_control = send_control
        self._latest_feedback = latest_feedback
        self._sleep = sleep
        self._max_tries = max_tries
        self._try_interval = try_interval

    async def change(self, target: DrivingMode) -> bool:
        # Always reset to MANUAL before changing to any other mode.
        if target != DrivingMode.COMPLETE_MANUAL:
            if not await self.change(DrivingMode.COMPLETE_MANUAL):
                _logger.error("Failed to reset to MANUAL before changing to %s", target)
                return False

        action = _TARGET_ACTIONS.get(target)
        if action is None:
            _logger.error("Change driving mode to %s not implemented!", target)
            return False

        for attempt in range(1, self._max_tries + 1):
            try:
                self._send_control(ControlMessage(action=action))
            except HmiTransportError:
                _logger.error("Failed to send %s (attempt %d)", action, attempt, exc_info=True)

            await self._sleep(self._try_interval)

            feedback = self._latest_feedback()
            if feedback is None:
                _logger.error("No chassis message received!")
            elif feedback.driving_mode == target:
                _logger.info("Driving mode changed to %s after %d attempt(s)", target, attempt)
                return True

        _logger.error("Failed to change driving mode to %s", target)
        return False
