"""High-level async HMI worker."""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from pyhmi._constants import HEADER_MODULE_NAME
from pyhmi._discovery import load_hmi_configuration
from pyhmi._process import CommandRunner, ShellCommandRunner
from pyhmi._worker.controller import ModeController
from pyhmi._worker.dispatcher import ActionDispatcher
from pyhmi._worker.driving import DrivingModeTransition
from pyhmi._worker.processes import ModuleProcessManager
from pyhmi._worker.status_loop import StatusUpdateHandler, StatusUpdateLoop
from pyhmi.bus import MessageBus, MqttMessageBus
from pyhmi.config import HmiConfig
from pyhmi.exceptions import HmiFatalError
from pyhmi.ingestion.chassis import ChassisObserver
from pyhmi.ingestion.system_status import apply_system_status
from pyhmi.mode_loader import load_mode
from pyhmi.models.actions import ActionRequest, ActionResult, HmiAction
from pyhmi.models.configuration import HmiConfiguration
from pyhmi.models.messages import ChassisMessage, ControlMessage, DriveEvent, DriveEventType, Header, SystemStatus
from pyhmi.models.mode import LoadedMode
from pyhmi.models.status import StatusRecord
from pyhmi.state.store import StatusStore
from pyhmi.storage import FlagFileOverrides, FlagOverrides, JsonFileKeyValueStore, KeyValueStore
from pyhmi.vehicle import CalibrationProfileSwitch, VehicleProfileSwitch

_logger = logging.getLogger(__name__)


class HmiWorker:
    """Vehicle-side HMI orchestrator.

    Usage::

        async with HmiWorker(HmiConfig.from_env()) as worker:
            result = await worker.trigger(HmiAction.CHANGE_MODE, "Standard Debug")

    Every collaborator defaults to its production implementation and can
    be replaced with a test double.
    """

    def __init__(
        self,
        config: HmiConfig,
        *,
        configuration: HmiConfiguration | None = None,
        bus: MessageBus | None = None,
        kv_store: KeyValueStore | None = None,
        flag_overrides: FlagOverrides | None = None,
        command_runner: CommandRunner | None = None,
        profile_switch: VehicleProfileSwitch | None = None,
        mode_loader: Callable[[str, str], LoadedMode] = load_mode,
        environ: Mapping[str, str] | None = None,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._configuration = configuration if configuration is not None else load_hmi_configuration(config)
        self._bus: MessageBus = bus if bus is not None else MqttMessageBus(config)
        self._clock = clock
        self._sequence = itertools.count(1)

        self._store = StatusStore()
        self._processes = ModuleProcessManager(
            store=self._store,
            runner=command_runner if command_runner is not None else ShellCommandRunner(),
        )
        self._controller = ModeController(
            config=config,
            configuration=self._configuration,
            store=self._store,
            processes=self._processes,
            kv_store=kv_store if kv_store is not None else JsonFileKeyValueStore(config.kv_db_path),
            flag_overrides=flag_overrides if flag_overrides is not None else FlagFileOverrides(config.flagfile_path),
            profile_switch=(
                profile_switch if profile_switch is not None else CalibrationProfileSwitch(config.calibration_path)
            ),
            mode_loader=mode_loader,
            environ=environ,
        )
        self._chassis = ChassisObserver(
            lifetime_seconds=config.status_lifetime_seconds,
            on_high_beam=self._on_high_beam,
            clock=clock,
        )
        self._transition = DrivingModeTransition(
            send_control=self._send_control,
            latest_feedback=self._chassis.observe,
            sleep=sleep,
        )
        self._dispatcher = ActionDispatcher(
            controller=self._controller,
            processes=self._processes,
            transition=self._transition,
        )
        self._status_loop = StatusUpdateLoop(
            store=self._store,
            publish_interval=config.status_publish_interval,
            tick_interval=config.status_tick_interval,
        )

        self._loop: asyncio.AbstractEventLoop | None = None
        self._fatal: asyncio.Future[HmiFatalError] | None = None
        self._background: set[asyncio.Task[Any]] = set()
        self._initialized = False
        self._wired = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> HmiWorker:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    async def start(self) -> None:
        """Initialize status, connect the bus and start the status loop."""
        self._loop = asyncio.get_running_loop()
        if self._fatal is None or self._fatal.done():
            self._fatal = self._loop.create_future()

        if not self._initialized:
            try:
                await self._controller.init_status()
            except HmiFatalError as exc:
                self._report_fatal(exc)
                raise
            self._initialized = True

        if not self._wired:
            topics = self._config.topics
            self._bus.subscribe(topics.system_status, self._on_system_status_payload)
            self._bus.subscribe(topics.chassis, self._on_chassis_payload)
            self._status_loop.register_handler(self._publish_status)
            self._wired = True

        await self._bus.start()
        self._status_loop.start()
        _logger.info("HMI worker started in mode %s", self._store.current_mode().name)

    async def stop(self) -> None:
        await self._status_loop.stop()
        for task in list(self._background):
            task.cancel()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        await self._bus.stop()
        _logger.info("HMI worker stopped")

    async def wait_fatal(self) -> HmiFatalError:
        """Wait until a fatal error has been reported and return it."""
        if self._fatal is None:
            self._fatal = asyncio.get_running_loop().create_future()
        return await self._fatal

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    @property
    def config(self) -> HmiConfig:
        return self._config

    @property
    def configuration(self) -> HmiConfiguration:
        return self._configuration

    @property
    def store(self) -> StatusStore:
        return self._store

    def get_status(self) -> StatusRecord:
        return self._store.read()

    def register_status_update_handler(self, handler: StatusUpdateHandler) -> None:
        self._status_loop.register_handler(handler)

    async def trigger(self, action: HmiAction, value: str | None = None) -> ActionResult:
        """Run *action*; fatal errors are reported to :meth:`wait_fatal` and re-raised."""
        request = ActionRequest(action=action, value=value)
        try:
            return await self._dispatcher.dispatch(request)
        except HmiFatalError as exc:
            self._report_fatal(exc)
            raise

    def submit_drive_event(
        self,
        event_time_ms: int,
        event_msg: str,
        event_types: Iterable[str] = (),
        is_reportable: bool = False,
    ) -> DriveEvent:
        """Publish an operator drive event.

        The header timestamp carries the time the event occurred, not the
        time it was submitted.
        """
        types: list[DriveEventType] = []
        for type_name in event_types:
            try:
                types.append(DriveEventType(type_name))
            except ValueError:
                _logger.error("Failed to parse drive event type: %s", type_name)
        event = DriveEvent(
            header=Header(
                timestamp_sec=event_time_ms / 1000.0,
                module_name=HEADER_MODULE_NAME,
                sequence_num=next(self._sequence),
            ),
            event=event_msg,
            type=types,
            is_reportable=is_reportable,
        )
        self._bus.publish(self._config.topics.drive_event, event)
        return event

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _report_fatal(self, exc: HmiFatalError) -> None:
        _logger.critical("Fatal HMI error: %s", exc)
        if self._fatal is not None and not self._fatal.done():
            self._fatal.set_result(exc)

    def _publish_status(self, _status_changed: bool, status: StatusRecord) -> None:
        status.header = Header.now(HEADER_MODULE_NAME, next(self._sequence))
        try:
            self._bus.publish(self._config.topics.status, status)
        finally:
            status.header = None

    def _send_control(self, message: ControlMessage) -> None:
        message.header = Header.now(HEADER_MODULE_NAME, next(self._sequence))
        self._bus.publish(self._config.topics.pad, message)

    def _on_system_status_payload(self, payload: bytes) -> None:
        try:
            message = SystemStatus.model_validate_json(payload)
        except ValidationError:
            _logger.debug("Invalid system status payload", exc_info=True)
            return
        now = self._clock()
        self._store.mutate(
            lambda record: apply_system_status(
                record,
                message,
                now=now,
                lifetime_seconds=self._config.status_lifetime_seconds,
                use_sim_time=self._config.use_sim_time,
            )
        )

    def _on_chassis_payload(self, payload: bytes) -> None:
        try:
            message = ChassisMessage.model_validate_json(payload)
        except ValidationError:
            _logger.debug("Invalid chassis payload", exc_info=True)
            return
        self._chassis.on_message(message)

    def _on_high_beam(self) -> None:
        # Currently nothing is bound to the high-beam signal.
        loop = self._loop
        if loop is None:
            return
        task = loop.create_task(self._handle_high_beam())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _handle_high_beam(self) -> None:
        result = await self.trigger(HmiAction.NONE)
        if not result.success:
            _logger.error("Failed to execute high_beam action.")
