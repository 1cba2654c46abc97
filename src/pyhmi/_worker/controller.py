"""Mode, map and vehicle switching."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from pyhmi._constants import DOCKER_IMAGE_ENV, MAP_DIR_FLAG, NAVIGATION_MODE_NAME, VEHICLE_DIR_FLAG
from pyhmi._worker.processes import ModuleProcessManager
from pyhmi.config import HmiConfig, ProfileSwitchFailurePolicy
from pyhmi.exceptions import HmiConfigError, VehicleProfileError
from pyhmi.mode_loader import load_mode
from pyhmi.models.configuration import HmiConfiguration
from pyhmi.models.messages import ComponentStatus
from pyhmi.models.mode import LoadedMode
from pyhmi.models.status import StatusRecord
from pyhmi.state.store import StatusStore
from pyhmi.storage import FlagOverrides, KeyValueStore
from pyhmi.vehicle import VehicleProfileSwitch

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class ModeController:
    """State machine over the current mode, map and vehicle.

    Unknown names are logged and rejected with ``False``; the status is
    left untouched. Selecting the current value again is a successful
    no-op.
    """

    def __init__(
        self,
        *,
        config: HmiConfig,
        configuration: HmiConfiguration,
        store: StatusStore,
        processes: ModuleProcessManager,
        kv_store: KeyValueStore,
        flag_overrides: FlagOverrides,
        profile_switch: VehicleProfileSwitch,
        mode_loader: Callable[[str, str], LoadedMode] = load_mode,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._config = config
        self._configuration = configuration
        self._store = store
        self._processes = processes
        self._kv_store = kv_store
        self._flag_overrides = flag_overrides
        self._profile_switch = profile_switch
        self._mode_loader = mode_loader
        self._environ = environ if environ is not None else os.environ

    async def init_status(self) -> None:
        """Populate static status fields and select the initial mode.

        Initial mode by priority:
        1. ``Navigation`` if ``use_navigation_mode`` is set and available.
        2. The mode cached in the key-value store.
        3. ``default_hmi_mode`` if available.
        4. The first available mode.
        """
        configuration = self._configuration
        map_dir = self._flag_overrides.get(MAP_DIR_FLAG)
        vehicle_dir = self._flag_overrides.get(VEHICLE_DIR_FLAG)

        def _init(record: StatusRecord) -> None:
            record.docker_image = self._environ.get(DOCKER_IMAGE_ENV, "")
            record.utm_zone_id = self._config.utm_zone_id
            record.modes = sorted(configuration.modes)
            record.maps = sorted(configuration.maps)
            record.vehicles = sorted(configuration.vehicles)
            for title, path in configuration.maps.items():
                if path == map_dir:
                    record.current_map = title
            for title, path in configuration.vehicles.items():
                if path == vehicle_dir:
                    record.current_vehicle = title

        self._store.mutate(_init)

        modes = configuration.modes
        if not modes:
            raise HmiConfigError("No HMI modes available")
        cached_mode = await self._offload(self._kv_store.get, self._config.current_mode_db_key)
        if self._config.use_navigation_mode and NAVIGATION_MODE_NAME in modes:
            initial = NAVIGATION_MODE_NAME
        elif cached_mode is not None and cached_mode in modes:
            initial = cached_mode
        elif self._config.default_hmi_mode in modes:
            initial = self._config.default_hmi_mode
        else:
            initial = sorted(modes)[0]
        await self.change_mode(initial)

    async def change_mode(self, mode_name: str) -> bool:
        mode_path = self._configuration.modes.get(mode_name)
        if mode_path is None:
            _logger.error("Cannot change to unknown mode %s", mode_name)
            return False

        # Skip if mode doesn't actually change.
        if self._store.current_mode().name == mode_name:
            return True

        # The outgoing mode's processes are stopped before the new mode is installed.
        await self._processes.reset_mode()

        mode = await self._offload(self._mode_loader, mode_name, mode_path)

        def _install(record: StatusRecord) -> None:
            record.current_mode = mode_name
            record.modules = {name: False for name in mode.modules}
            record.monitored_components = {name: ComponentStatus() for name in mode.monitored_components}

        self._store.install_mode(mode, _install)
        await self._offload(self._kv_store.put, self._config.current_mode_db_key, mode_name)
        _logger.info("Changed HMI mode to %s", mode_name)
        return True

    async def change_map(self, map_name: str) -> bool:
        map_dir = self._configuration.maps.get(map_name)
        if map_dir is None:
            _logger.error("Unknown map %s", map_name)
            return False

        if self._store.read().current_map == map_name:
            return True

        # The override is persisted before the status shows the new map.
        await self._offload(self._flag_overrides.set, MAP_DIR_FLAG, map_dir)

        def _set_map(record: StatusRecord) -> None:
            record.current_map = map_name

        self._store.mutate(_set_map)
        # Modules running against the old map are no longer valid.
        await self._processes.reset_mode()
        _logger.info("Changed map to %s", map_name)
        return True

    async def change_vehicle(self, vehicle_name: str) -> bool:
        vehicle_dir = self._configuration.vehicles.get(vehicle_name)
        if vehicle_dir is None:
            _logger.error("Unknown vehicle %s", vehicle_name)
            return False

        if self._store.read().current_vehicle == vehicle_name:
            return True

        previous_flag = self._flag_overrides.get(VEHICLE_DIR_FLAG)
        await self._offload(self._flag_overrides.set, VEHICLE_DIR_FLAG, vehicle_dir)

        def _set_vehicle(record: StatusRecord) -> str:
            previous = record.current_vehicle
            record.current_vehicle = vehicle_name
            return previous

        previous = self._store.mutate(_set_vehicle)
        await self._processes.reset_mode()

        if await self._offload(self._profile_switch.use, vehicle_dir):
            _logger.info("Changed vehicle to %s", vehicle_name)
            return True

        if self._config.profile_switch_failure == ProfileSwitchFailurePolicy.FATAL:
            _logger.critical("Failed to switch vehicle profile to %s (%s)", vehicle_name, vehicle_dir)
            raise VehicleProfileError(
                f"Failed to use vehicle profile {vehicle_dir}",
                vehicle=vehicle_name,
                path=vehicle_dir,
            )

        _logger.error("Failed to switch vehicle profile to %s, keeping %r", vehicle_name, previous)

        def _restore(record: StatusRecord) -> None:
            if record.current_vehicle == vehicle_name:
                record.current_vehicle = previous

        self._store.mutate(_restore)
        if previous_flag is None:
            await self._offload(self._flag_overrides.clear, VEHICLE_DIR_FLAG)
        else:
            await self._offload(self._flag_overrides.set, VEHICLE_DIR_FLAG, previous_flag)
        return False

    async def _offload(self, fn: Callable[..., T], *args: Any) -> T:
        """Run blocking storage or filesystem work off the event loop."""
        return await asyncio.get_running_loop().run_in_executor(None, fn, *args)
