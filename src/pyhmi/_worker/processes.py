"""Start/stop of the modules of the loaded mode."""

from __future__ import annotations

import logging

from pyhmi._process import CommandRunner
from pyhmi.state.store import StatusStore

_logger = logging.getLogger(__name__)


class ModuleProcessManager:
    """Runs module lifecycle commands, best effort.

    A failing command is logged and never raised or retried; the loop
    over a mode's modules always reaches the end.
    """

    def __init__(self, *, store: StatusStore, runner: CommandRunner) -> None:
        self._store = store
        self._runner = runner

    async def _system(self, command: str) -> None:
        try:
            result = await self._runner.run(command)
        except OSError:
            _logger.error("FAILED(spawn): %s", command, exc_info=True)
            return
        if result.ok:
            _logger.info("SUCCESS: %s", command)
        else:
            _logger.error("FAILED(%s): %s", result.returncode, command)

    async def start_module(self, name: str) -> bool:
        module = self._store.current_mode().modules.get(name)
        if module is None:
            _logger.error("Cannot find module %s", name)
            return False
        await self._system(module.start_command)
        return True

    async def stop_module(self, name: str) -> bool:
        module = self._store.current_mode().modules.get(name)
        if module is None:
            _logger.error("Cannot find module %s", name)
            return False
        await self._system(module.stop_command)
        return True

    async def setup_mode(self) -> None:
        """Start every module of the current mode."""
        for module in self._store.current_mode().modules.values():
            await self._system(module.start_command)

    async def reset_mode(self) -> None:
        """Stop every module of the current mode."""
        for module in self._store.current_mode().modules.values():
            await self._system(module.stop_command)
