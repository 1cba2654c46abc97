"""OS command execution for module lifecycle commands."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    command: str
    returncode: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner(Protocol):
    """Structural command execution interface.

    Lets tests substitute a recorder for the real shell.
    """

    async def run(self, command: str) -> CommandResult:
        ...


class ShellCommandRunner:
    """Run commands through ``/bin/sh``.

    Start commands end with ``&``, so the shell returns as soon as the
    module is spawned; output is discarded.
    """

    async def run(self, command: str) -> CommandResult:
        _logger.debug("Running command: %s", command)
        proc = await asyncio.create_subprocess_shell(
            command,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
            start_new_session=True,
        )
        returncode = await proc.wait()
        return CommandResult(command=command, returncode=returncode)
