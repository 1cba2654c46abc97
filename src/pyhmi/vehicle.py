"""Vehicle calibration profile switching."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Protocol

_logger = logging.getLogger(__name__)


class VehicleProfileSwitch(Protocol):
    def use(self, profile_path: str) -> bool:
        """Activate the profile at *profile_path*; ``False`` on failure."""
        ...


class CalibrationProfileSwitch:
    """Activate a vehicle by copying its profile directory over the calibration directory."""

    def __init__(self, calibration_path: str | Path) -> None:
        self._target = Path(calibration_path)

    def use(self, profile_path: str) -> bool:
        source = Path(profile_path)
        if not source.is_dir():
            _logger.error("Vehicle profile %s is not a directory", source)
            return False
        try:
            shutil.copytree(source, self._target, dirs_exist_ok=True)
        except OSError:
            _logger.error("Failed to copy vehicle profile %s to %s", source, self._target, exc_info=True)
            return False
        _logger.info("Activated vehicle profile %s", source)
        return True
