"""Filesystem discovery of available modes, maps and vehicles."""

from __future__ import annotations

import logging
from pathlib import Path

from pyhmi.config import HmiConfig
from pyhmi.exceptions import HmiConfigError
from pyhmi.models.configuration import HmiConfiguration

_logger = logging.getLogger(__name__)


def title_case(origin: str) -> str:
    """Convert a path segment to a display title: ``"hello_world"`` -> ``"Hello World"``."""
    parts = origin.split("_")
    return " ".join(part[:1].upper() + part[1:] for part in parts)


def list_dir_as_dict(directory: str | Path) -> dict[str, str]:
    """Map the title of each immediate subdirectory to its path."""
    root = Path(directory)
    if not root.is_dir():
        _logger.warning("Directory %s does not exist", root)
        return {}
    return {title_case(child.name): str(child) for child in sorted(root.iterdir()) if child.is_dir()}


def list_files_as_dict(directory: str | Path, extension: str) -> dict[str, str]:
    """Map the title of each ``*<extension>`` file (extension stripped) to its path."""
    root = Path(directory)
    if not root.is_dir():
        _logger.warning("Directory %s does not exist", root)
        return {}
    result: dict[str, str] = {}
    for file_path in sorted(root.glob(f"*{extension}")):
        if not file_path.is_file():
            continue
        stem = file_path.name[: len(file_path.name) - len(extension)]
        result[title_case(stem)] = str(file_path)
    return result


def load_hmi_configuration(config: HmiConfig) -> HmiConfiguration:
    """Discover modes, maps and vehicles.

    Raises :class:`HmiConfigError` if no mode is found.
    """
    modes = list_files_as_dict(config.modes_config_path, config.mode_file_extension)
    if not modes:
        raise HmiConfigError(f"No modes config loaded from {config.modes_config_path}")

    configuration = HmiConfiguration(
        modes=modes,
        maps=list_dir_as_dict(config.maps_data_path),
        vehicles=list_dir_as_dict(config.vehicles_config_path),
    )
    _logger.info(
        "Loaded HMI config: modes=%s maps=%s vehicles=%s",
        sorted(configuration.modes),
        sorted(configuration.maps),
        sorted(configuration.vehicles),
    )
    return configuration
