"""Mode descriptor parsing and module command derivation.

Command construction is pure; nothing in this module executes anything.
The derived commands have the shape::

    nohup mainboard [-p <process_group>] -d <file> [-d <file> ...] &
    pkill -f "<first descriptor file>"
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import ValidationError

from pyhmi._constants import (
    BACKGROUND_MARKER,
    DESCRIPTOR_FILE_FLAG,
    KILL_BY_PATTERN,
    LAUNCH_PREFIX,
    LAUNCHER,
    PROCESS_GROUP_FLAG,
)
from pyhmi.exceptions import ModeLoadError
from pyhmi.models.mode import LoadedMode, ModeDescriptor, Module, ModuleLaunchSpec

_logger = logging.getLogger(__name__)


def _first_descriptor_file(name: str, spec: ModuleLaunchSpec) -> str:
    if not spec.descriptor_files:
        raise ModeLoadError(f"No descriptor file is provided for {name} module")
    return spec.descriptor_files[0]


def build_start_command(spec: ModuleLaunchSpec) -> str:
    parts = [LAUNCH_PREFIX]
    if spec.process_group:
        parts.extend((PROCESS_GROUP_FLAG, spec.process_group))
    for descriptor_file in spec.descriptor_files:
        parts.extend((DESCRIPTOR_FILE_FLAG, descriptor_file))
    parts.append(BACKGROUND_MARKER)
    return " ".join(parts)


def build_stop_command(spec: ModuleLaunchSpec, *, name: str = "") -> str:
    """Kill by the first descriptor file only; the others share its process."""
    first = _first_descriptor_file(name, spec)
    return f'{KILL_BY_PATTERN} "{first}"'


def build_process_keywords(spec: ModuleLaunchSpec, *, name: str = "") -> tuple[str, ...]:
    return (LAUNCHER, _first_descriptor_file(name, spec))


def derive_module(name: str, spec: ModuleLaunchSpec) -> Module:
    """Derive a runnable :class:`Module` from its launch spec.

    Raises :class:`ModeLoadError` if *spec* has no descriptor files.
    """
    _first_descriptor_file(name, spec)
    return Module(
        start_command=build_start_command(spec),
        stop_command=build_stop_command(spec, name=name),
        required_for_safety=spec.required_for_safety,
        process_keywords=build_process_keywords(spec, name=name),
    )


def parse_mode(text: str, *, source: str = "<string>") -> ModeDescriptor:
    try:
        return ModeDescriptor.model_validate_json(text)
    except ValidationError as exc:
        raise ModeLoadError(f"Unable to parse mode descriptor from {source}: {exc}", path=source) from exc


def build_loaded_mode(name: str, descriptor: ModeDescriptor, *, source: str = "<string>") -> LoadedMode:
    """Translate launch specs into modules; any invalid entry fails the whole mode."""
    modules = dict(descriptor.modules)
    for module_name, spec in descriptor.launch_modules.items():
        try:
            modules[module_name] = derive_module(module_name, spec)
        except ModeLoadError as exc:
            raise ModeLoadError(f"{exc} in {source}", path=source) from exc
    return LoadedMode(
        name=name,
        modules=modules,
        monitored_components=dict(descriptor.monitored_components),
    )


def load_mode(name: str, path: str | Path) -> LoadedMode:
    """Load and derive the mode stored at *path*.

    Raises
    ------
    ModeLoadError
        The file is unreadable, malformed, or a module has no descriptor
        files. No partially loaded mode is ever returned.
    """
    source = str(path)
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ModeLoadError(f"Unable to read mode descriptor {source}: {exc}", path=source) from exc

    mode = build_loaded_mode(name, parse_mode(text, source=source), source=source)
    _logger.info("Loaded HMI mode %s from %s: modules=%s", name, source, sorted(mode.modules))
    return mode
