"""Persistent key-value store and runtime flag overrides.

Both default implementations write through a temporary file in the target
directory followed by :func:`os.replace`, so readers in other processes
only ever see a complete file.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Protocol

_logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Remembers small values (e.g. the last selected mode) across restarts."""

    def get(self, key: str) -> str | None:
        ...

    def put(self, key: str, value: str) -> None:
        ...


class FlagOverrides(Protocol):
    """Runtime configuration consumed by separately running processes."""

    def get(self, name: str) -> str | None:
        ...

    def set(self, name: str, value: str) -> bool:
        """Persist *value*; return ``False`` if it was already current."""
        ...

    def clear(self, name: str) -> bool:
        """Remove the override; return ``False`` if it was not set."""
        ...


def _atomic_write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class JsonFileKeyValueStore:
    """Key-value store backed by one JSON object on disk."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> dict[str, str]:
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError):
            _logger.warning("Ignoring unreadable key-value store %s", self._path, exc_info=True)
            return {}
        if not isinstance(raw, dict):
            return {}
        return {str(k): str(v) for k, v in raw.items()}

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._load().get(key)

    def put(self, key: str, value: str) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            _atomic_write_text(self._path, json.dumps(data, indent=2, sort_keys=True))


class FlagFileOverrides:
    """Flagfile of ``--name=value`` lines, one per overridden flag.

    The file is rewritten whole on every change, keeping one line per
    flag.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        self._flags = self._load()

    def _load(self) -> dict[str, str]:
        try:
            lines = self._path.read_text(encoding="utf-8").splitlines()
        except FileNotFoundError:
            return {}
        flags: dict[str, str] = {}
        for line in lines:
            stripped = line.strip()
            if not stripped.startswith("--") or "=" not in stripped:
                continue
            name, _, value = stripped[2:].partition("=")
            flags[name.strip()] = value.strip()
        return flags

    def get(self, name: str) -> str | None:
        with self._lock:
            return self._flags.get(name)

    def _write(self, flags: dict[str, str]) -> None:
        # Caller holds the lock.
        text = "".join(f"--{key}={val}\n" for key, val in flags.items())
        _atomic_write_text(self._path, text)
        self._flags = flags

    def set(self, name: str, value: str) -> bool:
        with self._lock:
            if self._flags.get(name) == value:
                return False
            self._write({**self._flags, name: value})
        _logger.info("Set flag override --%s=%s in %s", name, value, self._path)
        return True

    def clear(self, name: str) -> bool:
        with self._lock:
            if name not in self._flags:
                return False
            flags = {key: val for key, val in self._flags.items() if key != name}
            self._write(flags)
        _logger.info("Cleared flag override --%s in %s", name, self._path)
        return True
