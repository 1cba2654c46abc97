"""Synchronized status store.

This is the only component holding the live :class:`StatusRecord` and the
loaded mode. Everything else sees copies, or edits the record through
:meth:`StatusStore.mutate`.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Callable
from typing import TypeVar

from pyhmi.models.mode import LoadedMode
from pyhmi.models.status import StatusRecord
from pyhmi.state.lock import ReadWriteLock

T = TypeVar("T")


def status_fingerprint(record: StatusRecord) -> str:
    """Structural hash of *record*, ignoring the transport header.

    Keys are sorted before hashing, so two records with equal field values
    share a fingerprint regardless of dict insertion order.
    """
    canonical = json.dumps(
        record.model_dump(mode="json", exclude={"header"}),
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.blake2b(canonical.encode("utf-8"), digest_size=16).hexdigest()


class StatusStore:
    """Status record and loaded mode behind one readers/writer lock.

    Mutation callbacks run with the write lock held: they must stay
    in-memory and must not call back into the store. Commands, storage
    I/O and sleeps belong before or after :meth:`mutate`, never inside.
    """

    def __init__(self, record: StatusRecord | None = None) -> None:
        self._lock = ReadWriteLock()
        self._record = record if record is not None else StatusRecord()
        self._mode = LoadedMode()
        self._fingerprint = status_fingerprint(self._record)
        self._dirty = False

    def read(self) -> StatusRecord:
        """Return a deep copy of the current record."""
        with self._lock.read_locked():
            return self._record.model_copy(deep=True)

    def current_mode(self) -> LoadedMode:
        """Return the loaded mode (immutable, safe to share)."""
        with self._lock.read_locked():
            return self._mode

    def mutate(self, fn: Callable[[StatusRecord], T]) -> T:
        """Run *fn* on the live record with exclusive access."""
        with self._lock.write_locked():
            try:
                return fn(self._record)
            finally:
                self._refresh_fingerprint()

    def install_mode(self, mode: LoadedMode, fn: Callable[[StatusRecord], T]) -> T:
        """Replace the loaded mode and apply *fn* in the same write section."""
        with self._lock.write_locked():
            self._mode = mode
            try:
                return fn(self._record)
            finally:
                self._refresh_fingerprint()

    def consume_dirty(self) -> bool:
        """Return and clear the changed-since-last-publish flag."""
        with self._lock.write_locked():
            dirty = self._dirty
            self._dirty = False
            return dirty

    def mark_dirty(self) -> None:
        with self._lock.write_locked():
            self._dirty = True

    @property
    def dirty(self) -> bool:
        with self._lock.read_locked():
            return self._dirty

    @property
    def fingerprint(self) -> str:
        with self._lock.read_locked():
            return self._fingerprint

    def _refresh_fingerprint(self) -> None:
        # Caller holds the write lock.
        new_fingerprint = status_fingerprint(self._record)
        if new_fingerprint != self._fingerprint:
            self._fingerprint = new_fingerprint
            self._dirty = True
