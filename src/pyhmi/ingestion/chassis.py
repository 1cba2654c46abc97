"""Chassis feedback observation."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from pyhmi.models.messages import ChassisMessage

_logger = logging.getLogger(__name__)


class ChassisObserver:
    """Keeps the latest chassis message for the driving-mode protocol.

    A fresh message carrying the high-beam signal fires ``on_high_beam``.
    """

    def __init__(
        self,
        *,
        lifetime_seconds: float,
        on_high_beam: Callable[[], None] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._lock = threading.Lock()
        self._latest: ChassisMessage | None = None
        self._lifetime_seconds = lifetime_seconds
        self._on_high_beam = on_high_beam
        self._clock = clock

    def on_message(self, message: ChassisMessage) -> None:
        with self._lock:
            self._latest = message
        if self._clock() - message.header.timestamp_sec >= self._lifetime_seconds:
            return
        if message.signal.high_beam and self._on_high_beam is not None:
            self._on_high_beam()

    def observe(self) -> ChassisMessage | None:
        with self._lock:
            return self._latest
