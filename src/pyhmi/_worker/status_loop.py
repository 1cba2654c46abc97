"""Background status publication."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

from pyhmi.models.status import StatusRecord
from pyhmi.state.store import StatusStore

_logger = logging.getLogger(__name__)

StatusUpdateHandler = Callable[[bool, StatusRecord], None]


class StatusUpdateLoop:
    """Republish status on change, or at least every ``publish_interval`` seconds.

    Handlers receive ``(status_changed, working_copy)``. They may enrich
    the working copy (e.g. attach a header); the stored record is never
    affected.
    """

    def __init__(
        self,
        *,
        store: StatusStore,
        publish_interval: float = 5.0,
        tick_interval: float = 0.2,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._publish_interval = publish_interval
        self._tick_interval = tick_interval
        self._clock = clock
        self._handlers: list[StatusUpdateHandler] = []
        self._last_publish_at: float | None = None
        self._stop = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    def register_handler(self, handler: StatusUpdateHandler) -> None:
        self._handlers.append(handler)

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def poll_once(self) -> bool:
        """Run one tick; return whether status was published."""
        status_changed = self._store.consume_dirty()
        now = self._clock()
        if not status_changed and self._last_publish_at is not None:
            if now - self._last_publish_at < self._publish_interval:
                return False
        self._last_publish_at = now
        self._publish(status_changed)
        return True

    def _publish(self, status_changed: bool) -> None:
        status = self._store.read()
        for handler in list(self._handlers):
            try:
                handler(status_changed, status)
            except Exception:
                _logger.warning("Status update handler %r failed", handler, exc_info=True)

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        self._task = asyncio.get_running_loop().create_task(self._run(), name="hmi-status-update")

    async def stop(self) -> None:
        """Signal the loop and wait until it has returned."""
        self._stop.set()
        task = self._task
        self._task = None
        if task is not None:
            await task

    async def _run(self) -> None:
        while not self._stop.is_set():
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self._tick_interval)
            except TimeoutError:
                pass
            if self._stop.is_set():
                break
            self.poll_once()
