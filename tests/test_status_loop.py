from __future__ import annotations

import asyncio
from collections.abc import Callable

import pytest

from pyhmi._worker.status_loop import StatusUpdateLoop
from pyhmi.models.messages import Header
from pyhmi.models.status import StatusRecord
from pyhmi.state.store import StatusStore


class _Clock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def _set_mode(name: str) -> Callable[[StatusRecord], None]:
    def _apply(record: StatusRecord) -> None:
        record.current_mode = name

    return _apply


def test_first_tick_always_publishes() -> None:
    store = StatusStore()
    loop = StatusUpdateLoop(store=store, clock=_Clock())
    calls: list[bool] = []
    loop.register_handler(lambda changed, _status: calls.append(changed))

    assert loop.poll_once() is True
    assert calls == [False]


def test_publishes_on_change_and_on_heartbeat() -> None:
    store = StatusStore()
    clock = _Clock()
    loop = StatusUpdateLoop(store=store, publish_interval=5.0, clock=clock)
    calls: list[tuple[bool, str]] = []
    loop.register_handler(lambda changed, status: calls.append((changed, status.current_mode)))

    loop.poll_once()
    calls.clear()

    clock.now += 1.0
    assert loop.poll_once() is False

    store.mutate(_set_mode("Pnc"))
    clock.now += 0.2
    assert loop.poll_once() is True
    assert calls == [(True, "Pnc")]

    # No change: quiet until the heartbeat interval elapses.
    clock.now += 4.9
    assert loop.poll_once() is False
    clock.now += 0.2
    assert loop.poll_once() is True
    assert calls[-1] == (False, "Pnc")


def test_handlers_get_a_working_copy() -> None:
    store = StatusStore()
    loop = StatusUpdateLoop(store=store, clock=_Clock())

    def _stamp(_changed: bool, status: StatusRecord) -> None:
        status.header = Header(timestamp_sec=1.0, module_name="HMI", sequence_num=1)
        status.current_mode = "Tampered"

    loop.register_handler(_stamp)
    loop.poll_once()

    assert store.read().header is None
    assert store.read().current_mode == ""
    assert store.dirty is False


def test_failing_handler_does_not_block_others() -> None:
    store = StatusStore()
    loop = StatusUpdateLoop(store=store, clock=_Clock())
    seen: list[bool] = []

    def _broken(_changed: bool, _status: StatusRecord) -> None:
        raise RuntimeError("subscriber gone")

    loop.register_handler(_broken)
    loop.register_handler(lambda changed, _status: seen.append(changed))

    assert loop.poll_once() is True
    assert seen == [False]


@pytest.mark.asyncio
async def test_background_loop_publishes_changes_and_stops() -> None:
    store = StatusStore()
    loop = StatusUpdateLoop(store=store, publish_interval=60.0, tick_interval=0.01)
    published = asyncio.Event()
    modes: list[str] = []

    def _handler(_changed: bool, status: StatusRecord) -> None:
        modes.append(status.current_mode)
        if status.current_mode == "Pnc":
            published.set()

    loop.register_handler(_handler)
    loop.start()
    assert loop.is_running

    store.mutate(_set_mode("Pnc"))
    await asyncio.wait_for(published.wait(), timeout=2.0)

    await loop.stop()
    assert loop.is_running is False
    assert "Pnc" in modes
