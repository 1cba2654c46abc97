from __future__ import annotations

import threading

from conftest import make_mode

from pyhmi.models.messages import ComponentStatus, Header
from pyhmi.models.status import StatusRecord
from pyhmi.state.lock import ReadWriteLock
from pyhmi.state.store import StatusStore, status_fingerprint


def test_fingerprint_ignores_dict_order_and_header() -> None:
    a = StatusRecord(current_mode="Pnc", modules={"Planning": True, "Control": False})
    b = StatusRecord(
        header=Header(timestamp_sec=12.5, module_name="HMI", sequence_num=3),
        current_mode="Pnc",
        modules={"Control": False, "Planning": True},
    )
    assert status_fingerprint(a) == status_fingerprint(b)


def test_fingerprint_sees_value_changes() -> None:
    a = StatusRecord(modules={"Planning": True})
    b = StatusRecord(modules={"Planning": False})
    assert status_fingerprint(a) != status_fingerprint(b)


def test_mutation_marks_dirty_only_on_real_change() -> None:
    store = StatusStore()

    def _set_mode(record: StatusRecord) -> None:
        record.current_mode = "Pnc"

    store.mutate(_set_mode)
    assert store.consume_dirty() is True
    assert store.consume_dirty() is False

    # Same value again: fingerprint unchanged, nothing to publish.
    store.mutate(_set_mode)
    assert store.dirty is False


def test_read_returns_independent_copy() -> None:
    store = StatusStore(StatusRecord(modules={"Planning": False}))

    snapshot = store.read()
    snapshot.modules["Planning"] = True
    snapshot.current_mode = "Changed"

    assert store.read().modules == {"Planning": False}
    assert store.read().current_mode == ""
    assert store.dirty is False


def test_mutation_failure_still_refreshes_fingerprint() -> None:
    store = StatusStore()

    def _half_update(record: StatusRecord) -> None:
        record.current_map = "Sunnyvale"
        raise RuntimeError("boom")

    try:
        store.mutate(_half_update)
    except RuntimeError:
        pass

    assert store.consume_dirty() is True
    assert store.fingerprint == status_fingerprint(store.read())


def test_install_mode_replaces_mode_and_record_together() -> None:
    store = StatusStore()
    mode = make_mode("Pnc", "Planning", "Control", components=("GPS",))

    def _install(record: StatusRecord) -> str:
        record.current_mode = mode.name
        record.modules = {name: False for name in mode.modules}
        record.monitored_components = {name: ComponentStatus() for name in mode.monitored_components}
        return "installed"

    assert store.install_mode(mode, _install) == "installed"
    assert store.current_mode() is mode
    assert set(store.read().modules) == set(store.current_mode().modules)
    assert store.consume_dirty() is True


def test_concurrent_mutations_are_not_lost() -> None:
    store = StatusStore(StatusRecord(utm_zone_id=0))
    barrier = threading.Barrier(8)

    def _bump(record: StatusRecord) -> None:
        record.utm_zone_id += 1

    def _worker() -> None:
        barrier.wait()
        for _ in range(250):
            store.mutate(_bump)
            store.read()

    threads = [threading.Thread(target=_worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert store.read().utm_zone_id == 8 * 250


def test_lock_allows_concurrent_readers() -> None:
    lock = ReadWriteLock()
    both_inside = threading.Barrier(2, timeout=5.0)
    results: list[bool] = []

    def _reader() -> None:
        with lock.read_locked():
            both_inside.wait()
            results.append(True)

    threads = [threading.Thread(target=_reader) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results == [True, True]


def test_lock_writer_excludes_readers() -> None:
    lock = ReadWriteLock()
    events: list[str] = []
    writer_in = threading.Event()

    def _reader() -> None:
        writer_in.wait()
        with lock.read_locked():
            events.append("read")

    reader = threading.Thread(target=_reader)
    reader.start()
    with lock.write_locked():
        writer_in.set()
        reader.join(timeout=0.2)
        events.append("write-done")
    reader.join()

    assert events == ["write-done", "read"]
