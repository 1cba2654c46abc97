from __future__ import annotations

from collections.abc import Callable

import pytest
from pydantic import BaseModel

from pyhmi._process import CommandResult
from pyhmi.exceptions import HmiTransportError, ModeLoadError
from pyhmi.mode_loader import derive_module
from pyhmi.models.configuration import HmiConfiguration
from pyhmi.models.mode import LoadedMode, ModuleLaunchSpec, MonitoredComponentSpec


class RecordingRunner:
    """Records commands instead of running them."""

    def __init__(self) -> None:
        self.commands: list[str] = []
        self.returncodes: dict[str, int] = {}
        self.spawn_errors: set[str] = set()

    async def run(self, command: str) -> CommandResult:
        self.commands.append(command)
        if command in self.spawn_errors:
            raise OSError(f"cannot spawn {command}")
        return CommandResult(command=command, returncode=self.returncodes.get(command, 0))


class MemoryKeyValueStore:
    def __init__(self, data: dict[str, str] | None = None) -> None:
        self.data = dict(data or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def put(self, key: str, value: str) -> None:
        self.data[key] = value


class MemoryFlagOverrides:
    def __init__(self, flags: dict[str, str] | None = None) -> None:
        self.flags = dict(flags or {})
        self.writes: list[tuple[str, str]] = []
        self.failures = 0

    def get(self, name: str) -> str | None:
        return self.flags.get(name)

    def set(self, name: str, value: str) -> bool:
        if self.failures:
            self.failures -= 1
            raise OSError("disk full")
        if self.flags.get(name) == value:
            return False
        self.flags[name] = value
        self.writes.append((name, value))
        return True

    def clear(self, name: str) -> bool:
        if name not in self.flags:
            return False
        del self.flags[name]
        self.writes.append((name, ""))
        return True


class FakeProfileSwitch:
    def __init__(self, result: bool = True) -> None:
        self.result = result
        self.calls: list[str] = []

    def use(self, profile_path: str) -> bool:
        self.calls.append(profile_path)
        return self.result


class FakeBus:
    """In-memory bus; ``deliver`` plays the role of an inbound message."""

    def __init__(self) -> None:
        self.subscriptions: dict[str, list[Callable[[bytes], None]]] = {}
        self.published: list[tuple[str, BaseModel]] = []
        self.started = False
        self.stopped = False
        self.fail_publish = False
        self.on_publish: Callable[[str, BaseModel], None] | None = None

    def subscribe(self, topic: str, callback: Callable[[bytes], None]) -> None:
        self.subscriptions.setdefault(topic, []).append(callback)

    def publish(self, topic: str, message: BaseModel) -> None:
        if self.fail_publish:
            raise HmiTransportError("bus down", topic=topic)
        self.published.append((topic, message.model_copy(deep=True)))
        if self.on_publish is not None:
            self.on_publish(topic, message)

    async def start(self) -> None:
        self.started = True

    async def stop(self) -> None:
        self.stopped = True

    def deliver(self, topic: str, payload: bytes) -> None:
        for callback in self.subscriptions.get(topic, []):
            callback(payload)

    def on_topic(self, topic: str) -> list[BaseModel]:
        return [message for published_topic, message in self.published if published_topic == topic]


def make_mode(name: str, *module_names: str, components: tuple[str, ...] = ()) -> LoadedMode:
    modules = {
        module_name: derive_module(
            module_name,
            ModuleLaunchSpec(descriptor_files=[f"/apollo/dag/{module_name.lower()}.dag"]),
        )
        for module_name in module_names
    }
    return LoadedMode(
        name=name,
        modules=modules,
        monitored_components={component: MonitoredComponentSpec() for component in components},
    )


class FakeModeLoader:
    """Serves prebuilt modes keyed by mode name."""

    def __init__(self, modes: dict[str, LoadedMode]) -> None:
        self.modes = modes
        self.calls: list[tuple[str, str]] = []
        self.broken: set[str] = set()

    def __call__(self, name: str, path: str) -> LoadedMode:
        self.calls.append((name, path))
        if name in self.broken:
            raise ModeLoadError(f"broken descriptor {path}", path=path)
        return self.modes[name]


@pytest.fixture
def configuration() -> HmiConfiguration:
    return HmiConfiguration(
        modes={
            "Navigation": "/modes/navigation.json",
            "Pnc": "/modes/pnc.json",
            "Standard Debug": "/modes/standard_debug.json",
        },
        maps={
            "San Mateo": "/maps/san_mateo",
            "Sunnyvale": "/maps/sunnyvale",
        },
        vehicles={
            "Lincoln Mkz": "/vehicles/lincoln_mkz",
            "Shuttle": "/vehicles/shuttle",
        },
    )


@pytest.fixture
def mode_loader() -> FakeModeLoader:
    return FakeModeLoader(
        {
            "Navigation": make_mode("Navigation", "Localization", "Planning"),
            "Pnc": make_mode("Pnc", "Planning", "Control", components=("GPS",)),
            "Standard Debug": make_mode("Standard Debug", "Perception", "Prediction", components=("Lidar", "Radar")),
        }
    )


@pytest.fixture
def runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture
def kv_store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def flags() -> MemoryFlagOverrides:
    return MemoryFlagOverrides()


@pytest.fixture
def profile_switch() -> FakeProfileSwitch:
    return FakeProfileSwitch()


@pytest.fixture
def bus() -> FakeBus:
    return FakeBus()
