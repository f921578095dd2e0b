from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import pytest

from soilwatch.config import SoilwatchConfig
from soilwatch.models.marker import AdvisoryContent, Marker
from soilwatch.models.telemetry import TelemetrySnapshot
from soilwatch.surface import ScreenPosition, ScreenRect, ScreenSize


@dataclass
class FakeSubscription:
    path: str
    callback: Callable[[TelemetrySnapshot], None]
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class FakeStore:
    """In-memory stand-in for the realtime database."""

    admins: dict[str, Any] = field(default_factory=lambda: {"bacofa": {"name": "Bacofa"}})
    answer_admin: bool = True
    fail_writes: bool = False
    write_release: asyncio.Event | None = None
    subscriptions: list[FakeSubscription] = field(default_factory=list)
    writes: list[tuple[str, Any]] = field(default_factory=list)

    def subscribe(self, path: str, on_snapshot: Callable[[TelemetrySnapshot], None]) -> FakeSubscription:
        subscription = FakeSubscription(path=path, callback=on_snapshot)
        self.subscriptions.append(subscription)
        if path.startswith("Admin/") and self.answer_admin:
            value = self.admins.get(path.split("/", 1)[1])
            asyncio.get_running_loop().call_soon(on_snapshot, TelemetrySnapshot(path=path, value=value))
        return subscription

    async def write(self, path: str, value: Any) -> None:
        if self.write_release is not None:
            await self.write_release.wait()
        if self.fail_writes:
            raise ConnectionError("permission denied")
        self.writes.append((path, value))

    def active(self, path: str) -> list[FakeSubscription]:
        return [sub for sub in self.subscriptions if sub.path == path and not sub.cancelled]

    def emit(self, path: str, value: Any) -> None:
        for subscription in self.active(path):
            subscription.callback(TelemetrySnapshot(path=path, value=value))


@dataclass
class FakeSurface:
    """Records everything the engine asks the map to do."""

    anchor: ScreenRect | None = field(default_factory=lambda: ScreenRect(left=100.0, top=50.0, width=200.0, height=80.0))
    advisory_size: ScreenSize = field(default_factory=lambda: ScreenSize(width=120.0, height=60.0))
    rendered: dict[int, Marker] = field(default_factory=dict)
    removed: list[int] = field(default_factory=list)
    advisory: AdvisoryContent | None = None
    position: ScreenPosition | None = None
    viewport_callbacks: list[Callable[[str], None]] = field(default_factory=list)
    _next_handle: int = 0

    def render_marker(self, marker: Marker) -> int:
        self._next_handle += 1
        self.rendered[self._next_handle] = marker
        return self._next_handle

    def remove_marker(self, handle: Any) -> None:
        self.removed.append(handle)
        self.rendered.pop(handle, None)

    def project_to_screen(self, marker_id: str) -> ScreenRect | None:
        return self.anchor

    def on_viewport_change(self, callback: Callable[[str], None]) -> Callable[[], None]:
        self.viewport_callbacks.append(callback)
        return lambda: self.viewport_callbacks.remove(callback)

    def show_advisory(self, content: AdvisoryContent) -> ScreenSize:
        self.advisory = content
        return self.advisory_size

    def place_advisory(self, position: ScreenPosition) -> None:
        self.position = position

    def hide_advisory(self) -> None:
        self.advisory = None
        self.position = None

    def fire(self, event: str) -> None:
        for callback in list(self.viewport_callbacks):
            callback(event)


def full_packet(**overrides: Any) -> dict[str, Any]:
    """A packet where every parameter is in range unless overridden."""
    packet: dict[str, Any] = {
        "temperature": 20,
        "moisture": 40,
        "ph": 6.2,
        "salinity": 1.0,
        "ec": 1.0,
        "nitrogen": 100,
        "phosphorus": 30,
        "potassium": 100,
    }
    packet.update(overrides)
    return packet


def sample_users() -> dict[str, Any]:
    return {
        "farmer1": {
            "Farm": {
                "Nodes": {
                    "NodeA": {
                        "Coordinates": {"X": 10.5, "Y": 20.25},
                        "Packets": {
                            "-p1": full_packet(ph=7.5),
                            "-p2": full_packet(ph=5.0),
                        },
                    },
                    "NodeB": {"Packets": {"-p1": full_packet()}},
                }
            }
        },
        "farmer2": {"Farm": {"Nodes": {"NodeC": {"Coordinates": {"X": -3, "Y": 51}}}}},
        "farmer3": {"Profile": {"email": "f3@example.com"}},
    }


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def surface() -> FakeSurface:
    return FakeSurface()


@pytest.fixture
def users() -> dict[str, Any]:
    return sample_users()


@pytest.fixture
def config() -> SoilwatchConfig:
    return SoilwatchConfig(admin="bacofa", suppress_cooldown=0.05, identity_timeout=0.5)


@pytest.fixture
def make_packet() -> Callable[..., dict[str, Any]]:
    return full_packet
