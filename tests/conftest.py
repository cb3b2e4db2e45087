"""Shared fixtures: an in-process session host.

`FakeHost` implements the `SessionHost` protocol without mpv. It records
every command so tests can assert on what the engine asked for, and lets
tests deliver property notifications (`notify`) and lifecycle events
(`fire`) one at a time, the way mpv would.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from mpvstate.host.ports import END_FILE, FILE_LOADED, EventHandler, PropertyHandler


class FakeHost:
    """A recording, manually driven `SessionHost`."""

    def __init__(self, playlist: list[str] | None = None) -> None:
        self.playlist: list[str] = list(playlist or [])
        self.properties: dict[str, Any] = {}
        self.calls: list[tuple[Any, ...]] = []
        self.observers: list[tuple[str, PropertyHandler]] = []
        self.events: dict[str, list[EventHandler]] = {}

    # ---- SessionHost ------------------------------------------------------
    def clear_playlist(self) -> None:
        self.calls.append(("clear_playlist",))
        self.playlist = []

    def append_file(self, path: str) -> None:
        self.calls.append(("append_file", path))
        self.playlist.append(path)

    def get_property(self, name: str) -> Any:
        return self.properties.get(name)

    def set_property(self, name: str, value: Any) -> None:
        self.calls.append(("set_property", name, value))
        self.properties[name] = value

    def observe_property(self, name: str, handler: PropertyHandler) -> None:
        self.observers.append((name, handler))

    def unobserve_property(self, handler: PropertyHandler) -> None:
        self.observers = [(n, h) for n, h in self.observers if h != handler]

    def register_event(self, name: str, handler: EventHandler) -> None:
        self.events.setdefault(name, []).append(handler)

    # ---- Test drivers -----------------------------------------------------
    def notify(self, name: str, value: Any) -> None:
        """Deliver a property change to every current observer of `name`."""
        for prop, handler in list(self.observers):
            if prop == name:
                handler(name, value)

    def fire(self, event: str, *args: Any) -> None:
        for handler in list(self.events.get(event, [])):
            handler(*args)

    def file_loaded(self) -> None:
        self.fire(FILE_LOADED)

    def end_file(self, reason: str) -> None:
        self.fire(END_FILE, reason)

    def playlist_native(self, current: int) -> list[dict[str, Any]]:
        """The host playlist in mpv's native `playlist` property shape."""
        return [
            {"filename": entry, **({"current": True, "playing": True} if i == current else {})}
            for i, entry in enumerate(self.playlist)
        ]

    def set_calls(self) -> list[tuple[str, Any]]:
        return [(c[1], c[2]) for c in self.calls if c[0] == "set_property"]

    def observed_names(self) -> list[str]:
        return [name for name, _handler in self.observers]


class ScriptedHost(FakeHost):
    """A `FakeHost` whose event loop replays a fixed script."""

    def __init__(
        self, script: list[Callable[[ScriptedHost], None]], playlist: list[str] | None = None
    ) -> None:
        super().__init__(playlist)
        self.script = script
        self.closed = False

    def run(self) -> None:
        for step in self.script:
            step(self)

    def close(self) -> None:
        self.closed = True


@pytest.fixture  # type: ignore[misc]
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture  # type: ignore[misc]
def state_path(tmp_path: Path) -> Path:
    return tmp_path / "state" / "state.json"


FIVE_ITEMS = [f"/media/jazz/{n:02d}.mkv" for n in range(1, 6)]
