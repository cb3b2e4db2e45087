"""
Host port: the session control surface the state engine drives.

The engine never talks to mpv directly. It depends on this small protocol,
which the IPC adapter (:mod:`mpvstate.host.ipc`) implements for a real mpv
process and the test suite implements in-process.

Delivery contract
-----------------
Hosts deliver property changes and events strictly one at a time on a
single thread. Handlers may call back into the host (``set_property``
from inside a ``file-loaded`` handler is the normal case); any event that
results is delivered after the current handler returns.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol

#: Event fired each time mpv activates a playlist entry.
FILE_LOADED = "file-loaded"
#: Event fired when playback of an entry stops; carries the end reason.
END_FILE = "end-file"

#: End reason mpv reports when a file played to its end.
REASON_EOF = "eof"

PropertyHandler = Callable[[str, Any], None]
EventHandler = Callable[..., None]


class HostCommandError(RuntimeError):
    """The host rejected a command or could not deliver it."""


class SessionHost(Protocol):
    """Commands, properties and events of a running player session."""

    def clear_playlist(self) -> None: ...

    def append_file(self, path: str) -> None: ...

    def get_property(self, name: str) -> Any: ...

    def set_property(self, name: str, value: Any) -> None: ...

    def observe_property(self, name: str, handler: PropertyHandler) -> None: ...

    def unobserve_property(self, handler: PropertyHandler) -> None: ...

    def register_event(self, name: str, handler: EventHandler) -> None: ...


__all__ = [
    "END_FILE",
    "FILE_LOADED",
    "REASON_EOF",
    "EventHandler",
    "HostCommandError",
    "PropertyHandler",
    "SessionHost",
]
