"""Session hosts for the state engine.

- :class:`SessionHost`: the protocol the engine drives.
- :class:`MpvIpcHost`: a real mpv process over JSON IPC.
"""

from __future__ import annotations

from .ipc import MpvIpcError, MpvIpcHost
from .ports import END_FILE, FILE_LOADED, REASON_EOF, HostCommandError, SessionHost

__all__ = [
    "END_FILE",
    "FILE_LOADED",
    "REASON_EOF",
    "HostCommandError",
    "MpvIpcError",
    "MpvIpcHost",
    "SessionHost",
]
