"""
Session trace record.

A trace is an immutable picture of the session model taken at a lifecycle
point ("session started", "playback restored", "session ended: quit"). It is
kept separate from ``model.py`` so the trace writer can import it without
pulling in the model.

Design Notes
------------
- **Immutability**: once captured a trace never changes (``frozen=True``).
- **Serialization**: the timestamp is stored as an ISO-8601 string so the
  writer can dump the record with :func:`dataclasses.asdict` unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class SessionTrace:
    """
    Immutable record of the session model at one point in time.

    Attributes
    ----------
    timestamp : str
        UTC capture time, e.g. "2025-03-01T20:14:07.104213Z".
    revision : int
        The model's revision counter at capture time.
    note : str | None
        Optional label naming the lifecycle point.
    data : dict[str, Any]
        JSON-safe view: the snapshot document plus runtime fields
        (``duration``, ``playlist_restored``, ``playback_restored``).
    """

    timestamp: str
    revision: int
    note: str | None
    data: dict[str, Any] = field(default_factory=dict)
