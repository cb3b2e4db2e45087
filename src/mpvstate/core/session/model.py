"""
Live session model: the in-memory mirror of a snapshot.

The model holds the same fields as :class:`~mpvstate.core.contracts.snapshot.Snapshot`
plus state that only matters while mpv is running:

- ``duration``: length of the current file, used as the final position
  when a session ends at end-of-file. Never persisted.
- ``playlist_restored`` / ``playback_restored``: restoration phase flags
  set by the restore sequencer.

Every mutation bumps a revision counter, and ``trace(note)`` captures an
immutable :class:`SessionTrace` of the current state for debugging.

Ownership
---------
One model per session. It is created at process start (stamping
``statistics.start_time``), optionally seeded from the prior snapshot,
mutated only from the host's event thread by the observer and sequencer,
and handed to the store as a frozen :class:`Snapshot` via ``to_snapshot()``.
"""

from __future__ import annotations

import time
from datetime import UTC, datetime
from typing import Any

from mpvstate.core.contracts.snapshot import Number, Snapshot, Statistics

from .trace import SessionTrace

#: Snapshot attributes the observer and lifecycle controller may overwrite.
PERSISTED_FIELDS: frozenset[str] = frozenset(
    {"playlist", "playlist_pos", "time_pos", "vid", "aid", "sid", "audio_delay", "reason"}
)

#: Statistics attributes, stamped by the observer and lifecycle controller.
STATISTICS_FIELDS: frozenset[str] = frozenset({"start_time", "stop_time", "start_position"})


def unix_now() -> int:
    """Current time as integer UNIX seconds (the state file's time unit)."""
    return int(time.time())


class SessionModel:
    """
    Mutable, single-owner mirror of the persisted state.

    Attributes
    ----------
    statistics : Statistics
        Timing data for *this* session; prior sessions' values are dropped
        on :meth:`seed`.
    duration : float
        Last known length of the current file in seconds.
    """

    __slots__ = (
        "playlist",
        "playlist_pos",
        "time_pos",
        "vid",
        "aid",
        "sid",
        "audio_delay",
        "reason",
        "statistics",
        "duration",
        "playlist_restored",
        "playback_restored",
        "_rev",
        "_traces",
    )

    def __init__(self) -> None:
        self.playlist: list[str] | None = None
        self.playlist_pos: int | None = None
        self.time_pos: float | None = None
        self.vid: int | None = None
        self.aid: int | None = None
        self.sid: int | None = None
        self.audio_delay: float | None = None
        self.reason: str | None = None
        self.statistics: Statistics = Statistics()
        self.duration: float = 0.0
        self.playlist_restored: bool = False
        self.playback_restored: bool = False
        self._rev: int = 0
        self._traces: list[SessionTrace] = []

    @classmethod
    def create(cls, now: Number | None = None) -> SessionModel:
        """Return a fresh model with ``statistics.start_time`` stamped."""
        model = cls()
        model.statistics.start_time = unix_now() if now is None else now
        return model

    # ------------------------------- Mutation -------------------------------

    @property
    def revision(self) -> int:
        """Number of mutations applied so far."""
        return self._rev

    def seed(self, snapshot: Snapshot) -> None:
        """Copy the persisted fields of a prior snapshot into the model.

        The snapshot's statistics belong to the previous session and are
        replaced by a record holding only this session's start time.
        """
        self.playlist = list(snapshot.playlist) if snapshot.playlist is not None else None
        self.playlist_pos = snapshot.playlist_pos
        self.time_pos = snapshot.time_pos
        self.vid = snapshot.vid
        self.aid = snapshot.aid
        self.sid = snapshot.sid
        self.audio_delay = snapshot.audio_delay
        self.reason = snapshot.reason
        self.statistics = Statistics(start_time=self.statistics.start_time)
        self._rev += 1

    def set(self, field: str, value: Any) -> None:
        """Overwrite one persisted field (last write wins, no validation)."""
        if field not in PERSISTED_FIELDS:
            raise KeyError(f"not a persisted session field: {field!r}")
        setattr(self, field, value)
        self._rev += 1

    def set_statistic(self, field: str, value: Number | None) -> None:
        """Overwrite one statistics field."""
        if field not in STATISTICS_FIELDS:
            raise KeyError(f"not a statistics field: {field!r}")
        setattr(self.statistics, field, value)
        self._rev += 1

    def set_duration(self, value: float) -> None:
        """Record the current file's length."""
        self.duration = value
        self._rev += 1

    def mark_playlist_restored(self) -> None:
        self.playlist_restored = True
        self._rev += 1

    def mark_playback_restored(self) -> None:
        self.playback_restored = True
        self._rev += 1

    # ------------------------------- Hand-off -------------------------------

    def to_snapshot(self) -> Snapshot:
        """Return a detached :class:`Snapshot` of the persisted fields."""
        return Snapshot(
            playlist=list(self.playlist) if self.playlist is not None else None,
            playlist_pos=self.playlist_pos,
            time_pos=self.time_pos,
            vid=self.vid,
            aid=self.aid,
            sid=self.sid,
            audio_delay=self.audio_delay,
            reason=self.reason,
            statistics=self.statistics.model_copy(),
        )

    # ------------------------------- Trace API ------------------------------

    def trace(self, note: str | None = None) -> SessionTrace:
        """Capture and record an immutable view of the current state."""
        data: dict[str, Any] = {
            "snapshot": self.to_snapshot().to_document(),
            "duration": self.duration,
            "playlist_restored": self.playlist_restored,
            "playback_restored": self.playback_restored,
        }
        ts_str = datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%S.%fZ")
        snap = SessionTrace(timestamp=ts_str, revision=self._rev, note=note, data=data)
        self._traces.append(snap)
        return snap

    def traces(self) -> tuple[SessionTrace, ...]:
        """Return all recorded traces (immutable tuple)."""
        return tuple(self._traces)


__all__ = ["PERSISTED_FIELDS", "STATISTICS_FIELDS", "SessionModel", "unix_now"]
