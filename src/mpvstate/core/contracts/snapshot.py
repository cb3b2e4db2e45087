"""Snapshot contract: the persisted playback state document.

This module defines two Pydantic v2 models:

- `Statistics`: when the session started and stopped, and where playback
  actually began inside the active file.
- `Snapshot`  : the whole persisted record (playlist, active entry,
  position, track selectors, audio delay, end reason, statistics).

Wire format
-----------
The JSON document uses mpv's hyphenated property names as keys
(``playlist-pos``, ``time-pos``, ``audio-delay``, ``start-time`` ...). Python
code uses snake_case attributes; the aliases below map between the two and
both spellings are accepted on input.

Example document::

    {
      "playlist-pos": 6,
      "playlist": ["/mnt/media/jazz/01.mkv", "/mnt/media/jazz/02.mkv"],
      "time-pos": 3732.062,
      "vid": 1, "aid": 1, "sid": 1,
      "audio-delay": 0,
      "reason": "quit",
      "statistics": {"stop-time": 1612074581, "start-position": 3731.261,
                     "start-time": 1612074580}
    }

Notes
-----
- Every key is optional; absent values are omitted on output rather than
  written as ``null``. ``statistics`` is always written.
- Values are type-checked but not range-checked: a ``playlist-pos`` past the
  end of the playlist is forwarded to mpv, which decides what to do with it.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

#: Integer or float seconds; mpv and older snapshot files produce both.
Number = int | float


class Statistics(BaseModel):
    """Per-session timing information."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    start_time: Number | None = Field(
        default=None, alias="start-time", description="UNIX time the session started."
    )
    stop_time: Number | None = Field(
        default=None, alias="stop-time", description="UNIX time the session last ended."
    )
    start_position: float | None = Field(
        default=None,
        alias="start-position",
        description="Seconds into the file at which playback actually began.",
    )


class Snapshot(BaseModel):
    """Point-in-time playback state, as stored in the state file."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    playlist: list[str] | None = Field(
        default=None, description="Ordered playlist entries (paths or URIs)."
    )
    playlist_pos: int | None = Field(
        default=None, alias="playlist-pos", description="Zero-based active entry."
    )
    time_pos: float | None = Field(
        default=None, alias="time-pos", description="Playback position in seconds."
    )
    vid: int | None = Field(default=None, description="Video track selector.")
    aid: int | None = Field(default=None, description="Audio track selector.")
    sid: int | None = Field(default=None, description="Subtitle track selector.")
    audio_delay: float | None = Field(
        default=None, alias="audio-delay", description="Audio offset in seconds."
    )
    reason: str | None = Field(default=None, description="Why the previous session ended.")
    statistics: Statistics = Field(default_factory=Statistics)

    @classmethod
    def from_document(cls, document: Any) -> Snapshot:
        """Validate a decoded JSON document into a :class:`Snapshot`.

        Raises
        ------
        pydantic.ValidationError
            If the document is not an object or a field has the wrong type.
        """
        return cls.model_validate(document)

    def to_document(self) -> dict[str, Any]:
        """Return the JSON-safe document with wire keys and no ``null`` values."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


__all__ = ["Number", "Snapshot", "Statistics"]
