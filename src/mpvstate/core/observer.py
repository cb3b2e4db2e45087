"""
Change observer: folds live property notifications into the session model.

The set of mirrored properties is fixed and small, so it is modelled as a
closed enumeration (:class:`TrackedProperty`) rather than an open
name -> value map. Notifications for anything else are dropped at the
boundary.

Fold rules
----------
- ``playlist``     : rebuild the list of filenames; the entry flagged
  ``current`` sets ``playlist_pos``.
- ``time-pos``     : the first non-null value is also recorded as
  ``statistics.start_position``; later values only update ``time_pos``.
- ``duration``     : ephemeral, only used as the final position on ``eof``.
- ``vid``/``aid``/``sid``/``audio-delay`` : overwrite with the latest number.

All handlers are last-write-wins with no range checks.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

from mpvstate.core.session.model import SessionModel
from mpvstate.core.settings import get_logger
from mpvstate.host.ports import SessionHost

logger = get_logger(__name__)


class TrackedProperty(str, Enum):
    """mpv properties mirrored into the session model."""

    PLAYLIST = "playlist"
    TIME_POS = "time-pos"
    DURATION = "duration"
    VID = "vid"
    AID = "aid"
    SID = "sid"
    AUDIO_DELAY = "audio-delay"

    @classmethod
    def lookup(cls, name: str) -> TrackedProperty | None:
        try:
            return cls(name)
        except ValueError:
            return None


#: Properties copied verbatim into a same-named model field.
_DIRECT_FIELDS: dict[TrackedProperty, str] = {
    TrackedProperty.VID: "vid",
    TrackedProperty.AID: "aid",
    TrackedProperty.SID: "sid",
    TrackedProperty.AUDIO_DELAY: "audio_delay",
}


def as_number(value: Any) -> int | float | None:
    """Read ``value`` the way a numeric property observation would.

    mpv reports a disabled track as ``false`` and an automatic one as
    ``"auto"``; neither is a track index, so both become ``None``.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return value
    return None


class ChangeObserver:
    """Subscribe to the tracked properties and mirror them into ``model``."""

    def __init__(self, model: SessionModel) -> None:
        self.model = model
        self._seen_time_pos = False
        self._host: SessionHost | None = None

    @property
    def seen_time_pos(self) -> bool:
        """True once the first playback position has been recorded."""
        return self._seen_time_pos

    # ------------------------------ Wiring ----------------------------------

    def attach(self, host: SessionHost) -> None:
        """Observe every tracked property on ``host``."""
        self._host = host
        for prop in TrackedProperty:
            if prop is TrackedProperty.TIME_POS:
                host.observe_property(prop.value, self._on_time_pos_initially_changed)
            else:
                host.observe_property(prop.value, self.handle)

    def detach(self, host: SessionHost) -> None:
        """Drop every subscription made by :meth:`attach`."""
        host.unobserve_property(self.handle)
        host.unobserve_property(self._on_time_pos_initially_changed)
        host.unobserve_property(self._on_time_pos_changed)
        self._host = None

    # ------------------------------ Dispatch --------------------------------

    def handle(self, name: str, value: Any) -> None:
        """Fold one notification into the model; unknown names are ignored."""
        prop = TrackedProperty.lookup(name)
        if prop is None:
            logger.debug("ignoring untracked property %s", name)
            return

        if prop is TrackedProperty.PLAYLIST:
            self._on_playlist_changed(value)
        elif prop is TrackedProperty.TIME_POS:
            if self._seen_time_pos:
                self._on_time_pos_changed(name, value)
            else:
                self._on_time_pos_initially_changed(name, value)
        elif prop is TrackedProperty.DURATION:
            self._on_duration_changed(value)
        else:
            self.model.set(_DIRECT_FIELDS[prop], as_number(value))

    # ------------------------------ Handlers --------------------------------

    def _on_playlist_changed(self, value: Any) -> None:
        if value is None:
            return
        playlist: list[str] = []
        current: int | None = None
        for index, item in enumerate(value):
            if isinstance(item, Mapping):
                playlist.append(str(item.get("filename", "")))
                if item.get("current") or item.get("playing"):
                    current = index
            else:
                playlist.append(str(item))
        self.model.set("playlist", playlist)
        if current is not None:
            self.model.set("playlist_pos", current)

    def _on_time_pos_initially_changed(self, name: str, value: Any) -> None:
        position = as_number(value)
        if position is None:
            return
        self.model.set("time_pos", float(position))
        self.model.set_statistic("start_position", float(position))
        self._seen_time_pos = True
        logger.debug("playback started at %s", position)

        # Swap the one-shot subscription for the ongoing one.
        if self._host is not None:
            self._host.unobserve_property(self._on_time_pos_initially_changed)
            self._host.observe_property(TrackedProperty.TIME_POS.value, self._on_time_pos_changed)

    def _on_time_pos_changed(self, name: str, value: Any) -> None:
        position = as_number(value)
        if position is not None:
            self.model.set("time_pos", float(position))

    def _on_duration_changed(self, value: Any) -> None:
        length = as_number(value)
        if length is not None:
            self.model.set_duration(float(length))


__all__ = ["ChangeObserver", "TrackedProperty", "as_number"]
