"""
Restore sequencer: replays a snapshot into a freshly started session.

mpv always activates the first playlist entry on its own before anything
else can intervene. Restoration therefore has to happen in two phases:

1. **Playlist**: on the first ``file-loaded`` event, check whether the
   forced entry (index 0) is the one we want. If not, ask the host to jump
   to the target index; the jump produces a second ``file-loaded``.
2. **Playback**: once the target entry is active, apply the fine-grained
   properties (time position, track selectors, audio delay). Seeking on
   the wrong file would be meaningless, so this never happens earlier.

The sequencer is an explicit state machine::

    IDLE --file-loaded, target == 0--> PLAYBACK_APPLIED
    IDLE --file-loaded, target != 0--> PLAYLIST_PENDING      (jump requested)
    IDLE --file-loaded, jump rejected--> PLAYBACK_APPLIED   (nothing restored)
    PLAYLIST_PENDING --file-loaded--> PLAYLIST_APPLIED --> PLAYBACK_APPLIED
    PLAYBACK_APPLIED --file-loaded--> PLAYBACK_APPLIED       (ignored)

Events go through a FIFO queue and are processed one at a time, so a host
that fires ``file-loaded`` from inside ``set_property`` does not re-enter a
transition that is still running.

The target index is not bounds-checked. Whatever the snapshot says is
forwarded to the host, which may clamp, ignore or reject it. A rejected
playback property is logged and the remaining ones are still set; a
rejected jump ends restoration without touching playback, since the
active entry is not the one the snapshot describes. Either way the
sequencer never restores twice.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from mpvstate.core.contracts.snapshot import Snapshot
from mpvstate.core.session.model import SessionModel
from mpvstate.core.settings import get_logger
from mpvstate.host.ports import HostCommandError, SessionHost

logger = get_logger(__name__)


class RestoreState(str, Enum):
    """Restoration phases, in the order a session moves through them."""

    IDLE = "idle"
    PLAYLIST_PENDING = "playlist_pending"
    PLAYLIST_APPLIED = "playlist_applied"
    PLAYBACK_APPLIED = "playback_applied"


class RestoreEvent(str, Enum):
    """Inbound signals the sequencer reacts to."""

    FILE_LOADED = "file-loaded"


@dataclass(frozen=True, slots=True)
class RestoreTarget:
    """Values to replay into the session.

    ``playlist_pos`` defaults to 0, the entry mpv activates on its own. The
    playback values stay ``None`` when the snapshot has nothing to restore,
    in which case the matching property is left at the host's default.
    """

    playlist_pos: int = 0
    time_pos: float | None = None
    vid: int | None = None
    aid: int | None = None
    sid: int | None = None
    audio_delay: float | None = None

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> RestoreTarget:
        return cls(
            playlist_pos=snapshot.playlist_pos if snapshot.playlist_pos is not None else 0,
            time_pos=snapshot.time_pos,
            vid=snapshot.vid,
            aid=snapshot.aid,
            sid=snapshot.sid,
            audio_delay=snapshot.audio_delay,
        )

    def playback_properties(self) -> list[tuple[str, Any]]:
        """Return ``(property, value)`` pairs to set, in restore order."""
        pairs: list[tuple[str, Any]] = [
            ("time-pos", self.time_pos),
            ("vid", self.vid),
            ("aid", self.aid),
            ("sid", self.sid),
            ("audio-delay", self.audio_delay),
        ]
        return [(name, value) for name, value in pairs if value is not None]


Transition = Callable[["RestoreSequencer"], RestoreState]


def _on_first_file_loaded(seq: RestoreSequencer) -> RestoreState:
    target = seq.target.playlist_pos
    logger.info("restore playlist-pos to %s", target)
    if target == 0:
        # The entry mpv activated by itself is already the one we want.
        seq.model.mark_playlist_restored()
        seq.apply_playback()
        return RestoreState.PLAYBACK_APPLIED
    try:
        seq.host.set_property("playlist-pos", target)
    except HostCommandError as exc:
        # mpv stays on entry 0; seeking there would hit the wrong file.
        logger.warning("playlist-pos %s rejected, playback not restored: %s", target, exc)
        seq.model.mark_playlist_restored()
        seq.finish_without_playback()
        return RestoreState.PLAYBACK_APPLIED
    return RestoreState.PLAYLIST_PENDING


def _on_target_file_loaded(seq: RestoreSequencer) -> RestoreState:
    seq.state = RestoreState.PLAYLIST_APPLIED
    seq.model.mark_playlist_restored()
    seq.apply_playback()
    return RestoreState.PLAYBACK_APPLIED


def _ignore(seq: RestoreSequencer) -> RestoreState:
    logger.debug("file-loaded after restoration; nothing to do")
    return seq.state


#: (state, event) -> transition. Pairs not listed here are ignored.
TRANSITIONS: dict[tuple[RestoreState, RestoreEvent], Transition] = {
    (RestoreState.IDLE, RestoreEvent.FILE_LOADED): _on_first_file_loaded,
    (RestoreState.PLAYLIST_PENDING, RestoreEvent.FILE_LOADED): _on_target_file_loaded,
    (RestoreState.PLAYBACK_APPLIED, RestoreEvent.FILE_LOADED): _ignore,
}


class RestoreSequencer:
    """Drive a session from its first activation to the restored state."""

    def __init__(
        self,
        host: SessionHost,
        model: SessionModel,
        target: RestoreTarget | None = None,
    ) -> None:
        self.host = host
        self.model = model
        self.target: RestoreTarget = target if target is not None else RestoreTarget()
        self.state: RestoreState = RestoreState.IDLE
        self._queue: deque[RestoreEvent] = deque()
        self._draining = False
        self._playback_applied = False

    @property
    def done(self) -> bool:
        """True once playback properties have been applied."""
        return self.state is RestoreState.PLAYBACK_APPLIED

    def prime(self, target: RestoreTarget) -> None:
        """Replace the restore target. Only meaningful before the first event."""
        if self.state is not RestoreState.IDLE:
            raise RuntimeError(f"cannot prime sequencer in state {self.state.value}")
        self.target = target

    def on_file_loaded(self) -> None:
        """Host event handler for ``file-loaded``."""
        self.submit(RestoreEvent.FILE_LOADED)

    def submit(self, event: RestoreEvent) -> None:
        """Queue ``event`` and process the queue unless already doing so."""
        self._queue.append(event)
        if self._draining:
            return
        self._draining = True
        try:
            while self._queue:
                self._step(self._queue.popleft())
        finally:
            self._draining = False

    def _step(self, event: RestoreEvent) -> None:
        transition = TRANSITIONS.get((self.state, event))
        if transition is None:
            logger.debug("no transition for %s in state %s", event.value, self.state.value)
            return
        before = self.state
        self.state = transition(self)
        if self.state is not before:
            logger.debug("restore state %s -> %s", before.value, self.state.value)

    def apply_playback(self) -> None:
        """Set every targeted playback property on the host, exactly once."""
        if self._playback_applied:
            return
        self._playback_applied = True
        for name, value in self.target.playback_properties():
            logger.info("restore %s to %s", name, value)
            try:
                self.host.set_property(name, value)
            except HostCommandError as exc:
                logger.warning("could not restore %s to %s: %s", name, value, exc)
        self.model.mark_playback_restored()

    def finish_without_playback(self) -> None:
        """Give up on playback restoration; later calls to apply it do nothing."""
        self._playback_applied = True
        self.model.mark_playback_restored()


__all__ = [
    "TRANSITIONS",
    "RestoreEvent",
    "RestoreSequencer",
    "RestoreState",
    "RestoreTarget",
]
