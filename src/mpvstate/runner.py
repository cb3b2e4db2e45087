"""
Session runner: one mpv session under state persistence.

This module composes the pieces used by the CLI:

    host (mpv over IPC) + SnapshotStore(state file) + LifecycleController

and blocks until mpv exits. Tests pass their own host; the CLI lets the
runner launch mpv from the configured binary.

Flow
----
1. Build the store for ``state_file`` and a controller for the host.
2. ``controller.start(files)``: load, seed, wire handlers, fill the playlist.
3. ``host.run()``: deliver events until mpv closes the connection.
4. ``controller.stop()``: detach, dump traces when a trace directory is set.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from mpvstate.core.contracts.snapshot import Snapshot
from mpvstate.core.lifecycle import LifecycleController
from mpvstate.core.session.trace import SessionTrace
from mpvstate.core.session.trace_writer import TraceWriter
from mpvstate.core.settings import Settings, get_logger, load_settings
from mpvstate.core.store import SnapshotStore
from mpvstate.host.ipc import MpvIpcHost
from mpvstate.host.ports import SessionHost

logger = get_logger(__name__)


class RunnableHost(SessionHost, Protocol):
    """A session host that owns its event loop."""

    def run(self) -> None: ...

    def close(self) -> None: ...


class NothingToPlayError(RuntimeError):
    """Neither the state file nor the command line named anything to play."""


@dataclass
class SessionOutcome:
    """What a finished session left behind.

    Attributes
    ----------
    snapshot:
        The final state of the session model.
    saved:
        How many times the state file was written.
    restored:
        Whether playback properties were restored (the sequencer finished).
    persisted:
        False when persistence was disabled because the state file was unreadable.
    traces:
        Every trace captured during the session.
    """

    snapshot: Snapshot
    saved: int
    restored: bool
    persisted: bool
    traces: list[SessionTrace] = field(default_factory=list)


def run_session(
    files: Sequence[str],
    *,
    state_file: Path,
    host: RunnableHost | None = None,
    trace_dir: Path | None = None,
    config: Settings | None = None,
) -> SessionOutcome:
    """Play ``files`` (or the saved playlist) with state persistence.

    Parameters
    ----------
    files:
        Command-line entries, used only when the state file has no playlist.
    state_file:
        Where the snapshot is loaded from and written to.
    host:
        An already connected host. When omitted, mpv is launched using the
        binary and arguments from ``config``.
    trace_dir:
        When set, session traces are written there after the session.
    config:
        Settings override; defaults to :func:`load_settings`.

    Raises
    ------
    NothingToPlayError
        If the playlist would be empty.
    MpvIpcError
        If mpv cannot be launched or the connection fails mid-session.
    """
    cfg = config if config is not None else load_settings()
    owns_host = host is None
    session_host: RunnableHost = (
        host
        if host is not None
        else MpvIpcHost.launch(
            mpv_binary=cfg.mpv_binary,
            extra_args=cfg.mpv_args,
            connect_attempts=cfg.connect_attempts,
        )
    )

    writer = TraceWriter(trace_dir) if trace_dir is not None else None
    controller = LifecycleController(
        session_host, SnapshotStore.for_path(state_file), trace_writer=writer
    )
    try:
        controller.start(files)
        if not controller.playlist_entries(files):
            raise NothingToPlayError(
                f"nothing to play: {state_file} has no playlist and no files were given"
            )
        session_host.run()
    finally:
        traces = controller.stop()
        if owns_host:
            session_host.close()

    logger.info("session finished; state written %d time(s)", controller.saved)
    return SessionOutcome(
        snapshot=controller.model.to_snapshot(),
        saved=controller.saved,
        restored=controller.model.playback_restored,
        persisted=controller.persist,
        traces=traces,
    )


__all__ = ["NothingToPlayError", "RunnableHost", "SessionOutcome", "run_session"]
