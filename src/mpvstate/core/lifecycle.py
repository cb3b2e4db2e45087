"""
Lifecycle controller: wires the state engine to session start and end.

Start
-----
1. Load the prior snapshot. A snapshot seeds the session model and primes
   the restore sequencer; no snapshot means a first run; an unreadable
   snapshot is reported, restoration is skipped, and persistence is turned
   off for the session so the file is left as it was for the user to fix.
2. Attach the change observer and register the ``file-loaded`` and
   ``end-file`` handlers.
3. Populate the playlist. A snapshot playlist replaces whatever was given
   on the command line; without one the command-line files are used.

End
---
On every ``end-file`` event: stamp ``statistics.stop_time``, use the last
known duration as the position if the file reached its end, record the
reason verbatim and write the snapshot. A failed write is logged and never
propagates into the host. mpv fires ``end-file`` once per file that stops,
so the snapshot is rewritten each time and the last write wins.
"""

from __future__ import annotations

from collections.abc import Sequence

from mpvstate.core.contracts.snapshot import Snapshot
from mpvstate.core.observer import ChangeObserver
from mpvstate.core.sequencer import RestoreSequencer, RestoreTarget
from mpvstate.core.session.model import SessionModel, unix_now
from mpvstate.core.session.trace import SessionTrace
from mpvstate.core.session.trace_writer import TraceWriter
from mpvstate.core.settings import get_logger
from mpvstate.core.store import SnapshotError, SnapshotStore
from mpvstate.host.ports import END_FILE, FILE_LOADED, REASON_EOF, SessionHost

logger = get_logger(__name__)


class LifecycleController:
    """Own one session's model, observer and sequencer from start to end."""

    def __init__(
        self,
        host: SessionHost,
        store: SnapshotStore,
        *,
        model: SessionModel | None = None,
        trace_writer: TraceWriter | None = None,
    ) -> None:
        self.host = host
        self.store = store
        self.model: SessionModel = model if model is not None else SessionModel.create()
        self.observer = ChangeObserver(self.model)
        self.sequencer = RestoreSequencer(host, self.model)
        self.trace_writer = trace_writer
        self.prior: Snapshot | None = None
        self.persist: bool = True
        self.last_save_error: SnapshotError | None = None
        self.saved: int = 0

    # ------------------------------ Start -----------------------------------

    def start(self, fallback_files: Sequence[str] = ()) -> None:
        """Load prior state, wire the handlers and fill the playlist."""
        loaded = self.store.load()
        if loaded.is_err():
            logger.error("state restoration skipped: %s", loaded.unwrap_err())
            logger.error("the state file will not be overwritten in this session")
            self.persist = False
        else:
            prior = loaded.unwrap()
            if prior is None:
                logger.info("no prior state; starting a fresh session")
            else:
                self.prior = prior
                self.model.seed(prior)
                self.sequencer.prime(RestoreTarget.from_snapshot(prior))

        self.observer.attach(self.host)
        self.host.register_event(FILE_LOADED, self.sequencer.on_file_loaded)
        self.host.register_event(END_FILE, self.on_end_file)

        entries = self.playlist_entries(fallback_files)
        if self.prior is not None and self.prior.playlist is not None:
            self.host.clear_playlist()
        for entry in entries:
            self.host.append_file(entry)

        self.model.trace("session started")

    def playlist_entries(self, fallback_files: Sequence[str] = ()) -> list[str]:
        """Entries the session will play: the snapshot's, else ``fallback_files``."""
        if self.prior is not None and self.prior.playlist is not None:
            return list(self.prior.playlist)
        return list(fallback_files)

    # ------------------------------ End -------------------------------------

    def on_end_file(self, reason: str | None = None) -> Snapshot:
        """Finalize the model for a session-ending event and persist it."""
        self.model.set_statistic("stop_time", unix_now())
        if reason == REASON_EOF:
            self.model.set("time_pos", self.model.duration)
        self.model.set("reason", reason)
        self.model.trace(f"session ended: {reason}")

        snapshot = self.model.to_snapshot()
        if not self.persist:
            logger.warning("not writing state; the existing state file was unreadable")
            return snapshot

        written = self.store.save(snapshot)
        if written.is_err():
            self.last_save_error = written.unwrap_err()
            logger.error("failed to save state: %s", self.last_save_error)
        else:
            self.last_save_error = None
            self.saved += 1
        return snapshot

    def stop(self) -> list[SessionTrace]:
        """Detach the observer and dump traces if a writer is configured."""
        self.observer.detach(self.host)
        traces = list(self.model.traces())
        if self.trace_writer is not None:
            try:
                paths = self.trace_writer.write_all(tuple(traces))
            except OSError as exc:
                logger.warning("could not write session traces: %s", exc)
            else:
                logger.info(
                    "wrote %d session traces to %s", len(paths), self.trace_writer.base_dir
                )
        return traces


__all__ = ["LifecycleController"]
