"""Snapshot store: read and write the state file.

The store is the only part of the engine that touches the disk. It speaks
to a byte-oriented :class:`SnapshotSink` so tests can swap the file for
something that fails on demand.

Outcomes
--------
- ``load()`` -> ``Ok(Snapshot)``             : a prior state exists
- ``load()`` -> ``Ok(None)``                 : no state file yet (first run)
- ``load()`` -> ``Err(SnapshotParseError)``  : the file exists but is unreadable
- ``save()`` -> ``Ok(description)``          : the document was written
- ``save()`` -> ``Err(SnapshotWriteError)``  : the write failed

Neither operation retries; the store runs once at startup and once per
session-ending event.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from mpvstate.core.contracts.snapshot import Snapshot
from mpvstate.core.result import Result, err, ok
from mpvstate.core.settings import get_logger

logger = get_logger(__name__)


class SnapshotError(Exception):
    """Base class for snapshot persistence failures."""


class SnapshotParseError(SnapshotError):
    """The state file exists but does not hold a valid snapshot document."""


class SnapshotWriteError(SnapshotError):
    """The snapshot could not be written to its sink."""


class SnapshotSink(Protocol):
    """Byte-oriented storage for exactly one snapshot document."""

    def exists(self) -> bool: ...

    def read_bytes(self) -> bytes: ...

    def write_bytes(self, data: bytes) -> None: ...

    def describe(self) -> str: ...


class FileSink:
    """A snapshot sink backed by a single file on disk.

    Writes go to a temporary file in the target directory which then
    replaces the target, so a reader never sees a half-written document.
    """

    def __init__(self, path: Path | str) -> None:
        self.path: Path = Path(path).expanduser()

    def exists(self) -> bool:
        return self.path.is_file()

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()

    def write_bytes(self, data: bytes) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def describe(self) -> str:
        return str(self.path)


class SnapshotStore:
    """Load and save :class:`Snapshot` documents through a sink."""

    def __init__(self, sink: SnapshotSink) -> None:
        self.sink = sink

    @classmethod
    def for_path(cls, path: Path | str) -> SnapshotStore:
        """Convenience constructor for the usual file-backed store."""
        return cls(FileSink(path))

    def load(self) -> Result[Snapshot | None, SnapshotError]:
        """Read the prior snapshot, if any.

        A missing sink is the normal first-run case and yields ``Ok(None)``.
        Bytes that are not a JSON object matching :class:`Snapshot` yield
        ``Err(SnapshotParseError)``; they are never replaced by an empty
        snapshot behind the caller's back.
        """
        where = self.sink.describe()
        if not self.sink.exists():
            logger.info("no state file at %s", where)
            return ok(None)

        logger.info("load state from %s", where)
        try:
            raw = self.sink.read_bytes()
        except OSError as exc:
            return err(SnapshotParseError(f"cannot read {where}: {exc}"))

        try:
            document = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            return err(SnapshotParseError(f"{where} is not valid JSON: {exc}"))

        try:
            snapshot = Snapshot.from_document(document)
        except ValidationError as exc:
            return err(SnapshotParseError(f"{where} is not a valid snapshot: {exc}"))
        return ok(snapshot)

    def save(self, snapshot: Snapshot) -> Result[str, SnapshotError]:
        """Serialize ``snapshot`` and overwrite the sink with it."""
        where = self.sink.describe()
        payload = json.dumps(snapshot.to_document(), ensure_ascii=False, indent=2) + "\n"
        logger.info("writing state to %s", where)
        try:
            self.sink.write_bytes(payload.encode("utf-8"))
        except OSError as exc:
            return err(SnapshotWriteError(f"cannot write {where}: {exc}"))
        return ok(where)


__all__ = [
    "FileSink",
    "SnapshotError",
    "SnapshotParseError",
    "SnapshotSink",
    "SnapshotStore",
    "SnapshotWriteError",
]
