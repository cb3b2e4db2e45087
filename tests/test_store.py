"""Tests for the snapshot store: load outcomes, atomic save, failure paths."""

from __future__ import annotations

import json
from pathlib import Path

from mpvstate.core.contracts.snapshot import Snapshot
from mpvstate.core.session.model import SessionModel
from mpvstate.core.store import (
    FileSink,
    SnapshotParseError,
    SnapshotStore,
    SnapshotWriteError,
)

ORIGINAL = {
    "playlist-pos": 2,
    "playlist": ["/m/a.mkv", "/m/b.mkv", "/m/c.mkv"],
    "time-pos": 3732.062,
    "vid": 1,
    "aid": 2,
    "sid": 1,
    "audio-delay": -0.25,
    "reason": "quit",
    "statistics": {"stop-time": 1612074581, "start-position": 3731.261, "start-time": 1612074580},
}


class BrokenSink:
    """A sink whose writes always fail."""

    def exists(self) -> bool:
        return False

    def read_bytes(self) -> bytes:  # pragma: no cover - never reached
        raise FileNotFoundError

    def write_bytes(self, data: bytes) -> None:
        raise PermissionError("read-only filesystem")

    def describe(self) -> str:
        return "broken://sink"


def test_missing_file_is_not_an_error(state_path: Path) -> None:
    result = SnapshotStore.for_path(state_path).load()
    assert result.is_ok()
    assert result.unwrap() is None


def test_round_trip_preserves_the_document(tmp_path: Path) -> None:
    src = tmp_path / "in.json"
    src.write_text(json.dumps(ORIGINAL), encoding="utf-8")
    dst = tmp_path / "out.json"

    loaded = SnapshotStore.for_path(src).load().unwrap()
    assert loaded is not None
    assert SnapshotStore.for_path(dst).save(loaded).is_ok()

    assert json.loads(dst.read_text(encoding="utf-8")) == ORIGINAL


def test_malformed_json_is_surfaced(state_path: Path) -> None:
    state_path.parent.mkdir(parents=True)
    state_path.write_text('{"playlist": [', encoding="utf-8")

    result = SnapshotStore.for_path(state_path).load()
    assert result.is_err()
    assert isinstance(result.unwrap_err(), SnapshotParseError)
    # The file is left alone.
    assert state_path.read_text(encoding="utf-8") == '{"playlist": ['


def test_non_object_document_is_a_parse_error(state_path: Path) -> None:
    state_path.parent.mkdir(parents=True)
    state_path.write_text("[1, 2, 3]", encoding="utf-8")
    err = SnapshotStore.for_path(state_path).load().unwrap_err()
    assert isinstance(err, SnapshotParseError)
    assert "not a valid snapshot" in str(err)


def test_undecodable_bytes_are_a_parse_error(state_path: Path) -> None:
    state_path.parent.mkdir(parents=True)
    state_path.write_bytes(b"\xff\xfe\x00garbage")
    assert isinstance(SnapshotStore.for_path(state_path).load().unwrap_err(), SnapshotParseError)


def test_save_creates_directories_and_leaves_no_temp_files(state_path: Path) -> None:
    store = SnapshotStore.for_path(state_path)
    result = store.save(Snapshot(vid=3))

    assert result.unwrap() == str(state_path)
    assert json.loads(state_path.read_text(encoding="utf-8")) == {"vid": 3, "statistics": {}}
    assert [p.name for p in state_path.parent.iterdir()] == ["state.json"]


def test_save_overwrites_previous_content(state_path: Path) -> None:
    store = SnapshotStore.for_path(state_path)
    store.save(Snapshot(playlist=["a", "b", "c"], playlist_pos=2))
    store.save(Snapshot(playlist=["a"]))
    assert json.loads(state_path.read_text(encoding="utf-8")) == {
        "playlist": ["a"],
        "statistics": {},
    }


def test_write_failure_is_returned_not_raised() -> None:
    result = SnapshotStore(BrokenSink()).save(Snapshot())
    assert result.is_err()
    err = result.unwrap_err()
    assert isinstance(err, SnapshotWriteError)
    assert "broken://sink" in str(err)


def test_first_run_then_save_produces_well_formed_document(state_path: Path) -> None:
    store = SnapshotStore.for_path(state_path)
    assert store.load().unwrap() is None

    model = SessionModel.create(now=1700000000)
    assert store.save(model.to_snapshot()).is_ok()

    doc = json.loads(state_path.read_text(encoding="utf-8"))
    assert doc == {"statistics": {"start-time": 1700000000}}
    # And it loads back cleanly.
    reloaded = store.load().unwrap()
    assert reloaded is not None and reloaded.statistics.start_time == 1700000000


def test_file_sink_expands_user(monkeypatch, tmp_path: Path) -> None:  # type: ignore[no-untyped-def]
    monkeypatch.setenv("HOME", str(tmp_path))
    sink = FileSink("~/state.json")
    assert sink.path == tmp_path / "state.json"
