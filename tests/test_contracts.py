"""Tests for the snapshot contract and its hyphenated wire format."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from mpvstate.core.contracts.snapshot import Snapshot, Statistics

DOCUMENT = {
    "playlist-pos": 6,
    "playlist": ["/mnt/media/jazz/01.mkv", "/mnt/media/jazz/02.mkv"],
    "time-pos": 3732.062,
    "vid": 1,
    "aid": 1,
    "sid": 1,
    "audio-delay": 0,
    "reason": "quit",
    "statistics": {"stop-time": 1612074581, "start-position": 3731.261, "start-time": 1612074580},
}


def test_wire_keys_map_to_fields() -> None:
    snap = Snapshot.from_document(DOCUMENT)
    assert snap.playlist_pos == 6
    assert snap.time_pos == pytest.approx(3732.062)
    assert snap.audio_delay == 0
    assert snap.statistics.start_time == 1612074580
    assert snap.statistics.start_position == pytest.approx(3731.261)


def test_field_names_are_accepted_too() -> None:
    snap = Snapshot(playlist_pos=2, time_pos=100.5, vid=1)
    assert snap.to_document() == {
        "playlist-pos": 2,
        "time-pos": 100.5,
        "vid": 1,
        "statistics": {},
    }


def test_absent_values_are_omitted_but_statistics_is_always_written() -> None:
    doc = Snapshot().to_document()
    assert doc == {"statistics": {}}


def test_integer_timestamps_stay_integers() -> None:
    stats = Statistics.model_validate({"start-time": 1612074580, "stop-time": 1612074581.5})
    doc = Snapshot(statistics=stats).to_document()["statistics"]
    assert doc["start-time"] == 1612074580 and isinstance(doc["start-time"], int)
    assert doc["stop-time"] == 1612074581.5


def test_unknown_keys_are_ignored() -> None:
    snap = Snapshot.from_document({"volume": 50, "vid": 2})
    assert snap.vid == 2
    assert "volume" not in snap.to_document()


def test_out_of_range_position_is_not_validated() -> None:
    snap = Snapshot.from_document({"playlist": ["a"], "playlist-pos": 42})
    assert snap.playlist_pos == 42


@pytest.mark.parametrize(
    "document",
    [
        ["not", "an", "object"],
        {"playlist": "single-string"},
        {"playlist-pos": "third"},
        {"statistics": 5},
    ],
)
def test_wrongly_typed_documents_are_rejected(document: object) -> None:
    with pytest.raises(ValidationError):
        Snapshot.from_document(document)
