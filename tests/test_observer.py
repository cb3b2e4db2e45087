"""Tests for the change observer's fold rules."""

from __future__ import annotations

import pytest
from conftest import FakeHost

from mpvstate.core.observer import ChangeObserver, TrackedProperty, as_number
from mpvstate.core.session.model import SessionModel


@pytest.fixture  # type: ignore[misc]
def model() -> SessionModel:
    return SessionModel.create(now=1)


@pytest.fixture  # type: ignore[misc]
def attached(host: FakeHost, model: SessionModel) -> ChangeObserver:
    observer = ChangeObserver(model)
    observer.attach(host)
    return observer


def test_attach_observes_every_tracked_property(host: FakeHost, attached: ChangeObserver) -> None:
    assert sorted(host.observed_names()) == sorted(p.value for p in TrackedProperty)


def test_playlist_rebuilds_entries_and_current_index(
    host: FakeHost, model: SessionModel, attached: ChangeObserver
) -> None:
    host.playlist = ["a.mkv", "b.mkv", "c.mkv"]
    host.notify("playlist", host.playlist_native(current=1))

    assert model.playlist == ["a.mkv", "b.mkv", "c.mkv"]
    assert model.playlist_pos == 1


def test_playlist_without_current_entry_keeps_position(
    host: FakeHost, model: SessionModel, attached: ChangeObserver
) -> None:
    model.set("playlist_pos", 4)
    host.notify("playlist", [{"filename": "a.mkv"}, {"filename": "b.mkv"}])
    assert model.playlist == ["a.mkv", "b.mkv"]
    assert model.playlist_pos == 4


def test_first_position_is_captured_once(
    host: FakeHost, model: SessionModel, attached: ChangeObserver
) -> None:
    host.notify("time-pos", None)  # no file yet
    assert model.statistics.start_position is None

    host.notify("time-pos", 3731.261)
    host.notify("time-pos", 3732.0)
    host.notify("time-pos", 3740.5)

    assert model.statistics.start_position == 3731.261
    assert model.time_pos == 3740.5
    assert attached.seen_time_pos


def test_initial_position_subscription_is_swapped(
    host: FakeHost, attached: ChangeObserver
) -> None:
    host.notify("time-pos", 1.0)
    handlers = [h for name, h in host.observers if name == "time-pos"]
    assert len(handlers) == 1
    assert handlers[0] == attached._on_time_pos_changed


def test_handle_entry_point_respects_first_capture(model: SessionModel) -> None:
    observer = ChangeObserver(model)  # not attached to any host
    observer.handle("time-pos", 10.0)
    observer.handle("time-pos", 20.0)
    assert model.statistics.start_position == 10.0
    assert model.time_pos == 20.0


def test_duration_is_ephemeral_and_survives_null(
    host: FakeHost, model: SessionModel, attached: ChangeObserver
) -> None:
    host.notify("duration", 5400.0)
    host.notify("duration", None)
    assert model.duration == 5400.0
    assert "duration" not in model.to_snapshot().to_document()


def test_selectors_and_delay_overwrite_unconditionally(
    host: FakeHost, model: SessionModel, attached: ChangeObserver
) -> None:
    host.notify("vid", 1)
    host.notify("aid", 3)
    host.notify("sid", 2)
    host.notify("audio-delay", -0.1)
    host.notify("sid", False)  # subtitles switched off

    assert (model.vid, model.aid, model.sid, model.audio_delay) == (1, 3, None, -0.1)


def test_unknown_properties_are_ignored(model: SessionModel) -> None:
    observer = ChangeObserver(model)
    before = model.revision
    observer.handle("volume", 80)
    assert model.revision == before


def test_detach_drops_all_subscriptions(host: FakeHost, attached: ChangeObserver) -> None:
    host.notify("time-pos", 1.0)
    attached.detach(host)
    assert host.observers == []


@pytest.mark.parametrize(
    ("value", "expected"),
    [(1, 1), (0.5, 0.5), (False, None), (True, None), ("auto", None), (None, None)],
)
def test_as_number(value: object, expected: object) -> None:
    assert as_number(value) == expected
