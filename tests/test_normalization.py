"""
Tests for converting raw gateway records.
"""

from datetime import datetime, timezone

import pytest

from track_deck.errors import MalformedEntry
from track_deck.normalization import normalize_entry, normalize_project, parse_timestamp


def test_closed_entry_with_iso_start():
    entry = normalize_entry(
        {"id": 7, "project_id": 12, "duration": 300, "start": "2024-01-10T09:00:00Z"}
    )
    assert entry.project_id == 12
    assert entry.duration_seconds == 300
    assert entry.start_epoch_seconds == int(datetime(2024, 1, 10, 9, tzinfo=timezone.utc).timestamp())
    assert entry.id == 7
    assert entry.is_closed and not entry.is_open


def test_open_entry_without_start_uses_negative_duration():
    entry = normalize_entry({"project_id": 3, "duration": -1700000000})
    assert entry.is_open
    assert entry.start_epoch_seconds == 1700000000


def test_open_entry_prefers_start_timestamp():
    entry = normalize_entry({"project_id": 3, "duration": -1, "start": "2024-01-10T09:00:00+00:00"})
    assert entry.start_epoch_seconds == int(datetime(2024, 1, 10, 9, tzinfo=timezone.utc).timestamp())


@pytest.mark.parametrize(
    "record",
    [
        {"duration": 10},
        {"project_id": None, "duration": 10},
        {"project_id": 1, "duration": "ten"},
        {"project_id": 1},
        {"project_id": 1, "duration": True},
        {"project_id": 1, "duration": 10, "start": "yesterday"},
        {"project_id": 1, "duration": float("nan")},
        {"project_id": 1, "duration": float("inf")},
        {"project_id": 1, "duration": -float("inf")},
        {"project_id": 1, "duration": 10, "start": float("inf")},
        {"project_id": 1, "duration": 10, "start": float("nan")},
        {"project_id": [1], "duration": 10},
        {"project_id": {"id": 1}, "duration": 10},
        {"project_id": True, "duration": 10},
        ["not", "a", "mapping"],
    ],
)
def test_malformed_records(record):
    with pytest.raises(MalformedEntry):
        normalize_entry(record)


def test_parse_timestamp_accepts_numbers_and_empty():
    assert parse_timestamp(None) is None
    assert parse_timestamp("") is None
    assert parse_timestamp(1700000000) == 1700000000


def test_project_label_falls_back_to_id():
    assert normalize_project({"id": 5, "name": "Docs"}).label == "Docs"
    assert normalize_project({"id": 5}).label == "5"
