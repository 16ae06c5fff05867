"""Tests for record domain helpers."""

from datetime import UTC, datetime

import pytest

from field_capture.domain.capture import (
    AwaitingLocation,
    Capturing,
    Failed,
    FailureKind,
    Idle,
    Persisting,
    Succeeded,
    is_in_flight,
    is_terminal,
)
from field_capture.domain.errors import CorruptRecordError, StoreReadError
from field_capture.domain.records import (
    CaptureRecord,
    GeoFix,
    LocationStatus,
    RecordList,
    decode_location,
)


def _record(record_id: int, location: GeoFix | None) -> CaptureRecord:
    return CaptureRecord(
        id=record_id,
        parent_id=1,
        media_ref=f"/m/{record_id}.jpg",
        captured_at=datetime(2026, 1, 1, tzinfo=UTC),
        location=location,
    )


def test_decode_location_accepts_consistent_rows() -> None:
    assert decode_location("located", 12.5, -7) == GeoFix(12.5, -7.0)
    assert decode_location("unlocated", None, None) is None
    assert decode_location(LocationStatus.LOCATED, 0.0, 0.0) == GeoFix(0.0, 0.0)


@pytest.mark.parametrize(
    ("status", "latitude", "longitude"),
    [
        ("maybe", None, None),
        (None, 1.0, 2.0),
        ("unlocated", 1.0, None),
        ("located", None, 2.0),
        ("located", "1.0", 2.0),
    ],
)
def test_decode_location_flags_inconsistent_rows(
    status: object, latitude: object, longitude: object
) -> None:
    with pytest.raises(CorruptRecordError):
        decode_location(status, latitude, longitude)


def test_corrupt_record_is_a_read_error() -> None:
    assert issubclass(CorruptRecordError, StoreReadError)


def test_location_status_for_fix() -> None:
    assert LocationStatus.for_fix(None) is LocationStatus.UNLOCATED
    assert LocationStatus.for_fix(GeoFix(0.0, 0.0)) is LocationStatus.LOCATED


def test_formatted_coordinates_use_six_decimals() -> None:
    assert _record(1, GeoFix(1.23456789, -2.5)).formatted_coordinates == (
        "1.234568, -2.500000"
    )
    assert _record(2, None).formatted_coordinates == "No location"


def test_record_list_counts_located_records() -> None:
    records = RecordList(
        parent_id=1,
        records=(_record(1, GeoFix(1.0, 1.0)), _record(2, None)),
    )

    assert records.located_count == 1
    assert RecordList(parent_id=None).located_count == 0


def test_capture_state_helpers() -> None:
    record = _record(1, None)

    assert all(is_in_flight(s) for s in (Capturing(), AwaitingLocation(), Persisting()))
    assert all(
        is_terminal(s)
        for s in (Succeeded(record), Failed(FailureKind.PERSIST_FAILED, "x"))
    )
    assert not is_terminal(Idle())
    assert not is_in_flight(Idle())
