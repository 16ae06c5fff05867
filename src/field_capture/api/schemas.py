"""Response and request models for the HTTP API."""

from datetime import datetime

from pydantic import BaseModel

from field_capture.domain.capture import CaptureState, Failed, Persisting, Succeeded
from field_capture.domain.records import CaptureRecord, GeoFix, RecordList


class GeoFixOut(BaseModel):
    """Latitude/longitude pair."""

    latitude: float
    longitude: float

    @classmethod
    def from_fix(cls, fix: GeoFix | None) -> "GeoFixOut | None":
        if fix is None:
            return None
        return cls(latitude=fix.latitude, longitude=fix.longitude)


class CaptureRecordOut(BaseModel):
    """Persisted capture record."""

    id: int
    parent_id: int
    media_ref: str
    captured_at: datetime
    location: GeoFixOut | None = None
    note: str | None = None
    coordinates: str

    @classmethod
    def from_record(cls, record: CaptureRecord) -> "CaptureRecordOut":
        return cls(
            id=record.id,
            parent_id=record.parent_id,
            media_ref=record.media_ref,
            captured_at=record.captured_at,
            location=GeoFixOut.from_fix(record.location),
            note=record.note,
            coordinates=record.formatted_coordinates,
        )


class CaptureStateOut(BaseModel):
    """Snapshot of a capture session."""

    status: str
    record: CaptureRecordOut | None = None
    location: GeoFixOut | None = None
    failure: str | None = None
    message: str | None = None

    @classmethod
    def from_state(cls, state: CaptureState) -> "CaptureStateOut":
        if isinstance(state, Succeeded):
            return cls(
                status=state.status,
                record=CaptureRecordOut.from_record(state.record),
                location=GeoFixOut.from_fix(state.record.location),
            )
        if isinstance(state, Failed):
            return cls(status=state.status, failure=state.kind.value, message=state.message)
        if isinstance(state, Persisting):
            return cls(status=state.status, location=GeoFixOut.from_fix(state.location))
        return cls(status=state.status)


class RecordListOut(BaseModel):
    """Records owned by one parent."""

    parent_id: int | None
    records: list[CaptureRecordOut]
    located_count: int
    error: str | None = None

    @classmethod
    def from_list(cls, records: RecordList) -> "RecordListOut":
        return cls(
            parent_id=records.parent_id,
            records=[CaptureRecordOut.from_record(record) for record in records.records],
            located_count=records.located_count,
            error=records.error,
        )


class CaptureRequest(BaseModel):
    """Optional input when starting a capture."""

    note: str | None = None
