"""Supabase-backed capture record store."""

from dataclasses import dataclass, field
from datetime import datetime

import httpx
from supabase import Client, PostgrestAPIError

from field_capture.domain.errors import (
    CorruptRecordError,
    RecordStoreError,
    StoreReadError,
)
from field_capture.domain.records import (
    CaptureRecord,
    GeoFix,
    LocationStatus,
    decode_location,
)
from field_capture.services.observable import Subscription
from field_capture.services.records import RecordFeed, RecordsListener, RecordStore

_COLUMNS = (
    "id, parent_id, media_ref, captured_at, location_status, latitude, longitude, note"
)
_CLIENT_ERRORS = (PostgrestAPIError, httpx.HTTPError)


@dataclass
class SupabaseRecordStore(RecordStore):
    """Supabase implementation for capture record persistence.

    Live feeds are driven by writes made through this instance.
    """

    client: Client
    table: str = "capture_records"
    feed: RecordFeed = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.feed = RecordFeed(self.fetch_by_parent)

    def insert(
        self,
        parent_id: int,
        media_ref: str,
        location: GeoFix | None,
        captured_at: datetime,
        note: str | None = None,
    ) -> int:
        """Insert a record row and return its id."""
        try:
            response = (
                self.client.table(self.table)
                .insert(
                    {
                        "parent_id": parent_id,
                        "media_ref": media_ref,
                        "captured_at": captured_at.isoformat(),
                        "location_status": LocationStatus.for_fix(location).value,
                        "latitude": location.latitude if location else None,
                        "longitude": location.longitude if location else None,
                        "note": note,
                    }
                )
                .execute()
            )
        except _CLIENT_ERRORS as exc:
            raise RecordStoreError(f"Failed to insert record: {exc}") from exc
        if not response.data:
            raise RecordStoreError("Failed to insert record")
        record_id = int(response.data[0]["id"])
        self.feed.notify(parent_id)
        return record_id

    def list_by_parent(self, parent_id: int, listener: RecordsListener) -> Subscription:
        return self.feed.subscribe(parent_id, listener)

    def fetch_by_parent(self, parent_id: int) -> list[CaptureRecord]:
        """Return the parent's records, newest first."""
        try:
            response = (
                self.client.table(self.table)
                .select(_COLUMNS)
                .eq("parent_id", parent_id)
                .order("captured_at", desc=True)
                .execute()
            )
        except _CLIENT_ERRORS as exc:
            raise StoreReadError(f"Failed to read records: {exc}") from exc
        return [_to_record(row) for row in response.data or []]

    def get_by_id(self, record_id: int) -> CaptureRecord | None:
        try:
            response = (
                self.client.table(self.table)
                .select(_COLUMNS)
                .eq("id", record_id)
                .limit(1)
                .execute()
            )
        except _CLIENT_ERRORS as exc:
            raise StoreReadError(f"Failed to read record: {exc}") from exc
        if not response.data:
            return None
        return _to_record(response.data[0])

    def delete_by_id(self, record_id: int) -> None:
        record = self.get_by_id(record_id)
        if record is None:
            return
        try:
            self.client.table(self.table).delete().eq("id", record_id).execute()
        except _CLIENT_ERRORS as exc:
            raise RecordStoreError(f"Failed to delete record: {exc}") from exc
        self.feed.notify(record.parent_id)

    def delete_by_parent(self, parent_id: int) -> None:
        try:
            self.client.table(self.table).delete().eq("parent_id", parent_id).execute()
        except _CLIENT_ERRORS as exc:
            raise RecordStoreError(f"Failed to delete records: {exc}") from exc
        self.feed.notify(parent_id)


def _to_record(row: dict[str, object]) -> CaptureRecord:
    try:
        record_id = int(row["id"])  # type: ignore[arg-type]
        parent_id = int(row["parent_id"])  # type: ignore[arg-type]
        captured_at = datetime.fromisoformat(str(row["captured_at"]))
        media_ref = str(row["media_ref"])
    except (KeyError, TypeError, ValueError) as exc:
        raise CorruptRecordError(f"Malformed record row: {exc}") from exc
    note = row.get("note")
    return CaptureRecord(
        id=record_id,
        parent_id=parent_id,
        media_ref=media_ref,
        captured_at=captured_at,
        location=decode_location(
            row.get("location_status"), row.get("latitude"), row.get("longitude")
        ),
        note=str(note) if note is not None else None,
    )
