"""SQLite-backed capture record store for on-device use."""

import sqlite3
from datetime import datetime
from pathlib import Path

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

_SCHEMA = """
    CREATE TABLE IF NOT EXISTS capture_records (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        parent_id INTEGER NOT NULL,
        media_ref TEXT NOT NULL,
        captured_at TEXT NOT NULL,
        location_status TEXT NOT NULL,
        latitude REAL,
        longitude REAL,
        note TEXT
    )
"""

_INDEX = """
    CREATE INDEX IF NOT EXISTS idx_capture_records_parent
    ON capture_records(parent_id)
"""

_COLUMNS = (
    "id, parent_id, media_ref, captured_at, location_status, latitude, longitude, note"
)


class SqliteRecordStore(RecordStore):
    """Capture records in a local SQLite database with live per-parent feeds."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self.connection = connection
        self.connection.row_factory = sqlite3.Row
        self.feed = RecordFeed(self.fetch_by_parent)

    @classmethod
    def open(cls, database_path: str) -> "SqliteRecordStore":
        """Open (and initialise) a database file, or ``:memory:``."""
        if database_path != ":memory:":
            Path(database_path).parent.mkdir(parents=True, exist_ok=True)
        connection = sqlite3.connect(database_path, check_same_thread=False)
        connection.execute("PRAGMA journal_mode=WAL")
        store = cls(connection)
        store.initialize()
        return store

    def initialize(self) -> None:
        """Create the schema if it does not exist. Idempotent."""
        with self.connection:
            self.connection.execute(_SCHEMA)
            self.connection.execute(_INDEX)

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
            with self.connection:
                cursor = self.connection.execute(
                    "INSERT INTO capture_records "
                    "(parent_id, media_ref, captured_at, location_status, "
                    "latitude, longitude, note) VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (
                        parent_id,
                        media_ref,
                        captured_at.isoformat(),
                        LocationStatus.for_fix(location).value,
                        location.latitude if location else None,
                        location.longitude if location else None,
                        note,
                    ),
                )
        except sqlite3.Error as exc:
            raise RecordStoreError(f"Failed to insert record: {exc}") from exc
        record_id = cursor.lastrowid
        if record_id is None:
            raise RecordStoreError("Failed to insert record")
        self.feed.notify(parent_id)
        return record_id

    def list_by_parent(self, parent_id: int, listener: RecordsListener) -> Subscription:
        return self.feed.subscribe(parent_id, listener)

    def fetch_by_parent(self, parent_id: int) -> list[CaptureRecord]:
        """Return the parent's records, newest first."""
        try:
            rows = self.connection.execute(
                f"SELECT {_COLUMNS} FROM capture_records WHERE parent_id = ? "  # noqa: S608
                "ORDER BY captured_at DESC, id DESC",
                (parent_id,),
            ).fetchall()
        except sqlite3.Error as exc:
            raise StoreReadError(f"Failed to read records: {exc}") from exc
        return [_to_record(row) for row in rows]

    def get_by_id(self, record_id: int) -> CaptureRecord | None:
        try:
            row = self.connection.execute(
                f"SELECT {_COLUMNS} FROM capture_records WHERE id = ?",  # noqa: S608
                (record_id,),
            ).fetchone()
        except sqlite3.Error as exc:
            raise StoreReadError(f"Failed to read record: {exc}") from exc
        if row is None:
            return None
        return _to_record(row)

    def delete_by_id(self, record_id: int) -> None:
        record = self.get_by_id(record_id)
        if record is None:
            return
        try:
            with self.connection:
                self.connection.execute(
                    "DELETE FROM capture_records WHERE id = ?", (record_id,)
                )
        except sqlite3.Error as exc:
            raise RecordStoreError(f"Failed to delete record: {exc}") from exc
        self.feed.notify(record.parent_id)

    def delete_by_parent(self, parent_id: int) -> None:
        try:
            with self.connection:
                self.connection.execute(
                    "DELETE FROM capture_records WHERE parent_id = ?", (parent_id,)
                )
        except sqlite3.Error as exc:
            raise RecordStoreError(f"Failed to delete records: {exc}") from exc
        self.feed.notify(parent_id)

    def close(self) -> None:
        self.connection.close()


def _to_record(row: sqlite3.Row) -> CaptureRecord:
    try:
        captured_at = datetime.fromisoformat(row["captured_at"])
    except (TypeError, ValueError) as exc:
        raise CorruptRecordError(
            f"Record {row['id']} has an invalid capture time"
        ) from exc
    return CaptureRecord(
        id=row["id"],
        parent_id=row["parent_id"],
        media_ref=row["media_ref"],
        captured_at=captured_at,
        location=decode_location(
            row["location_status"], row["latitude"], row["longitude"]
        ),
        note=row["note"],
    )
