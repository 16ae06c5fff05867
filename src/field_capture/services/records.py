"""Record store port, live per-parent feeds, and record actions."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from field_capture.domain.errors import (
    RecordNotFoundError,
    RecordUnlocatedError,
    StoreReadError,
)
from field_capture.domain.records import CaptureRecord, GeoFix
from field_capture.services.media import MediaLocator
from field_capture.services.observable import Subscription

logger = logging.getLogger(__name__)

RecordsListener = Callable[[list[CaptureRecord] | StoreReadError], None]


class RecordStore(Protocol):
    """Persistence interface for capture records scoped to a parent."""

    def insert(
        self,
        parent_id: int,
        media_ref: str,
        location: GeoFix | None,
        captured_at: datetime,
        note: str | None = None,
    ) -> int:
        """Create a record and return its id."""

    def list_by_parent(self, parent_id: int, listener: RecordsListener) -> Subscription:
        """Deliver the parent's records now and after every change."""

    def fetch_by_parent(self, parent_id: int) -> list[CaptureRecord]:
        """Return the parent's records once, newest first."""

    def get_by_id(self, record_id: int) -> CaptureRecord | None:
        """Return a record by id, if present."""

    def delete_by_id(self, record_id: int) -> None:
        """Delete a single record."""

    def delete_by_parent(self, parent_id: int) -> None:
        """Delete every record owned by a parent."""


class RecordFeed:
    """Fan-out of per-parent record lists to live listeners.

    Stores call ``notify`` after each committed write; every listener of the
    affected parent receives a freshly loaded list, or the read error.
    """

    def __init__(self, loader: Callable[[int], list[CaptureRecord]]) -> None:
        self._loader = loader
        self._listeners: dict[int, list[RecordsListener]] = {}

    def subscribe(self, parent_id: int, listener: RecordsListener) -> Subscription:
        """Register a listener and emit the current list to it immediately."""
        self._listeners.setdefault(parent_id, []).append(listener)
        self._emit(parent_id, [listener])
        return _FeedSubscription(self, parent_id, listener)

    def notify(self, parent_id: int) -> None:
        listeners = self._listeners.get(parent_id)
        if listeners:
            self._emit(parent_id, list(listeners))

    def listener_count(self, parent_id: int) -> int:
        return len(self._listeners.get(parent_id, []))

    def _remove(self, parent_id: int, listener: RecordsListener) -> None:
        listeners = self._listeners.get(parent_id)
        if not listeners or listener not in listeners:
            return
        listeners.remove(listener)
        if not listeners:
            del self._listeners[parent_id]

    def _emit(self, parent_id: int, listeners: list[RecordsListener]) -> None:
        payload: list[CaptureRecord] | StoreReadError
        try:
            payload = self._loader(parent_id)
        except StoreReadError as exc:
            logger.warning("Failed to load records for parent %s: %s", parent_id, exc)
            payload = exc
        for listener in listeners:
            try:
                listener(payload)
            except Exception:
                logger.exception("Record listener failed for parent %s", parent_id)


class _FeedSubscription:
    def __init__(
        self, feed: RecordFeed, parent_id: int, listener: RecordsListener
    ) -> None:
        self._feed = feed
        self._parent_id = parent_id
        self._listener = listener

    def cancel(self) -> None:
        self._feed._remove(self._parent_id, self._listener)  # noqa: SLF001


@dataclass
class RecordService:
    """User-facing actions on persisted records."""

    store: RecordStore
    media: MediaLocator

    def get_record(self, record_id: int) -> CaptureRecord:
        record = self.store.get_by_id(record_id)
        if record is None:
            raise RecordNotFoundError(f"Record {record_id} not found")
        return record

    def get_located_record(self, record_id: int) -> CaptureRecord:
        """Return a record for the map view; it must carry coordinates."""
        record = self.get_record(record_id)
        if not record.has_location:
            raise RecordUnlocatedError(f"Record {record_id} has no location")
        return record

    def delete_record(self, record_id: int) -> None:
        """Delete a record and then its media file."""
        record = self.get_record(record_id)
        self.store.delete_by_id(record_id)
        self.media.remove(record.media_ref)
        logger.info("Deleted record %s of parent %s", record_id, record.parent_id)

    def delete_parent_records(self, parent_id: int) -> int:
        """Cascade-delete a parent's records and media. Returns the count."""
        records = self.store.fetch_by_parent(parent_id)
        self.store.delete_by_parent(parent_id)
        for record in records:
            self.media.remove(record.media_ref)
        logger.info("Deleted %d records of parent %s", len(records), parent_id)
        return len(records)
