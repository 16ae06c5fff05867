"""Shared test fixtures."""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

import pytest

from field_capture.config import Settings
from field_capture.containers import AppContainer, wire_container
from field_capture.domain.errors import RecordStoreError, StoreReadError
from field_capture.domain.records import CaptureRecord, GeoFix
from field_capture.services.camera import CameraDevice, ImageCaptureSink
from field_capture.services.capture import CaptureSession
from field_capture.services.location import LocationFixProvider, LocationSource
from field_capture.services.media import MediaLocator
from field_capture.services.records import RecordFeed, RecordsListener, RecordStore


@dataclass
class _TrackedSubscription:
    store: "InMemoryRecordStore"
    parent_id: int
    inner: object
    cancelled: bool = False

    def cancel(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        self.inner.cancel()  # type: ignore[attr-defined]
        self.store.events.append(("close", self.parent_id))
        self.store.open_count -= 1


@dataclass
class InMemoryRecordStore(RecordStore):
    """In-memory record store for tests that tracks subscription lifecycles."""

    records: dict[int, CaptureRecord] = field(default_factory=dict)
    events: list[tuple[str, int]] = field(default_factory=list)
    open_count: int = 0
    max_open: int = 0
    insert_calls: int = 0
    fail_inserts: bool = False
    fail_reads: bool = False
    _next_id: int = 1

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
        self.insert_calls += 1
        if self.fail_inserts:
            raise RecordStoreError("disk full")
        record_id = self._next_id
        self._next_id += 1
        self.records[record_id] = CaptureRecord(
            id=record_id,
            parent_id=parent_id,
            media_ref=media_ref,
            captured_at=captured_at,
            location=location,
            note=note,
        )
        self.feed.notify(parent_id)
        return record_id

    def list_by_parent(
        self, parent_id: int, listener: RecordsListener
    ) -> _TrackedSubscription:
        self.events.append(("open", parent_id))
        self.open_count += 1
        self.max_open = max(self.max_open, self.open_count)
        inner = self.feed.subscribe(parent_id, listener)
        return _TrackedSubscription(self, parent_id, inner)

    def fetch_by_parent(self, parent_id: int) -> list[CaptureRecord]:
        if self.fail_reads:
            raise StoreReadError("database locked")
        owned = [r for r in self.records.values() if r.parent_id == parent_id]
        return sorted(owned, key=lambda r: (r.captured_at, r.id), reverse=True)

    def get_by_id(self, record_id: int) -> CaptureRecord | None:
        return self.records.get(record_id)

    def delete_by_id(self, record_id: int) -> None:
        record = self.records.pop(record_id, None)
        if record is not None:
            self.feed.notify(record.parent_id)

    def delete_by_parent(self, parent_id: int) -> None:
        for record_id in [
            r.id for r in self.records.values() if r.parent_id == parent_id
        ]:
            del self.records[record_id]
        self.feed.notify(parent_id)


@dataclass
class FakeCameraDevice(CameraDevice):
    """Camera that writes fixed bytes, optionally after a delay or failing."""

    content: bytes = b"\xff\xd8\xff-fake-jpeg"
    delay_s: float = 0.0
    error: Exception | None = None
    write_file: bool = True
    captured: list[Path] = field(default_factory=list)

    async def take_picture(self, destination: Path) -> None:
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if self.error is not None:
            raise self.error
        self.captured.append(destination)
        if self.write_file:
            destination.write_bytes(self.content)


@dataclass
class _FakeLocationSubscription:
    source: "FakeLocationSource"
    handle: asyncio.TimerHandle | None
    cancelled: bool = False

    def cancel(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        if self.handle is not None:
            self.handle.cancel()
        self.source.active -= 1


@dataclass
class FakeLocationSource(LocationSource):
    """Location source that delivers one scripted fix after a delay."""

    fix: GeoFix | None = None
    fix_after_s: float = 0.0
    permission: bool = True
    fail_request: bool = False
    error_after_s: float | None = None
    last: GeoFix | None = None
    requests: int = 0
    active: int = 0
    subscriptions: list[_FakeLocationSubscription] = field(default_factory=list)

    def has_permission(self) -> bool:
        return self.permission

    def request_updates(
        self,
        on_fix: Callable[[GeoFix], None],
        on_error: Callable[[Exception], None],
    ) -> _FakeLocationSubscription:
        if self.fail_request:
            raise RuntimeError("provider unavailable")
        self.requests += 1
        self.active += 1
        loop = asyncio.get_running_loop()
        handle = None
        if self.error_after_s is not None:
            handle = loop.call_later(
                self.error_after_s, on_error, RuntimeError("provider lost")
            )
        elif self.fix is not None:
            handle = loop.call_later(self.fix_after_s, on_fix, self.fix)
        subscription = _FakeLocationSubscription(self, handle)
        self.subscriptions.append(subscription)
        return subscription

    def last_known(self) -> GeoFix | None:
        return self.last


def make_session(
    tmp_path: Path,
    *,
    parent_id: int = 7,
    store: InMemoryRecordStore | None = None,
    camera: FakeCameraDevice | None = None,
    source: FakeLocationSource | None = None,
    timeout_ms: int = 500,
) -> CaptureSession:
    return CaptureSession(
        parent_id=parent_id,
        camera=ImageCaptureSink(camera or FakeCameraDevice()),
        location=LocationFixProvider(source or FakeLocationSource()),
        store=store or InMemoryRecordStore(),
        media=MediaLocator(tmp_path / "media"),
        location_timeout_ms=timeout_ms,
    )


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        record_store="sqlite",
        database_path=str(tmp_path / "captures.db"),
        media_dir=str(tmp_path / "media"),
        location_timeout_ms=200,
        device_bridge_url="http://bridge.test",
    )


@pytest.fixture
def record_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def camera_device() -> FakeCameraDevice:
    return FakeCameraDevice()


@pytest.fixture
def location_source() -> FakeLocationSource:
    return FakeLocationSource(fix=GeoFix(10.0, 20.0), fix_after_s=0.01)


@pytest.fixture
def container(
    settings: Settings,
    record_store: InMemoryRecordStore,
    camera_device: FakeCameraDevice,
    location_source: FakeLocationSource,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return wire_container(
        settings=settings,
        record_store=record_store,
        camera_device=camera_device,
        location_source=location_source,
        close_resources=close_resources,
    )
