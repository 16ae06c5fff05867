"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from supabase import create_client

from field_capture.adapters.device_bridge import (
    HttpxBridgeCamera,
    HttpxBridgeLocationSource,
)
from field_capture.adapters.sqlite_record_store import SqliteRecordStore
from field_capture.adapters.supabase_record_store import SupabaseRecordStore
from field_capture.config import Settings
from field_capture.services.camera import CameraDevice, ImageCaptureSink
from field_capture.services.capture import CaptureSession
from field_capture.services.location import LocationFixProvider, LocationSource
from field_capture.services.media import MediaLocator
from field_capture.services.records import RecordService, RecordStore
from field_capture.services.registry import SessionRegistry


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    record_store: RecordStore
    camera_device: CameraDevice
    location_source: LocationSource
    camera: ImageCaptureSink
    location_provider: LocationFixProvider
    media: MediaLocator
    registry: SessionRegistry
    record_service: RecordService
    close_resources: Callable[[], Awaitable[None]]


def build_record_store(settings: Settings) -> RecordStore:
    """Create the configured record store backend."""
    if settings.record_store == "supabase":
        if not settings.supabase_url or not settings.supabase_service_key:
            raise ValueError("Supabase store requires supabase_url and supabase_service_key")
        client = create_client(settings.supabase_url, settings.supabase_service_key)
        return SupabaseRecordStore(client, table=settings.supabase_table)
    return SqliteRecordStore.open(settings.database_path)


def wire_container(  # noqa: PLR0913
    settings: Settings,
    record_store: RecordStore,
    camera_device: CameraDevice,
    location_source: LocationSource,
    close_resources: Callable[[], Awaitable[None]],
) -> AppContainer:
    """Assemble services around already-built infrastructure."""
    camera = ImageCaptureSink(camera_device)
    location_provider = LocationFixProvider(location_source)
    media = MediaLocator(Path(settings.media_dir))

    def new_session(parent_id: int) -> CaptureSession:
        return CaptureSession(
            parent_id=parent_id,
            camera=camera,
            location=location_provider,
            store=record_store,
            media=media,
            location_timeout_ms=settings.location_timeout_ms,
        )

    return AppContainer(
        settings=settings,
        record_store=record_store,
        camera_device=camera_device,
        location_source=location_source,
        camera=camera,
        location_provider=location_provider,
        media=media,
        registry=SessionRegistry(store=record_store, session_factory=new_session),
        record_service=RecordService(store=record_store, media=media),
        close_resources=close_resources,
    )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    record_store = build_record_store(resolved_settings)
    camera_device = HttpxBridgeCamera.create(
        resolved_settings.device_bridge_url,
        permission_granted=resolved_settings.camera_permission_granted,
    )
    location_source = HttpxBridgeLocationSource.create(
        resolved_settings.device_bridge_url,
        poll_interval_ms=resolved_settings.location_poll_interval_ms,
        permission_granted=resolved_settings.location_permission_granted,
    )

    async def close_resources() -> None:
        await camera_device.close()
        await location_source.close()
        if isinstance(record_store, SqliteRecordStore):
            record_store.close()

    return wire_container(
        settings=resolved_settings,
        record_store=record_store,
        camera_device=camera_device,
        location_source=location_source,
        close_resources=close_resources,
    )
