"""Capture → locate → persist cycle for one parent entity."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from field_capture.domain.capture import (
    AwaitingLocation,
    CaptureState,
    Capturing,
    Failed,
    FailureKind,
    Idle,
    Persisting,
    Succeeded,
    is_in_flight,
)
from field_capture.domain.errors import CaptureInProgressError, RecordStoreError
from field_capture.domain.records import CaptureRecord, GeoFix
from field_capture.services.camera import ImageCaptureSink
from field_capture.services.location import LocationFixProvider
from field_capture.services.media import MediaLocator
from field_capture.services.observable import Observable
from field_capture.services.records import RecordStore

DEFAULT_LOCATION_TIMEOUT_MS = 10_000

logger = logging.getLogger(__name__)


@dataclass
class CaptureSession:
    """State machine running at most one capture cycle at a time.

    Progress is observable only through ``state``. A cycle always runs to a
    terminal state; ``reset`` is the only way back to idle.
    """

    parent_id: int
    camera: ImageCaptureSink
    location: LocationFixProvider
    store: RecordStore
    media: MediaLocator
    location_timeout_ms: int = DEFAULT_LOCATION_TIMEOUT_MS
    state: Observable[CaptureState] = field(
        default_factory=lambda: Observable(Idle()), init=False
    )
    _task: "asyncio.Task[CaptureState] | None" = field(
        default=None, init=False, repr=False
    )

    @property
    def current(self) -> CaptureState:
        return self.state.value

    def start(self, note: str | None = None) -> "asyncio.Task[CaptureState]":
        """Begin a cycle on the running event loop and return its task."""
        if not isinstance(self.state.value, Idle):
            raise CaptureInProgressError(
                f"Session for parent {self.parent_id} is {self.state.value.status}"
            )
        loop = asyncio.get_running_loop()
        self.state.publish(Capturing())
        self._task = loop.create_task(self._run_cycle(note))
        return self._task

    def reset(self) -> None:
        """Return a finished session to idle."""
        state = self.state.value
        if isinstance(state, Idle):
            return
        if is_in_flight(state):
            raise CaptureInProgressError("Cannot reset while a capture is running")
        self._task = None
        self.state.publish(Idle())

    async def wait(self) -> CaptureState:
        """Wait for the running cycle, if any, and return the current state."""
        if self._task is not None:
            await asyncio.shield(self._task)
        return self.state.value

    async def _run_cycle(self, note: str | None) -> CaptureState:
        try:
            destination = self.media.new_destination(self.parent_id)
        except OSError as exc:
            logger.warning("No media destination for parent %s: %s", self.parent_id, exc)
            return self._finish(
                Failed(FailureKind.CAPTURE_FAILED, "Could not prepare photo storage")
            )

        error = await self.camera.capture(destination)
        if error is not None:
            logger.warning(
                "Capture failed for parent %s: %s", self.parent_id, error.kind
            )
            return self._finish(
                Failed(FailureKind.CAPTURE_FAILED, f"Could not take photo: {error.message}")
            )
        captured_at = datetime.now(tz=UTC)

        self.state.publish(AwaitingLocation())
        try:
            fix = await self.location.get_bounded_fix(self.location_timeout_ms)
        except Exception:
            logger.warning(
                "Location lookup failed for parent %s", self.parent_id, exc_info=True
            )
            fix = None

        self.state.publish(Persisting(location=fix))
        try:
            record = self._persist(destination, captured_at, fix, note)
        except RecordStoreError as exc:
            logger.exception("Failed to save capture for parent %s", self.parent_id)
            return self._finish(
                Failed(FailureKind.PERSIST_FAILED, f"Could not save photo: {exc}")
            )
        except Exception:
            logger.exception("Unexpected error saving capture for parent %s", self.parent_id)
            return self._finish(
                Failed(FailureKind.PERSIST_FAILED, "Could not save photo")
            )

        logger.info(
            "Saved capture %s for parent %s (%s)",
            record.id,
            self.parent_id,
            record.formatted_coordinates,
        )
        return self._finish(Succeeded(record))

    def _persist(
        self,
        destination: Path,
        captured_at: datetime,
        fix: GeoFix | None,
        note: str | None,
    ) -> CaptureRecord:
        record_id = self.store.insert(
            parent_id=self.parent_id,
            media_ref=str(destination),
            location=fix,
            captured_at=captured_at,
            note=note,
        )
        return CaptureRecord(
            id=record_id,
            parent_id=self.parent_id,
            media_ref=str(destination),
            captured_at=captured_at,
            location=fix,
            note=note,
        )

    def _finish(self, state: CaptureState) -> CaptureState:
        self.state.publish(state)
        return state
