"""Capture cycle states and device-level capture outcomes."""

from dataclasses import dataclass
from enum import StrEnum
from typing import ClassVar

from field_capture.domain.records import CaptureRecord, GeoFix


class FailureKind(StrEnum):
    """Why a capture cycle ended in the failed state."""

    CAPTURE_FAILED = "capture_failed"
    PERSIST_FAILED = "persist_failed"


class CaptureErrorKind(StrEnum):
    """Failure categories reported by an image capture sink."""

    BUSY = "busy"
    PERMISSION_DENIED = "permission_denied"
    WRITE_FAILED = "write_failed"
    DEVICE_ERROR = "device_error"


@dataclass(frozen=True)
class CaptureError:
    """A failed still capture."""

    kind: CaptureErrorKind
    message: str


@dataclass(frozen=True)
class Idle:
    status: ClassVar[str] = "idle"


@dataclass(frozen=True)
class Capturing:
    status: ClassVar[str] = "capturing"


@dataclass(frozen=True)
class AwaitingLocation:
    status: ClassVar[str] = "awaiting_location"


@dataclass(frozen=True)
class Persisting:
    status: ClassVar[str] = "persisting"

    location: GeoFix | None = None


@dataclass(frozen=True)
class Succeeded:
    status: ClassVar[str] = "succeeded"

    record: CaptureRecord


@dataclass(frozen=True)
class Failed:
    status: ClassVar[str] = "failed"

    kind: FailureKind
    message: str


CaptureState = Idle | Capturing | AwaitingLocation | Persisting | Succeeded | Failed

TERMINAL_STATES = (Succeeded, Failed)
IN_FLIGHT_STATES = (Capturing, AwaitingLocation, Persisting)


def is_terminal(state: CaptureState) -> bool:
    """Return True when the state ends a cycle."""
    return isinstance(state, TERMINAL_STATES)


def is_in_flight(state: CaptureState) -> bool:
    """Return True while a cycle is running."""
    return isinstance(state, IN_FLIGHT_STATES)
