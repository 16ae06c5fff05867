"""Domain models for geo-tagged capture records."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from field_capture.domain.errors import CorruptRecordError


@dataclass(frozen=True)
class GeoFix:
    """A single latitude/longitude reading."""

    latitude: float
    longitude: float


class LocationStatus(StrEnum):
    """Persisted marker for whether a record carries coordinates."""

    LOCATED = "located"
    UNLOCATED = "unlocated"

    @classmethod
    def for_fix(cls, location: GeoFix | None) -> "LocationStatus":
        """Return the status matching an optional fix."""
        return cls.UNLOCATED if location is None else cls.LOCATED


@dataclass(frozen=True)
class CaptureRecord:
    """A persisted photo owned by an inspection or finding."""

    id: int
    parent_id: int
    media_ref: str
    captured_at: datetime
    location: GeoFix | None = None
    note: str | None = None

    @property
    def has_location(self) -> bool:
        return self.location is not None

    @property
    def formatted_coordinates(self) -> str:
        if self.location is None:
            return "No location"
        return f"{self.location.latitude:.6f}, {self.location.longitude:.6f}"


@dataclass(frozen=True)
class RecordList:
    """Snapshot of one parent's records as published to the UI."""

    parent_id: int | None
    records: tuple[CaptureRecord, ...] = ()
    error: str | None = None

    @property
    def located_count(self) -> int:
        return sum(1 for record in self.records if record.has_location)


def decode_location(
    status: object, latitude: object, longitude: object
) -> GeoFix | None:
    """Decode persisted location columns, rejecting inconsistent rows."""
    try:
        parsed = LocationStatus(str(status))
    except ValueError as exc:
        raise CorruptRecordError(f"Unknown location status {status!r}") from exc

    if parsed is LocationStatus.UNLOCATED:
        if latitude is not None or longitude is not None:
            raise CorruptRecordError("Unlocated record carries coordinates")
        return None

    if not isinstance(latitude, int | float) or not isinstance(longitude, int | float):
        raise CorruptRecordError("Located record is missing a coordinate")
    return GeoFix(latitude=float(latitude), longitude=float(longitude))
