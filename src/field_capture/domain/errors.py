"""Exception types raised across the capture core."""


class FieldCaptureError(Exception):
    """Base class for field capture errors."""


class CaptureInProgressError(FieldCaptureError):
    """Raised when a session cannot start or reset in its current state."""


class CameraError(FieldCaptureError):
    """Raised by camera devices when a still cannot be taken."""


class CameraPermissionError(CameraError):
    """Raised by camera devices when camera access is not granted."""


class RecordStoreError(FieldCaptureError):
    """Raised when a record write fails."""


class StoreReadError(FieldCaptureError):
    """Raised when records cannot be read back from the store."""


class CorruptRecordError(StoreReadError):
    """Raised when a persisted row holds values the domain cannot represent."""


class RecordNotFoundError(FieldCaptureError):
    """Raised when a record id is unknown to the store."""


class RecordUnlocatedError(FieldCaptureError):
    """Raised when a record without coordinates is requested for a map."""
