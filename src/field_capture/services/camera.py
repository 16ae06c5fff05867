"""Single-flight still capture on top of a camera device."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from field_capture.domain.capture import CaptureError, CaptureErrorKind
from field_capture.domain.errors import CameraError, CameraPermissionError

logger = logging.getLogger(__name__)


class CameraDevice(Protocol):
    """Interface for a device that writes a still image to a file."""

    async def take_picture(self, destination: Path) -> None:
        """Capture one still and write it to ``destination``."""


@dataclass
class ImageCaptureSink:
    """Allows one capture at a time and reports failures as values."""

    device: CameraDevice
    _in_flight: bool = field(default=False, init=False, repr=False)

    @property
    def busy(self) -> bool:
        return self._in_flight

    async def capture(self, destination: Path) -> CaptureError | None:
        """Capture a still to ``destination``; return None on success."""
        if self._in_flight:
            return CaptureError(CaptureErrorKind.BUSY, "Camera is busy")

        self._in_flight = True
        try:
            await self.device.take_picture(destination)
        except (CameraPermissionError, PermissionError) as exc:
            logger.warning("Camera permission denied: %s", exc)
            return CaptureError(
                CaptureErrorKind.PERMISSION_DENIED, "Camera permission not granted"
            )
        except CameraError as exc:
            logger.warning("Camera failed: %s", exc)
            return CaptureError(CaptureErrorKind.DEVICE_ERROR, str(exc) or "Camera error")
        except OSError as exc:
            logger.warning("Could not write capture to %s: %s", destination, exc)
            return CaptureError(CaptureErrorKind.WRITE_FAILED, str(exc))
        except Exception as exc:
            logger.exception("Unexpected camera failure")
            return CaptureError(CaptureErrorKind.DEVICE_ERROR, str(exc) or "Camera error")
        finally:
            self._in_flight = False

        if not destination.exists():
            return CaptureError(
                CaptureErrorKind.WRITE_FAILED, "Camera did not produce an image file"
            )
        return None
