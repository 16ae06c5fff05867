"""Camera and location adapters for an HTTP device bridge.

The bridge is a small companion service on the handset (or a field gateway)
that exposes the camera and GPS receiver over HTTP:

- ``POST {base}/camera/snapshot`` returns JPEG bytes.
- ``GET {base}/location`` returns ``{"latitude": .., "longitude": ..}``, or
  204 while the receiver has no fix.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from http import HTTPStatus
from pathlib import Path

import httpx

from field_capture.domain.errors import CameraError, CameraPermissionError
from field_capture.domain.records import GeoFix
from field_capture.services.camera import CameraDevice
from field_capture.services.location import LocationSource

logger = logging.getLogger(__name__)


@dataclass
class HttpxBridgeCamera(CameraDevice):
    """Camera device that downloads a still from the bridge."""

    base_url: str
    http_client: httpx.AsyncClient
    permission_granted: bool = True

    @classmethod
    def create(cls, base_url: str, permission_granted: bool = True) -> "HttpxBridgeCamera":
        """Create a bridge camera with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(),
            permission_granted=permission_granted,
        )

    async def take_picture(self, destination: Path) -> None:
        """Request a snapshot and write it to ``destination``."""
        if not self.permission_granted:
            raise CameraPermissionError("Camera permission not granted")
        try:
            response = await self.http_client.post(
                f"{self.base_url}/camera/snapshot", timeout=15
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == HTTPStatus.FORBIDDEN:
                raise CameraPermissionError("Camera permission denied by device") from exc
            raise CameraError(
                f"Snapshot failed with status {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise CameraError(f"Camera bridge unreachable: {exc}") from exc
        if not response.content:
            raise CameraError("Camera returned an empty image")
        destination.write_bytes(response.content)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


@dataclass
class HttpxBridgeLocationSource(LocationSource):
    """Location source that polls the bridge while updates are requested."""

    base_url: str
    http_client: httpx.AsyncClient
    poll_interval_ms: int = 1000
    permission_granted: bool = True
    _last_fix: GeoFix | None = field(default=None, init=False, repr=False)

    @classmethod
    def create(
        cls,
        base_url: str,
        poll_interval_ms: int = 1000,
        permission_granted: bool = True,
    ) -> "HttpxBridgeLocationSource":
        """Create a bridge location source with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(),
            poll_interval_ms=poll_interval_ms,
            permission_granted=permission_granted,
        )

    def has_permission(self) -> bool:
        return self.permission_granted

    def last_known(self) -> GeoFix | None:
        return self._last_fix

    def request_updates(
        self,
        on_fix: Callable[[GeoFix], None],
        on_error: Callable[[Exception], None],
    ) -> "_PollingSubscription":
        """Poll for fixes on the running loop until cancelled."""
        task = asyncio.get_running_loop().create_task(self._poll(on_fix, on_error))
        return _PollingSubscription(task)

    async def fetch_fix(self) -> GeoFix | None:
        """Return the bridge's current fix, or None when it has none."""
        response = await self.http_client.get(f"{self.base_url}/location", timeout=5)
        if response.status_code == HTTPStatus.NO_CONTENT:
            return None
        response.raise_for_status()
        payload = response.json()
        latitude = payload.get("latitude")
        longitude = payload.get("longitude")
        if not isinstance(latitude, int | float) or not isinstance(longitude, int | float):
            return None
        fix = GeoFix(latitude=float(latitude), longitude=float(longitude))
        self._last_fix = fix
        return fix

    async def _poll(
        self,
        on_fix: Callable[[GeoFix], None],
        on_error: Callable[[Exception], None],
    ) -> None:
        while True:
            try:
                fix = await self.fetch_fix()
            except (httpx.HTTPError, ValueError) as exc:
                on_error(exc)
                return
            if fix is not None:
                on_fix(fix)
            await asyncio.sleep(self.poll_interval_ms / 1000)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


class _PollingSubscription:
    def __init__(self, task: "asyncio.Task[None]") -> None:
        self.task = task

    def cancel(self) -> None:
        self.task.cancel()
