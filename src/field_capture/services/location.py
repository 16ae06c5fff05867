"""Bounded location fixes on top of a platform location source."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from field_capture.domain.records import GeoFix
from field_capture.services.observable import Subscription

logger = logging.getLogger(__name__)


class LocationSource(Protocol):
    """Interface for a device location provider."""

    def has_permission(self) -> bool:
        """Return whether location access is currently granted."""

    def request_updates(
        self,
        on_fix: Callable[[GeoFix], None],
        on_error: Callable[[Exception], None],
    ) -> Subscription:
        """Start delivering fixes until the returned subscription is cancelled."""

    def last_known(self) -> GeoFix | None:
        """Return the most recent fix the platform recorded, if any."""


@dataclass
class LocationFixProvider:
    """Turns a streaming location source into one-shot, time-bounded fixes."""

    source: LocationSource

    async def get_bounded_fix(self, timeout_ms: int) -> GeoFix | None:
        """Return the first fix within ``timeout_ms``, or None.

        The source subscription is cancelled as soon as the wait ends,
        whichever way it ends. Source failures and missing permission yield
        None instead of raising.
        """
        if timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive")
        if not self._permitted():
            logger.info("Location permission not granted; skipping fix")
            return None

        loop = asyncio.get_running_loop()
        result: asyncio.Future[GeoFix | None] = loop.create_future()

        def _resolve(fix: GeoFix | None) -> None:
            if not result.done():
                result.set_result(fix)

        def on_fix(fix: GeoFix) -> None:
            loop.call_soon_threadsafe(_resolve, fix)

        def on_error(exc: Exception) -> None:
            logger.warning("Location source reported an error: %s", exc)
            loop.call_soon_threadsafe(_resolve, None)

        try:
            subscription = self.source.request_updates(on_fix, on_error)
        except Exception:
            logger.warning("Location source unavailable", exc_info=True)
            return None

        try:
            return await asyncio.wait_for(result, timeout=timeout_ms / 1000)
        except TimeoutError:
            logger.info("No location fix within %d ms", timeout_ms)
            return None
        finally:
            subscription.cancel()

    def get_last_known_fix(self) -> GeoFix | None:
        """Return the platform's last recorded fix without waiting."""
        if not self._permitted():
            return None
        try:
            return self.source.last_known()
        except Exception:
            logger.warning("Last known location unavailable", exc_info=True)
            return None

    def _permitted(self) -> bool:
        try:
            return self.source.has_permission()
        except Exception:
            logger.warning("Location permission check failed", exc_info=True)
            return False
