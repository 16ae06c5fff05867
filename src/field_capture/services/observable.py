"""Single-value observable used to publish state to the UI layer."""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from typing import Generic, Protocol, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


class Subscription(Protocol):
    """Handle for an active listener registration."""

    def cancel(self) -> None:
        """Stop delivering updates. Safe to call more than once."""


class Observable(Generic[T]):
    """Holds a current value and notifies listeners on every publish.

    Listeners are called synchronously, in registration order, on the thread
    that publishes. A failing listener is logged and does not prevent delivery
    to the others.
    """

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._listeners: list[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        return self._value

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def subscribe(
        self, listener: Callable[[T], None], *, replay: bool = True
    ) -> Subscription:
        """Register a listener, optionally delivering the current value first."""
        self._listeners.append(listener)
        if replay:
            self._deliver(listener, self._value)
        return _ListenerSubscription(self, listener)

    def publish(self, value: T) -> None:
        """Replace the current value and notify listeners."""
        self._value = value
        for listener in list(self._listeners):
            self._deliver(listener, value)

    async def updates(self) -> AsyncIterator[T]:
        """Yield the current value and then every published value."""
        queue: asyncio.Queue[T] = asyncio.Queue()
        subscription = self.subscribe(queue.put_nowait)
        try:
            while True:
                yield await queue.get()
        finally:
            subscription.cancel()

    def _remove(self, listener: Callable[[T], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @staticmethod
    def _deliver(listener: Callable[[T], None], value: T) -> None:
        try:
            listener(value)
        except Exception:
            logger.exception("Observable listener failed")


class _ListenerSubscription(Generic[T]):
    def __init__(self, owner: Observable[T], listener: Callable[[T], None]) -> None:
        self._owner = owner
        self._listener = listener

    def cancel(self) -> None:
        self._owner._remove(self._listener)  # noqa: SLF001
