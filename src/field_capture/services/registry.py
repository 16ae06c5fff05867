"""Per-parent record view with single-subscription replacement."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from field_capture.domain.capture import is_in_flight
from field_capture.domain.errors import StoreReadError
from field_capture.domain.records import CaptureRecord, RecordList
from field_capture.services.capture import CaptureSession
from field_capture.services.observable import Observable, Subscription
from field_capture.services.records import RecordStore

logger = logging.getLogger(__name__)

SessionFactory = Callable[[int], CaptureSession]


@dataclass
class SessionRegistry:
    """Keeps exactly one live store subscription for the parent on screen.

    ``observe`` always hands out the same observable. Switching parents
    cancels the old subscription before opening the new one, and emissions
    that arrive for a superseded subscription are dropped.

    Sessions are kept for the current parent and for any parent whose cycle
    is still running; the rest are dropped on every switch or release.
    """

    store: RecordStore
    session_factory: SessionFactory
    view: Observable[RecordList] = field(
        default_factory=lambda: Observable(RecordList(parent_id=None)), init=False
    )
    _parent_id: int | None = field(default=None, init=False, repr=False)
    _subscription: Subscription | None = field(default=None, init=False, repr=False)
    _generation: int = field(default=0, init=False, repr=False)
    _sessions: dict[int, CaptureSession] = field(
        default_factory=dict, init=False, repr=False
    )

    @property
    def parent_id(self) -> int | None:
        return self._parent_id

    def observe(self, parent_id: int) -> Observable[RecordList]:
        """Point the view at ``parent_id``; repeated calls for it are no-ops."""
        if self._subscription is not None and self._parent_id == parent_id:
            return self.view
        self._switch(parent_id)
        return self.view

    def refresh(self) -> None:
        """Resubscribe to the current parent, reloading its records."""
        if self._parent_id is not None:
            self._switch(self._parent_id)

    def release(self) -> None:
        """Drop the current subscription and clear the view."""
        self._cancel_current()
        self._parent_id = None
        self._prune_sessions()
        self.view.publish(RecordList(parent_id=None))

    def session_for(self, parent_id: int) -> CaptureSession:
        """Return the capture session for ``parent_id``, creating it once."""
        session = self._sessions.get(parent_id)
        if session is None:
            session = self.session_factory(parent_id)
            self._sessions[parent_id] = session
        return session

    def _switch(self, parent_id: int) -> None:
        self._cancel_current()
        self._parent_id = parent_id
        self._prune_sessions()
        self._generation += 1
        generation = self._generation
        self.view.publish(RecordList(parent_id=parent_id))
        logger.debug("Subscribing to records of parent %s", parent_id)
        try:
            self._subscription = self.store.list_by_parent(
                parent_id, self._listener(parent_id, generation)
            )
        except StoreReadError as exc:
            logger.warning("Could not subscribe to parent %s: %s", parent_id, exc)
            self.view.publish(RecordList(parent_id=parent_id, error=str(exc)))

    def _prune_sessions(self) -> None:
        # In-flight cycles must finish on the session that started them.
        for parent_id, session in list(self._sessions.items()):
            if parent_id != self._parent_id and not is_in_flight(session.current):
                del self._sessions[parent_id]

    def _cancel_current(self) -> None:
        subscription = self._subscription
        self._subscription = None
        self._generation += 1
        if subscription is not None:
            logger.debug("Cancelling records subscription of parent %s", self._parent_id)
            subscription.cancel()

    def _listener(
        self, parent_id: int, generation: int
    ) -> Callable[[list[CaptureRecord] | StoreReadError], None]:
        def on_records(payload: list[CaptureRecord] | StoreReadError) -> None:
            if generation != self._generation:
                return
            if isinstance(payload, StoreReadError):
                current = self.view.value
                self.view.publish(
                    RecordList(
                        parent_id=parent_id,
                        records=current.records,
                        error=str(payload) or "Could not load records",
                    )
                )
                return
            self.view.publish(RecordList(parent_id=parent_id, records=tuple(payload)))

        return on_records
