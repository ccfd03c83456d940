"""Central store: owns state and serializes event dispatch.

Only the event-delivery contract matters to the saga runtime:

- one event is fully processed (reducer run, every listener notified) before
  the next one starts;
- a dispatch issued while another is in progress (from a listener or a task)
  is queued and processed afterwards, in order;
- `on_done` fires after the event's listeners have all returned;
- every dispatch call gets the next sequence number, so a subscriber can tell
  whether an event was dispatched before or after some point in time.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Callable
from typing import Any, Generic, TypeVar

from visibility_saga.saga.events import AnyEvent, event_tag

logger = logging.getLogger(__name__)

S = TypeVar("S")

Reducer = Callable[[S, AnyEvent], S]
Listener = Callable[[AnyEvent, Any], None]
DoneCallback = Callable[[AnyEvent], None]


class Store(Generic[S]):
    def __init__(self, reducer: Reducer[S], initial_state: S, *, history_limit: int = 100) -> None:
        self._reducer = reducer
        self._state = initial_state
        self._history: deque[S] = deque([initial_state], maxlen=max(1, history_limit))
        self._listeners: list[Listener] = []
        self._queue: deque[tuple[AnyEvent, DoneCallback | None, int]] = deque()
        self._dispatching = False
        self._dispatched = 0
        self._processing = 0
        # Shared with the scheduler: every entry point into the store/scheduler
        # pair holds this lock.
        self.lock = threading.RLock()

    def get_state(self) -> S:
        return self._state

    @property
    def dispatched(self) -> int:
        """Sequence number of the most recent dispatch call."""

        return self._dispatched

    @property
    def processing(self) -> int:
        """Sequence number of the event whose listeners are running."""

        return self._processing

    @property
    def history(self) -> list[S]:
        """Distinct states in the order they were reached, initial state first."""

        return list(self._history)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self.lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self.lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, event: AnyEvent, on_done: DoneCallback | None = None) -> AnyEvent:
        if event_tag(event) is None:
            raise TypeError(f"Events need a string 'type' tag, got {event!r}")

        with self.lock:
            self._dispatched += 1
            self._queue.append((event, on_done, self._dispatched))
            if self._dispatching:
                logger.debug("Dispatch queued", extra={"event": event_tag(event)})
                return event

            self._dispatching = True
            try:
                while self._queue:
                    next_event, done, self._processing = self._queue.popleft()
                    self._process(next_event)
                    if done is not None:
                        done(next_event)
            finally:
                self._dispatching = False
        return event

    def _process(self, event: AnyEvent) -> None:
        previous = self._state
        self._state = self._reducer(previous, event)
        if self._state != previous:
            self._history.append(self._state)

        logger.debug(
            "Event dispatched",
            extra={"event": event_tag(event), "state_changed": self._state != previous},
        )

        for listener in list(self._listeners):
            try:
                listener(event, self._state)
            except Exception:
                logger.exception("Store listener failed", extra={"event": event_tag(event)})
