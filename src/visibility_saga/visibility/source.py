from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Literal, Protocol

logger = logging.getLogger(__name__)

VisibilityValue = Literal["visible", "hidden"]
VISIBILITY_VALUES: tuple[VisibilityValue, ...] = ("visible", "hidden")

Handler = Callable[[], None]


class SourceDetachedError(RuntimeError):
    pass


class VisibilitySource(Protocol):
    """A page visibility signal: listeners are called on every change."""

    @property
    def visibility_state(self) -> VisibilityValue: ...

    def add_listener(self, handler: Handler) -> None: ...

    def remove_listener(self, handler: Handler) -> None: ...


class PageVisibility:
    """In-process visibility signal for one page.

    Clients report changes with :meth:`report`; listeners run on the reporting
    thread, after the new state is visible through :attr:`visibility_state`.
    Reporting the current state again does not notify anyone.
    """

    def __init__(self, state: VisibilityValue = "visible", *, available: bool = True) -> None:
        if state not in VISIBILITY_VALUES:
            raise ValueError(f"Unknown visibility state: {state!r}")
        self._state: VisibilityValue = state
        self._available = available
        self._handlers: list[Handler] = []
        self._lock = threading.Lock()

    @property
    def visibility_state(self) -> VisibilityValue:
        return self._state

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._handlers)

    def add_listener(self, handler: Handler) -> None:
        with self._lock:
            if not self._available:
                raise SourceDetachedError("Page visibility signal is not available")
            self._handlers.append(handler)

    def remove_listener(self, handler: Handler) -> None:
        with self._lock:
            if handler in self._handlers:
                self._handlers.remove(handler)

    def detach(self) -> None:
        """Drop every listener and refuse new ones."""

        with self._lock:
            self._available = False
            self._handlers.clear()

    def report(self, state: VisibilityValue) -> bool:
        """Record a visibility change. Returns True if listeners were notified."""

        if state not in VISIBILITY_VALUES:
            raise ValueError(f"Unknown visibility state: {state!r}")
        with self._lock:
            if state == self._state:
                return False
            self._state = state
            handlers = list(self._handlers)
        logger.debug("Visibility reported", extra={"state": state, "listeners": len(handlers)})
        for handler in handlers:
            handler()
        return True
