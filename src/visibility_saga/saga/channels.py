"""Channels: closable FIFO queues that tasks can block on.

A channel is the only place where code outside the cooperative scheduler
(callbacks from an external source, possibly on another thread) touches the
runtime. `put` never blocks on the scheduler: it either hands the message to a
waiting taker or buffers it. Taker callbacks always run outside the channel
lock.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Callable
from typing import Any, Final, Generic, TypeVar

from .errors import SourceUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")


class _End:
    """Terminal marker handed to takers of a closed, drained channel."""

    _instance: _End | None = None

    def __new__(cls) -> _End:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "END"


END: Final = _End()

Taker = Callable[[Any], None]
Emit = Callable[[T], None]
Unsubscribe = Callable[[], None]


class Channel(Generic[T]):
    """Buffered channel. Unbounded unless `buffer_size` is given.

    A bounded channel drops its oldest message when full.
    """

    def __init__(self, *, name: str = "channel", buffer_size: int | None = None) -> None:
        if buffer_size is not None and buffer_size <= 0:
            raise ValueError("buffer_size must be positive")
        self.name = name
        self._buffer: deque[T] = deque()
        self._buffer_size = buffer_size
        self._takers: list[Taker] = []
        self._closed = False
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<{type(self).__name__} {self.name} {state} buffered={len(self._buffer)}>"

    def __len__(self) -> int:
        return len(self._buffer)

    @property
    def closed(self) -> bool:
        return self._closed

    def put(self, message: T) -> None:
        """Hand `message` to the oldest waiting taker, or buffer it.

        A put after close is dropped.
        """

        with self._lock:
            if self._closed:
                return
            if not self._takers:
                if self._buffer_size is not None and len(self._buffer) >= self._buffer_size:
                    dropped = self._buffer.popleft()
                    logger.warning(
                        "Channel buffer full; dropping oldest message",
                        extra={"channel": self.name, "dropped": repr(dropped)},
                    )
                self._buffer.append(message)
                return
            taker = self._takers.pop(0)
        taker(message)

    def take(self, taker: Taker) -> Callable[[], None]:
        """Deliver the next message (or END) to `taker`.

        The callback runs immediately when a message is buffered or the channel
        is closed; otherwise it is queued. Returns a function that withdraws a
        queued taker.
        """

        with self._lock:
            if self._buffer:
                message: Any = self._buffer.popleft()
            elif self._closed:
                message = END
            else:
                self._takers.append(taker)
                return lambda: self._withdraw(taker)
        taker(message)
        return _noop

    def _withdraw(self, taker: Taker) -> None:
        with self._lock:
            if taker in self._takers:
                self._takers.remove(taker)

    def _mark_closed(self) -> bool:
        with self._lock:
            if self._closed:
                return False
            self._closed = True
            takers, self._takers = self._takers, []
        # Pending takers only exist while the buffer is empty.
        for taker in takers:
            taker(END)
        return True

    def close(self) -> None:
        """Close the channel. Idempotent."""

        if self._mark_closed():
            logger.debug("Channel closed", extra={"channel": self.name})


def _noop() -> None:
    return None


class EventChannel(Channel[T]):
    """A channel fed by an external push source."""

    def __init__(
        self,
        subscribe: Callable[[Emit[T]], Any],
        unsubscribe: Unsubscribe | None = None,
        *,
        name: str = "event_channel",
        buffer_size: int | None = None,
    ) -> None:
        super().__init__(name=name, buffer_size=buffer_size)
        if unsubscribe is not None and not callable(unsubscribe):
            raise SourceUnavailable(f"Unsubscribe for {name} is not callable")
        try:
            handle = subscribe(self.put)
        except Exception as e:
            raise SourceUnavailable(f"Could not subscribe to source for {name}: {e}") from e

        release = unsubscribe if unsubscribe is not None else handle
        if not callable(release):
            # The source keeps its emit callback; closing turns it into a no-op.
            self._mark_closed()
            logger.warning(
                "Source attached without a way to detach; channel closed",
                extra={"channel": name},
            )
            raise SourceUnavailable(f"Source for {name} did not provide an unsubscribe function")
        self._unsubscribe: Unsubscribe | None = release

    def close(self) -> None:
        """Close the channel and release the source subscription exactly once."""

        if not self._mark_closed():
            return
        release, self._unsubscribe = self._unsubscribe, None
        logger.debug("Event channel closed; unsubscribing", extra={"channel": self.name})
        if release is not None:
            release()


def event_channel(
    subscribe: Callable[[Emit[T]], Any],
    unsubscribe: Unsubscribe | None = None,
    *,
    name: str = "event_channel",
    buffer_size: int | None = None,
) -> EventChannel[T]:
    """Open a channel over an external source.

    `subscribe(emit)` is called once. Pass `unsubscribe` explicitly, or have
    `subscribe` return the function that detaches it. When neither is
    available the source is already attached by the time this is known: the
    channel is closed so later emits are dropped, but the source still holds
    the callback.

    Raises:
        SourceUnavailable: the source could not be attached.
    """

    return EventChannel(subscribe, unsubscribe, name=name, buffer_size=buffer_size)
