from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .task import Task


class SagaError(Exception):
    """Base class for errors raised by the saga runtime."""


class ChannelClosed(SagaError):
    """A `take` targeted a channel that is closed and drained.

    Expected at shutdown. Tasks may handle it or let it unwind.
    """

    def __init__(self, channel_name: str) -> None:
        super().__init__(f"Channel closed: {channel_name}")
        self.channel_name = channel_name


class SourceUnavailable(SagaError):
    """The channel adapter could not attach to its external source."""


class PatternMismatch(SagaError):
    """An event or tag outside the registered event mapping reached the typed API.

    This is a programming error and is never recovered.
    """


class TaskFailed(SagaError):
    """A task body raised an error it did not handle.

    Raised to the task's spawner. Cleanup errors collected while unwinding are
    kept alongside the original error instead of replacing it.
    """

    def __init__(
        self,
        task: Task,
        error: BaseException,
        cleanup_errors: list[BaseException] | None = None,
    ) -> None:
        super().__init__(f"Task {task.name}#{task.id} failed: {error!r}")
        self.task = task
        self.error = error
        self.cleanup_errors = list(cleanup_errors or [])
