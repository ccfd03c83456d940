from __future__ import annotations

from collections.abc import Callable, Generator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class TaskState(str, Enum):
    READY = "ready"
    RUNNING = "running"
    SUSPENDED = "suspended"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


TERMINAL_STATES: frozenset[TaskState] = frozenset(
    {TaskState.COMPLETED, TaskState.CANCELLED, TaskState.FAILED}
)

ALLOWED_TRANSITIONS: dict[TaskState, set[TaskState]] = {
    TaskState.READY: {TaskState.RUNNING, TaskState.CANCELLED},
    TaskState.RUNNING: {
        TaskState.SUSPENDED,
        TaskState.COMPLETED,
        TaskState.CANCELLED,
        TaskState.FAILED,
    },
    TaskState.SUSPENDED: {
        TaskState.RUNNING,
        TaskState.COMPLETED,
        TaskState.CANCELLED,
        TaskState.FAILED,
    },
    TaskState.COMPLETED: set(),
    TaskState.CANCELLED: set(),
    TaskState.FAILED: set(),
}


class IllegalTransitionError(ValueError):
    pass


@dataclass(eq=False)
class Task:
    """Record of one cooperative task owned by the scheduler.

    `entry` starts the task on its first step; when it returns a generator,
    that generator becomes `body`, the task's continuation. The cleanup stack
    holds actions registered with the `cleanup` effect.
    """

    id: int
    name: str
    entry: Callable[[], Any] | None
    parent: Task | None = None
    state: TaskState = TaskState.READY
    body: Generator[Any, Any, Any] | None = None
    children: list[Task] = field(default_factory=list)
    cleanups: list[Callable[[], Any]] = field(default_factory=list)

    result: Any = None
    error: BaseException | None = None

    # The body returned but attached children are still alive.
    body_done: bool = False
    # Cancellation or a child failure arrived while the task was mid-step.
    cancel_requested: bool = False
    pending_error: BaseException | None = None
    unwinding: bool = False
    # Withdraws the pending take (store or channel).
    release_wait: Callable[[], None] | None = None

    def __repr__(self) -> str:
        return f"<Task {self.name}#{self.id} {self.state.value}>"

    @property
    def is_alive(self) -> bool:
        return self.state not in TERMINAL_STATES

    @property
    def is_cancelled(self) -> bool:
        return self.state is TaskState.CANCELLED

    def transition(self, to: TaskState) -> None:
        allowed = ALLOWED_TRANSITIONS.get(self.state, set())
        if to not in allowed:
            raise IllegalTransitionError(
                f"Illegal transition for {self.name}#{self.id}: {self.state.value} -> {to.value}"
            )
        self.state = to
