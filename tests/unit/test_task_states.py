"""Unit tests for the explicit task state machine.

Illegal transitions fail loudly; terminal states accept nothing.
"""

from __future__ import annotations

import pytest

from visibility_saga.saga.task import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATES,
    IllegalTransitionError,
    Task,
    TaskState,
)


def _task() -> Task:
    return Task(id=1, name="t", entry=None)


def test_new_task_is_ready_and_alive() -> None:
    task = _task()
    assert task.state is TaskState.READY
    assert task.is_alive
    assert not task.is_cancelled


def test_transition_follows_the_table() -> None:
    task = _task()
    task.transition(TaskState.RUNNING)
    task.transition(TaskState.SUSPENDED)
    task.transition(TaskState.RUNNING)
    task.transition(TaskState.COMPLETED)

    assert not task.is_alive


def test_ready_task_cannot_suspend_or_complete() -> None:
    task = _task()
    with pytest.raises(IllegalTransitionError):
        task.transition(TaskState.SUSPENDED)
    with pytest.raises(IllegalTransitionError):
        task.transition(TaskState.COMPLETED)


@pytest.mark.parametrize("terminal", sorted(TERMINAL_STATES, key=lambda s: s.value))
def test_terminal_states_are_final(terminal: TaskState) -> None:
    assert ALLOWED_TRANSITIONS[terminal] == set()

    task = _task()
    task.transition(TaskState.RUNNING)
    task.transition(terminal)
    for target in TaskState:
        with pytest.raises(IllegalTransitionError):
            task.transition(target)


def test_cancelled_task_reports_cancelled() -> None:
    task = _task()
    task.transition(TaskState.CANCELLED)
    assert task.is_cancelled
    assert not task.is_alive
