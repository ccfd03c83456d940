"""Cooperative task scheduler.

The scheduler keeps an arena of task records and a ready queue. Exactly one
task runs at a time; it runs until it yields an effect that has to wait
(`take`, `put_resolve`) and every other effect is resolved in place.

A store event is matched against the takes pending at the moment it is
dispatched; a take registered afterwards never sees it. Matched tasks are
queued on the ready queue and stepped once the current step returns. Waiting
takes are woken in the order they started waiting.

All public entry points serialize on the store's lock.
"""

from __future__ import annotations

import functools
import inspect
import itertools
import logging
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .channels import END, Channel
from .effects import (
    ActionChannelEffect,
    CallEffect,
    CancelEffect,
    CleanupEffect,
    Effect,
    ForkEffect,
    NowEffect,
    PutEffect,
    SelectEffect,
    TakeEffect,
)
from .errors import ChannelClosed, TaskFailed
from .events import AnyEvent, Event, is_takeable
from .patterns import CompiledPattern
from .task import Task, TaskState

if TYPE_CHECKING:
    from visibility_saga.store import Store

logger = logging.getLogger(__name__)

ErrorReporter = Callable[[Task, TaskFailed], None]


class _Suspend:
    pass


_SUSPEND = _Suspend()


@dataclass(eq=False, slots=True)
class _StoreTaker:
    task: Task
    pattern: CompiledPattern
    # Store sequence number when the take started; older events are not offered.
    since: int


@dataclass(eq=False, slots=True)
class _Feed:
    pattern: CompiledPattern
    channel: Channel[Any]
    since: int


def _report_root_failure(task: Task, failure: TaskFailed) -> None:
    logger.error(
        "Root task failed",
        exc_info=(type(failure.error), failure.error, failure.error.__traceback__),
        extra={"task": task.name, "task_id": task.id},
    )


class Scheduler:
    def __init__(
        self,
        store: Store[Any],
        *,
        clock: Callable[[], float] = time.monotonic,
        on_error: ErrorReporter | None = None,
    ) -> None:
        self._store = store
        self._lock = store.lock
        self._clock = clock
        self._on_error = on_error or _report_root_failure

        self._ids = itertools.count(1)
        self._tasks: dict[int, Task] = {}
        self._ready: deque[tuple[Task, Any, BaseException | None]] = deque()
        self._takers: list[_StoreTaker] = []
        self._feeds: list[_Feed] = []
        self._draining = False

        self._detach = store.subscribe(self._on_store_event)

    @property
    def tasks(self) -> list[Task]:
        """Tasks that have not reached a terminal state."""

        return list(self._tasks.values())

    def run(self, saga: Callable[..., Any], *args: Any, name: str | None = None) -> Task:
        """Start `saga(*args)` as a root task.

        A root task's failure goes to the error reporter instead of a parent.
        """

        with self._lock:
            task = self._spawn(saga, args, parent=None, name=name)
            self._drain()
        return task

    def cancel(self, task: Task) -> None:
        with self._lock:
            self._cancel(task)
            self._drain()

    def close(self) -> None:
        """Cancel every root task and stop listening to the store."""

        with self._lock:
            for task in [t for t in self._tasks.values() if t.parent is None]:
                self._cancel(task)
            self._drain()
            self._detach()

    # -- store -> scheduler ------------------------------------------------

    def _on_store_event(self, event: AnyEvent, _state: Any) -> None:
        if not is_takeable(event):
            # Raw and router events stay in the store's stream only.
            return
        assert isinstance(event, Event)
        with self._lock:
            # Feeding a channel can wake its taker; hold stepping until every
            # take pending at dispatch time has been matched.
            draining, self._draining = self._draining, True
            try:
                self._deliver(event)
            finally:
                self._draining = draining
            self._drain()

    def _deliver(self, event: Event) -> None:
        seq = self._store.processing
        for taker in list(self._takers):
            if seq > taker.since and taker.pattern(event):
                self._takers.remove(taker)
                taker.task.release_wait = None
                self._ready.append((taker.task, event, None))

        for feed in list(self._feeds):
            if feed.channel.closed:
                self._feeds.remove(feed)
            elif seq > feed.since and feed.pattern(event):
                feed.channel.put(event)

    # -- run loop ----------------------------------------------------------

    def _schedule(self, task: Task, value: Any = None, exc: BaseException | None = None) -> None:
        with self._lock:
            self._ready.append((task, value, exc))
            self._drain()

    def _drain(self) -> None:
        if self._draining:
            return
        self._draining = True
        try:
            while self._ready:
                task, value, exc = self._ready.popleft()
                self._step(task, value, exc)
        finally:
            self._draining = False

    def _spawn(
        self,
        fn: Callable[..., Any],
        args: tuple[Any, ...],
        *,
        parent: Task | None,
        name: str | None,
    ) -> Task:
        task = Task(
            id=next(self._ids),
            name=name or getattr(fn, "__name__", "task"),
            entry=functools.partial(fn, *args),
            parent=parent,
        )
        self._tasks[task.id] = task
        if parent is not None:
            parent.children.append(task)
        self._ready.append((task, None, None))
        logger.debug("Task spawned", extra={"task": task.name, "task_id": task.id})
        return task

    def _step(self, task: Task, value: Any, exc: BaseException | None) -> None:
        # Wake-ups for tasks cancelled after being queued are dropped here.
        if task.state not in (TaskState.READY, TaskState.SUSPENDED) or task.body_done:
            return
        task.release_wait = None
        task.transition(TaskState.RUNNING)

        if task.body is None:
            entry, task.entry = task.entry, None
            assert entry is not None
            try:
                started = entry()
            except Exception as e:
                self._abort(task, e)
                return
            if not inspect.isgenerator(started):
                self._complete_body(task, started)
                return
            task.body = started

        body = task.body
        while True:
            if task.pending_error is not None:
                self._abort(task, task.pending_error)
                return
            if task.cancel_requested:
                self._cancel(task, force=True)
                return

            try:
                effect = body.send(value) if exc is None else body.throw(exc)
            except StopIteration as stop:
                self._complete_body(task, stop.value)
                return
            except Exception as e:
                self._abort(task, e)
                return

            value, exc = None, None
            try:
                outcome = self._run_effect(task, effect)
            except Exception as e:
                exc = e
                continue
            if outcome is _SUSPEND:
                return
            value = outcome

    # -- effects -----------------------------------------------------------

    def _run_effect(self, task: Task, effect: Any) -> Any:
        if not isinstance(effect, Effect):
            raise TypeError(f"Task {task.name} yielded {effect!r}; sagas must yield effects")

        if isinstance(effect, TakeEffect):
            task.transition(TaskState.SUSPENDED)
            if effect.channel is not None:
                self._take_channel(task, effect.channel)
            else:
                assert effect.pattern is not None
                self._take_store(task, effect.pattern)
            return _SUSPEND

        if isinstance(effect, PutEffect):
            if not effect.resolve:
                self._store.dispatch(effect.event)
                return effect.event
            task.transition(TaskState.SUSPENDED)
            try:
                self._store.dispatch(effect.event, on_done=lambda ev: self._schedule(task, ev))
            except Exception:
                task.transition(TaskState.RUNNING)
                raise
            return _SUSPEND

        if isinstance(effect, ForkEffect):
            return self._spawn(effect.fn, effect.args, parent=task, name=effect.name)

        if isinstance(effect, CallEffect):
            result = effect.fn(*effect.args, **effect.kwargs)
            if inspect.isgenerator(result):
                result.close()
                raise TypeError("call() runs plain functions; use 'yield from' for sagas")
            return result

        if isinstance(effect, CancelEffect):
            target = effect.task or task
            if target is task:
                task.cancel_requested = True
            else:
                self._cancel(target)
            return None

        if isinstance(effect, CleanupEffect):
            task.cleanups.append(effect.action)
            return None

        if isinstance(effect, SelectEffect):
            state = self._store.get_state()
            return state if effect.selector is None else effect.selector(state)

        if isinstance(effect, ActionChannelEffect):
            channel: Channel[Any] = Channel(
                name=f"action_channel({effect.pattern.describe()})",
                buffer_size=effect.buffer_size,
            )
            self._feeds.append(
                _Feed(pattern=effect.pattern, channel=channel, since=self._store.dispatched)
            )
            task.cleanups.append(channel.close)
            return channel

        if isinstance(effect, NowEffect):
            return self._clock()

        raise TypeError(f"Unsupported effect: {effect!r}")

    def _take_store(self, task: Task, pattern: CompiledPattern) -> None:
        taker = _StoreTaker(task=task, pattern=pattern, since=self._store.dispatched)
        self._takers.append(taker)

        def release() -> None:
            if taker in self._takers:
                self._takers.remove(taker)

        task.release_wait = release

    def _take_channel(self, task: Task, channel: Channel[Any]) -> None:
        def wake(message: Any) -> None:
            if message is END:
                self._schedule(task, exc=ChannelClosed(channel.name))
            else:
                self._schedule(task, message)

        task.release_wait = channel.take(wake)

    # -- termination -------------------------------------------------------

    def _complete_body(self, task: Task, result: Any) -> None:
        task.result = result
        task.body_done = True
        if any(child.is_alive for child in task.children):
            # Attached children keep the task open.
            task.transition(TaskState.SUSPENDED)
            return
        self._finish(task, TaskState.COMPLETED)

    def _cancel(self, task: Task, *, force: bool = False) -> None:
        if not task.is_alive or task.unwinding:
            return
        if task.state is TaskState.RUNNING and not force:
            # Takes effect at the task's next suspension point.
            task.cancel_requested = True
            return

        task.unwinding = True
        for child in list(task.children):
            self._cancel(child)
        if any(child.is_alive for child in task.children):
            # A child is mid-step; retried when it finishes.
            task.unwinding = False
            task.cancel_requested = True
            return
        self._finish(task, TaskState.CANCELLED)

    def _abort(self, task: Task, error: BaseException) -> None:
        task.unwinding = True
        task.error = error
        for child in list(task.children):
            self._cancel(child)
        self._finish(task, TaskState.FAILED)

    def _finish(self, task: Task, state: TaskState) -> None:
        if task.release_wait is not None:
            task.release_wait()
            task.release_wait = None

        cleanup_errors: list[BaseException] = []
        if task.body is not None:
            try:
                task.body.close()
            except Exception as e:
                logger.exception("Task body failed while unwinding", extra={"task": task.name})
                cleanup_errors.append(e)
        while task.cleanups:
            action = task.cleanups.pop()
            try:
                action()
            except Exception as e:
                logger.exception("Cleanup action failed", extra={"task": task.name})
                cleanup_errors.append(e)

        if state is TaskState.COMPLETED and cleanup_errors:
            state = TaskState.FAILED
            task.error = cleanup_errors.pop(0)

        task.transition(state)
        self._tasks.pop(task.id, None)
        logger.debug(
            "Task finished",
            extra={"task": task.name, "task_id": task.id, "state": state.value},
        )

        parent = task.parent
        if state is TaskState.FAILED:
            assert task.error is not None
            failure = TaskFailed(task, task.error, cleanup_errors)
            if parent is None:
                self._on_error(task, failure)
            elif parent.is_alive and not parent.unwinding:
                if parent.state is TaskState.RUNNING:
                    parent.pending_error = failure
                else:
                    self._abort(parent, failure)

        if parent is not None:
            if task in parent.children:
                parent.children.remove(task)
            self._child_finished(parent)

    def _child_finished(self, parent: Task) -> None:
        if not parent.is_alive or parent.unwinding:
            return
        if parent.state is TaskState.RUNNING:
            return
        if any(child.is_alive for child in parent.children):
            return
        if parent.cancel_requested:
            self._cancel(parent)
        elif parent.body_done:
            self._finish(parent, TaskState.COMPLETED)
