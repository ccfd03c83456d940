"""Typed effect primitives.

Sagas are generator functions. Each primitive returns a small generator that
yields one effect description to the scheduler and returns whatever the
scheduler sends back, so call sites read::

    event = yield from take(SetVisibility)   # narrowed to SetVisibility
    yield from put(set_visibility(False))

The pattern passed to `take` (and to the recurring helpers) determines the
static type of the event handed back. Event classes narrow exactly, tuples of
classes narrow to their union, and tag strings or the wildcard give `Event`.
"""

from __future__ import annotations

from collections.abc import Callable, Generator, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeVar, overload

from .channels import Channel
from .events import Event, EventT, ensure_registered
from .patterns import CompiledPattern, Pattern

if TYPE_CHECKING:
    from .task import Task

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True, slots=True)
class Effect:
    """Instruction yielded by a saga to the scheduler."""


Saga = Generator[Effect, Any, T]


@dataclass(frozen=True, slots=True)
class TakeEffect(Effect):
    pattern: CompiledPattern | None = None
    channel: Channel[Any] | None = None


@dataclass(frozen=True, slots=True)
class PutEffect(Effect):
    event: Event
    resolve: bool = False


@dataclass(frozen=True, slots=True)
class ForkEffect(Effect):
    fn: Callable[..., Any]
    args: tuple[Any, ...] = ()
    name: str | None = None


@dataclass(frozen=True, slots=True)
class CallEffect(Effect):
    fn: Callable[..., Any]
    args: tuple[Any, ...] = ()
    kwargs: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class CancelEffect(Effect):
    task: Task | None = None


@dataclass(frozen=True, slots=True)
class CleanupEffect(Effect):
    action: Callable[[], Any]


@dataclass(frozen=True, slots=True)
class SelectEffect(Effect):
    selector: Callable[[Any], Any] | None = None


@dataclass(frozen=True, slots=True)
class ActionChannelEffect(Effect):
    pattern: CompiledPattern
    buffer_size: int | None = None


@dataclass(frozen=True, slots=True)
class NowEffect(Effect):
    pass


def _perform(effect: Effect) -> Generator[Effect, Any, Any]:
    result = yield effect
    return result


@overload
def take(pattern: Channel[T]) -> Saga[T]: ...


@overload
def take(pattern: type[EventT]) -> Saga[EventT]: ...


@overload
def take(pattern: tuple[type[EventT], ...]) -> Saga[EventT]: ...


@overload
def take(pattern: str | Sequence[str] | None = None) -> Saga[Event]: ...


def take(pattern: Pattern | Channel[Any] = None) -> Saga[Any]:
    """Suspend until a matching store event arrives, or the channel yields.

    Raises:
        ChannelClosed: taking from a channel that is, or becomes, closed and empty.
        PatternMismatch: the pattern names an unregistered tag.
    """

    if isinstance(pattern, Channel):
        return _perform(TakeEffect(channel=pattern))
    return _perform(TakeEffect(pattern=CompiledPattern.compile(pattern)))


def put(event: EventT) -> Saga[EventT]:
    """Dispatch `event` to the store without waiting for it to be processed."""

    return _perform(PutEffect(event=ensure_registered(event)))


def put_resolve(event: EventT) -> Saga[EventT]:
    """Dispatch `event` and resume once reducers and store listeners have run."""

    return _perform(PutEffect(event=ensure_registered(event), resolve=True))


def fork(fn: Callable[..., Any], *args: Any, name: str | None = None) -> Saga[Task]:
    """Start `fn(*args)` as an attached child task and return it immediately."""

    return _perform(ForkEffect(fn=fn, args=args, name=name))


def call(fn: Callable[..., R], *args: Any, **kwargs: Any) -> Saga[R]:
    """Call a plain function; its result is returned and its errors raised in place."""

    return _perform(CallEffect(fn=fn, args=args, kwargs=kwargs))


def cancel(task: Task | None = None) -> Saga[None]:
    """Cancel `task` (or the calling task when omitted)."""

    return _perform(CancelEffect(task=task))


def cleanup(action: Callable[[], Any]) -> Saga[None]:
    """Register `action` on the calling task's cleanup stack.

    Cleanup actions run once, newest first, however the task exits.
    """

    return _perform(CleanupEffect(action=action))


def select(selector: Callable[[Any], R] | None = None) -> Saga[Any]:
    return _perform(SelectEffect(selector=selector))


def now() -> Saga[float]:
    """Current time in seconds from the scheduler's clock."""

    return _perform(NowEffect())


@overload
def action_channel(
    pattern: type[EventT], buffer_size: int | None = None
) -> Saga[Channel[EventT]]: ...


@overload
def action_channel(
    pattern: tuple[type[EventT], ...], buffer_size: int | None = None
) -> Saga[Channel[EventT]]: ...


@overload
def action_channel(
    pattern: str | Sequence[str] | None, buffer_size: int | None = None
) -> Saga[Channel[Event]]: ...


def action_channel(pattern: Pattern, buffer_size: int | None = None) -> Saga[Channel[Any]]:
    """Buffer every future matching store event into a private channel.

    The channel is closed when the calling task exits.
    """

    return _perform(
        ActionChannelEffect(pattern=CompiledPattern.compile(pattern), buffer_size=buffer_size)
    )


# Recurring dispatch helpers. Each forks a watcher and returns it without
# blocking; the watcher keeps its parent alive until cancelled.


def _every_watcher(pattern: CompiledPattern, worker: Callable[[Any], Any]) -> Saga[None]:
    while True:
        event = yield from _perform(TakeEffect(pattern=pattern))
        yield from fork(worker, event)


def _latest_watcher(pattern: CompiledPattern, worker: Callable[[Any], Any]) -> Saga[None]:
    last: Task | None = None
    while True:
        event = yield from _perform(TakeEffect(pattern=pattern))
        if last is not None and last.is_alive:
            yield from cancel(last)
        last = yield from fork(worker, event)


def _throttle_watcher(
    ms: float, pattern: CompiledPattern, worker: Callable[[Any], Any]
) -> Saga[None]:
    window = ms / 1000.0
    last_spawn: float | None = None
    while True:
        event = yield from _perform(TakeEffect(pattern=pattern))
        at = yield from now()
        if last_spawn is not None and at - last_spawn < window:
            continue
        last_spawn = at
        yield from fork(worker, event)


@overload
def take_every(pattern: type[EventT], worker: Callable[[EventT], Any]) -> Saga[Task]: ...


@overload
def take_every(
    pattern: tuple[type[EventT], ...], worker: Callable[[EventT], Any]
) -> Saga[Task]: ...


@overload
def take_every(pattern: str | Sequence[str] | None, worker: Callable[[Event], Any]) -> Saga[Task]: ...


def take_every(pattern: Pattern, worker: Callable[[Any], Any]) -> Saga[Task]:
    """Spawn `worker(event)` for every matching event; workers run independently."""

    compiled = CompiledPattern.compile(pattern)
    return fork(_every_watcher, compiled, worker, name=f"take_every({compiled.describe()})")


@overload
def take_latest(pattern: type[EventT], worker: Callable[[EventT], Any]) -> Saga[Task]: ...


@overload
def take_latest(
    pattern: tuple[type[EventT], ...], worker: Callable[[EventT], Any]
) -> Saga[Task]: ...


@overload
def take_latest(pattern: str | Sequence[str] | None, worker: Callable[[Event], Any]) -> Saga[Task]: ...


def take_latest(pattern: Pattern, worker: Callable[[Any], Any]) -> Saga[Task]:
    """Spawn `worker(event)` per match, cancelling the previous worker if still alive."""

    compiled = CompiledPattern.compile(pattern)
    return fork(_latest_watcher, compiled, worker, name=f"take_latest({compiled.describe()})")


@overload
def throttle(ms: float, pattern: type[EventT], worker: Callable[[EventT], Any]) -> Saga[Task]: ...


@overload
def throttle(
    ms: float, pattern: tuple[type[EventT], ...], worker: Callable[[EventT], Any]
) -> Saga[Task]: ...


@overload
def throttle(
    ms: float, pattern: str | Sequence[str] | None, worker: Callable[[Event], Any]
) -> Saga[Task]: ...


def throttle(ms: float, pattern: Pattern, worker: Callable[[Any], Any]) -> Saga[Task]:
    """Spawn `worker(event)` for a match, then drop matches for `ms` milliseconds."""

    if ms < 0:
        raise ValueError("ms must not be negative")
    compiled = CompiledPattern.compile(pattern)
    return fork(_throttle_watcher, ms, compiled, worker, name=f"throttle({compiled.describe()})")
