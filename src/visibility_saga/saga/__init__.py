"""Typed cooperative saga runtime.

This package provides:
- a closed, typed event model and tag-based pattern matching
- channels, including an adapter over external push sources
- effect primitives (take / put / put_resolve / take_every / take_latest /
  throttle / action_channel and friends)
- a single-threaded cooperative scheduler with explicit task states

Sagas are generator functions that `yield from` effects. The scheduler drives
them; the store is the only shared state.
"""

from .channels import END, Channel, EventChannel, event_channel
from .effects import (
    Saga,
    action_channel,
    call,
    cancel,
    cleanup,
    fork,
    now,
    put,
    put_resolve,
    select,
    take,
    take_every,
    take_latest,
    throttle,
)
from .errors import ChannelClosed, PatternMismatch, SagaError, SourceUnavailable, TaskFailed
from .events import EVENT_TYPES, ROUTER_TAG_PREFIX, WILDCARD, Event, RawEvent, register_event
from .patterns import matches, tags_of
from .scheduler import Scheduler
from .task import IllegalTransitionError, Task, TaskState

__all__ = [
    "END",
    "EVENT_TYPES",
    "ROUTER_TAG_PREFIX",
    "WILDCARD",
    "Channel",
    "ChannelClosed",
    "Event",
    "EventChannel",
    "IllegalTransitionError",
    "PatternMismatch",
    "RawEvent",
    "Saga",
    "SagaError",
    "Scheduler",
    "SourceUnavailable",
    "Task",
    "TaskFailed",
    "TaskState",
    "action_channel",
    "call",
    "cancel",
    "cleanup",
    "event_channel",
    "fork",
    "matches",
    "now",
    "put",
    "put_resolve",
    "register_event",
    "select",
    "tags_of",
    "take",
    "take_every",
    "take_latest",
    "throttle",
]
