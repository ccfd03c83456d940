"""Closed event model.

Every event a task can `take` or `put` is a frozen dataclass deriving from
:class:`Event` and registered under a unique tag. The registry is the closed
mapping from tag to event type; anything outside it travels through the store
as a :class:`RawEvent` and is never offered to `take`.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, ClassVar, TypeVar

from .errors import PatternMismatch

WILDCARD = "*"

# Tags owned by a navigation/router subsystem. They may appear in the store's
# raw stream but are opaque to tasks.
ROUTER_TAG_PREFIX = "@@router/"


@dataclass(frozen=True, slots=True)
class Event:
    """A typed event. Subclasses declare their payload as a dataclass field."""

    type: ClassVar[str] = ""

    @property
    def tag(self) -> str:
        return type(self).type


@dataclass(frozen=True, slots=True)
class RawEvent:
    """An event outside the registered mapping (e.g. router events)."""

    type: str
    payload: Any = None


AnyEvent = Event | RawEvent

EventT = TypeVar("EventT", bound=Event)

EVENT_TYPES: dict[str, type[Event]] = {}


def is_reserved_tag(tag: str) -> bool:
    return tag.startswith(ROUTER_TAG_PREFIX)


def register_event(tag: str) -> Callable[[type[EventT]], type[EventT]]:
    """Class decorator adding an event type to the closed mapping.

    Apply it outside ``@dataclass`` so the registered class is the final one.
    """

    if not tag or tag == WILDCARD:
        raise ValueError(f"Invalid event tag: {tag!r}")
    if is_reserved_tag(tag):
        raise ValueError(f"Event tag {tag!r} is reserved for the router")

    def decorate(cls: type[EventT]) -> type[EventT]:
        existing = EVENT_TYPES.get(tag)
        if existing is not None and existing is not cls:
            raise ValueError(f"Event tag {tag!r} already registered by {existing.__name__}")
        cls.type = tag
        EVENT_TYPES[tag] = cls
        return cls

    return decorate


def event_tag(event: object) -> str | None:
    tag = getattr(event, "type", None)
    return tag if isinstance(tag, str) else None


def is_takeable(event: object) -> bool:
    """True when `event` belongs to the closed mapping and is not reserved."""

    if not isinstance(event, Event):
        return False
    tag = event.tag
    return EVENT_TYPES.get(tag) is type(event) and not is_reserved_tag(tag)


def ensure_registered(event: object) -> Event:
    """Return `event` unchanged, or raise if it is outside the closed mapping."""

    if not is_takeable(event):
        raise PatternMismatch(f"Event {event!r} is not a registered event type")
    assert isinstance(event, Event)
    return event
