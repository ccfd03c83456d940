from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Union

from .errors import PatternMismatch
from .events import EVENT_TYPES, WILDCARD, Event, is_takeable

PatternItem = Union[str, type[Event]]
Pattern = Union[PatternItem, Sequence[PatternItem], None]


def _tag_of(item: PatternItem) -> str:
    if isinstance(item, str):
        if item not in EVENT_TYPES:
            raise PatternMismatch(f"Unknown event tag in pattern: {item!r}")
        return item
    if isinstance(item, type) and issubclass(item, Event):
        if EVENT_TYPES.get(item.type) is not item:
            raise PatternMismatch(f"Event class {item.__name__} is not registered")
        return item.type
    raise PatternMismatch(f"Unsupported pattern item: {item!r}")


def tags_of(pattern: Pattern) -> frozenset[str] | None:
    """Resolve a pattern to its tag set. ``None`` means wildcard."""

    if pattern is None or pattern == WILDCARD:
        return None
    if isinstance(pattern, (str, type)):
        return frozenset({_tag_of(pattern)})
    items = list(pattern)
    if WILDCARD in items:
        return None
    return frozenset(_tag_of(item) for item in items)


@dataclass(frozen=True, slots=True)
class CompiledPattern:
    """A validated pattern. Matching only ever compares tags."""

    tags: frozenset[str] | None

    @staticmethod
    def compile(pattern: Pattern) -> CompiledPattern:
        return CompiledPattern(tags=tags_of(pattern))

    @property
    def is_wildcard(self) -> bool:
        return self.tags is None

    def __call__(self, event: object) -> bool:
        if not is_takeable(event):
            return False
        assert isinstance(event, Event)
        return self.is_wildcard or event.tag in self.tags  # type: ignore[operator]

    def describe(self) -> str:
        if self.is_wildcard:
            return WILDCARD
        return ",".join(sorted(self.tags or ()))


def matches(pattern: Pattern, event: object) -> bool:
    """True iff the event's tag is in the pattern's tags (or the pattern is a wildcard)."""

    return CompiledPattern.compile(pattern)(event)
