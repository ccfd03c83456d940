"""Visibility slice: state, events and reducer."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict

from visibility_saga.saga.events import AnyEvent, Event, register_event


class VisibilityState(BaseModel):
    model_config = ConfigDict(frozen=True)

    visible: bool = True


@register_event("visibility/setVisibility")
@dataclass(frozen=True, slots=True)
class SetVisibility(Event):
    payload: bool


@register_event("START_WATCHING_VISIBILITY")
@dataclass(frozen=True, slots=True)
class StartWatchingVisibility(Event):
    pass


@register_event("STOP_WATCHING_VISIBILITY")
@dataclass(frozen=True, slots=True)
class StopWatchingVisibility(Event):
    pass


def set_visibility(visible: bool) -> SetVisibility:
    return SetVisibility(payload=bool(visible))


def visibility_reducer(state: VisibilityState, event: AnyEvent) -> VisibilityState:
    if isinstance(event, SetVisibility) and event.payload != state.visible:
        return state.model_copy(update={"visible": event.payload})
    return state
