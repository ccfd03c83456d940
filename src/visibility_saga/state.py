"""Application state and the combined reducer."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from visibility_saga.saga.events import AnyEvent
from visibility_saga.store import Store
from visibility_saga.visibility.slice import VisibilityState, visibility_reducer


class AppState(BaseModel):
    model_config = ConfigDict(frozen=True)

    visibility: VisibilityState = Field(default_factory=VisibilityState)


def root_reducer(state: AppState, event: AnyEvent) -> AppState:
    visibility = visibility_reducer(state.visibility, event)
    if visibility is state.visibility:
        return state
    return state.model_copy(update={"visibility": visibility})


def create_store(*, initial_visible: bool = True, history_limit: int = 100) -> Store[AppState]:
    initial = AppState(visibility=VisibilityState(visible=initial_visible))
    return Store(root_reducer, initial, history_limit=history_limit)
