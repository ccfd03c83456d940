"""Page visibility tracking built on the saga runtime."""

from visibility_saga.visibility.bridge import (
    create_visibility_channel,
    visibility_saga,
    watch_visibility_change,
)
from visibility_saga.visibility.slice import (
    SetVisibility,
    StartWatchingVisibility,
    StopWatchingVisibility,
    VisibilityState,
    set_visibility,
    visibility_reducer,
)
from visibility_saga.visibility.source import PageVisibility, VisibilitySource

__all__ = [
    "PageVisibility",
    "SetVisibility",
    "StartWatchingVisibility",
    "StopWatchingVisibility",
    "VisibilitySource",
    "VisibilityState",
    "create_visibility_channel",
    "set_visibility",
    "visibility_reducer",
    "visibility_saga",
    "watch_visibility_change",
]
