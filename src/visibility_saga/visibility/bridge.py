"""Visibility bridge: page visibility signal -> `SetVisibility` events.

`visibility_saga` is the root saga. Each `StartWatchingVisibility` (re)starts
the watcher through `take_latest`, so a restart cancels the running watcher
before a new one subscribes. `StopWatchingVisibility` cancels it without
starting a new one.
"""

from __future__ import annotations

import logging
from typing import Any

from visibility_saga.saga.channels import EventChannel, event_channel
from visibility_saga.saga.effects import Saga, call, cleanup, put, take, take_latest
from visibility_saga.saga.errors import ChannelClosed, SourceUnavailable

from .slice import StartWatchingVisibility, StopWatchingVisibility, set_visibility
from .source import VisibilitySource

logger = logging.getLogger(__name__)


def create_visibility_channel(source: VisibilitySource) -> EventChannel[bool]:
    def subscribe(emit: Any) -> Any:
        def handler() -> None:
            emit(source.visibility_state == "visible")

        source.add_listener(handler)
        return lambda: source.remove_listener(handler)

    return event_channel(subscribe, name="page_visibility")


def watch_visibility_change(source: VisibilitySource) -> Saga[None]:
    try:
        channel = yield from call(create_visibility_channel, source)
    except SourceUnavailable:
        logger.error("Visibility source unavailable; visibility updates disabled", exc_info=True)
        return

    # Released on every exit path, including cancellation.
    yield from cleanup(channel.close)

    logger.info("Watching page visibility")
    while True:
        try:
            visible = yield from take(channel)
        except ChannelClosed:
            logger.info("Visibility channel closed; watcher stopping")
            return
        logger.info("Visibility changed", extra={"visible": visible})
        yield from put(set_visibility(visible))


def visibility_saga(source: VisibilitySource) -> Saga[None]:
    def on_watch_request(event: StartWatchingVisibility | StopWatchingVisibility) -> Any:
        if isinstance(event, StopWatchingVisibility):
            logger.info("Stopped watching page visibility")
            return None
        return watch_visibility_change(source)

    yield from take_latest((StartWatchingVisibility, StopWatchingVisibility), on_watch_request)
