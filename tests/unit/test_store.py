from __future__ import annotations

import logging

import pytest

from visibility_saga.saga.events import RawEvent
from visibility_saga.state import AppState, create_store, root_reducer
from visibility_saga.visibility.slice import (
    SetVisibility,
    StartWatchingVisibility,
    VisibilityState,
    set_visibility,
    visibility_reducer,
)


def test_reducer_only_reacts_to_set_visibility() -> None:
    state = VisibilityState(visible=True)

    assert visibility_reducer(state, set_visibility(False)).visible is False
    assert visibility_reducer(state, set_visibility(True)) is state
    assert visibility_reducer(state, StartWatchingVisibility()) is state
    assert visibility_reducer(state, RawEvent(type="@@router/LOCATION_CHANGE")) is state


def test_root_reducer_keeps_state_identity_when_nothing_changes() -> None:
    state = AppState()

    assert root_reducer(state, set_visibility(True)) is state
    assert root_reducer(state, set_visibility(False)).visibility.visible is False


def test_set_visibility_coerces_to_bool() -> None:
    assert set_visibility(0) == SetVisibility(payload=False)  # type: ignore[arg-type]


def test_history_records_distinct_states() -> None:
    store = create_store(initial_visible=False)
    for visible in (False, True, True, False):
        store.dispatch(set_visibility(visible))

    assert [s.visibility.visible for s in store.history] == [False, True, False]
    assert store.get_state().visibility.visible is False


def test_history_is_bounded() -> None:
    store = create_store(history_limit=2)
    for visible in (False, True, False):
        store.dispatch(set_visibility(visible))

    assert [s.visibility.visible for s in store.history] == [True, False]


def test_nested_dispatch_is_queued_until_listeners_finish() -> None:
    store = create_store()
    log: list[str] = []

    def listener_a(event, _state) -> None:
        log.append(f"A:{event.type}")
        if isinstance(event, StartWatchingVisibility):
            store.dispatch(set_visibility(False), on_done=lambda ev: log.append(f"done:{ev.type}"))

    def listener_b(event, _state) -> None:
        log.append(f"B:{event.type}")

    store.subscribe(listener_a)
    store.subscribe(listener_b)
    store.dispatch(StartWatchingVisibility())

    assert log == [
        "A:START_WATCHING_VISIBILITY",
        "B:START_WATCHING_VISIBILITY",
        "A:visibility/setVisibility",
        "B:visibility/setVisibility",
        "done:visibility/setVisibility",
    ]


def test_listener_errors_are_logged_and_do_not_stop_dispatch(caplog) -> None:
    store = create_store()
    seen: list[bool] = []

    def broken(_event, _state) -> None:
        raise RuntimeError("listener broke")

    store.subscribe(broken)
    store.subscribe(lambda _event, state: seen.append(state.visibility.visible))

    with caplog.at_level(logging.ERROR, logger="visibility_saga.store"):
        store.dispatch(set_visibility(False))

    assert seen == [False]
    assert "Store listener failed" in caplog.text


def test_unsubscribe_stops_notifications() -> None:
    store = create_store()
    seen: list[object] = []
    unsubscribe = store.subscribe(lambda event, _state: seen.append(event))

    unsubscribe()
    unsubscribe()
    store.dispatch(set_visibility(False))

    assert seen == []


def test_dispatch_requires_a_string_tag() -> None:
    store = create_store()
    with pytest.raises(TypeError):
        store.dispatch(object())  # type: ignore[arg-type]


def test_dispatch_calls_are_numbered_in_call_order() -> None:
    store = create_store()
    seen: list[tuple[str, int, int]] = []

    def listener(event, _state) -> None:
        seen.append((event.type, store.processing, store.dispatched))
        if isinstance(event, StartWatchingVisibility):
            store.dispatch(set_visibility(False))

    store.subscribe(listener)
    store.dispatch(StartWatchingVisibility())

    assert seen == [
        ("START_WATCHING_VISIBILITY", 1, 1),
        ("visibility/setVisibility", 2, 2),
    ]
