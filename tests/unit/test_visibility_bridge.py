"""End-to-end tests: page visibility reports -> saga -> store."""

from __future__ import annotations

import logging

import pytest

from visibility_saga.runtime import build_runtime
from visibility_saga.saga.errors import SourceUnavailable
from visibility_saga.visibility.bridge import create_visibility_channel
from visibility_saga.visibility.source import PageVisibility, SourceDetachedError


def _visible_history(runtime) -> list[bool]:
    return [s.visibility.visible for s in runtime.store.history]


def test_reports_become_store_updates(runtime, page, failures) -> None:
    assert page.listener_count == 1

    runtime.report("hidden")
    runtime.report("visible")

    assert _visible_history(runtime) == [True, False, True]
    assert runtime.state.visibility.visible is True
    assert failures == []


def test_repeated_reports_do_not_dispatch(runtime) -> None:
    assert runtime.report("hidden") is True
    assert runtime.report("hidden") is False

    assert _visible_history(runtime) == [True, False]


def test_stop_watching_releases_the_listener(runtime, page) -> None:
    runtime.stop_watching()

    assert page.listener_count == 0

    runtime.report("hidden")
    assert runtime.state.visibility.visible is True
    assert _visible_history(runtime) == [True]


def test_restart_keeps_a_single_listener(runtime, page) -> None:
    runtime.start_watching()
    runtime.start_watching()

    assert page.listener_count == 1

    runtime.report("hidden")
    assert _visible_history(runtime) == [True, False]


def test_watching_resumes_after_stop(runtime, page) -> None:
    runtime.stop_watching()
    runtime.report("hidden")
    runtime.start_watching()
    runtime.report("visible")

    assert page.listener_count == 1
    assert _visible_history(runtime) == [True]

    runtime.report("hidden")
    assert _visible_history(runtime) == [True, False]


def test_shutdown_unsubscribes(runtime, page) -> None:
    runtime.shutdown()

    assert page.listener_count == 0
    assert runtime.root.is_cancelled
    assert runtime.scheduler.tasks == []
    with pytest.raises(SourceDetachedError):
        page.add_listener(lambda: None)
    assert runtime.report("hidden") is True
    assert _visible_history(runtime) == [True]


def test_unavailable_source_is_logged_once(settings, failures, caplog) -> None:
    page = PageVisibility("visible", available=False)

    with caplog.at_level(logging.ERROR):
        runtime = build_runtime(
            settings, page=page, on_error=lambda task, err: failures.append((task, err))
        )
        try:
            runtime.report("hidden")
        finally:
            runtime.shutdown()

    errors = [r for r in caplog.records if r.levelno >= logging.ERROR]
    assert len(errors) == 1
    assert errors[0].name == "visibility_saga.visibility.bridge"
    assert [s.visibility.visible for s in runtime.store.history] == [True]
    assert failures == []


def test_channel_creation_wraps_source_errors() -> None:
    page = PageVisibility(available=False)

    with pytest.raises(SourceUnavailable) as exc_info:
        create_visibility_channel(page)

    assert isinstance(exc_info.value.__cause__, SourceDetachedError)


def test_channel_emits_the_state_at_report_time() -> None:
    page = PageVisibility("visible")
    channel = create_visibility_channel(page)

    page.report("hidden")
    page.report("visible")
    channel.close()

    received: list[object] = []
    for _ in range(2):
        channel.take(received.append)
    assert received == [False, True]
    assert page.listener_count == 0


def test_applied_updates_are_logged(runtime, caplog) -> None:
    with caplog.at_level(logging.INFO, logger="visibility_saga.visibility.listeners"):
        runtime.report("hidden")

    assert "Visibility state updated" in caplog.text


def test_page_rejects_unknown_states() -> None:
    with pytest.raises(ValueError):
        PageVisibility("prerender")  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        PageVisibility().report("prerender")  # type: ignore[arg-type]
