"""Test configuration and fixtures."""

from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest

from visibility_saga.config import BridgeSettings
from visibility_saga.runtime import BridgeRuntime, build_runtime
from visibility_saga.saga.errors import TaskFailed
from visibility_saga.saga.scheduler import Scheduler
from visibility_saga.saga.task import Task
from visibility_saga.state import AppState, create_store
from visibility_saga.store import Store
from visibility_saga.visibility.source import PageVisibility


class FakeClock:
    """Manually advanced clock, in seconds."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def failures() -> list[tuple[Task, TaskFailed]]:
    """Root task failures collected instead of logged."""
    return []


@pytest.fixture
def store() -> Store[AppState]:
    return create_store()


@pytest.fixture
def scheduler(
    store: Store[AppState],
    clock: FakeClock,
    failures: list[tuple[Task, TaskFailed]],
) -> Scheduler:
    return Scheduler(store, clock=clock, on_error=lambda task, err: failures.append((task, err)))


@pytest.fixture
def settings() -> BridgeSettings:
    """Settings independent of the developer's environment and `.env`."""
    return BridgeSettings(
        _env_file=None,
        log_level="DEBUG",
        initial_visible=True,
        watch_on_start=True,
    )


@pytest.fixture
def page() -> PageVisibility:
    return PageVisibility("visible")


@pytest.fixture
def runtime(
    settings: BridgeSettings,
    page: PageVisibility,
    failures: list[tuple[Task, TaskFailed]],
) -> Iterator[BridgeRuntime]:
    rt = build_runtime(settings, page=page, on_error=lambda task, err: failures.append((task, err)))
    yield rt
    rt.shutdown()


@pytest.fixture
def restore_root_logging():
    """Undo `configure_logging` side effects on the root logger."""
    root = logging.getLogger()
    before = set(root.handlers)
    level = root.level
    yield
    # pytest re-attaches its own capture handlers per phase.
    for handler in list(root.handlers):
        if handler not in before:
            root.removeHandler(handler)
    root.setLevel(level)
