"""Process wiring: store, scheduler, visibility signal and the root saga."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from visibility_saga.config import BridgeSettings
from visibility_saga.saga.scheduler import ErrorReporter, Scheduler
from visibility_saga.saga.task import Task
from visibility_saga.state import AppState, create_store
from visibility_saga.store import Store
from visibility_saga.visibility.bridge import visibility_saga
from visibility_saga.visibility.listeners import log_visibility_changes
from visibility_saga.visibility.slice import StartWatchingVisibility, StopWatchingVisibility
from visibility_saga.visibility.source import PageVisibility, VisibilityValue

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class BridgeRuntime:
    store: Store[AppState]
    scheduler: Scheduler
    page: PageVisibility
    root: Task

    @property
    def state(self) -> AppState:
        return self.store.get_state()

    def start_watching(self) -> None:
        self.store.dispatch(StartWatchingVisibility())

    def stop_watching(self) -> None:
        self.store.dispatch(StopWatchingVisibility())

    def report(self, state: VisibilityValue) -> bool:
        return self.page.report(state)

    def shutdown(self) -> None:
        logger.info("Shutting down visibility runtime")
        self.scheduler.close()
        # The page outlives the runtime only as a dead signal.
        self.page.detach()


def build_runtime(
    settings: BridgeSettings | None = None,
    *,
    page: PageVisibility | None = None,
    clock: Callable[[], float] | None = None,
    on_error: ErrorReporter | None = None,
) -> BridgeRuntime:
    settings = settings or BridgeSettings()

    store = create_store(
        initial_visible=settings.initial_visible,
        history_limit=settings.state_history_limit,
    )
    store.subscribe(log_visibility_changes)

    if clock is None:
        scheduler = Scheduler(store, on_error=on_error)
    else:
        scheduler = Scheduler(store, clock=clock, on_error=on_error)

    if page is None:
        page = PageVisibility("visible" if settings.initial_visible else "hidden")

    root = scheduler.run(visibility_saga, page, name="visibility_saga")
    runtime = BridgeRuntime(store=store, scheduler=scheduler, page=page, root=root)

    if settings.watch_on_start:
        runtime.start_watching()
    return runtime
