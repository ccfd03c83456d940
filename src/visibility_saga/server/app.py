"""FastAPI app factory.

Endpoints are thin wrappers over a :class:`BridgeRuntime`. The page reports
visibility changes here; the bridge turns them into store updates.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from visibility_saga import __version__
from visibility_saga.config import BridgeSettings
from visibility_saga.runtime import BridgeRuntime, build_runtime
from visibility_saga.server.models import (
    HealthResponse,
    VisibilityHistory,
    VisibilityReport,
    VisibilityReportResult,
    VisibilityView,
)

logger = logging.getLogger(__name__)


def create_app(
    settings: BridgeSettings | None = None,
    runtime: BridgeRuntime | None = None,
) -> FastAPI:
    settings = settings or BridgeSettings()
    runtime = runtime or build_runtime(settings)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        runtime.shutdown()

    app = FastAPI(
        title="Visibility Saga",
        version=__version__,
        description="Page visibility tracking over a cooperative saga runtime.",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.runtime = runtime

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.parsed_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def _view() -> VisibilityView:
        return VisibilityView(
            visible=runtime.state.visibility.visible,
            page_state=runtime.page.visibility_state,
        )

    @app.get("/api/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(
            status="ok",
            version=__version__,
            watching=runtime.page.listener_count > 0,
        )

    @app.get("/api/visibility", response_model=VisibilityView)
    def get_visibility() -> VisibilityView:
        return _view()

    @app.post("/api/visibility", response_model=VisibilityReportResult)
    def report_visibility(report: VisibilityReport) -> VisibilityReportResult:
        changed = runtime.report(report.state)
        logger.debug("Visibility report received", extra={"state": report.state, "changed": changed})
        return VisibilityReportResult(
            changed=changed,
            visible=runtime.state.visibility.visible,
        )

    @app.get("/api/visibility/history", response_model=VisibilityHistory)
    def visibility_history() -> VisibilityHistory:
        return VisibilityHistory(states=[s.visibility.visible for s in runtime.store.history])

    @app.post("/api/watch/start", response_model=VisibilityView)
    def start_watching() -> VisibilityView:
        runtime.start_watching()
        return _view()

    @app.post("/api/watch/stop", response_model=VisibilityView)
    def stop_watching() -> VisibilityView:
        runtime.stop_watching()
        return _view()

    return app
