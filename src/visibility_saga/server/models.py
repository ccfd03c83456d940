"""Pydantic models for the REST server."""

from __future__ import annotations

from pydantic import BaseModel, Field

from visibility_saga.visibility.source import VisibilityValue


class HealthResponse(BaseModel):
    status: str
    version: str
    watching: bool


class VisibilityView(BaseModel):
    visible: bool
    page_state: VisibilityValue


class VisibilityReport(BaseModel):
    state: VisibilityValue


class VisibilityReportResult(BaseModel):
    changed: bool
    visible: bool


class VisibilityHistory(BaseModel):
    states: list[bool] = Field(default_factory=list)
