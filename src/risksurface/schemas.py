"""Pydantic models for the backend's JSON envelopes.

Only the envelopes are modelled here.  Node, link, commit and hotspot records
stay as raw dicts so the metrics engine can report a malformed record as
unavailable instead of failing the whole section.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

_CAMEL = {"populate_by_name": True, "extra": "allow"}


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

class ProjectRef(BaseModel):
    full_name: str = Field(..., alias="fullName", min_length=1)

    model_config = _CAMEL


class ProjectEntry(BaseModel):
    full_name: str = Field(..., alias="fullName", min_length=3)
    analysis_state: str = Field(default="unanalyzed", alias="analysisState")
    description: str | None = None
    language: str | None = None
    default_branch: str | None = Field(default=None, alias="defaultBranch")

    model_config = _CAMEL


class SelectedProjectEnvelope(BaseModel):
    selected: bool = False
    project: ProjectRef | None = None
    analysis: dict[str, Any] = Field(default_factory=dict)

    model_config = _CAMEL


class SelectProjectBody(BaseModel):
    full_name: str = Field(..., alias="fullName", min_length=3)

    model_config = _CAMEL


class AnalyzeResponse(BaseModel):
    success: bool
    error: str | None = None
    message: str | None = None

    model_config = _CAMEL


# ---------------------------------------------------------------------------
# Section payloads
# ---------------------------------------------------------------------------

class SectionPayload(BaseModel):
    """Common shape: availability flag plus the embedded project identity."""

    available: bool = True
    reason: str | None = None
    project: ProjectRef | None = None

    model_config = _CAMEL


class DependencyAnalysis(SectionPayload):
    nodes: list[dict[str, Any]] = Field(default_factory=list)
    links: list[dict[str, Any]] = Field(default_factory=list)
    edges: list[dict[str, Any]] = Field(default_factory=list)

    def all_links(self) -> list[dict[str, Any]]:
        return self.links or self.edges


class TrajectoryAnalysis(SectionPayload):
    points: list[dict[str, Any]] = Field(default_factory=list)


class TemporalAnalysis(SectionPayload):
    baseline_found: bool = Field(default=False, alias="baselineFound")
    median_frequency: float | None = Field(default=None, alias="medianFrequency")
    temporal_hotspots: list[dict[str, Any]] = Field(default_factory=list, alias="temporalHotspots")
    window_days: int | None = Field(default=None, alias="windowDays")
