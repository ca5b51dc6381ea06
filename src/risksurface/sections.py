"""Analysis sections: fetch, verify project context, derive, gate, commit.

Each section loads as its own task.  A section's failure, whether transport,
context or derivation, ends in that section's view only; ``refresh_all``
runs every loader concurrently and none can block or cancel another.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from pydantic import ValidationError

from risksurface.context import ProjectContextValidator
from risksurface.coordinator import ProjectSelectionCoordinator, SelectionOutcome
from risksurface.defaults import SECTION_ENDPOINTS, SELECTED_PROJECT_ENDPOINT
from risksurface.errors import InsufficientDataError
from risksurface.fetcher import ResilientDataFetcher
from risksurface.metrics import (
    FragilityBasis,
    classification_counts,
    dependency_summary,
    fragility_score,
    fragility_trajectory,
    rank_hotspots,
    velocity_acceleration,
    vulnerability_insight,
)
from risksurface.models import FetchResult, FetchState, Unavailable
from risksurface.schemas import (
    DependencyAnalysis,
    SectionPayload,
    SelectedProjectEnvelope,
    TemporalAnalysis,
    TrajectoryAnalysis,
)
from risksurface.validation import (
    CardReadiness,
    MetricSource,
    ValidatedMetric,
    validate_card_inputs,
    validate_consistency,
    validated_metric,
)

log = logging.getLogger("risksurface.sections")

NO_DEPENDENCY_DATA = "insufficient dependency data"
PROXY_NOTE = "fragility estimated from commit volume (proxy model, not measured)"


@dataclass(frozen=True)
class SectionReport:
    section: str
    metrics: dict[str, ValidatedMetric[Any]]
    readiness: CardReadiness
    notes: tuple[str, ...] = ()

    def unavailable_metrics(self) -> list[str]:
        return [name for name, m in self.metrics.items() if not m.validation.is_valid]

    def to_dict(self) -> dict[str, Any]:
        return {
            "section": self.section,
            "metrics": {name: m.to_dict() for name, m in self.metrics.items()},
            "readiness": self.readiness.to_dict(),
            "notes": list(self.notes),
        }


Deriver = Callable[[Any], "SectionReport | Unavailable"]


# ---------------------------------------------------------------------------
# Derivation per section
# ---------------------------------------------------------------------------

def _parse(model: type[SectionPayload], payload: Any) -> SectionPayload:
    try:
        parsed = model.model_validate(payload)
    except ValidationError as e:
        raise InsufficientDataError(f"malformed payload ({e.error_count()} errors)") from e
    if not parsed.available:
        raise InsufficientDataError(parsed.reason or "analysis not available")
    return parsed


def _dependency_metrics(deps: DependencyAnalysis) -> dict[str, ValidatedMetric[Any]]:
    if not deps.nodes:
        raise InsufficientDataError(NO_DEPENDENCY_DATA)
    links = deps.all_links()
    fragility = {
        str(raw.get("id")): validated_metric(fragility_score(raw), MetricSource.GRAPH_DERIVED)
        for raw in deps.nodes
    }
    return {
        "vulnerability": validated_metric(vulnerability_insight(deps.nodes, links), MetricSource.GRAPH_DERIVED),
        "summary": validated_metric(dependency_summary(deps.nodes, links), MetricSource.DEPENDENCY_MANIFEST),
        **{f"fragility:{node_id}": metric for node_id, metric in fragility.items()},
    }


def derive_dependencies(payload: Any) -> SectionReport | Unavailable:
    try:
        deps = _parse(DependencyAnalysis, payload)
        metrics = _dependency_metrics(deps)
    except InsufficientDataError as e:
        return Unavailable(str(e))
    readiness = validate_card_inputs({"nodes": deps.nodes, "links": deps.all_links()})
    return SectionReport("dependencies", metrics, readiness)


def derive_trajectory(payload: Any) -> SectionReport | Unavailable:
    try:
        traj = _parse(TrajectoryAnalysis, payload)
    except InsufficientDataError as e:
        return Unavailable(str(e))
    trajectory = fragility_trajectory(traj.points)
    metrics = {
        "velocity": validated_metric(velocity_acceleration(traj.points), MetricSource.COMMIT_HISTORY),
        "trajectory": validated_metric(trajectory, MetricSource.COMMIT_HISTORY),
    }
    notes: tuple[str, ...] = ()
    if isinstance(trajectory, list) and any(p.basis == FragilityBasis.PROXY for p in trajectory):
        notes = (PROXY_NOTE,)
    return SectionReport("trajectory", metrics, validate_card_inputs({"points": traj.points}), notes)


def _temporal_metrics(temporal: TemporalAnalysis) -> dict[str, ValidatedMetric[Any]]:
    ranked = rank_hotspots(temporal.temporal_hotspots, temporal.median_frequency)
    counts = classification_counts(ranked) if isinstance(ranked, list) else ranked
    return {
        "medianFrequency": validated_metric(temporal.median_frequency, MetricSource.COMMIT_HISTORY, 0.0),
        "hotspots": validated_metric(ranked, MetricSource.COMMIT_HISTORY),
        "classification": validated_metric(counts, MetricSource.COMMIT_HISTORY),
        "windowDays": validated_metric(temporal.window_days, MetricSource.COMMIT_HISTORY, 1),
    }


def derive_temporal(payload: Any) -> SectionReport | Unavailable:
    try:
        temporal = _parse(TemporalAnalysis, payload)
    except InsufficientDataError as e:
        return Unavailable(str(e))
    metrics = _temporal_metrics(temporal)
    readiness = validate_card_inputs({
        "temporalHotspots": temporal.temporal_hotspots,
        "medianFrequency": temporal.median_frequency,
    })
    consistency = validate_consistency([
        ("baseline reported", lambda: temporal.baseline_found or temporal.median_frequency is None),
    ])
    notes = tuple(f"inconsistent: {f}" for f in consistency.failures)
    return SectionReport("temporal", metrics, readiness, notes)


def passthrough(section: str, source: MetricSource) -> Deriver:
    """Backend-computed section: validate availability, keep the body as one metric."""

    def derive(payload: Any) -> SectionReport | Unavailable:
        try:
            _parse(SectionPayload, payload)
        except InsufficientDataError as e:
            return Unavailable(str(e))
        body = {k: v for k, v in payload.items() if k not in ("project", "available", "reason")}
        return SectionReport(section, {section: validated_metric(body, source)},
                             validate_card_inputs({section: body}))

    return derive


def derive_overview(payload: Any) -> SectionReport | Unavailable:
    """Dashboard view over the selected-project envelope."""
    try:
        envelope = SelectedProjectEnvelope.model_validate(payload)
    except ValidationError as e:
        return Unavailable(f"malformed payload ({e.error_count()} errors)")
    if not envelope.selected:
        return Unavailable("no project selected")

    metrics: dict[str, ValidatedMetric[Any]] = {}
    analysis = envelope.analysis
    for key, parse_model, build in (
        ("deps", DependencyAnalysis, _dependency_metrics),
        ("temporal", TemporalAnalysis, _temporal_metrics),
    ):
        try:
            part = _parse(parse_model, analysis.get(key))
            metrics.update({m: v for m, v in build(part).items() if not m.startswith("fragility:")})
        except InsufficientDataError as e:
            metrics[key] = validated_metric(Unavailable(str(e)), MetricSource.UNKNOWN)
    readiness = validate_card_inputs({"deps": analysis.get("deps"), "temporal": analysis.get("temporal")})
    return SectionReport("overview", metrics, readiness)


_SECTION_SOURCES: dict[str, MetricSource] = {
    "topology": MetricSource.GRAPH_DERIVED,
    "impact": MetricSource.GRAPH_DERIVED,
    "concentration": MetricSource.COMMIT_HISTORY,
    "predictions": MetricSource.COMMIT_HISTORY,
}


@dataclass(frozen=True)
class Section:
    name: str
    endpoint: str
    derive: Deriver
    scoped: bool = True     # pass ?project=<owner/name>

    def params(self, project: str) -> dict[str, str] | None:
        return {"project": project} if self.scoped else None


def default_sections() -> dict[str, Section]:
    sections: dict[str, Section] = {
        "overview": Section("overview", SELECTED_PROJECT_ENDPOINT, derive_overview, scoped=False),
        "dependencies": Section("dependencies", SECTION_ENDPOINTS["dependencies"], derive_dependencies),
        "trajectory": Section("trajectory", SECTION_ENDPOINTS["trajectory"], derive_trajectory),
        "temporal": Section("temporal", SECTION_ENDPOINTS["temporal"], derive_temporal),
    }
    for name, source in _SECTION_SOURCES.items():
        sections[name] = Section(name, SECTION_ENDPOINTS[name], passthrough(name, source))
    return sections


# ---------------------------------------------------------------------------
# Board
# ---------------------------------------------------------------------------

@dataclass
class SectionBoard:
    """Loads sections for the coordinator's current selection."""

    coordinator: ProjectSelectionCoordinator
    fetcher: ResilientDataFetcher
    validator: ProjectContextValidator
    sections: dict[str, Section] = field(default_factory=default_sections)

    def __post_init__(self) -> None:
        for name in self.sections:
            self.coordinator.register(name)

    async def load(self, name: str) -> bool:
        """Load one section; returns whether its result was committed."""
        section = self.sections[name]
        token = self.coordinator.begin(name)
        if token.project is None:
            return self.coordinator.accept(name, token, FetchResult.failure("no project selected"))
        project = token.project

        async def fetch() -> FetchResult[Any]:
            return await self.fetcher.fetch(section.endpoint, params=section.params(project))

        try:
            result = await self.validator.fetch_for_project(
                fetch, project, is_current=lambda: self.coordinator.is_current(token), section=name,
            )
            if result.ok:
                result = FetchResult.success(section.derive(result.data))
        except Exception:
            log.exception("Section %s failed for %s", name, project,
                          extra={"section": name, "project": project, "version": token.version})
            result = FetchResult.failure(f"{name} could not be derived")
        return self.coordinator.accept(name, token, result)

    async def refresh_all(self) -> dict[str, bool]:
        """Load every section concurrently once the selection is ready.

        While the coordinator's views are disabled (a switch whose backend
        notification has not finished) nothing is loaded and every view is
        left in ``loading``.
        """
        names = list(self.sections)
        if not self.coordinator.analysis_ready:
            log.info("Views disabled for %s, refresh deferred", self.coordinator.selected,
                     extra={"project": self.coordinator.selected, "version": self.coordinator.token.version})
            return {name: False for name in names}
        committed = await asyncio.gather(*(self.load(n) for n in names))
        return dict(zip(names, committed))

    async def select(self, project_id: str, *, analyze: bool = True) -> SelectionOutcome:
        """Switch project synchronously, notify the backend, then refresh."""
        if project_id == self.coordinator.selected:
            return await self.coordinator.select(project_id, analyze=analyze)
        token = self.coordinator.switch(project_id)
        outcome = await self.coordinator.notify(token, analyze=analyze)
        if self.coordinator.is_current(token):
            await self.refresh_all()
        return outcome

    def failed_sections(self) -> list[str]:
        """Sections currently in error or unavailable (partial analysis)."""
        return [
            name for name in self.sections
            if (view := self.coordinator.view(name)).state == FetchState.ERROR or view.unavailable
        ]

    def report(self) -> dict[str, Any]:
        return {name: self.coordinator.view(name).to_dict() for name in self.sections}
