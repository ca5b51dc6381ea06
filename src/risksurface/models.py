"""Core data types for risksurface.

Wire-shaped types accept the backend's camelCase keys in ``from_dict`` and
emit them again in ``to_dict``.  Constructors validate their numeric fields
and raise ``ValueError`` on malformed values; the metrics engine relies on
that to turn bad input into an ``Unavailable`` result instead of a number.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, Mapping, TypeVar

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def now_ts() -> float:
    return time.time()


def _number(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise ValueError(f"{name} must be finite, got {value!r}")
    return value


def _non_negative(name: str, value: Any) -> float:
    value = _number(name, value)
    if value < 0:
        raise ValueError(f"{name} must be >= 0, got {value!r}")
    return value


def _first(d: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the value of the first key present in *d*."""
    for key in keys:
        if key in d:
            return d[key]
    return default


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class AnalysisState(str, Enum):
    UNANALYZED = "unanalyzed"
    ANALYZING = "analyzing"
    READY = "ready"


class FetchState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class HotspotClass(str, Enum):
    BURST = "burst"
    DRIFT = "drift"


# ---------------------------------------------------------------------------
# Unavailable sentinel
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Unavailable:
    """Returned in place of a metric that cannot be computed honestly."""

    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {"available": False, "reason": self.reason}


# ---------------------------------------------------------------------------
# Project / selection
# ---------------------------------------------------------------------------

@dataclass
class Project:
    full_name: str
    analysis_state: AnalysisState = AnalysisState.UNANALYZED
    description: str = ""
    language: str = ""
    default_branch: str = ""

    @property
    def owner(self) -> str:
        return self.full_name.split("/", 1)[0]

    @property
    def name(self) -> str:
        return self.full_name.split("/", 1)[-1]

    def to_dict(self) -> dict[str, Any]:
        return {
            "fullName": self.full_name,
            "analysisState": self.analysis_state.value,
            "description": self.description,
            "language": self.language,
            "defaultBranch": self.default_branch,
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> Project:
        state = d.get("analysisState") or AnalysisState.UNANALYZED.value
        return cls(
            full_name=d["fullName"],
            analysis_state=AnalysisState(state),
            description=d.get("description") or "",
            language=d.get("language") or "",
            default_branch=d.get("defaultBranch") or "",
        )


def split_full_name(full_name: str) -> tuple[str, str]:
    """Split ``owner/name``; raises ``ValueError`` for anything else."""
    parts = full_name.split("/")
    if len(parts) != 2 or not all(parts):
        raise ValueError(f"Expected 'owner/name', got {full_name!r}")
    return parts[0], parts[1]


@dataclass(frozen=True)
class SelectionToken:
    """Monotonic version stamp plus the project it was issued for."""

    version: int = 0
    project: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"version": self.version, "project": self.project}


# ---------------------------------------------------------------------------
# Dependency graph
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DependencyNode:
    id: str
    fan_in: int = 0
    fan_out: int = 0
    centrality: float = 0.0
    transitive_depth: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id:
            raise ValueError(f"node id must be a non-empty string, got {self.id!r}")
        _non_negative("fanIn", self.fan_in)
        _non_negative("fanOut", self.fan_out)
        _non_negative("transitiveDepth", self.transitive_depth)
        if not 0.0 <= _number("centrality", self.centrality) <= 1.0:
            raise ValueError(f"centrality must be within [0, 1], got {self.centrality!r}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "fanIn": self.fan_in,
            "fanOut": self.fan_out,
            "centrality": self.centrality,
            "transitiveDepth": self.transitive_depth,
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> DependencyNode:
        # Depth is optional on the wire; an absent depth contributes nothing.
        return cls(
            id=d["id"],
            fan_in=d["fanIn"],
            fan_out=d["fanOut"],
            centrality=_first(d, "centralityScore", "centrality"),
            transitive_depth=d.get("transitiveDepth", 0),
        )


@dataclass(frozen=True)
class DependencyLink:
    source: str
    target: str
    risk_category: str = ""
    weight: float = 1.0

    def __post_init__(self) -> None:
        _number("weight", self.weight)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "riskCategory": self.risk_category,
            "weight": self.weight,
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> DependencyLink:
        return cls(
            source=d["source"],
            target=d["target"],
            risk_category=_first(d, "riskCategory", "category", default="") or "",
            weight=d.get("weight", 1.0),
        )


# ---------------------------------------------------------------------------
# Commit series
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CommitDataPoint:
    date: str
    commits: int
    fragility: float | None = None

    def __post_init__(self) -> None:
        _non_negative("commits", self.commits)
        if self.fragility is not None:
            _number("fragility", self.fragility)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"date": self.date, "commits": self.commits}
        if self.fragility is not None:
            d["fragility"] = self.fragility
        return d

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> CommitDataPoint:
        return cls(
            date=str(d.get("date", "")),
            commits=_first(d, "commits", "commitCount"),
            fragility=d.get("fragility"),
        )


# ---------------------------------------------------------------------------
# Temporal hotspots
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TemporalHotspot:
    path: str
    commit_count: int
    frequency_baseline: float
    shortest_interval_hr: float
    mean_interval_hr: float
    severity_score: float
    classification: HotspotClass

    def __post_init__(self) -> None:
        _non_negative("commitCount", self.commit_count)
        _non_negative("frequencyBaseline", self.frequency_baseline)
        _non_negative("shortestIntervalHr", self.shortest_interval_hr)
        _non_negative("meanIntervalHr", self.mean_interval_hr)
        _number("severityScore", self.severity_score)

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "commitCount": self.commit_count,
            "frequencyBaseline": self.frequency_baseline,
            "shortestIntervalHr": self.shortest_interval_hr,
            "meanIntervalHr": self.mean_interval_hr,
            "severityScore": self.severity_score,
            "classification": self.classification.value,
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> TemporalHotspot:
        return cls(
            path=d["path"],
            commit_count=d["commitCount"],
            frequency_baseline=d["frequencyBaseline"],
            shortest_interval_hr=d["shortestIntervalHr"],
            mean_interval_hr=d["meanIntervalHr"],
            severity_score=d["severityScore"],
            classification=HotspotClass(d["classification"]),
        )


# ---------------------------------------------------------------------------
# Fetch result
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FetchResult(Generic[T]):
    """Explicit outcome of a fetch; terminal states carry data xor error."""

    state: FetchState = FetchState.IDLE
    data: T | None = None
    error: str | None = None
    timestamp: float = field(default_factory=now_ts)

    def __post_init__(self) -> None:
        if self.state == FetchState.SUCCESS and (self.data is None or self.error is not None):
            raise ValueError("success result must carry data and no error")
        if self.state == FetchState.ERROR and (self.error is None or self.data is not None):
            raise ValueError("error result must carry an error and no data")

    @classmethod
    def success(cls, data: T) -> FetchResult[T]:
        return cls(state=FetchState.SUCCESS, data=data)

    @classmethod
    def failure(cls, error: str) -> FetchResult[T]:
        return cls(state=FetchState.ERROR, error=error)

    @classmethod
    def loading(cls) -> FetchResult[T]:
        return cls(state=FetchState.LOADING)

    @property
    def ok(self) -> bool:
        return self.state == FetchState.SUCCESS

    @property
    def is_terminal(self) -> bool:
        return self.state in (FetchState.SUCCESS, FetchState.ERROR)

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "data": self.data,
            "error": self.error,
            "timestamp": self.timestamp,
        }
