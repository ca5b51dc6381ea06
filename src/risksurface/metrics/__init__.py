"""Derived metrics: pure, deterministic scoring over validated backend signals.

Dependency graph:
  - fragility_score:       bounded [0, 100] structural risk of one node
  - vulnerability_insight: most fragile node and its one-hop cascade
  - dependency_summary:    whole-graph indicators (cycles, centrality, fan-in)

Commit history:
  - velocity_acceleration: recent vs. prior commit-rate window
  - fragility_trajectory:  measured fragility, or a labelled proxy

Temporal hotspots:
  - rank_hotspots:         severity ordering under a pluggable scorer

No function here raises on malformed or empty input; each returns an
``Unavailable`` sentinel instead.
"""

from risksurface.metrics.graph import (
    DependencySummary,
    VulnerabilityInsight,
    dependency_summary,
    fragility_score,
    vulnerability_insight,
)
from risksurface.metrics.temporal import (
    RankedHotspot,
    backend_scorer,
    baseline_multiplier,
    classification_counts,
    rank_hotspots,
)
from risksurface.metrics.velocity import (
    FragilityBasis,
    TrajectoryPoint,
    Trend,
    VelocityAcceleration,
    fragility_trajectory,
    velocity_acceleration,
)

__all__ = [
    "DependencySummary",
    "FragilityBasis",
    "RankedHotspot",
    "TrajectoryPoint",
    "Trend",
    "VelocityAcceleration",
    "VulnerabilityInsight",
    "backend_scorer",
    "baseline_multiplier",
    "classification_counts",
    "dependency_summary",
    "fragility_score",
    "fragility_trajectory",
    "rank_hotspots",
    "velocity_acceleration",
    "vulnerability_insight",
]
