"""Temporal hotspots: ranking and baseline comparison.

Severity and burst/drift classification are an external contract.  The
backend derives them from ``commitCount``, ``frequencyBaseline``,
``shortestIntervalHr`` and ``meanIntervalHr``; this module never guesses that
policy.  A ``HotspotScorer`` may be supplied to substitute another policy
with the same contract (hotspot in, ``(severityScore, classification)`` out);
the default accepts the backend's values as given.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping

from risksurface.metrics._constants import _MALFORMED
from risksurface.metrics._util import _coerce
from risksurface.models import HotspotClass, TemporalHotspot, Unavailable

HotspotScorer = Callable[[TemporalHotspot], tuple[float, HotspotClass]]


def backend_scorer(hotspot: TemporalHotspot) -> tuple[float, HotspotClass]:
    """Accept the severity and classification computed by the backend."""
    return hotspot.severity_score, hotspot.classification


@dataclass(frozen=True)
class RankedHotspot:
    hotspot: TemporalHotspot
    severity_score: float
    classification: HotspotClass
    baseline_multiplier: float | None

    def to_dict(self) -> dict[str, Any]:
        d = self.hotspot.to_dict()
        d["severityScore"] = self.severity_score
        d["classification"] = self.classification.value
        d["baselineMultiplier"] = self.baseline_multiplier
        return d


def baseline_multiplier(commit_count: float, median_frequency: float) -> float | Unavailable:
    """How many times the repository's median change frequency a file reaches."""
    if isinstance(median_frequency, bool) or not isinstance(median_frequency, (int, float)):
        return Unavailable("no repository baseline")
    if median_frequency <= 0:
        return Unavailable("repository baseline is zero")
    return round(commit_count / median_frequency, 2)


def rank_hotspots(
    hotspots: Iterable[TemporalHotspot | Mapping[str, Any]],
    median_frequency: float | None = None,
    *,
    scorer: HotspotScorer = backend_scorer,
    path_filter: str = "",
    classification: HotspotClass | None = None,
    limit: int | None = None,
) -> list[RankedHotspot] | Unavailable:
    """Score, filter and order hotspots by descending severity.

    Ties keep input order.  *path_filter* is a case-insensitive substring.
    A missing or zero *median_frequency* leaves ``baseline_multiplier`` as
    ``None`` rather than inventing a baseline.
    """
    try:
        items = _coerce(hotspots, TemporalHotspot, TemporalHotspot.from_dict)
    except _MALFORMED as e:
        return Unavailable(f"malformed temporal hotspots: {e}")
    if not items:
        return Unavailable("no temporal hotspots")

    needle = path_filter.lower()
    ranked: list[RankedHotspot] = []
    for h in items:
        if needle and needle not in h.path.lower():
            continue
        severity, cls = scorer(h)
        if classification is not None and cls != classification:
            continue
        multiplier = baseline_multiplier(h.commit_count, median_frequency)
        ranked.append(RankedHotspot(
            hotspot=h,
            severity_score=severity,
            classification=cls,
            baseline_multiplier=None if isinstance(multiplier, Unavailable) else multiplier,
        ))

    ranked.sort(key=lambda r: r.severity_score, reverse=True)
    return ranked[:limit] if limit is not None else ranked


def classification_counts(ranked: Iterable[RankedHotspot]) -> dict[str, int]:
    counts = {c.value: 0 for c in HotspotClass}
    for r in ranked:
        counts[r.classification.value] += 1
    return counts
