"""Commit time-series metrics: velocity acceleration and fragility trajectory."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping

from risksurface.metrics._constants import _MALFORMED
from risksurface.metrics._util import _coerce, _round_half_up
from risksurface.models import CommitDataPoint, Unavailable

_MIN_POINTS = 3
_MIN_WINDOW = 2

# --- Trajectory proxy weights ---
_TP_VELOCITY = 50.0
_TP_TIME = 30.0
_TP_FLOOR = 20.0


class Trend(str, Enum):
    ACCELERATING = "accelerating"
    DECELERATING = "decelerating"
    STABLE = "stable"


class FragilityBasis(str, Enum):
    MEASURED = "measured"   # supplied by the backend
    PROXY = "proxy"         # derived from commit volume and position in time


@dataclass(frozen=True)
class VelocityAcceleration:
    acceleration: float
    current_velocity: float
    previous_velocity: float
    window_size: int
    trend: Trend

    def to_dict(self) -> dict[str, Any]:
        return {
            "acceleration": self.acceleration,
            "currentVelocity": self.current_velocity,
            "previousVelocity": self.previous_velocity,
            "windowSize": self.window_size,
            "trend": self.trend.value,
        }


@dataclass(frozen=True)
class TrajectoryPoint:
    date: str
    commits: int
    fragility: float
    basis: FragilityBasis

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "commits": self.commits,
            "fragility": self.fragility,
            "basis": self.basis.value,
        }


def _points(series: Iterable[Any]) -> list[CommitDataPoint]:
    """Accept data points, wire mappings, or bare commit counts."""
    if series is None or isinstance(series, (str, bytes, Mapping)):
        raise TypeError("commit series must be a sequence")
    items = list(series)
    if all(isinstance(x, (int, float)) and not isinstance(x, bool) for x in items):
        return [CommitDataPoint(date=str(i), commits=x) for i, x in enumerate(items)]
    return _coerce(items, CommitDataPoint, CommitDataPoint.from_dict)


def _mean(values: list[float]) -> float:
    return sum(values) / len(values)


def velocity_acceleration(
    series: Iterable[CommitDataPoint | Mapping[str, Any] | float],
) -> VelocityAcceleration | Unavailable:
    """Ratio of the recent commit rate to the rate just before it.

    ``window = max(2, n // 3)``; the current window is the last ``window``
    points and the previous window the ``window`` points before it (fewer
    when the series is short).
    """
    try:
        counts = [p.commits for p in _points(series)]
    except _MALFORMED as e:
        return Unavailable(f"malformed commit series: {e}")

    n = len(counts)
    if n < _MIN_POINTS:
        return Unavailable(f"at least {_MIN_POINTS} data points required, got {n}")

    window = max(_MIN_WINDOW, n // 3)
    current = counts[-window:]
    previous = counts[max(0, n - 2 * window):n - window]
    if not previous:
        return Unavailable("no commit history before the current window")

    current_velocity = _mean(current)
    previous_velocity = _mean(previous)
    if previous_velocity == 0:
        return Unavailable("no commits in the previous window")

    acceleration = current_velocity / previous_velocity
    if acceleration > 1:
        trend = Trend.ACCELERATING
    elif acceleration < 1:
        trend = Trend.DECELERATING
    else:
        trend = Trend.STABLE
    return VelocityAcceleration(
        acceleration=acceleration,
        current_velocity=current_velocity,
        previous_velocity=previous_velocity,
        window_size=window,
        trend=trend,
    )


def fragility_trajectory(
    series: Iterable[CommitDataPoint | Mapping[str, Any]],
) -> list[TrajectoryPoint] | Unavailable:
    """Fragility over time, falling back to a proxy where none was measured.

    The proxy is a model, not a measurement: for point *i* of *n*,
    ``round((commits / maxCommits) * 50 + (i / n) * 30 + 20)``.  Every point
    records whether its value is ``measured`` or ``proxy`` so callers can
    label it accordingly.
    """
    try:
        points = _points(series)
    except _MALFORMED as e:
        return Unavailable(f"malformed commit series: {e}")
    if not points:
        return Unavailable("no commit history")

    n = len(points)
    max_commits = max(p.commits for p in points)
    trajectory: list[TrajectoryPoint] = []
    for i, p in enumerate(points):
        if p.fragility is not None:
            trajectory.append(TrajectoryPoint(p.date, p.commits, p.fragility, FragilityBasis.MEASURED))
            continue
        velocity_factor = (p.commits / max_commits) * _TP_VELOCITY if max_commits else 0.0
        time_factor = (i / n) * _TP_TIME
        fragility = _round_half_up(velocity_factor + time_factor + _TP_FLOOR)
        trajectory.append(TrajectoryPoint(p.date, p.commits, float(fragility), FragilityBasis.PROXY))
    return trajectory
