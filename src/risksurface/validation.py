"""Metric validation: decide per value whether it may be displayed.

No value is ever fabricated.  Anything missing, below its threshold or
computed from an empty collection is reported invalid with a human-readable
reason, and renders as the literal ``"unavailable"``.  Valid values carry a
typed provenance tag recording which raw signal they came from.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Collection
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, Iterable, Mapping, TypeVar

from risksurface.defaults import UNAVAILABLE
from risksurface.models import Unavailable

log = logging.getLogger("risksurface.validation")

T = TypeVar("T")

REASON_MISSING = "missing"
REASON_INSUFFICIENT = "insufficient data"


class MetricSource(str, Enum):
    GITHUB_API = "github_api"
    COMMIT_HISTORY = "commit_history"
    DEPENDENCY_MANIFEST = "dependency_manifest"
    GRAPH_DERIVED = "graph_derived"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class MetricValidation:
    is_valid: bool
    source: MetricSource
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"isValid": self.is_valid, "source": self.source.value}
        if self.reason is not None:
            d["reason"] = self.reason
        return d


@dataclass(frozen=True)
class ValidatedMetric(Generic[T]):
    value: T | None
    validation: MetricValidation

    def render(self) -> T | str:
        """The value itself, or ``"unavailable"``; never a stand-in number."""
        if not self.validation.is_valid or self.value is None:
            return UNAVAILABLE
        return self.value

    def to_dict(self) -> dict[str, Any]:
        return {"value": _plain(self.render()), **self.validation.to_dict()}


def _plain(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, Mapping):
        return {k: _plain(v) for k, v in value.items()}
    return value


def _is_collection(value: Any) -> bool:
    return isinstance(value, Collection) and not isinstance(value, (str, bytes))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate(
    value: Any,
    source: MetricSource,
    min_threshold: float | None = None,
) -> MetricValidation:
    """Validate one value.  Pure: identical arguments give identical results."""
    if value is None:
        return MetricValidation(False, MetricSource.UNKNOWN, REASON_MISSING)
    if isinstance(value, Unavailable):
        return MetricValidation(False, source, value.reason)
    if _is_number(value):
        if isinstance(value, float) and math.isnan(value):
            return MetricValidation(False, source, "not a number")
        if min_threshold is not None and value < min_threshold:
            return MetricValidation(
                False, source, f"value {value} below minimum threshold {min_threshold}",
            )
    if _is_collection(value) and len(value) == 0:
        return MetricValidation(False, source, REASON_INSUFFICIENT)
    return MetricValidation(True, source)


def validated_metric(
    value: T | None,
    source: MetricSource,
    min_threshold: float | None = None,
) -> ValidatedMetric[T]:
    """Attach a validation to *value*; invalid values are dropped to ``None``."""
    validation = validate(value, source, min_threshold)
    return ValidatedMetric(value if validation.is_valid else None, validation)


# ---------------------------------------------------------------------------
# Composite views
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CardReadiness:
    is_ready: bool
    missing_inputs: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"isReady": self.is_ready, "missingInputs": list(self.missing_inputs)}


def validate_card_inputs(inputs: Mapping[str, Any]) -> CardReadiness:
    """List the named inputs a composite view lacks, in input order."""
    missing: list[str] = []
    for name, value in inputs.items():
        if value is None or isinstance(value, Unavailable):
            missing.append(name)
        elif _is_collection(value) and len(value) == 0:
            missing.append(f"{name} (empty)")
    return CardReadiness(is_ready=not missing, missing_inputs=tuple(missing))


@dataclass(frozen=True)
class ConsistencyReport:
    is_consistent: bool
    failures: tuple[str, ...] = ()


def validate_consistency(checks: Iterable[tuple[str, Callable[[], bool]]]) -> ConsistencyReport:
    """Evaluate labelled predicates relating metrics to each other.

    A predicate that raises counts as a failure and is reported as
    ``"<label> (error)"``.
    """
    failures: list[str] = []
    for label, condition in checks:
        try:
            if not condition():
                failures.append(label)
        except Exception as e:
            log.debug("Consistency check %r raised: %s", label, e)
            failures.append(f"{label} (error)")
    return ConsistencyReport(is_consistent=not failures, failures=tuple(failures))
