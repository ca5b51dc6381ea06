"""Rounding and coercion helpers shared by the metric modules."""

from __future__ import annotations

import math
from typing import Any, Callable, Iterable, Mapping, TypeVar

from risksurface.metrics._constants import _SCORE_MAX

M = TypeVar("M")


def _round_half_up(x: float) -> int:
    """Round to the nearest integer, halves away from zero for x >= 0."""
    return math.floor(x + 0.5)


def _clamp_score(raw: float) -> float:
    """Clamp a raw score to [0, 100]; the value itself is never rounded."""
    return max(0.0, min(_SCORE_MAX, raw))


def _coerce(items: Iterable[Any], model: type[M], parse: Callable[[Mapping[str, Any]], M]) -> list[M]:
    """Turn wire mappings into *model* instances; raises on malformed items."""
    if items is None or isinstance(items, (str, bytes, Mapping)):
        raise TypeError(f"expected a sequence, got {type(items).__name__}")
    out: list[M] = []
    for item in items:
        if isinstance(item, model):
            out.append(item)
        elif isinstance(item, Mapping):
            out.append(parse(item))
        else:
            raise TypeError(f"cannot interpret {item!r} as {model.__name__}")
    return out
