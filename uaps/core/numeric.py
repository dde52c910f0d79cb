"""
Shared numeric helpers.

Every numeric output field of the engine passes through ``clamp`` and every
weight set through ``normalize_weights``, so range and sum invariants hold
regardless of which strategy produced the value.
"""

from __future__ import annotations

import math
from collections.abc import Mapping

SCORE_MIN = 0.0
SCORE_MAX = 100.0


def clamp(value: float, lower: float = SCORE_MIN, upper: float = SCORE_MAX) -> float:
    """Clamp ``value`` into ``[lower, upper]``. NaN maps to ``lower``."""
    if value is None or math.isnan(value):
        return lower
    return min(upper, max(lower, value))


def clamp_score(value: float, digits: int = 1) -> float:
    """Clamp into the 0-100 score range and round."""
    return round(clamp(value), digits)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3)."""
    return math.floor(value + 0.5)


def normalize_weights(
    weights: Mapping[str, float],
    fallback: Mapping[str, float] | None = None,
) -> dict[str, float]:
    """
    Scale non-negative weights so they sum to 1.0.

    Negative or non-finite (NaN, infinite) components are treated as 0.
    When nothing positive remains, ``fallback`` (normalized) is returned,
    or equal weights if no fallback is given.
    """
    cleaned = {
        key: max(0.0, float(value)) if math.isfinite(float(value)) else 0.0
        for key, value in weights.items()
    }
    total = sum(cleaned.values())
    if total <= 0:
        if fallback is not None:
            return normalize_weights(fallback)
        if not cleaned:
            return {}
        equal = 1.0 / len(cleaned)
        return {key: equal for key in cleaned}
    return {key: value / total for key, value in cleaned.items()}
