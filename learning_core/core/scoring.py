"""
Numeric helpers for bounded scores.

Every bounded output in the core passes through clamp() at the point it is
computed, so callers never see a value outside its declared range.
"""
from __future__ import annotations

import math
from collections.abc import Iterable
from typing import Any


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


def mean(values: Iterable[float]) -> float:
    """Arithmetic mean, 0.0 for an empty sequence."""
    items = list(values)
    if not items:
        return 0.0
    return sum(items) / len(items)


def to_float(value: Any, default: float = 0.0) -> float:
    """float(value), or default for None, unparseable or non-finite input."""
    if value is None:
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    return result if math.isfinite(result) else default


def normalize_score(score: Any) -> float:
    """
    Normalize a collaborator score to [0, 1].

    Scores arrive either as fractions or as percentages (85 for 85%).
    Anything above 1 is treated as a percentage; values that are not
    numbers count as 0.
    """
    value = to_float(score)
    if value > 1.0:
        value = value / 100.0
    return clamp(value)


def round_score(value: float, digits: int = 4) -> float:
    """Round a derived value for stable comparisons and display."""
    return round(value, digits)


def ratio(part: float, whole: float) -> float:
    """part / whole clamped to [0, 1], 0.0 when whole is empty."""
    if whole <= 0:
        return 0.0
    return clamp(part / whole)
