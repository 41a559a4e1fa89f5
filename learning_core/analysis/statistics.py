"""
Series statistics used by pattern analysis and difficulty adjustment.

All functions are pure and tolerate short or empty input: they return the
documented placeholder instead of raising.
"""
from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from learning_core.core.scoring import clamp, mean


class Trend(str, Enum):
    """Direction of a series over its two most recent windows."""
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"
    INSUFFICIENT_DATA = "insufficient_data"


# Sign used when folding trends into momentum
TREND_SIGN = {
    Trend.IMPROVING: 1,
    Trend.STABLE: 0,
    Trend.INSUFFICIENT_DATA: 0,
    Trend.DECLINING: -1,
}


def stddev(values: Sequence[float]) -> float:
    """Population standard deviation, 0.0 for fewer than 2 points."""
    if len(values) < 2:
        return 0.0
    if max(values) == min(values):
        return 0.0
    avg = mean(values)
    return math.sqrt(sum((v - avg) ** 2 for v in values) / len(values))


def trend(
    values: Sequence[float],
    window: int = 5,
    min_points: int = 3,
    threshold: float = 0.1,
) -> Trend:
    """
    Compare the mean of the last `window` values with the window before it.

    Relative change above `threshold` is improving, below -threshold is
    declining. With fewer than `min_points` values, or when the previous
    window is empty, the result is insufficient_data.
    """
    if len(values) < min_points:
        return Trend.INSUFFICIENT_DATA

    recent = list(values[-window:])
    previous = list(values[-2 * window:-window])
    if not recent or not previous:
        return Trend.INSUFFICIENT_DATA

    recent_avg = mean(recent)
    previous_avg = mean(previous)

    if previous_avg == 0:
        return Trend.IMPROVING if recent_avg > 0 else Trend.STABLE

    change = (recent_avg - previous_avg) / abs(previous_avg)
    if change > threshold:
        return Trend.IMPROVING
    if change < -threshold:
        return Trend.DECLINING
    return Trend.STABLE


def invert_trend(value: Trend) -> Trend:
    """Flip a trend, e.g. rising response times mean declining speed."""
    if value == Trend.IMPROVING:
        return Trend.DECLINING
    if value == Trend.DECLINING:
        return Trend.IMPROVING
    return value


def consistency(values: Sequence[float]) -> float:
    """
    1 - coefficient of variation, clamped to [0, 1].

    0.0 for fewer than 2 points or a zero mean; identical values give 1.0.
    """
    if len(values) < 2:
        return 0.0
    avg = mean(values)
    if avg == 0:
        return 0.0
    if max(values) == min(values):
        return 1.0
    return clamp(1 - stddev(values) / abs(avg))


def improvement(scores: Sequence[float]) -> float:
    """Mean of the second half minus mean of the first half."""
    if len(scores) < 2:
        return 0.0
    half = len(scores) // 2
    return mean(scores[half:]) - mean(scores[:half])


def speed_improvement(times: Sequence[float]) -> float:
    """
    Relative reduction in completion time between the halves of a series.

    Positive when the learner got faster.
    """
    if len(times) < 2:
        return 0.0
    half = len(times) // 2
    earlier = mean(times[:half])
    if earlier <= 0:
        return 0.0
    return clamp((earlier - mean(times[half:])) / earlier, -1.0, 1.0)


def linear_slope(values: Sequence[float]) -> float:
    """Least-squares slope of values against their index."""
    n = len(values)
    if n < 2:
        return 0.0
    x_mean = (n - 1) / 2
    y_mean = mean(values)
    numerator = sum((i - x_mean) * (v - y_mean) for i, v in enumerate(values))
    denominator = sum((i - x_mean) ** 2 for i in range(n))
    return numerator / denominator if denominator else 0.0


def comfort_zone(
    scores: Sequence[float],
    difficulties: Sequence[float],
    success_score: float = 0.7,
) -> Optional[dict[str, float]]:
    """
    Difficulty band in which the learner still scores well.

    Returns None when no exercise reached `success_score`.
    """
    successful = [d for s, d in zip(scores, difficulties) if s >= success_score]
    if not successful:
        return None
    return {
        "min": round(min(successful), 4),
        "max": round(max(successful), 4),
        "average": round(mean(successful), 4),
    }


@dataclass
class Momentum:
    """
    Composite learning momentum.

    Attributes:
        value: Weighted sign of score and speed trends, in [-1, 1]
        direction: positive / neutral / negative
        score_trend: Trend of scores
        speed_trend: Trend of speed (inverted completion-time trend)
    """
    value: float
    direction: str
    score_trend: Trend
    speed_trend: Trend

    def to_dict(self) -> dict[str, Any]:
        return {
            "value": self.value,
            "direction": self.direction,
            "score_trend": self.score_trend.value,
            "speed_trend": self.speed_trend.value,
        }


def momentum(
    scores: Sequence[float],
    times: Sequence[float],
    score_weight: float = 0.6,
    **trend_kwargs: Any,
) -> Momentum:
    """
    Combine the score trend with the speed trend.

    Falling completion times count as improving speed, so both signals use
    the same direction convention before being weighted together.
    """
    score_trend = trend(scores, **trend_kwargs)
    speed_trend = invert_trend(trend(times, **trend_kwargs))

    value = (
        score_weight * TREND_SIGN[score_trend]
        + (1 - score_weight) * TREND_SIGN[speed_trend]
    )
    value = round(clamp(value, -1.0, 1.0), 4)

    if value > 0:
        direction = "positive"
    elif value < 0:
        direction = "negative"
    else:
        direction = "neutral"

    return Momentum(
        value=value,
        direction=direction,
        score_trend=score_trend,
        speed_trend=speed_trend,
    )
