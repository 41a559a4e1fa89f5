"""
Unit tests for series statistics and score helpers.
"""

import pytest

from learning_core.analysis.statistics import (
    Trend,
    comfort_zone,
    consistency,
    improvement,
    invert_trend,
    linear_slope,
    momentum,
    speed_improvement,
    stddev,
    trend,
)
from learning_core.core.scoring import clamp, mean, normalize_score, ratio, to_float


class TestScoring:
    def test_clamp_bounds(self):
        assert clamp(1.4) == 1.0
        assert clamp(-0.2) == 0.0
        assert clamp(5, 0.1, 0.9) == 0.9

    def test_mean_of_empty_is_zero(self):
        assert mean([]) == 0.0

    def test_percentages_are_normalized(self):
        assert normalize_score(85) == pytest.approx(0.85)
        assert normalize_score(0.85) == pytest.approx(0.85)
        assert normalize_score(None) == 0.0
        assert normalize_score(250) == 1.0

    def test_unparseable_scores_count_as_zero(self):
        assert normalize_score("A+") == 0.0
        assert normalize_score("85") == pytest.approx(0.85)
        assert normalize_score(float("nan")) == 0.0

    def test_to_float_falls_back_to_default(self):
        assert to_float("12.5") == 12.5
        assert to_float("slow", 0.5) == 0.5
        assert to_float(None, 0.5) == 0.5
        assert to_float({"seconds": 3}) == 0.0
        assert to_float(float("inf"), 1.0) == 1.0
        assert to_float(0, 0.5) == 0.0

    def test_ratio_of_empty_whole_is_zero(self):
        assert ratio(3, 0) == 0.0
        assert ratio(3, 2) == 1.0


class TestTrend:
    def test_short_series_is_insufficient(self):
        assert trend([0.5, 0.6]) == Trend.INSUFFICIENT_DATA
        assert trend([]) == Trend.INSUFFICIENT_DATA
        assert trend([0.5]) == Trend.INSUFFICIENT_DATA

    def test_no_previous_window_is_insufficient(self):
        # 4 points with window 5: nothing before the recent window
        assert trend([0.1, 0.2, 0.3, 0.4]) == Trend.INSUFFICIENT_DATA

    def test_improving(self):
        assert trend([0.5, 0.5, 0.8, 0.8], window=2) == Trend.IMPROVING

    def test_declining(self):
        assert trend([0.8, 0.8, 0.5, 0.5], window=2) == Trend.DECLINING

    def test_small_change_is_stable(self):
        assert trend([0.80, 0.80, 0.82, 0.82], window=2) == Trend.STABLE

    def test_flat_series_is_stable_with_default_window(self):
        assert trend([1] * 10) == Trend.STABLE

    def test_zero_previous_mean(self):
        assert trend([0, 0, 0.4, 0.4], window=2) == Trend.IMPROVING
        assert trend([0, 0, 0, 0], window=2) == Trend.STABLE

    def test_invert_trend(self):
        assert invert_trend(Trend.IMPROVING) == Trend.DECLINING
        assert invert_trend(Trend.DECLINING) == Trend.IMPROVING
        assert invert_trend(Trend.STABLE) == Trend.STABLE


class TestSeriesStatistics:
    def test_stddev_population(self):
        assert stddev([2, 4, 4, 4, 5, 5, 7, 9]) == pytest.approx(2.0)
        assert stddev([1.0]) == 0.0

    def test_identical_scores_are_fully_consistent(self):
        assert consistency([0.7, 0.7, 0.7]) == 1.0
        assert consistency([5, 5, 5]) == 1.0
        assert consistency([0.1] * 7) == 1.0
        assert stddev([0.7, 0.7, 0.7]) == 0.0

    def test_consistency_edge_cases(self):
        assert consistency([]) == 0.0
        assert consistency([0.7]) == 0.0
        assert consistency([0.0, 0.0]) == 0.0

    def test_consistency_is_bounded(self):
        assert 0.0 <= consistency([0.0, 1.0, 0.0, 1.0]) <= 1.0

    def test_improvement_between_halves(self):
        assert improvement([0.4, 0.6, 0.8, 1.0]) == pytest.approx(0.4)
        assert improvement([0.5]) == 0.0

    def test_speed_improvement_positive_when_faster(self):
        assert speed_improvement([100, 100, 50, 50]) == pytest.approx(0.5)
        assert speed_improvement([0, 0, 10, 10]) == 0.0

    def test_linear_slope(self):
        assert linear_slope([0.1, 0.2, 0.3]) == pytest.approx(0.1)
        assert linear_slope([0.5]) == 0.0

    def test_comfort_zone(self):
        zone = comfort_zone([0.9, 0.4, 0.75], [0.3, 0.8, 0.5])
        assert zone == {"min": 0.3, "max": 0.5, "average": 0.4}

    def test_comfort_zone_none_without_success(self):
        assert comfort_zone([0.2, 0.3], [0.5, 0.6]) is None


class TestMomentum:
    def test_positive_when_scores_rise_and_times_fall(self):
        result = momentum([0.5, 0.5, 0.8, 0.8], [60, 60, 30, 30], window=2)
        assert result.value == 1.0
        assert result.direction == "positive"
        assert result.speed_trend == Trend.IMPROVING

    def test_weighted_mix(self):
        result = momentum([0.5, 0.5, 0.8, 0.8], [30, 30, 60, 60], window=2)
        assert result.value == pytest.approx(0.2)
        assert result.direction == "positive"

    def test_neutral_without_data(self):
        result = momentum([], [])
        assert result.value == 0.0
        assert result.direction == "neutral"
        assert result.to_dict()["score_trend"] == "insufficient_data"
