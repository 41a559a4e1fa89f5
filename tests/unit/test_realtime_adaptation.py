"""
Unit tests for per-answer difficulty adaptation.
"""

import pytest

from learning_core.difficulty import AdaptationType, DifficultyAdjuster, RealTimeAdapter
from learning_core.profiling import ProfileModeler


@pytest.fixture
def adapter(settings):
    return RealTimeAdapter(settings=settings)


@pytest.fixture
def adjuster(data_source, environment, clock, settings):
    return DifficultyAdjuster(
        profiles=ProfileModeler(data_source=data_source, settings=settings),
        state_source=data_source,
        environment=environment,
        clock=clock,
        settings=settings,
    )


class TestAnalyzeResponse:
    def test_estimates_from_timing_hints_and_attempts(self, adapter):
        analysis = adapter.analyze_response(
            {"correct": False, "response_time": 15, "hints_used": 2, "attempts": 3}
        )
        assert analysis.speed == pytest.approx(0.75)
        assert analysis.confidence == pytest.approx(0.1)
        assert analysis.effort == pytest.approx(0.75)

    def test_explicit_values_win(self, adapter):
        analysis = adapter.analyze_response(
            {"correct": True, "confidence": 0.95, "speed": 0.9, "effort": 0.2, "response_time": 500}
        )
        assert (analysis.confidence, analysis.speed, analysis.effort) == (0.95, 0.9, 0.2)

    def test_expected_time_from_session(self, adapter):
        analysis = adapter.analyze_response({"correct": True, "response_time": 10}, {"expected_response_time": 10})
        assert analysis.speed == pytest.approx(0.5)


class TestEngagementAdjustment:
    def test_fatigue_eases_off(self, adapter):
        assert adapter.adjust_for_engagement(0.5, {"fatigue_level": 0.9}) == pytest.approx(0.45)

    def test_low_accuracy_eases_off(self, adapter):
        assert adapter.adjust_for_engagement(0.5, {"recent_accuracy": 0.4}) == pytest.approx(0.45)

    def test_boredom_adds_challenge(self, adapter):
        assert adapter.adjust_for_engagement(0.5, {"recent_accuracy": 90}) == pytest.approx(0.55)

    def test_otherwise_keeps_difficulty(self, adapter):
        assert adapter.adjust_for_engagement(0.5, {"recent_accuracy": 0.7}) == pytest.approx(0.5)
        assert adapter.adjust_for_engagement(0.5, {}) == pytest.approx(0.5)

    def test_bounds(self, adapter):
        assert adapter.adjust_for_engagement(0.12, {"fatigue_level": 0.9}) == pytest.approx(0.1)
        assert adapter.adjust_for_engagement(0.98, {"recent_accuracy": 0.95}) == pytest.approx(1.0)


class TestAdaptDifficultyRealTime:
    def test_too_easy_increases(self, adjuster):
        decision = adjuster.adapt_difficulty_real_time(
            "u1", "ex-9", {"correct": True, "confidence": 0.95, "speed": 0.9},
            {"current_difficulty": 0.5},
        )

        assert decision.adaptation_type == AdaptationType.INCREASE
        assert decision.new_difficulty == pytest.approx(0.5855)
        assert decision.should_adapt is True
        assert decision.plan.long_term["adaptation_strategy"]["name"] == "TOO_EASY"
        assert decision.next_exercise_adjustments["hint_availability"] == "reduced"
        assert decision.user_feedback

    def test_too_hard_decreases(self, adjuster):
        decision = adjuster.adapt_difficulty_real_time(
            "u1", "ex-9", {"correct": False, "confidence": 0.2, "effort": 1.0},
            {"current_difficulty": 0.6},
        )

        assert decision.adaptation_type == AdaptationType.DECREASE
        assert decision.new_difficulty == pytest.approx(0.45)
        assert decision.plan.immediate["difficulty_adjustment"] == pytest.approx(-0.15)
        assert "worked_examples" in decision.plan.short_term["scaffolding_plan"]

    def test_bounds_are_respected(self, adjuster):
        down = adjuster.adapt_difficulty_real_time(
            "u1", "ex-9", {"correct": False, "confidence": 0.1, "effort": 1.0},
            {"current_difficulty": 0.15},
        )
        up = adjuster.adapt_difficulty_real_time(
            "u1", "ex-9", {"correct": True, "confidence": 1.0, "speed": 1.0},
            {"current_difficulty": 0.99},
        )
        assert down.new_difficulty == pytest.approx(0.1)
        assert up.new_difficulty == pytest.approx(1.0)

    def test_disengaged_and_fatigued(self, adjuster):
        decision = adjuster.adapt_difficulty_real_time(
            "u1", "ex-9", {"correct": True},
            {"current_difficulty": 0.5, "engagement_level": 0.3, "fatigue_level": 0.9},
        )
        assert decision.adaptation_type == AdaptationType.ENGAGEMENT
        assert decision.new_difficulty == pytest.approx(0.45)
        assert decision.next_exercise_adjustments["vary_exercise_type"] is True

    def test_many_pauses_with_high_accuracy(self, adjuster):
        decision = adjuster.adapt_difficulty_real_time(
            "u1", "ex-9", {"correct": True},
            {"current_difficulty": 0.5, "recent_pauses": 4, "recent_accuracy": 0.9},
        )
        assert decision.adaptation_type == AdaptationType.ENGAGEMENT
        assert decision.new_difficulty == pytest.approx(0.55)

    def test_no_change(self, adjuster):
        decision = adjuster.adapt_difficulty_real_time(
            "u1", "ex-9", {"correct": True, "response_time": 20}, {"current_difficulty": 0.5}
        )
        assert decision.adaptation_type == AdaptationType.NO_CHANGE
        assert decision.should_adapt is False
        assert decision.new_difficulty == decision.previous_difficulty == 0.5
        assert decision.plan is None
        assert decision.to_dict()["plan"] is None

    def test_current_difficulty_from_source(self, adjuster):
        known = adjuster.adapt_difficulty_real_time("u1", "ex-1", {"correct": True})
        unknown = adjuster.adapt_difficulty_real_time("u1", "ex-404", {"correct": True})
        assert known.previous_difficulty == pytest.approx(0.6)
        assert unknown.previous_difficulty == pytest.approx(0.5)

    def test_requires_user_id(self, adjuster):
        with pytest.raises(ValueError):
            adjuster.adapt_difficulty_real_time("", "ex-1", {"correct": True})
