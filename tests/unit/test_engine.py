"""
Unit tests for the LearningAnalyticsEngine facade.
"""

import pytest

from learning_core.difficulty import AdaptationType
from learning_core.engine import DEFAULT_INSIGHTS


def practice(engine, clock, scores, exercise_type="vocabulary"):
    """Record one completion per score, a minute apart."""
    for score in scores:
        engine.track_event("u1", "exercise_start", {"exercise_type": exercise_type})
        clock.advance(minutes=1)
        engine.track_event(
            "u1",
            "exercise_complete",
            {"exercise_type": exercise_type, "score": score, "time_to_complete": 45},
        )


class TestAnalyzeLearningPatterns:
    def test_default_analysis_without_events(self, engine):
        report = engine.analyze_learning_patterns("u1", "7days")

        assert report["event_count"] == 0
        assert report["patterns"] == {"status": "insufficient_data"}
        assert report["predictions"] == {"confidence": 0.0}
        assert report["insights"]

    def test_improving_learner(self, engine, clock):
        practice(engine, clock, [0.5] * 5 + [0.8] * 5)

        report = engine.analyze_learning_patterns("u1", "1day", now=clock())

        assert report["event_count"] == 20
        assert report["patterns"]["performance"]["trend"] == "improving"
        assert "improving_performance" in report["strengths"]
        assert report["predictions"]["trajectory"] == "improving"
        assert 0.0 <= report["predictions"]["next_score"] <= 1.0
        assert any("improving" in insight for insight in report["insights"])

    def test_declining_learner_is_at_risk(self, engine, clock):
        practice(engine, clock, [0.9] * 5 + [0.5] * 5)

        report = engine.analyze_learning_patterns("u1", "1day", now=clock())

        assert "declining_performance" in report["risk_factors"]

    def test_repeat_analysis_is_identical(self, engine, clock):
        practice(engine, clock, [0.6, 0.7, 0.8])
        now = clock()

        assert engine.analyze_learning_patterns("u1", "7days", now) == engine.analyze_learning_patterns(
            "u1", "7days", now
        )

    def test_unknown_timeframe_falls_back(self, engine, clock):
        practice(engine, clock, [0.7])
        assert engine.analyze_learning_patterns("u1", "forever", clock())["timeframe"] == "7days"

    def test_requires_user_id(self, engine):
        with pytest.raises(ValueError):
            engine.analyze_learning_patterns("")

    def test_non_numeric_context_values(self, engine, clock):
        practice(engine, clock, [0.6, 0.7])
        engine.track_event("u1", "exercise_complete", {"score": "A+", "time_to_complete": "slow", "difficulty": "hard"})

        report = engine.analyze_learning_patterns("u1", "1day", now=clock())
        insights = engine.generate_real_time_insights("u1", now=clock())

        assert report["event_count"] == 5
        assert report["patterns"]["performance"]["accuracy"]["overall"] == pytest.approx(0.4333, abs=1e-4)
        assert 0.0 <= insights["current_struggle_level"] <= 1.0


class TestRealTimeInsights:
    def test_defaults_without_session(self, engine):
        assert engine.generate_real_time_insights("u1") == DEFAULT_INSIGHTS

    def test_struggling_learner(self, engine, clock):
        for _ in range(3):
            engine.track_event("u1", "answer_submit", {"correct": False})
        engine.track_event("u1", "hint_request")
        engine.track_event("u1", "hint_request")
        engine.track_event("u1", "exercise_complete", {"score": 0.2})

        insights = engine.generate_real_time_insights("u1", now=clock())

        assert insights["current_struggle_level"] == pytest.approx(0.7778, abs=1e-4)
        assert insights["next_best_action"] == "review_concept"
        assert insights["learning_state"] == "struggling"
        kinds = {n["kind"] for n in insights["intervention_suggestions"]}
        assert kinds == {"struggle_support", "easier_content"}
        assert 0.1 <= insights["optimal_difficulty"] <= 1.0

    def test_long_session_is_an_engagement_risk(self, engine, clock):
        for _ in range(5):
            engine.track_event("u1", "exercise_complete", {"score": 0.7})
            clock.advance(minutes=10)
        engine.track_event("u1", "exercise_complete", {"score": 0.7})

        insights = engine.generate_real_time_insights("u1", now=clock())

        assert insights["engagement_risk"] == "high"
        assert insights["next_best_action"] == "take_break"


class TestEngineDifficulty:
    def test_observed_session_signals_drive_engagement_adaptation(self, engine, clock):
        practice(engine, clock, [0.95, 0.95, 0.95])
        for _ in range(4):
            engine.track_event("u1", "pause_session")

        decision = engine.adapt_difficulty_real_time("u1", "ex-1", {"correct": True})

        assert decision.adaptation_type == AdaptationType.ENGAGEMENT
        assert decision.previous_difficulty == pytest.approx(0.6)
        assert decision.new_difficulty == pytest.approx(0.65)

    def test_caller_context_overrides_observations(self, engine, clock):
        practice(engine, clock, [0.95, 0.95, 0.95])
        for _ in range(4):
            engine.track_event("u1", "pause_session")

        decision = engine.adapt_difficulty_real_time(
            "u1", "ex-1", {"correct": True}, {"recent_accuracy": 0.3}
        )

        assert decision.new_difficulty == pytest.approx(0.55)

    def test_recent_accuracy_reflects_latest_completions(self, engine, clock):
        practice(engine, clock, [0.3] * 5 + [0.95] * 5)
        for _ in range(4):
            engine.track_event("u1", "pause_session")

        decision = engine.adapt_difficulty_real_time("u1", "ex-1", {"correct": True})

        assert decision.adaptation_type == AdaptationType.ENGAGEMENT
        assert decision.new_difficulty == pytest.approx(0.65)

    def test_optimal_difficulty(self, engine):
        rec = engine.calculate_optimal_difficulty("u1", "vocabulary")
        assert rec.user_id == "u1"
        assert 0.1 <= rec.difficulty <= 1.0


class TestEngineProfiling:
    def test_profile_round_trip(self, engine):
        assert engine.get_profile("u1") is None
        profile = engine.build_user_profile("u1")
        assert engine.get_profile("u1") is profile

    def test_knowledge_state(self, engine):
        state = engine.model_knowledge_state("u1", "spanish")
        assert state.strong_areas == ["greetings"]
