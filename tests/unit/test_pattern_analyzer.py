"""
Unit tests for PatternAnalyzer.

Events are built directly so each test controls sessions and timestamps.
"""

from datetime import datetime, timedelta
from itertools import count

import pytest

from learning_core.analysis import BehaviorArchetype, PatternAnalyzer
from learning_core.tracking.models import Event, EventType

START = datetime(2024, 5, 6, 10, 0, 0)
_ids = count()


def make_event(event_type, minutes=0, session="s1", **context):
    return Event(
        id=f"e{next(_ids)}",
        user_id="u1",
        session_id=session,
        type=EventType.coerce(event_type),
        timestamp=START + timedelta(minutes=minutes),
        context=context,
    )


@pytest.fixture
def analyzer(settings):
    return PatternAnalyzer(settings=settings)


class TestPerformancePatterns:
    def test_no_completions(self, analyzer):
        events = [make_event("exercise_start"), make_event("hint_request")]
        assert analyzer.analyze_performance_patterns(events) == {
            "trend": "insufficient_data",
            "metrics": {},
        }

    def test_improving_scores(self, analyzer):
        scores = [0.5] * 5 + [0.8] * 5
        events = [
            make_event("exercise_complete", minutes=i, score=s, time_to_complete=30)
            for i, s in enumerate(scores)
        ]

        result = analyzer.analyze_performance_patterns(events)

        assert result["trend"] == "improving"
        assert result["accuracy"]["current"] == pytest.approx(0.8)
        assert result["accuracy"]["overall"] == pytest.approx(0.65)
        assert result["accuracy"]["improvement"] == pytest.approx(0.3)
        assert result["momentum"]["direction"] == "positive"

    def test_percentage_scores(self, analyzer):
        events = [make_event("exercise_complete", score=90), make_event("exercise_complete", score=70)]
        result = analyzer.analyze_performance_patterns(events)
        assert result["accuracy"]["overall"] == pytest.approx(0.8)

    def test_comfort_zone(self, analyzer):
        events = [
            make_event("exercise_complete", score=0.9, difficulty=0.4),
            make_event("exercise_complete", score=0.3, difficulty=0.9),
        ]
        result = analyzer.analyze_performance_patterns(events)
        assert result["difficulty"]["comfort_zone"] == {"min": 0.4, "max": 0.4, "average": 0.4}

    def test_zero_difficulty_is_kept(self, analyzer):
        events = [
            make_event("exercise_complete", score=0.9, difficulty=0),
            make_event("exercise_complete", score=0.8),
        ]
        result = analyzer.analyze_performance_patterns(events)
        assert result["difficulty"]["comfort_zone"] == {"min": 0.0, "max": 0.5, "average": 0.25}

    def test_unparseable_context_values(self, analyzer):
        events = [
            make_event("exercise_complete", minutes=0, score="A+", time_to_complete="slow", difficulty="hard"),
            make_event("exercise_complete", minutes=1, score=0.8, time_to_complete=30, difficulty=0.4),
            make_event("answer_submit", minutes=2, correct=True, response_time="n/a"),
        ]

        result = analyzer.analyze_performance_patterns(events)

        assert result["accuracy"]["overall"] == pytest.approx(0.4)
        assert result["difficulty"]["comfort_zone"] == {"min": 0.4, "max": 0.4, "average": 0.4}
        assert analyzer.collect_signals(events).mean_response_seconds == pytest.approx(30.0)

    def test_analysis_is_deterministic(self, analyzer):
        events = [make_event("exercise_complete", minutes=i, score=0.1 * i) for i in range(8)]
        assert analyzer.analyze_performance_patterns(events) == analyzer.analyze_performance_patterns(events)


class TestEngagementPatterns:
    def test_interaction_ratios(self, analyzer):
        events = [
            make_event("exercise_start", minutes=0, session="s1"),
            make_event("hint_request", minutes=5, session="s1"),
            make_event("pause_session", minutes=10, session="s1"),
            make_event("exercise_start", minutes=120, session="s2"),
            make_event("exercise_complete", minutes=140, session="s2", score=0.7),
        ]

        result = analyzer.analyze_engagement_patterns(events)

        assert result["session_quality"]["frequency"] == 2
        assert result["session_quality"]["average_length"] == pytest.approx(900.0)
        assert result["interaction"]["pause_frequency"] == pytest.approx(0.5)
        assert result["interaction"]["hint_usage"] == pytest.approx(0.2)
        assert result["motivation"]["persistence"] == pytest.approx(0.5)
        assert result["motivation"]["goal_orientation"] == pytest.approx(0.5)

    def test_persistence_without_starts(self, analyzer):
        assert analyzer.persistence([make_event("hint_request")]) == 0.5

    def test_flow_without_completions(self, analyzer):
        assert analyzer.assess_flow_state([make_event("exercise_start")]) == {
            "score": 0.0,
            "level": "low",
            "in_flow": False,
        }

    def test_flow_in_optimal_band(self, analyzer):
        events = [make_event("exercise_complete", minutes=i, score=0.7) for i in range(3)]
        flow = analyzer.assess_flow_state(events)
        assert flow["score"] == pytest.approx(1.0)
        assert flow["level"] == "high"
        assert flow["in_flow"] is True

    def test_exploration_level(self, analyzer):
        events = [
            make_event("exercise_complete", exercise_type=t, score=0.8)
            for t in ("vocabulary", "grammar", "listening", "speaking", "reading")
        ]
        assert analyzer.exploration_level(events) == pytest.approx(0.7)


class TestLearningEfficiency:
    def test_metacognition(self, analyzer):
        events = [
            make_event("hint_request"),
            make_event("answer_submit", correct=True),
            make_event("hint_request"),
            make_event("answer_submit", correct=False),
        ]
        assert analyzer.metacognition(events) == pytest.approx(0.5)
        assert analyzer.metacognition([make_event("answer_submit", correct=True)]) == 0.5

    def test_retention_rate(self, analyzer):
        events = [
            make_event("exercise_complete", exercise_type="vocabulary", score=0.8),
            make_event("exercise_complete", exercise_type="vocabulary", score=0.4),
        ]
        assert analyzer.retention_rate(events) == pytest.approx(0.5)

    def test_learning_rate_positive_for_rising_scores(self, analyzer):
        events = [make_event("exercise_complete", minutes=i, score=s) for i, s in enumerate([0.5, 0.6, 0.7])]
        result = analyzer.analyze_learning_efficiency(events)
        assert result["learning_rate"] == pytest.approx(0.1)


class TestTemporalAndSocial:
    def test_empty_temporal(self, analyzer):
        result = analyzer.analyze_temporal_patterns([])
        assert result["most_active_hour"] is None
        assert result["best_hour"] is None

    def test_best_hour(self, analyzer):
        events = [
            make_event("exercise_complete", minutes=0, score=0.5),
            make_event("exercise_complete", minutes=60, score=0.9),
            make_event("exercise_start", minutes=5),
        ]
        result = analyzer.analyze_temporal_patterns(events)
        assert result["most_active_hour"] == 10
        assert result["best_hour"] == 11
        assert result["most_active_day"] == 0

    def test_social_counts(self, analyzer):
        events = [make_event("social_interaction"), make_event("achievement_unlock")]
        result = analyzer.analyze_social_patterns(events)
        assert result["social_interactions"] == 1
        assert result["achievements"] == 1
        assert result["social_ratio"] == pytest.approx(0.5)


class TestBehaviorPatterns:
    def test_struggling_learner(self, analyzer):
        events = []
        for i in range(4):
            events.append(make_event("hint_request", minutes=2 * i))
            events.append(make_event("exercise_complete", minutes=2 * i + 1, score=0.2, time_to_complete=45))
        events.append(make_event("pause_session", minutes=9))

        patterns = analyzer.identify_behavior_patterns(events)

        assert [p.name for p in patterns] == [BehaviorArchetype.STRUGGLING]
        struggling = patterns[0]
        assert struggling.strength == 1.0
        assert struggling.confidence == pytest.approx(9 / 50)
        assert struggling.recommendations == [
            "easier_content",
            "additional_examples",
            "concept_review",
            "motivational_support",
        ]

    def test_mastering_learner(self, analyzer):
        events = [
            make_event("exercise_complete", minutes=i, exercise_type=t, score=0.95, time_to_complete=5)
            for i, t in enumerate(("vocabulary", "grammar", "listening", "speaking", "reading"))
        ]

        patterns = analyzer.identify_behavior_patterns(events)

        assert [p.name for p in patterns] == [BehaviorArchetype.MASTERING]
        assert all(patterns[0].indicators.values())

    def test_several_patterns_strongest_first(self, analyzer):
        events = [
            make_event("exercise_complete", minutes=i, exercise_type=t, score=0.95, time_to_complete=5)
            for i, t in enumerate(("vocabulary", "grammar", "listening", "speaking", "reading"))
        ]
        events.append(make_event("learning_path_change", minutes=6))

        patterns = analyzer.identify_behavior_patterns(events)

        assert [p.name for p in patterns] == [BehaviorArchetype.MASTERING, BehaviorArchetype.EXPLORING]
        assert [p.strength for p in patterns] == [1.0, 0.75]
        assert all(p.strength > 0.6 for p in patterns)
        assert patterns[1].indicators["help_seeking"] is False

    def test_weak_matches_are_dropped(self, analyzer):
        assert analyzer.identify_behavior_patterns([make_event("exercise_start")]) == []

    def test_confidence_saturates(self, analyzer):
        assert analyzer.pattern_confidence(25) == pytest.approx(0.5)
        assert analyzer.pattern_confidence(200) == 1.0
