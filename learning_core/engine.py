"""
Learning Analytics Engine.

In-process facade over the tracking, analysis, profiling and difficulty
layers. Services share one settings object and one set of collaborators:

    engine = LearningAnalyticsEngine(data_source=StaticLearnerDataSource.from_dict(doc))
    engine.track_event("u1", "exercise_complete", {"score": 0.8})
    report = engine.analyze_learning_patterns("u1", "7days")
    recommendation = engine.calculate_optimal_difficulty("u1", "vocabulary")
"""
from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Any, Optional

from loguru import logger

from config import Settings, get_settings
from learning_core.analysis.archetypes import BehaviorArchetype, BehaviorPattern
from learning_core.analysis.pattern_analyzer import PatternAnalyzer
from learning_core.core.scoring import clamp, mean, normalize_score, ratio, round_score
from learning_core.core.sources import (
    EnvironmentProvider,
    NullLearnerDataSource,
    StaticEnvironmentProvider,
)
from learning_core.difficulty.difficulty_adjuster import DifficultyAdjuster
from learning_core.difficulty.models import AdaptationDecision, DifficultyRecommendation
from learning_core.profiling.knowledge_state import KnowledgeStateModeler
from learning_core.profiling.models import KnowledgeState, UserProfile
from learning_core.profiling.profile_modeler import ProfileModeler
from learning_core.tracking.event_recorder import EventRecorder
from learning_core.tracking.event_store import EventStore
from learning_core.tracking.models import Event, EventType, Notification, Timeframe

DEFAULT_INSIGHTS: dict[str, Any] = {
    "current_struggle_level": 0.0,
    "optimal_difficulty": 0.5,
    "engagement_risk": "low",
    "next_best_action": "start_practicing",
    "intervention_suggestions": [],
    "learning_state": "ready",
    "motivation_level": 0.8,
}


class LearningAnalyticsEngine:
    """
    Public entry point of the analytics core.

    Args:
        data_source: Object answering the learner, concept and learner-state
            protocols (e.g. StaticLearnerDataSource); defaults to one that
            knows nothing
        environment: Environment/device metadata provider
        event_store: Event log backend (in-memory by default)
        clock: Time source, injectable for tests and replays
        settings: Threshold table (cached settings by default)
    """

    def __init__(
        self,
        data_source: Any = None,
        environment: EnvironmentProvider | None = None,
        event_store: EventStore | None = None,
        clock: Callable[[], datetime] = datetime.now,
        settings: Settings | None = None,
    ):
        self._settings = settings or get_settings()
        self._clock = clock
        self.data_source = data_source or NullLearnerDataSource()
        self.environment = environment or StaticEnvironmentProvider()

        self.recorder = EventRecorder(
            store=event_store,
            state_source=self.data_source,
            environment=self.environment,
            clock=clock,
            settings=self._settings,
        )
        self.analyzer = PatternAnalyzer(settings=self._settings)
        self.profiles = ProfileModeler(
            data_source=self.data_source,
            state_source=self.data_source,
            clock=clock,
            settings=self._settings,
        )
        self.knowledge = KnowledgeStateModeler(
            data_source=self.data_source,
            concept_source=self.data_source,
            clock=clock,
            settings=self._settings,
        )
        self.difficulty = DifficultyAdjuster(
            profiles=self.profiles,
            state_source=self.data_source,
            environment=self.environment,
            clock=clock,
            settings=self._settings,
        )

    # =========================================================================
    # Tracking
    # =========================================================================

    def track_event(
        self,
        user_id: str,
        event_type: EventType | str,
        context: Optional[dict[str, Any]] = None,
        timestamp: Optional[datetime] = None,
    ) -> Event:
        return self.recorder.record_event(user_id, event_type, context, timestamp)

    def get_events(
        self,
        user_id: str,
        timeframe: Timeframe | str = Timeframe.SEVEN_DAYS,
        now: Optional[datetime] = None,
    ) -> list[Event]:
        return self.recorder.get_events(user_id, timeframe, now)

    def pending_notifications(self, user_id: str) -> list[Notification]:
        return self.recorder.pending_notifications(user_id)

    def drain_notifications(self, user_id: str) -> list[Notification]:
        return self.recorder.drain_notifications(user_id)

    # =========================================================================
    # Pattern analysis
    # =========================================================================

    def analyze_learning_patterns(
        self,
        user_id: str,
        timeframe: Timeframe | str = Timeframe.SEVEN_DAYS,
        now: Optional[datetime] = None,
    ) -> dict[str, Any]:
        """
        Full pattern report over a timeframe.

        A window without events yields the default analysis with zero
        prediction confidence. The report is derived only from the events in
        the window, so repeated calls without new events are identical.
        """
        if not user_id:
            raise ValueError("analyze_learning_patterns() requires a user_id")

        resolved = Timeframe.parse(timeframe)
        events = self.recorder.get_events(user_id, resolved, now)
        if not events:
            logger.debug(f"No events for {user_id} in {resolved.value}; default analysis")
            return self.default_analysis(user_id, resolved)

        behavior = self.analyzer.identify_behavior_patterns(events)
        patterns = {
            "performance": self.analyzer.analyze_performance_patterns(events),
            "engagement": self.analyzer.analyze_engagement_patterns(events),
            "learning": self.analyzer.analyze_learning_efficiency(events),
            "behavior": [pattern.to_dict() for pattern in behavior],
            "temporal": self.analyzer.analyze_temporal_patterns(events),
            "social": self.analyzer.analyze_social_patterns(events),
        }

        return {
            "user_id": user_id,
            "timeframe": resolved.value,
            "event_count": len(events),
            "patterns": patterns,
            "insights": self.generate_insights(patterns, behavior),
            "recommendations": self.generate_recommendations(patterns, behavior),
            "predictions": self.make_predictions(patterns, behavior, len(events)),
            "risk_factors": self.identify_risk_factors(patterns, behavior),
            "strengths": self.identify_strengths(patterns),
        }

    @staticmethod
    def default_analysis(user_id: str, timeframe: Timeframe) -> dict[str, Any]:
        return {
            "user_id": user_id,
            "timeframe": timeframe.value,
            "event_count": 0,
            "patterns": {"status": "insufficient_data"},
            "insights": ["Start practicing to see personalized insights!"],
            "recommendations": ["Complete a few exercises to get started"],
            "predictions": {"confidence": 0.0},
            "risk_factors": [],
            "strengths": [],
        }

    @staticmethod
    def generate_insights(patterns: dict[str, Any], behavior: list[BehaviorPattern]) -> list[str]:
        insights = []
        performance = patterns["performance"]
        trend = performance.get("trend")
        if trend == "improving":
            insights.append("Your scores are improving. Keep up the momentum!")
        elif trend == "declining":
            insights.append("Your recent scores dipped. A short review could help.")

        accuracy = performance.get("accuracy", {})
        if accuracy:
            insights.append(f"Recent accuracy is {accuracy['current']:.0%} ({accuracy['overall']:.0%} overall).")

        flow = patterns["engagement"]["flow_state"]
        if flow["level"] == "high":
            insights.append("You were in a strong flow state during practice.")

        if behavior:
            insights.append(f"Dominant learning behavior: {behavior[0].name.value.lower()}.")
        return insights

    @staticmethod
    def generate_recommendations(
        patterns: dict[str, Any],
        behavior: list[BehaviorPattern],
    ) -> list[str]:
        recommendations: list[str] = []
        for pattern in behavior:
            for item in pattern.recommendations:
                if item not in recommendations:
                    recommendations.append(item)

        interaction = patterns["engagement"]["interaction"]
        if interaction["hint_usage"] > 0.3 and "concept_review" not in recommendations:
            recommendations.append("concept_review")
        if not recommendations:
            recommendations.append("gradual_progression")
        return recommendations

    @staticmethod
    def make_predictions(
        patterns: dict[str, Any],
        behavior: list[BehaviorPattern],
        event_count: int,
    ) -> dict[str, Any]:
        accuracy = patterns["performance"].get("accuracy")
        if not accuracy:
            return {"confidence": 0.0}

        learning_rate = patterns["learning"]["learning_rate"]
        confidence = behavior[0].confidence if behavior else round_score(ratio(event_count, 50))
        return {
            "next_score": round_score(clamp(accuracy["current"] + learning_rate)),
            "trajectory": patterns["performance"]["trend"],
            "confidence": confidence,
        }

    @staticmethod
    def identify_risk_factors(
        patterns: dict[str, Any],
        behavior: list[BehaviorPattern],
    ) -> list[str]:
        risks = []
        names = {pattern.name for pattern in behavior}
        if patterns["performance"].get("trend") == "declining":
            risks.append("declining_performance")
        if BehaviorArchetype.DISENGAGED in names:
            risks.append("disengagement")
        if BehaviorArchetype.STRUGGLING in names:
            risks.append("persistent_struggle")
        interaction = patterns["engagement"]["interaction"]
        if interaction["hint_usage"] > 0.3:
            risks.append("heavy_hint_reliance")
        if interaction["pause_frequency"] >= 1.0:
            risks.append("frequent_pauses")
        return risks

    @staticmethod
    def identify_strengths(patterns: dict[str, Any]) -> list[str]:
        strengths = []
        performance = patterns["performance"]
        if performance.get("trend") == "improving":
            strengths.append("improving_performance")
        if performance.get("accuracy", {}).get("overall", 0.0) > 0.85:
            strengths.append("high_accuracy")
        if performance.get("consistency", 0.0) > 0.8:
            strengths.append("consistent_performance")
        if patterns["engagement"]["motivation"]["persistence"] > 0.8:
            strengths.append("persistence")
        return strengths

    # =========================================================================
    # Real-time insights
    # =========================================================================

    def generate_real_time_insights(
        self,
        user_id: str,
        now: Optional[datetime] = None,
    ) -> dict[str, Any]:
        """Snapshot of the learner's current session over the last hour."""
        if not user_id:
            raise ValueError("generate_real_time_insights() requires a user_id")

        now = now or self._clock()
        recent = self.recorder.get_events(user_id, Timeframe.ONE_HOUR, now)
        session = self.recorder.get_current_session(user_id)
        if session is None or not recent:
            return {**DEFAULT_INSIGHTS, "intervention_suggestions": []}

        struggle = self._struggle_level(recent)
        session_minutes = session.duration_seconds / 60
        pauses = sum(
            1 for e in recent
            if e.session_id == session.session_id and e.is_type(EventType.PAUSE_SESSION)
        )
        if session_minutes >= self._settings.intervention_break_minutes or pauses >= 2:
            engagement_risk = "high"
        elif session_minutes >= self._settings.long_session_minutes or pauses == 1:
            engagement_risk = "medium"
        else:
            engagement_risk = "low"

        completions = [e for e in recent if e.is_type(EventType.EXERCISE_COMPLETE)]
        accuracy = mean([normalize_score(e.get("score", 0)) for e in completions])
        exercise_type = next(
            (e.get("exercise_type") for e in reversed(recent) if e.get("exercise_type")),
            "general",
        )
        flow = self.analyzer.assess_flow_state(recent)

        if struggle > 0.6:
            next_action, learning_state = "review_concept", "struggling"
        elif engagement_risk == "high":
            next_action, learning_state = "take_break", "fatigued"
        elif completions and accuracy > self._settings.high_score_threshold:
            next_action, learning_state = "increase_challenge", "flowing" if flow["in_flow"] else "engaged"
        else:
            next_action, learning_state = "continue_practice", "flowing" if flow["in_flow"] else "engaged"

        state = self.difficulty.get_learning_state(user_id)
        return {
            "current_struggle_level": struggle,
            "optimal_difficulty": self.calculate_optimal_difficulty(
                user_id, exercise_type, now=now
            ).difficulty,
            "engagement_risk": engagement_risk,
            "next_best_action": next_action,
            "intervention_suggestions": [
                n.to_dict() for n in self.recorder.pending_notifications(user_id)
            ],
            "learning_state": learning_state,
            "motivation_level": state["motivation_level"],
            "flow_state_indicators": flow,
            "session": session.to_dict(),
        }

    def _struggle_level(self, events: list[Event]) -> float:
        answers = [
            e for e in events
            if e.is_type(EventType.ANSWER_SUBMIT) and "correct" in e.context
        ]
        completions = [e for e in events if e.is_type(EventType.EXERCISE_COMPLETE)]
        signals = [ratio(
            sum(1 for e in events if e.is_type(EventType.HINT_REQUEST)), len(events)
        )]
        if answers:
            signals.append(sum(1 for e in answers if not e.get("correct")) / len(answers))
        if completions:
            low = self._settings.intervention_low_score
            signals.append(
                sum(1 for e in completions if normalize_score(e.get("score", 0)) < low)
                / len(completions)
            )
        return round_score(clamp(mean(signals)))

    # =========================================================================
    # Difficulty
    # =========================================================================

    def calculate_optimal_difficulty(
        self,
        user_id: str,
        exercise_type: str,
        context: Optional[dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> DifficultyRecommendation:
        return self.difficulty.calculate_optimal_difficulty(user_id, exercise_type, context, now)

    def adapt_difficulty_real_time(
        self,
        user_id: str,
        exercise_id: str,
        response: dict[str, Any],
        session_context: Optional[dict[str, Any]] = None,
    ) -> AdaptationDecision:
        """
        Real-time adaptation, with observed session signals filled in.

        Accuracy over the last trend_window completions and the pause count
        of the current session are used unless the caller supplies them.
        """
        observed: dict[str, Any] = {}
        metrics = self.recorder.get_running_metrics(user_id)
        if metrics.completions:
            observed["recent_accuracy"] = round_score(metrics.recent_accuracy)

        session = self.recorder.get_current_session(user_id)
        if session is not None:
            session_events = set(session.event_ids)
            observed["recent_pauses"] = sum(
                1 for e in self.recorder.store.query(user_id, session.start_time)
                if e.id in session_events and e.is_type(EventType.PAUSE_SESSION)
            )

        return self.difficulty.adapt_difficulty_real_time(
            user_id, exercise_id, response, {**observed, **(session_context or {})}
        )

    # =========================================================================
    # Profiling
    # =========================================================================

    def build_user_profile(self, user_id: str) -> UserProfile:
        return self.profiles.build_user_profile(user_id)

    def get_profile(self, user_id: str) -> UserProfile | None:
        return self.profiles.get_profile(user_id)

    def model_knowledge_state(
        self,
        user_id: str,
        subject: str,
        now: Optional[datetime] = None,
    ) -> KnowledgeState:
        return self.knowledge.model_knowledge_state(user_id, subject, now)
