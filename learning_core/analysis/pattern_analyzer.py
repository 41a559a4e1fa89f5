"""
Learning Pattern Analyzer.

Turns a bounded window of learner events into structured metrics:

1. Performance: accuracy, speed, difficulty comfort zone, consistency, momentum
2. Engagement: session quality, interaction ratios, motivation, flow state
3. Efficiency: learning rate, retention, transfer, metacognition
4. Temporal and social activity
5. Behavior archetypes (STRUGGLING, MASTERING, DISENGAGED, EXPLORING, OPTIMAL)

Every analysis is a pure function of the events passed in, so analyzing the
same window twice yields identical results.
"""
from __future__ import annotations

from collections import Counter, defaultdict
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Optional

from loguru import logger

from config import Settings, get_settings
from learning_core.analysis.archetypes import BEHAVIOR_ARCHETYPES, BehaviorPattern
from learning_core.analysis.statistics import (
    Trend,
    comfort_zone,
    consistency,
    improvement,
    linear_slope,
    momentum,
    speed_improvement,
    trend,
)
from learning_core.core.scoring import clamp, mean, normalize_score, ratio, round_score, to_float
from learning_core.tracking.models import Event, EventType

# Event types that signal the learner wandering off the default path
EXPLORATORY_EVENTS = (
    EventType.LEARNING_PATH_CHANGE,
    EventType.DIFFICULTY_CHANGE,
    EventType.SOCIAL_INTERACTION,
)


@dataclass
class BehaviorSignals:
    """Aggregates over an event window that behavior indicators are judged on."""
    event_count: int = 0
    session_count: int = 0
    accuracy: Optional[float] = None
    accuracy_trend: Trend = Trend.INSUFFICIENT_DATA
    score_consistency: float = 0.0
    mean_response_seconds: Optional[float] = None
    hint_ratio: float = 0.0
    pause_rate: float = 0.0
    exploration_level: float = 0.0
    session_length_trend: Trend = Trend.INSUFFICIENT_DATA
    session_consistency: float = 0.0
    practice_regularity: Optional[float] = None
    distinct_exercise_types: int = 0
    exploratory_ratio: float = 0.0
    path_changes: int = 0
    goal_orientation: float = 0.0


class PatternAnalyzer:
    """
    Derives performance, engagement and behavior patterns from events.

    Usage:
        analyzer = PatternAnalyzer()
        events = recorder.get_events(user_id, "7days")
        performance = analyzer.analyze_performance_patterns(events)
        patterns = analyzer.identify_behavior_patterns(events)
    """

    def __init__(self, settings: Settings | None = None):
        self._settings = settings or get_settings()
        self.thresholds = self._settings.get_pattern_thresholds()

    # =========================================================================
    # Series helpers
    # =========================================================================

    def trend(self, values: Sequence[float]) -> Trend:
        return trend(
            values,
            window=self._settings.trend_window,
            min_points=self._settings.trend_min_points,
            threshold=self._settings.trend_change_threshold,
        )

    def _recent(self, values: Sequence[float]) -> list[float]:
        return list(values[-self._settings.trend_window:])

    @staticmethod
    def _completions(events: Sequence[Event]) -> list[Event]:
        return [e for e in events if e.is_type(EventType.EXERCISE_COMPLETE)]

    @staticmethod
    def _scores(completions: Sequence[Event]) -> list[float]:
        return [normalize_score(e.get("score", 0)) for e in completions]

    @staticmethod
    def _times(completions: Sequence[Event]) -> list[float]:
        return [to_float(e.get("time_to_complete")) for e in completions]

    @staticmethod
    def _difficulties(completions: Sequence[Event]) -> list[float]:
        return [clamp(to_float(e.get("difficulty"), 0.5)) for e in completions]

    @staticmethod
    def _count(events: Sequence[Event], event_type: EventType) -> int:
        return sum(1 for e in events if e.is_type(event_type))

    @staticmethod
    def group_by_session(events: Sequence[Event]) -> dict[str, list[Event]]:
        """Events grouped by session id, sessions in first-seen order."""
        sessions: dict[str, list[Event]] = defaultdict(list)
        for event in events:
            sessions[event.session_id].append(event)
        return dict(sessions)

    @staticmethod
    def _session_lengths(sessions: dict[str, list[Event]]) -> list[float]:
        lengths = []
        for session_events in sessions.values():
            stamps = [e.timestamp for e in session_events]
            lengths.append((max(stamps) - min(stamps)).total_seconds())
        return lengths

    # =========================================================================
    # Performance
    # =========================================================================

    def analyze_performance_patterns(self, events: Sequence[Event]) -> dict[str, Any]:
        """
        Performance metrics over completed exercises.

        Returns {"trend": "insufficient_data", "metrics": {}} when the window
        holds no completions.
        """
        completions = self._completions(events)
        if not completions:
            return {"trend": Trend.INSUFFICIENT_DATA.value, "metrics": {}}

        scores = self._scores(completions)
        times = self._times(completions)
        difficulties = self._difficulties(completions)

        return {
            "trend": self.trend(scores).value,
            "accuracy": {
                "current": round_score(mean(self._recent(scores))),
                "overall": round_score(mean(scores)),
                "improvement": round_score(improvement(scores)),
            },
            "speed": {
                "current": round_score(mean(self._recent(times))),
                "overall": round_score(mean(times)),
                "improvement": round_score(speed_improvement(times)),
            },
            "difficulty": {
                "current": round_score(mean(self._recent(difficulties))),
                "progression": round_score(linear_slope(difficulties)),
                "comfort_zone": comfort_zone(scores, difficulties),
            },
            "consistency": round_score(consistency(scores)),
            "momentum": momentum(
                scores,
                times,
                window=self._settings.trend_window,
                min_points=self._settings.trend_min_points,
                threshold=self._settings.trend_change_threshold,
            ).to_dict(),
        }

    # =========================================================================
    # Engagement
    # =========================================================================

    def exploration_level(self, events: Sequence[Event]) -> float:
        """Blend of exercise-type diversity and path changes per session."""
        completions = self._completions(events)
        types = {e.get("exercise_type") for e in completions if e.get("exercise_type")}
        diversity = ratio(len(types), self._settings.exploration_type_target)

        sessions = max(1, len(self.group_by_session(events)))
        path_changes = self._count(events, EventType.LEARNING_PATH_CHANGE)
        return round_score(clamp(0.7 * diversity + 0.3 * ratio(path_changes, sessions)))

    def persistence(self, events: Sequence[Event]) -> float:
        """Share of started exercises that were completed (0.5 with no starts)."""
        starts = self._count(events, EventType.EXERCISE_START)
        if starts == 0:
            return 0.5
        return round_score(ratio(self._count(events, EventType.EXERCISE_COMPLETE), starts))

    def curiosity(self, events: Sequence[Event]) -> float:
        """Variety of interaction kinds used."""
        kinds = {e.type_name for e in events}
        return round_score(ratio(len(kinds), len(EventType)))

    def goal_orientation(self, events: Sequence[Event]) -> float:
        """Share of sessions that finished at least one exercise."""
        sessions = self.group_by_session(events)
        if not sessions:
            return 0.0
        productive = sum(
            1 for session_events in sessions.values()
            if any(e.is_type(EventType.EXERCISE_COMPLETE) for e in session_events)
        )
        return round_score(productive / len(sessions))

    def assess_flow_state(self, events: Sequence[Event]) -> dict[str, Any]:
        """
        Flow estimate: accuracy near the optimal band, little help, few pauses.
        """
        scores = self._scores(self._completions(events))
        if not scores:
            return {"score": 0.0, "level": "low", "in_flow": False}

        optimal_mid = (self.thresholds["optimal_low"] + self.thresholds["optimal_high"]) / 2
        balance = clamp(1 - abs(mean(scores) - optimal_mid) * 2)
        sessions = max(1, len(self.group_by_session(events)))
        unaided = 1 - ratio(self._count(events, EventType.HINT_REQUEST), len(events))
        uninterrupted = 1 - ratio(self._count(events, EventType.PAUSE_SESSION), sessions)

        score = round_score(mean([balance, unaided, uninterrupted]))
        if score > 0.7:
            level = "high"
        elif score > 0.5:
            level = "medium"
        else:
            level = "low"
        return {"score": score, "level": level, "in_flow": level == "high"}

    def analyze_engagement_patterns(self, events: Sequence[Event]) -> dict[str, Any]:
        """Session quality, interaction ratios, motivation and flow."""
        sessions = self.group_by_session(events)
        lengths = self._session_lengths(sessions)
        session_count = len(sessions)

        pauses = self._count(events, EventType.PAUSE_SESSION)
        hints = self._count(events, EventType.HINT_REQUEST)

        return {
            "session_quality": {
                "average_length": round_score(mean(lengths)),
                "consistency": round_score(consistency(lengths)),
                "frequency": session_count,
            },
            "interaction": {
                "pause_frequency": round_score(pauses / session_count) if session_count else 0.0,
                "hint_usage": round_score(hints / len(events)) if events else 0.0,
                "exploration_level": self.exploration_level(events),
            },
            "motivation": {
                "persistence": self.persistence(events),
                "curiosity": self.curiosity(events),
                "goal_orientation": self.goal_orientation(events),
            },
            "flow_state": self.assess_flow_state(events),
        }

    # =========================================================================
    # Efficiency
    # =========================================================================

    def _answers(self, events: Sequence[Event]) -> list[Event]:
        return [
            e for e in events
            if e.is_type(EventType.ANSWER_SUBMIT) and "correct" in e.context
        ]

    def retention_rate(self, completions: Sequence[Event]) -> float:
        """How well later attempts of an exercise type hold up against the first."""
        by_type: dict[str, list[float]] = defaultdict(list)
        for event in completions:
            by_type[event.get("exercise_type") or "general"].append(
                normalize_score(event.get("score", 0))
            )

        ratios = [
            clamp(mean(scores[1:]) / scores[0])
            for scores in by_type.values()
            if len(scores) >= 2 and scores[0] > 0
        ]
        return round_score(mean(ratios)) if ratios else 0.5

    def transfer_ability(self, completions: Sequence[Event]) -> float:
        """First-attempt score on each newly met exercise type, relative to overall accuracy."""
        scores = self._scores(completions)
        overall = mean(scores)
        if overall == 0:
            return 0.5

        first_scores: dict[str, float] = {}
        for event in completions:
            exercise_type = event.get("exercise_type") or "general"
            first_scores.setdefault(exercise_type, normalize_score(event.get("score", 0)))

        newcomers = list(first_scores.values())[1:]
        if not newcomers:
            return 0.5
        return round_score(clamp(mean(newcomers) / overall))

    def metacognition(self, events: Sequence[Event]) -> float:
        """Share of hint requests followed by a correct answer."""
        hints = 0
        useful = 0
        awaiting_answer = False
        for event in events:
            if event.is_type(EventType.HINT_REQUEST):
                hints += 1
                awaiting_answer = True
            elif awaiting_answer and event.is_type(EventType.ANSWER_SUBMIT):
                useful += 1 if event.get("correct") else 0
                awaiting_answer = False
        return round_score(useful / hints) if hints else 0.5

    def analyze_learning_efficiency(self, events: Sequence[Event]) -> dict[str, Any]:
        """Learning rate, retention, transfer, metacognition and optimization."""
        completions = self._completions(events)
        scores = self._scores(completions)
        times = self._times(completions)
        answers = self._answers(events)

        accuracy = mean(scores)
        mean_time = mean([t for t in times if t > 0])
        if mean_time > 0:
            time_efficiency = clamp(
                accuracy * min(1.0, self.thresholds["slow_response_seconds"] / mean_time)
            )
        else:
            time_efficiency = accuracy

        if answers:
            effort_efficiency = sum(1 for e in answers if e.get("correct")) / len(answers)
        else:
            effort_efficiency = accuracy

        hint_usage = ratio(self._count(events, EventType.HINT_REQUEST), len(events))
        resource_utilization = clamp(1 - abs(hint_usage - self.thresholds["help_seeking_ratio"]) * 2)

        return {
            "learning_rate": round_score(clamp(linear_slope(scores), -1.0, 1.0)),
            "retention_rate": self.retention_rate(completions),
            "transfer_ability": self.transfer_ability(completions),
            "metacognition": self.metacognition(events),
            "optimization": {
                "time_efficiency": round_score(time_efficiency),
                "effort_efficiency": round_score(effort_efficiency),
                "resource_utilization": round_score(resource_utilization),
            },
        }

    # =========================================================================
    # Temporal & Social
    # =========================================================================

    def analyze_temporal_patterns(self, events: Sequence[Event]) -> dict[str, Any]:
        """When the learner practices, and when they score best."""
        if not events:
            return {
                "hour_distribution": {},
                "weekday_distribution": {},
                "most_active_hour": None,
                "most_active_day": None,
                "best_hour": None,
            }

        hours = Counter(e.timestamp.hour for e in events)
        weekdays = Counter(e.timestamp.weekday() for e in events)

        scores_by_hour: dict[int, list[float]] = defaultdict(list)
        for event in self._completions(events):
            scores_by_hour[event.timestamp.hour].append(normalize_score(event.get("score", 0)))
        best_hour = None
        if scores_by_hour:
            best_hour = max(sorted(scores_by_hour), key=lambda h: mean(scores_by_hour[h]))

        return {
            "hour_distribution": dict(sorted(hours.items())),
            "weekday_distribution": dict(sorted(weekdays.items())),
            "most_active_hour": hours.most_common(1)[0][0],
            "most_active_day": weekdays.most_common(1)[0][0],
            "best_hour": best_hour,
        }

    def analyze_social_patterns(self, events: Sequence[Event]) -> dict[str, Any]:
        social = self._count(events, EventType.SOCIAL_INTERACTION)
        return {
            "social_interactions": social,
            "achievements": self._count(events, EventType.ACHIEVEMENT_UNLOCK),
            "streak_updates": self._count(events, EventType.STREAK_UPDATE),
            "social_ratio": round_score(social / len(events)) if events else 0.0,
        }

    # =========================================================================
    # Behavior Archetypes
    # =========================================================================

    def collect_signals(self, events: Sequence[Event]) -> BehaviorSignals:
        """Aggregate the quantities behavior indicators are judged on."""
        completions = self._completions(events)
        scores = self._scores(completions)
        answers = self._answers(events)
        sessions = self.group_by_session(events)
        lengths = self._session_lengths(sessions)

        if scores:
            accuracy: Optional[float] = mean(scores)
        elif answers:
            accuracy = sum(1 for e in answers if e.get("correct")) / len(answers)
        else:
            accuracy = None

        response_times = [
            t for t in (
                to_float(e.get("response_time"), -1.0)
                for e in events if e.is_type(EventType.ANSWER_SUBMIT)
            )
            if t >= 0
        ]
        if not response_times:
            response_times = [t for t in self._times(completions) if t > 0]

        starts = sorted(min(e.timestamp for e in group) for group in sessions.values())
        gaps = [(b - a).total_seconds() for a, b in zip(starts, starts[1:])]

        session_count = len(sessions)
        return BehaviorSignals(
            event_count=len(events),
            session_count=session_count,
            accuracy=accuracy,
            accuracy_trend=self.trend(scores),
            score_consistency=consistency(scores),
            mean_response_seconds=mean(response_times) if response_times else None,
            hint_ratio=ratio(self._count(events, EventType.HINT_REQUEST), len(events)),
            pause_rate=(
                self._count(events, EventType.PAUSE_SESSION) / session_count
                if session_count else 0.0
            ),
            exploration_level=self.exploration_level(events),
            session_length_trend=self.trend(lengths),
            session_consistency=consistency(lengths),
            practice_regularity=consistency(gaps) if len(gaps) >= 2 else None,
            distinct_exercise_types=len(
                {e.get("exercise_type") for e in completions if e.get("exercise_type")}
            ),
            exploratory_ratio=ratio(
                sum(1 for e in events if any(e.is_type(t) for t in EXPLORATORY_EVENTS)),
                len(events),
            ),
            path_changes=self._count(events, EventType.LEARNING_PATH_CHANGE),
            goal_orientation=self.goal_orientation(events),
        )

    def evaluate_indicators(self, signals: BehaviorSignals) -> dict[str, bool]:
        """Judge every known indicator against the signals."""
        t = self.thresholds
        accuracy = signals.accuracy
        response = signals.mean_response_seconds

        return {
            "low_accuracy": accuracy is not None and accuracy < t["struggling_accuracy"],
            "high_hint_usage": signals.hint_ratio > t["high_hint_ratio"],
            "long_response_times": response is not None and response > t["slow_response_seconds"],
            "frequent_pauses": signals.session_count > 0 and signals.pause_rate >= t["frequent_pause_rate"],
            "high_accuracy": accuracy is not None and accuracy > t["mastering_accuracy"],
            "fast_response_times": response is not None and response < t["fast_response_seconds"],
            "consistent_performance": signals.score_consistency > 0.8,
            "exploration_behavior": signals.exploration_level > t["exploration"],
            "declining_accuracy": signals.accuracy_trend == Trend.DECLINING,
            "reduced_session_time": signals.session_length_trend == Trend.DECLINING,
            "irregular_practice": (
                signals.practice_regularity is not None and signals.practice_regularity < 0.5
            ),
            "diverse_exercise_types": signals.distinct_exercise_types >= 3,
            "curious_clicks": signals.exploratory_ratio > t["help_seeking_ratio"],
            "exploration_patterns": signals.path_changes > 0,
            "help_seeking": signals.hint_ratio > t["help_seeking_ratio"],
            "balanced_performance": (
                accuracy is not None and t["optimal_low"] <= accuracy <= t["optimal_high"]
            ),
            "steady_progress": signals.accuracy_trend in (Trend.IMPROVING, Trend.STABLE),
            "consistent_engagement": signals.session_consistency > 0.6,
            "goal_oriented": signals.goal_orientation > 0.7,
        }

    def pattern_confidence(self, event_count: int) -> float:
        """Sample-size confidence, saturating at the configured event count."""
        return round_score(ratio(event_count, self._settings.pattern_confidence_events))

    def identify_behavior_patterns(self, events: Sequence[Event]) -> list[BehaviorPattern]:
        """
        Match the event window against the behavior archetypes.

        Only archetypes whose indicator coverage exceeds the strength
        threshold are returned, strongest first.
        """
        signals = self.collect_signals(events)
        judged = self.evaluate_indicators(signals)
        confidence = self.pattern_confidence(signals.event_count)

        patterns = []
        for archetype, definition in BEHAVIOR_ARCHETYPES.items():
            indicators = {name: judged[name] for name in definition.indicators}
            strength = round_score(sum(indicators.values()) / len(indicators))
            if strength > self.thresholds["strength"]:
                patterns.append(BehaviorPattern(
                    name=archetype,
                    strength=strength,
                    confidence=confidence,
                    indicators=indicators,
                    recommendations=list(definition.interventions),
                ))

        patterns.sort(key=lambda p: p.strength, reverse=True)
        logger.debug(f"Matched {len(patterns)} behavior patterns over {len(events)} events")
        return patterns
