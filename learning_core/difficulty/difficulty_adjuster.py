"""
Adaptive Difficulty Adjuster.

Recommends exercise difficulty from the learner profile, recent
performance and live learning state, and adapts it answer by answer.

Optimal difficulty:
1. base = clamp(0.7 * skill + 0.3 * cognitive capacity, 0.1, 0.9)
   (+0.1 when a strong visual preference meets a visual exercise)
2. + performance adjustment   [-0.2, 0.2]
3. + state adjustment         [-0.15, 0.15]
4. + objective adjustment     [-0.1, 0.1]
5. + time adjustment          [-0.1, 0.05]
6. + environmental adjustment [-0.1, 0.05]
7. clamp to [0.1, 1.0], then classify against the Zone of Proximal
   Development and estimate flow potential
"""
from __future__ import annotations

import math
from collections.abc import Callable
from datetime import datetime
from typing import Any, Optional

from loguru import logger

from config import Settings, get_settings
from learning_core.analysis.statistics import Trend, consistency, trend
from learning_core.core.scoring import clamp, mean, normalize_score, round_score, to_float
from learning_core.core.sources import (
    DEFAULT_LEARNING_STATE,
    EnvironmentProvider,
    LearnerStateSource,
    NullLearnerDataSource,
    StaticEnvironmentProvider,
)
from learning_core.core.timeutils import days_between, to_datetime
from learning_core.difficulty.models import (
    AdaptationDecision,
    AdaptationType,
    DifficultyAdjustments,
    DifficultyRecommendation,
    FlowAssessment,
    FlowBand,
    RecentPerformance,
    ZPDAnalysis,
    Zone,
)
from learning_core.difficulty.realtime import ADAPTATION_STRATEGIES, RealTimeAdapter
from learning_core.profiling.models import UserProfile
from learning_core.profiling.profile_modeler import ProfileModeler

# Goal focus -> difficulty nudge when the goal targets the exercise type
GOAL_FOCUS_ADJUSTMENTS = {
    "challenge": 0.05,
    "mastery": 0.03,
    "fluency": 0.0,
    "review": -0.05,
    "confidence": -0.05,
}

FLOW_FACTOR_RECOMMENDATIONS = {
    "challenge_skill_balance": "match_difficulty_to_skill",
    "clear_goals": "set_session_goal",
    "concentration": "reduce_distractions",
    "control_sense": "offer_choices",
    "intrinsic_motivation": "connect_to_interests",
}

# Hours regarded as late-night practice
LATE_HOURS = frozenset({22, 23, 0, 1, 2, 3, 4, 5})


class DifficultyAdjuster:
    """
    Calculates optimal difficulty and real-time adaptations.

    Usage:
        adjuster = DifficultyAdjuster(profiles=ProfileModeler(data_source=source),
                                      state_source=source)
        recommendation = adjuster.calculate_optimal_difficulty("u1", "vocabulary")
        decision = adjuster.adapt_difficulty_real_time(
            "u1", "ex-42", {"correct": False, "effort": 1.0},
            {"current_difficulty": 0.6},
        )
    """

    def __init__(
        self,
        profiles: ProfileModeler | None = None,
        state_source: LearnerStateSource | None = None,
        environment: EnvironmentProvider | None = None,
        adapter: RealTimeAdapter | None = None,
        clock: Callable[[], datetime] = datetime.now,
        settings: Settings | None = None,
    ):
        self._settings = settings or get_settings()
        self.config = self._settings.get_difficulty_config()
        self.profiles = profiles or ProfileModeler(settings=self._settings)
        self.state_source = state_source or NullLearnerDataSource()
        self.environment = environment or StaticEnvironmentProvider()
        self.adapter = adapter or RealTimeAdapter(settings=self._settings)
        self._clock = clock

    # =========================================================================
    # Inputs
    # =========================================================================

    def get_learning_state(
        self,
        user_id: str,
        overrides: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """Live learning state: defaults, then the state source, then caller overrides."""
        state = dict(DEFAULT_LEARNING_STATE)
        state.update(self.state_source.get_learning_state(user_id) or {})
        for key, value in (overrides or {}).items():
            if key in DEFAULT_LEARNING_STATE and value is not None:
                state[key] = value
        return state

    def analyze_recent_performance(self, history: list[dict[str, Any]]) -> RecentPerformance:
        if not history:
            return RecentPerformance()
        scores = [normalize_score(s.get("score")) for s in history]
        times = [to_float(s.get("time_to_complete")) for s in history]
        return RecentPerformance(
            sessions=len(history),
            average_score=round_score(mean(scores)),
            trend=trend(
                scores,
                window=self._settings.trend_window,
                min_points=self._settings.trend_min_points,
                threshold=self._settings.trend_change_threshold,
            ),
            consistency=round_score(consistency(scores)),
            average_time=round_score(mean(times)),
        )

    # =========================================================================
    # Components
    # =========================================================================

    def calculate_base_difficulty(self, profile: UserProfile, exercise_type: str) -> float:
        skill = profile.skill_levels.get(exercise_type, profile.skill_level)
        base = skill * 0.7 + profile.cognitive_capacity * 0.3
        if (
            profile.preferences.get("visual", 0.0) > self._settings.visual_preference_threshold
            and "visual" in exercise_type
        ):
            base += 0.1
        return round_score(clamp(base, self.config["min"], self.config["base_max"]))

    def calculate_performance_adjustment(self, recent: RecentPerformance) -> float:
        """Score, trend and consistency nudges, within [-0.2, 0.2]."""
        if recent.sessions == 0:
            return 0.0

        adjustment = 0.0
        if recent.average_score > self._settings.high_score_threshold:
            adjustment += 0.1
        elif recent.average_score < self._settings.low_score_threshold:
            adjustment -= 0.1

        if recent.trend == Trend.IMPROVING:
            adjustment += 0.05
        elif recent.trend == Trend.DECLINING:
            adjustment -= 0.05

        if recent.consistency < 0.5:
            adjustment -= 0.03

        return round_score(clamp(adjustment, -0.2, 0.2))

    def calculate_state_adjustment(self, state: dict[str, Any]) -> float:
        """Fatigue, motivation, session length and streak nudges, within [-0.15, 0.15]."""
        adjustment = 0.0

        if to_float(state.get("fatigue_level")) > self._settings.fatigue_threshold:
            adjustment -= 0.1

        motivation = to_float(state.get("motivation_level"), 0.6)
        if motivation > self._settings.high_motivation_threshold:
            adjustment += 0.05
        elif motivation < self._settings.low_motivation_threshold:
            adjustment -= 0.05

        if to_float(state.get("session_duration")) > self._settings.long_session_minutes * 60:
            adjustment -= 0.05

        if to_float(state.get("current_streak")) > self._settings.streak_bonus_threshold:
            adjustment += 0.03

        return round_score(clamp(adjustment, -0.15, 0.15))

    def calculate_objective_adjustment(
        self,
        goals: list[dict[str, Any]],
        exercise_type: str,
    ) -> float:
        """Nudges from learning goals that target this exercise type, within [-0.1, 0.1]."""
        adjustment = 0.0
        for goal in goals:
            target = goal.get("exercise_type")
            if target not in (None, exercise_type):
                continue
            adjustment += GOAL_FOCUS_ADJUSTMENTS.get(goal.get("focus", ""), 0.0)
        return round_score(clamp(adjustment, -0.1, 0.1))

    def calculate_time_adjustment(
        self,
        recent: RecentPerformance,
        last_practiced: Any,
        now: datetime,
    ) -> float:
        """
        Forgetting-curve adjustment, within [-0.1, 0.05].

        Long gaps ease difficulty for a warm-up; practice within the last day
        with retention above 0.9 allows a small step up.
        """
        days = days_between(to_datetime(last_practiced), now)
        if days is None:
            return 0.0

        stability = (1 + 0.5 * recent.sessions) * (0.5 + recent.average_score)
        retention = math.exp(-days / stability)

        if retention < 0.5:
            adjustment = -0.1
        elif retention < self._settings.retention_review_threshold:
            adjustment = -0.05
        elif retention > 0.9 and days < 1:
            adjustment = 0.05
        else:
            adjustment = 0.0
        return round_score(clamp(adjustment, -0.1, 0.05))

    def calculate_environmental_adjustment(
        self,
        context: dict[str, Any],
        now: datetime,
    ) -> float:
        """Device, connectivity, time-of-day and focus nudges, within [-0.1, 0.05]."""
        device = {**self.environment.device_context(), **(context.get("device_context") or {})}
        hour = context.get("time_of_day", now.hour)

        adjustment = 0.0
        if device.get("device_type") == "mobile":
            adjustment -= 0.05
        if device.get("connectivity") in ("offline", "slow"):
            adjustment -= 0.03
        if hour in LATE_HOURS:
            adjustment -= 0.05
        if context.get("focus_mode"):
            adjustment += 0.05
        return round_score(clamp(adjustment, -0.1, 0.05))

    # =========================================================================
    # ZPD & Flow
    # =========================================================================

    def analyze_zpd(self, profile: UserProfile, difficulty: float) -> ZPDAnalysis:
        ability = profile.skill_level
        assisted = ability + self.config["zpd_assist_margin"]
        lower = round_score(ability + self.config["zpd_edge_margin"])
        upper = round_score(assisted - self.config["zpd_edge_margin"])

        if difficulty < lower:
            zone = Zone.COMFORT
            recommendations = [
                f"Difficulty {difficulty:.2f} is below the learning zone; add challenge",
                "Introduce novel elements or combine concepts",
            ]
        elif difficulty > upper:
            zone = Zone.FRUSTRATION
            recommendations = [
                f"Difficulty {difficulty:.2f} is above the learning zone; add scaffolding",
                "Break the exercise into smaller steps",
            ]
        else:
            zone = Zone.LEARNING
            recommendations = ["Within the learning zone; keep support light and fade hints"]

        return ZPDAnalysis(
            current_ability=round_score(ability),
            assisted_ability=round_score(assisted),
            zpd_lower=lower,
            zpd_upper=upper,
            proposed_difficulty=difficulty,
            zone=zone,
            recommendations=recommendations,
        )

    def assess_flow_potential(
        self,
        profile: UserProfile,
        difficulty: float,
        state: dict[str, Any],
    ) -> FlowAssessment:
        factors = {
            "challenge_skill_balance": clamp(1 - abs(difficulty - profile.skill_level)),
            "clear_goals": 1.0 if state.get("has_goals") else 0.5,
            "immediate_feedback": self._settings.feedback_immediacy,
            "concentration": clamp(1 - to_float(state.get("distraction_level"))),
            "control_sense": profile.personality.get("autonomy", 0.7),
            "intrinsic_motivation": profile.motivation.get("intrinsic", 0.6),
        }
        factors = {name: round_score(value) for name, value in factors.items()}
        potential = round_score(mean(factors.values()))

        if potential > 0.7:
            band = FlowBand.HIGH
        elif potential > 0.5:
            band = FlowBand.MEDIUM
        else:
            band = FlowBand.LOW

        return FlowAssessment(
            flow_potential=potential,
            band=band,
            factors=factors,
            recommendations=[
                FLOW_FACTOR_RECOMMENDATIONS[name]
                for name, value in factors.items()
                if value < 0.6 and name in FLOW_FACTOR_RECOMMENDATIONS
            ],
        )

    def calculate_confidence(self, recent: RecentPerformance, state: dict[str, Any]) -> float:
        """More history means more confidence; fatigue makes state noisy."""
        sample = min(1.0, recent.sessions / self._settings.confidence_attempts)
        fatigue_penalty = 0.2 * clamp(to_float(state.get("fatigue_level")))
        return round_score(clamp(0.4 + 0.6 * sample - fatigue_penalty))

    @staticmethod
    def strategy_for(recent: RecentPerformance) -> str:
        """Name of the adaptation strategy recent performance calls for."""
        if recent.sessions == 0:
            return "OPTIMAL"
        if recent.average_score >= 0.9:
            return "TOO_EASY"
        if recent.average_score < 0.4:
            return "TOO_HARD"
        if recent.sessions >= 2 and recent.consistency < 0.5:
            return "FLUCTUATING"
        return "OPTIMAL"

    # =========================================================================
    # Public operations
    # =========================================================================

    def calculate_optimal_difficulty(
        self,
        user_id: str,
        exercise_type: str,
        context: Optional[dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> DifficultyRecommendation:
        """
        Recommend a difficulty for the learner's next exercise of a type.

        Args:
            user_id: Learner identifier
            exercise_type: Exercise type, e.g. "vocabulary" or "visual_matching"
            context: Optional caller context (last_practiced, time_of_day,
                focus_mode, device_context, learning-state overrides)
            now: Reference time (defaults to the clock)
        """
        if not user_id:
            raise ValueError("calculate_optimal_difficulty() requires a user_id")

        context = context or {}
        now = now or self._clock()
        profile = self.profiles.get_or_build_profile(user_id)
        history = self.state_source.get_performance_history(user_id, exercise_type) or []
        state = self.get_learning_state(user_id, context)
        recent = self.analyze_recent_performance(history)

        base = self.calculate_base_difficulty(profile, exercise_type)
        adjustments = DifficultyAdjustments(
            performance=self.calculate_performance_adjustment(recent),
            state=self.calculate_state_adjustment(state),
            objective=self.calculate_objective_adjustment(
                state.get("current_goals") or profile.goals, exercise_type
            ),
            time=self.calculate_time_adjustment(recent, context.get("last_practiced"), now),
            environmental=self.calculate_environmental_adjustment(context, now),
        )
        difficulty = round_score(
            clamp(base + adjustments.total, self.config["min"], self.config["max"])
        )

        strategy = self.strategy_for(recent)
        zpd = self.analyze_zpd(profile, difficulty)
        recommendation = DifficultyRecommendation(
            user_id=user_id,
            exercise_type=exercise_type,
            difficulty=difficulty,
            base=base,
            adjustments=adjustments,
            zpd=zpd,
            flow=self.assess_flow_potential(profile, difficulty, state),
            confidence=self.calculate_confidence(recent, state),
            recommendations=list(ADAPTATION_STRATEGIES[strategy]["adjustments"]),
            factors={
                "skill_level": profile.skill_levels.get(exercise_type, profile.skill_level),
                "cognitive_capacity": profile.cognitive_capacity,
                "dominant_learning_style": profile.learning_style.get("dominant"),
                "strategy": strategy,
                "recent_performance": recent.to_dict(),
            },
        )

        logger.debug(
            f"Optimal difficulty for {user_id}/{exercise_type}: {difficulty:.2f} "
            f"(base {base:.2f}, {zpd.zone.value})"
        )
        return recommendation

    def adapt_difficulty_real_time(
        self,
        user_id: str,
        exercise_id: str,
        response: dict[str, Any],
        session_context: Optional[dict[str, Any]] = None,
    ) -> AdaptationDecision:
        """
        Decide whether to change difficulty after a single answer.

        Stateless: every call reads the current difficulty from the session
        context (or the state source) and returns a fresh decision.
        """
        if not user_id:
            raise ValueError("adapt_difficulty_real_time() requires a user_id")

        session_context = session_context or {}
        current = session_context.get("current_difficulty")
        if current is None:
            current = self.state_source.get_current_difficulty(exercise_id)
        current = clamp(to_float(current, 0.5),
                        self.config["min"], self.config["max"])

        state = self.get_learning_state(user_id, session_context)
        analysis = self.adapter.analyze_response(response, session_context)
        triggers = self.adapter.identify_triggers(analysis, state)

        if triggers.too_easy:
            adaptation = AdaptationType.INCREASE
            new = self.adapter.adjust_difficulty_up(current, analysis)
            reasoning = ["Learner showing mastery, increasing challenge"]
        elif triggers.too_hard:
            adaptation = AdaptationType.DECREASE
            new = self.adapter.adjust_difficulty_down(current, analysis)
            reasoning = ["Learner struggling, providing support"]
        elif triggers.disengaged:
            adaptation = AdaptationType.ENGAGEMENT
            new = self.adapter.adjust_for_engagement(current, state)
            reasoning = ["Adjusting to maintain engagement"]
        else:
            return AdaptationDecision(
                user_id=user_id,
                exercise_id=exercise_id,
                adaptation_type=AdaptationType.NO_CHANGE,
                previous_difficulty=round_score(current),
                new_difficulty=round_score(current),
                response=analysis,
                triggers=triggers,
                reasoning=["Performance within optimal range"],
            )

        logger.debug(
            f"Real-time adaptation for {user_id}/{exercise_id}: "
            f"{adaptation.value} {current:.2f} -> {new:.2f}"
        )
        return AdaptationDecision(
            user_id=user_id,
            exercise_id=exercise_id,
            adaptation_type=adaptation,
            previous_difficulty=round_score(current),
            new_difficulty=new,
            response=analysis,
            triggers=triggers,
            reasoning=reasoning,
            plan=self.adapter.create_adaptation_plan(current, new, adaptation, state),
            next_exercise_adjustments=self.adapter.plan_next_exercise(new, adaptation),
            user_feedback=self.adapter.user_feedback(adaptation),
        )
