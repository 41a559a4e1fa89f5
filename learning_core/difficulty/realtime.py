"""
Real-time difficulty adaptation.

A stateless state machine evaluated once per answer. Transitions, checked
in order:

1. too easy:   correct, confidence > 0.9, speed > 0.8
               -> increase by 0.1 * confidence * speed (cap 1.0)
2. too hard:   incorrect, confidence < 0.3, effort > 0.8
               -> decrease by 0.15 * effort (floor 0.1)
3. disengaged: engagement < 0.4 or more than 3 recent pauses
               -> see adjust_for_engagement()
4. otherwise:  no change
"""
from __future__ import annotations

from typing import Any, Optional

from config import Settings, get_settings
from learning_core.core.scoring import clamp, normalize_score, round_score, to_float
from learning_core.difficulty.models import (
    AdaptationPlan,
    AdaptationTriggers,
    AdaptationType,
    ResponseAnalysis,
)

ADAPTATION_STRATEGIES: dict[str, dict[str, Any]] = {
    "TOO_EASY": {
        "adjustments": [
            "increase_complexity",
            "add_distractors",
            "reduce_hints",
            "increase_time_pressure",
            "introduce_novel_elements",
            "combine_multiple_concepts",
        ],
        "urgency": "high",
    },
    "TOO_HARD": {
        "adjustments": [
            "decrease_complexity",
            "provide_scaffolding",
            "break_into_smaller_steps",
            "add_visual_aids",
            "increase_hints",
            "reduce_time_pressure",
        ],
        "urgency": "immediate",
    },
    "OPTIMAL": {
        "adjustments": [
            "maintain_current_level",
            "gradual_progression",
            "vary_presentation",
            "periodic_challenges",
        ],
        "urgency": "low",
    },
    "FLUCTUATING": {
        "adjustments": [
            "stabilize_difficulty",
            "identify_knowledge_gaps",
            "provide_targeted_practice",
            "check_prerequisites",
        ],
        "urgency": "medium",
    },
}

STRATEGY_FOR_ADAPTATION = {
    AdaptationType.INCREASE: "TOO_EASY",
    AdaptationType.DECREASE: "TOO_HARD",
    AdaptationType.ENGAGEMENT: "OPTIMAL",
}


class RealTimeAdapter:
    """Response analysis, transitions and adaptation plans."""

    def __init__(self, settings: Settings | None = None):
        self._settings = settings or get_settings()
        self.config = self._settings.get_difficulty_config()

    # =========================================================================
    # Response analysis
    # =========================================================================

    def analyze_response(
        self,
        response: dict[str, Any],
        session_context: Optional[dict[str, Any]] = None,
    ) -> ResponseAnalysis:
        """
        Extract correctness, confidence, speed and effort from an answer.

        Explicit confidence/speed/effort values in the response win; missing
        ones are estimated from response time, attempts and hints.
        """
        session_context = session_context or {}
        correct = bool(response.get("correct", False))
        hints = max(0, int(to_float(response.get("hints_used"))))
        attempts = max(1, int(to_float(response.get("attempts"), 1.0)))
        expected = to_float(session_context.get("expected_response_time"))
        if expected <= 0:
            expected = self._settings.expected_response_seconds
        seconds = to_float(response.get("response_time"), -1.0)
        response_time = seconds if seconds >= 0 else None

        if response.get("speed") is not None:
            speed = clamp(to_float(response["speed"], 0.5))
        elif response_time is not None:
            speed = clamp(1 - response_time / (2 * expected))
        else:
            speed = 0.5

        if response.get("confidence") is not None:
            confidence = clamp(to_float(response["confidence"], 0.5))
        else:
            confidence = clamp((0.7 if correct else 0.3) - 0.1 * hints)

        if response.get("effort") is not None:
            effort = clamp(to_float(response["effort"], 0.5))
        else:
            time_share = min(1.0, response_time / expected) if response_time is not None else 0.5
            effort = clamp(0.5 * min(1.0, attempts / 3) + 0.5 * time_share)

        return ResponseAnalysis(
            correct=correct,
            confidence=round_score(confidence),
            speed=round_score(speed),
            effort=round_score(effort),
            hints_used=hints,
            attempts=attempts,
        )

    def identify_triggers(
        self,
        analysis: ResponseAnalysis,
        user_state: dict[str, Any],
    ) -> AdaptationTriggers:
        engagement = to_float(user_state.get("engagement_level"), 0.7)
        pauses = int(to_float(user_state.get("recent_pauses")))
        return AdaptationTriggers(
            too_easy=analysis.correct and analysis.confidence > 0.9 and analysis.speed > 0.8,
            too_hard=(not analysis.correct) and analysis.confidence < 0.3 and analysis.effort > 0.8,
            disengaged=(
                engagement < self._settings.low_engagement_threshold
                or pauses > self._settings.max_recent_pauses
            ),
        )

    # =========================================================================
    # Transitions
    # =========================================================================

    def adjust_difficulty_up(self, current: float, analysis: ResponseAnalysis) -> float:
        increase = self.config["too_easy_step"] * analysis.confidence * analysis.speed
        return round_score(min(self.config["max"], current + increase))

    def adjust_difficulty_down(self, current: float, analysis: ResponseAnalysis) -> float:
        decrease = self.config["too_hard_step"] * analysis.effort
        return round_score(max(self.config["min"], current - decrease))

    def adjust_for_engagement(self, current: float, user_state: dict[str, Any]) -> float:
        """
        Difficulty for a disengaged learner.

        Fatigue above 0.7 or recent accuracy below 0.6 eases off one step;
        recent accuracy above 0.85 (boredom) adds one step; otherwise the
        difficulty is kept and only presentation changes.
        """
        step = self.config["engagement_step"]
        fatigue = to_float(user_state.get("fatigue_level"))
        accuracy = user_state.get("recent_accuracy")
        if accuracy is not None:
            accuracy = normalize_score(accuracy)

        if fatigue > self._settings.fatigue_threshold or (
            accuracy is not None and accuracy < self._settings.low_score_threshold
        ):
            return round_score(max(self.config["min"], current - step))
        if accuracy is not None and accuracy > self._settings.high_score_threshold:
            return round_score(min(self.config["max"], current + step))
        return round_score(current)

    # =========================================================================
    # Plans & feedback
    # =========================================================================

    @staticmethod
    def _content_modifications(change: float) -> list[str]:
        if change > 0:
            return ["increase_complexity", "add_distractors", "reduce_hints"]
        if change < 0:
            return ["decrease_complexity", "provide_scaffolding", "break_into_smaller_steps"]
        return ["keep_content"]

    @staticmethod
    def _presentation_changes(adaptation: AdaptationType) -> list[str]:
        return {
            AdaptationType.INCREASE: ["introduce_novel_elements"],
            AdaptationType.DECREASE: ["add_visual_aids", "highlight_key_information"],
            AdaptationType.ENGAGEMENT: ["vary_presentation", "gamified_feedback", "shorter_exercises"],
        }.get(adaptation, [])

    @staticmethod
    def _feedback_adjustments(adaptation: AdaptationType) -> list[str]:
        return {
            AdaptationType.INCREASE: ["brief_confirmation"],
            AdaptationType.DECREASE: ["detailed_explanations", "encouraging_messages"],
            AdaptationType.ENGAGEMENT: ["encouraging_messages", "progress_highlights"],
        }.get(adaptation, [])

    @staticmethod
    def _scaffolding_plan(adaptation: AdaptationType, user_state: dict[str, Any]) -> list[str]:
        if adaptation == AdaptationType.DECREASE:
            plan = ["worked_examples", "hints_on_request", "step_by_step_guidance"]
        elif adaptation == AdaptationType.INCREASE:
            plan = ["fade_hints"]
        else:
            plan = ["optional_hints"]
        if to_float(user_state.get("fatigue_level")) > 0.7:
            plan.append("suggest_break")
        return plan

    @staticmethod
    def _motivation_plan(user_state: dict[str, Any]) -> list[str]:
        motivation = to_float(user_state.get("motivation_level"), 0.6)
        if motivation < 0.4:
            return ["celebrate_small_wins", "set_short_goals", "social_features"]
        if motivation > 0.8:
            return ["stretch_goals", "periodic_challenges"]
        return ["progress_tracking", "streak_rewards"]

    def create_adaptation_plan(
        self,
        current: float,
        new: float,
        adaptation: AdaptationType,
        user_state: dict[str, Any],
    ) -> AdaptationPlan:
        change = round_score(new - current)
        strategy = STRATEGY_FOR_ADAPTATION.get(adaptation, "OPTIMAL")
        low = round_score(max(self.config["min"], new - 0.05))
        high = round_score(min(self.config["max"], new + 0.05))

        return AdaptationPlan(
            immediate={
                "difficulty_adjustment": change,
                "content_modifications": self._content_modifications(change),
                "presentation_changes": self._presentation_changes(adaptation),
                "feedback_adjustments": self._feedback_adjustments(adaptation),
            },
            short_term={
                "exercise_selection": {"target_difficulty": new, "range": [low, high]},
                "scaffolding_plan": self._scaffolding_plan(adaptation, user_state),
                "progress_monitoring": {
                    "checkpoint_after_exercises": 3,
                    "watch": ["accuracy", "response_time", "hint_usage"],
                },
            },
            long_term={
                "skill_development": {
                    "target_difficulty": round_score(min(self.config["max"], new + 0.1)),
                },
                "motivation_maintenance": self._motivation_plan(user_state),
                "adaptation_strategy": {
                    "name": strategy,
                    "adjustments": list(ADAPTATION_STRATEGIES[strategy]["adjustments"]),
                    "urgency": ADAPTATION_STRATEGIES[strategy]["urgency"],
                },
            },
        )

    @staticmethod
    def plan_next_exercise(new: float, adaptation: AdaptationType) -> dict[str, Any]:
        hints, time_multiplier = {
            AdaptationType.INCREASE: ("reduced", 0.9),
            AdaptationType.DECREASE: ("increased", 1.25),
        }.get(adaptation, ("standard", 1.0))
        return {
            "difficulty": new,
            "hint_availability": hints,
            "time_limit_multiplier": time_multiplier,
            "vary_exercise_type": adaptation == AdaptationType.ENGAGEMENT,
        }

    @staticmethod
    def user_feedback(adaptation: AdaptationType) -> str:
        return {
            AdaptationType.INCREASE: "You're doing great! Let's try something a bit more challenging.",
            AdaptationType.DECREASE: "Let's take this one step at a time. Here's some extra support.",
            AdaptationType.ENGAGEMENT: "Let's mix things up to keep it interesting.",
        }.get(adaptation, "Keep going, you're right on track.")
