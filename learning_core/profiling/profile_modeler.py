"""
User Profile Modeler.

Builds a multi-dimensional learner profile from collaborator data. Each
dimension group is computed by an independent sub-estimator:

- Cognitive: processing speed, working memory, attention span
- Learning style: modality and sequencing preferences (sum to 1)
- Personality: conscientiousness, persistence, openness, autonomy
- Motivation: intrinsic drive, engagement consistency, challenge seeking
- Metacognition: confidence calibration, self-regulation, strategy adaptation

Any estimator without data answers 0.5.
"""
from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from loguru import logger

from config import Settings, get_settings
from learning_core.analysis.statistics import consistency, improvement
from learning_core.core.scoring import clamp, mean, normalize_score, ratio, round_score, to_float
from learning_core.core.sources import (
    LearnerDataSource,
    LearnerStateSource,
    NullLearnerDataSource,
)
from learning_core.core.storage import InMemoryKeyValueStore, KeyValueStore
from learning_core.profiling.models import UserProfile

DEFAULT_SCORE = 0.5

# Interaction types grouped by the modality they exercise
MODALITY_INTERACTIONS: dict[str, frozenset[str]] = {
    "visual": frozenset({"image_click", "diagram_view", "chart_interaction"}),
    "auditory": frozenset({"audio_play", "pronunciation_play", "listen"}),
    "reading_writing": frozenset({"text_highlight", "note_taken", "text_read"}),
    "kinesthetic": frozenset({"drag_drop", "click_to_change", "sequence_reorder"}),
}

# Behavior pattern tags that reveal sequencing preference
SEQUENCING_TAGS = {
    "sequential": "sequential",
    "global": "exploratory",
}

LEARNING_STYLE_KEYS = (*MODALITY_INTERACTIONS, *SEQUENCING_TAGS)


class ProfileModeler:
    """
    Builds and caches learner profiles.

    Usage:
        modeler = ProfileModeler(data_source=source)
        profile = modeler.build_user_profile("u1")
        profile.preferences["visual"]
    """

    def __init__(
        self,
        data_source: LearnerDataSource | None = None,
        state_source: LearnerStateSource | None = None,
        store: KeyValueStore[UserProfile] | None = None,
        clock: Callable[[], datetime] = datetime.now,
        settings: Settings | None = None,
    ):
        self._settings = settings or get_settings()
        self.data_source = data_source or NullLearnerDataSource()
        self.state_source = state_source or NullLearnerDataSource()
        self.store: KeyValueStore[UserProfile] = store or InMemoryKeyValueStore()
        self._clock = clock

    def build_user_profile(self, user_id: str) -> UserProfile:
        """Compute a fresh profile for the learner and cache it."""
        if not user_id:
            raise ValueError("build_user_profile() requires a user_id")

        behavior = self.data_source.get_user_behavior_data(user_id) or {}
        performance = self.data_source.get_user_performance_data(user_id) or []
        engagement = self.data_source.get_user_engagement_data(user_id) or []
        interactions = self.data_source.get_user_interaction_data(user_id) or []
        learning_state = self.state_source.get_learning_state(user_id) or {}

        if not (behavior or performance or engagement or interactions):
            logger.debug(f"No profile data for {user_id}; using defaults")

        skill_levels = self.estimate_skill_levels(performance)
        profile = UserProfile(
            user_id=user_id,
            cognitive=self.estimate_cognitive(behavior, performance),
            learning_style=self.estimate_learning_style(interactions, behavior),
            personality=self.estimate_personality(engagement, performance),
            motivation=self.estimate_motivation(engagement),
            metacognition=self.estimate_metacognition(behavior),
            skill_levels=skill_levels,
            goals=list(learning_state.get("current_goals") or []),
            updated_at=self._clock(),
        )
        profile.strengths, profile.challenges = self.split_strengths(skill_levels)
        profile.adaptations = self.recommend_adaptations(profile)

        self.store.put(user_id, profile)
        logger.debug(
            f"Profile built for {user_id}: skill={profile.skill_level:.2f}, "
            f"capacity={profile.cognitive_capacity:.2f}"
        )
        return profile

    def get_profile(self, user_id: str) -> UserProfile | None:
        """The last profile built for the learner, if any."""
        return self.store.get(user_id)

    def get_or_build_profile(self, user_id: str) -> UserProfile:
        """
        The cached profile, rebuilt when missing or older than
        profile_max_age_minutes.

        Source data that changes inside that window is picked up only by an
        explicit build_user_profile() call.
        """
        profile = self.get_profile(user_id)
        max_age = timedelta(minutes=self._settings.profile_max_age_minutes)
        if profile is None or profile.updated_at is None or self._clock() - profile.updated_at > max_age:
            return self.build_user_profile(user_id)
        return profile

    # =========================================================================
    # Sub-estimators
    # =========================================================================

    def estimate_cognitive(
        self,
        behavior: dict[str, Any],
        performance: list[dict[str, Any]],
    ) -> dict[str, float]:
        response_times = [t for t in behavior.get("response_times") or [] if t > 0]
        if response_times:
            processing_speed = clamp(
                self._settings.processing_speed_benchmark_ms / mean(response_times), 0.1, 1.0
            )
        else:
            processing_speed = DEFAULT_SCORE

        complex_scores = [
            normalize_score(p.get("score"))
            for p in performance
            if p.get("complexity") == "high"
        ]
        working_memory = mean(complex_scores) if complex_scores else DEFAULT_SCORE

        session_lengths = behavior.get("session_lengths") or []
        if session_lengths:
            attention_span = ratio(mean(session_lengths), self._settings.long_session_minutes * 60)
        else:
            attention_span = DEFAULT_SCORE

        return {
            "processing_speed": round_score(processing_speed),
            "working_memory": round_score(working_memory),
            "attention_span": round_score(attention_span),
            "average_capacity": round_score(
                mean([processing_speed, working_memory, attention_span])
            ),
        }

    def estimate_learning_style(
        self,
        interactions: list[dict[str, Any]],
        behavior: dict[str, Any],
    ) -> dict[str, Any]:
        """
        Modality and sequencing preferences normalized to sum to 1.

        Uniform when no interaction reveals a preference.
        """
        types = [i.get("type") for i in interactions]
        raw: dict[str, float] = {
            style: ratio(sum(1 for t in types if t in kinds), len(types))
            for style, kinds in MODALITY_INTERACTIONS.items()
        }

        tags = behavior.get("interaction_patterns") or []
        for style, tag in SEQUENCING_TAGS.items():
            raw[style] = ratio(tags.count(tag), len(tags))

        total = sum(raw.values())
        if total > 0:
            preferences = {style: raw[style] / total for style in LEARNING_STYLE_KEYS}
        else:
            preferences = {style: 1 / len(LEARNING_STYLE_KEYS) for style in LEARNING_STYLE_KEYS}

        dominant = max(LEARNING_STYLE_KEYS, key=lambda s: preferences[s])
        return {
            "preferences": preferences,
            "dominant": dominant if total > 0 else "balanced",
        }

    def estimate_personality(
        self,
        engagement: list[dict[str, Any]],
        performance: list[dict[str, Any]],
    ) -> dict[str, float]:
        if engagement:
            conscientiousness = sum(1 for s in engagement if s.get("completed")) / len(engagement)
            retries = mean([max(0, (s.get("attempts") or 1) - 1) for s in engagement])
            persistence = clamp(retries / 2)
            autonomy = sum(1 for s in engagement if s.get("self_directed")) / len(engagement)
        else:
            conscientiousness = persistence = autonomy = DEFAULT_SCORE

        exercise_types = {p.get("exercise_type") for p in performance if p.get("exercise_type")}
        openness = (
            ratio(len(exercise_types), self._settings.exploration_type_target)
            if performance else DEFAULT_SCORE
        )

        return {
            "conscientiousness": round_score(conscientiousness),
            "persistence": round_score(persistence),
            "openness": round_score(openness),
            "autonomy": round_score(autonomy),
        }

    def estimate_motivation(self, engagement: list[dict[str, Any]]) -> dict[str, float]:
        if not engagement:
            return {
                "intrinsic": DEFAULT_SCORE,
                "engagement_consistency": DEFAULT_SCORE,
                "challenge_seeking": DEFAULT_SCORE,
                "overall": DEFAULT_SCORE,
            }

        self_directed = sum(1 for s in engagement if s.get("self_directed")) / len(engagement)
        durations = [to_float(s.get("duration")) for s in engagement]
        engagement_consistency = consistency(durations) if len(durations) >= 2 else DEFAULT_SCORE
        challenge_seeking = clamp(mean([to_float(s.get("difficulty"), 0.5) for s in engagement]))
        intrinsic = mean([self_directed, challenge_seeking])

        return {
            "intrinsic": round_score(intrinsic),
            "engagement_consistency": round_score(engagement_consistency),
            "challenge_seeking": round_score(challenge_seeking),
            "overall": round_score(mean([intrinsic, engagement_consistency, challenge_seeking])),
        }

    def estimate_metacognition(self, behavior: dict[str, Any]) -> dict[str, float]:
        calibration_points = behavior.get("calibration") or []
        if calibration_points:
            errors = [
                abs(float(p["confidence"]) - (1.0 if p["correct"] else 0.0))
                for p in calibration_points
            ]
            calibration = clamp(1 - mean(errors))
        else:
            calibration = DEFAULT_SCORE

        session_lengths = behavior.get("session_lengths") or []
        self_regulation = (
            consistency(session_lengths) if len(session_lengths) >= 2 else DEFAULT_SCORE
        )

        progression = behavior.get("difficulty_progression") or []
        strategy_adaptation = (
            clamp(DEFAULT_SCORE + improvement(progression)) if len(progression) >= 2
            else DEFAULT_SCORE
        )

        return {
            "calibration": round_score(calibration),
            "self_regulation": round_score(self_regulation),
            "strategy_adaptation": round_score(strategy_adaptation),
        }

    def estimate_skill_levels(self, performance: list[dict[str, Any]]) -> dict[str, float]:
        """Mean score per exercise type plus an overall "average"."""
        by_type: dict[str, list[float]] = defaultdict(list)
        for record in performance:
            by_type[record.get("exercise_type") or "general"].append(
                normalize_score(record.get("score"))
            )

        levels = {exercise_type: round_score(mean(scores)) for exercise_type, scores in by_type.items()}
        all_scores = [score for scores in by_type.values() for score in scores]
        levels["average"] = round_score(mean(all_scores)) if all_scores else DEFAULT_SCORE
        return levels

    def split_strengths(self, skill_levels: dict[str, float]) -> tuple[list[str], list[str]]:
        strengths = [
            name for name, level in skill_levels.items()
            if name != "average" and level >= self._settings.strong_area_threshold
        ]
        challenges = [
            name for name, level in skill_levels.items()
            if name != "average" and level < self._settings.low_score_threshold
        ]
        return sorted(strengths), sorted(challenges)

    def recommend_adaptations(self, profile: UserProfile) -> list[str]:
        adaptations = []
        if profile.cognitive.get("processing_speed", DEFAULT_SCORE) < 0.4:
            adaptations.append("extended_time")
        if profile.cognitive.get("working_memory", DEFAULT_SCORE) < 0.4:
            adaptations.append("chunked_content")
        if profile.cognitive.get("attention_span", DEFAULT_SCORE) < 0.4:
            adaptations.append("short_sessions")
        if profile.learning_style.get("dominant") == "visual":
            adaptations.append("visual_content")
        if profile.metacognition.get("calibration", DEFAULT_SCORE) < 0.5:
            adaptations.append("confidence_checks")
        return adaptations
