"""
Configuration settings for the adaptive learning analytics core.

Uses Pydantic Settings for environment variable management with .env file support.
Every tuning threshold shared by the tracking, analysis, profiling and
difficulty layers lives here so tests and tuning reference one table.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="LEARNING_CORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging verbosity level",
    )

    # ========================================
    # Event Tracking
    # ========================================
    session_timeout_minutes: int = Field(
        default=30,
        description="Inactivity gap that closes a session",
    )
    event_log_max_entries: int = Field(
        default=10_000,
        description="Per-user event log size that triggers compaction",
    )
    event_log_compacted_entries: int = Field(
        default=5_000,
        description="Most-recent entries kept after compaction",
    )
    default_timeframe: str = Field(
        default="7days",
        description="Window used when an unknown timeframe is requested",
    )
    default_user_level: int = Field(
        default=1,
        description="User level stamped on events when no state source answers",
    )

    # ─── Immediate Interventions ────────────────────────────────────────────────
    intervention_incorrect_streak: int = Field(
        default=3,
        description="Consecutive wrong answers that trigger struggle support",
    )
    intervention_session_hints: int = Field(
        default=3,
        description="Hints in one session that trigger a hint-overuse notice",
    )
    intervention_low_score: float = Field(
        default=0.4,
        description="Completion score below which easier content is suggested",
    )
    intervention_break_minutes: int = Field(
        default=45,
        description="Session minutes after which a pause triggers a break reminder",
    )

    # ========================================
    # Pattern Analysis
    # ========================================
    trend_window: int = Field(
        default=5,
        description="Size of the recent/previous windows compared by trend()",
    )
    trend_min_points: int = Field(
        default=3,
        description="Minimum points before a trend is reported",
    )
    trend_change_threshold: float = Field(
        default=0.1,
        description="Relative change separating improving/declining from stable",
    )
    pattern_strength_threshold: float = Field(
        default=0.6,
        description="Indicator coverage a behavior pattern must exceed",
    )
    pattern_confidence_events: int = Field(
        default=50,
        description="Event count at which pattern confidence saturates",
    )
    struggling_accuracy: float = Field(
        default=0.4,
        description="Accuracy below which a learner shows low accuracy",
    )
    mastering_accuracy: float = Field(
        default=0.85,
        description="Accuracy above which a learner shows high accuracy",
    )
    optimal_accuracy_low: float = Field(default=0.6, description="Lower bound of balanced accuracy")
    optimal_accuracy_high: float = Field(default=0.8, description="Upper bound of balanced accuracy")
    exploration_threshold: float = Field(
        default=0.6,
        description="Exploration level regarded as exploratory behavior",
    )
    high_hint_ratio: float = Field(default=0.3, description="Hint share regarded as heavy hint usage")
    help_seeking_ratio: float = Field(default=0.1, description="Hint share regarded as help seeking")
    frequent_pause_rate: float = Field(default=1.0, description="Pauses per session regarded as frequent")
    slow_response_seconds: float = Field(default=30.0, description="Response time regarded as slow")
    fast_response_seconds: float = Field(default=10.0, description="Response time regarded as fast")
    exploration_type_target: int = Field(
        default=5,
        description="Distinct exercise types that count as full exploration",
    )

    # ========================================
    # Profiling & Knowledge State
    # ========================================
    processing_speed_benchmark_ms: int = Field(
        default=10_000,
        description="Response time benchmark for processing speed (10 seconds)",
    )
    profile_max_age_minutes: int = Field(
        default=60,
        description="Age after which a cached profile is rebuilt from source data",
    )
    mastery_recent_weight: float = Field(default=0.7, description="Weight of recent scores in mastery")
    mastery_overall_weight: float = Field(default=0.3, description="Weight of all scores in mastery")
    mastery_practice_bonus_per_attempt: float = Field(default=0.01, description="Practice bonus per attempt")
    mastery_practice_bonus_cap: float = Field(default=0.1, description="Maximum practice bonus")
    mastery_consistency_bonus: float = Field(default=0.05, description="Maximum consistency bonus")
    mastery_threshold: float = Field(
        default=0.7,
        description="Mastery below which a concept is a learning gap",
    )
    mastery_target: float = Field(default=0.8, description="Target mastery used to size gaps")
    strong_area_threshold: float = Field(default=0.85, description="Mastery regarded as a strong area")
    readiness_threshold: float = Field(default=0.7, description="Readiness needed to recommend a concept")
    retention_review_threshold: float = Field(
        default=0.7,
        description="Retention below which a concept is due for review",
    )
    confidence_attempts: int = Field(
        default=10,
        description="Attempts at which mastery confidence saturates",
    )
    practice_minutes_per_mastery_point: float = Field(
        default=200.0,
        description="Practice minutes needed per unit of mastery gained",
    )
    next_concepts_limit: int = Field(default=5, description="Concepts returned by next_concepts")

    # ========================================
    # Difficulty Adjustment
    # ========================================
    difficulty_min: float = Field(default=0.1, description="Lowest difficulty ever recommended")
    difficulty_max: float = Field(default=1.0, description="Highest difficulty ever recommended")
    base_difficulty_max: float = Field(default=0.9, description="Upper clamp of the base difficulty")
    visual_preference_threshold: float = Field(
        default=0.6,
        description="Visual preference that earns the visual-exercise bonus",
    )
    high_score_threshold: float = Field(default=0.85, description="Average score that raises difficulty")
    low_score_threshold: float = Field(default=0.6, description="Average score that lowers difficulty")
    fatigue_threshold: float = Field(default=0.7, description="Fatigue level that lowers difficulty")
    high_motivation_threshold: float = Field(default=0.8, description="Motivation that raises difficulty")
    low_motivation_threshold: float = Field(default=0.4, description="Motivation that lowers difficulty")
    long_session_minutes: int = Field(default=30, description="Session length that lowers difficulty")
    streak_bonus_threshold: int = Field(default=5, description="Streak length that raises difficulty")
    zpd_assist_margin: float = Field(default=0.2, description="Ability gained with scaffolding")
    zpd_edge_margin: float = Field(default=0.05, description="Distance from comfort/frustration edges")
    feedback_immediacy: float = Field(default=0.8, description="Constant feedback-immediacy flow factor")
    too_easy_step: float = Field(default=0.1, description="Base real-time increase")
    too_hard_step: float = Field(default=0.15, description="Base real-time decrease")
    engagement_step: float = Field(default=0.05, description="Real-time step for disengagement")
    low_engagement_threshold: float = Field(default=0.4, description="Engagement regarded as disengaged")
    max_recent_pauses: int = Field(default=3, description="Pauses above which a learner is disengaged")
    expected_response_seconds: float = Field(
        default=30.0,
        description="Expected answer time when the session does not provide one",
    )

    def get_session_config(self) -> dict[str, Any]:
        """Get event tracking and session configuration as a dictionary."""
        return {
            "timeout_minutes": self.session_timeout_minutes,
            "log_max_entries": self.event_log_max_entries,
            "log_compacted_entries": self.event_log_compacted_entries,
            "default_timeframe": self.default_timeframe,
            "interventions": {
                "incorrect_streak": self.intervention_incorrect_streak,
                "session_hints": self.intervention_session_hints,
                "low_score": self.intervention_low_score,
                "break_minutes": self.intervention_break_minutes,
            },
        }

    def get_pattern_thresholds(self) -> dict[str, float]:
        """Get behavior-pattern indicator thresholds."""
        return {
            "strength": self.pattern_strength_threshold,
            "struggling_accuracy": self.struggling_accuracy,
            "mastering_accuracy": self.mastering_accuracy,
            "optimal_low": self.optimal_accuracy_low,
            "optimal_high": self.optimal_accuracy_high,
            "exploration": self.exploration_threshold,
            "high_hint_ratio": self.high_hint_ratio,
            "help_seeking_ratio": self.help_seeking_ratio,
            "frequent_pause_rate": self.frequent_pause_rate,
            "slow_response_seconds": self.slow_response_seconds,
            "fast_response_seconds": self.fast_response_seconds,
        }

    def get_knowledge_config(self) -> dict[str, float]:
        """Get mastery and knowledge-state thresholds."""
        return {
            "recent_weight": self.mastery_recent_weight,
            "overall_weight": self.mastery_overall_weight,
            "mastery_threshold": self.mastery_threshold,
            "mastery_target": self.mastery_target,
            "strong_area": self.strong_area_threshold,
            "readiness": self.readiness_threshold,
            "retention_review": self.retention_review_threshold,
        }

    def get_difficulty_config(self) -> dict[str, float]:
        """Get difficulty bounds and real-time steps."""
        return {
            "min": self.difficulty_min,
            "max": self.difficulty_max,
            "base_max": self.base_difficulty_max,
            "too_easy_step": self.too_easy_step,
            "too_hard_step": self.too_hard_step,
            "engagement_step": self.engagement_step,
            "zpd_assist_margin": self.zpd_assist_margin,
            "zpd_edge_margin": self.zpd_edge_margin,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
