"""
Difficulty adjustment data models.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from learning_core.analysis.statistics import Trend


class Zone(str, Enum):
    """Zone of Proximal Development classification of a difficulty."""
    COMFORT = "comfort_zone"
    LEARNING = "learning_zone"
    FRUSTRATION = "frustration_zone"


class FlowBand(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class AdaptationType(str, Enum):
    """States of the real-time adaptation state machine."""
    NO_CHANGE = "no_change"
    INCREASE = "increase"
    DECREASE = "decrease"
    ENGAGEMENT = "engagement"


# =============================================================================
# Optimal Difficulty
# =============================================================================


@dataclass
class RecentPerformance:
    """Summary of a learner's recent sessions on one exercise type."""
    sessions: int = 0
    average_score: float = 0.0
    trend: Trend = Trend.INSUFFICIENT_DATA
    consistency: float = 0.0
    average_time: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "sessions": self.sessions,
            "average_score": self.average_score,
            "trend": self.trend.value,
            "consistency": self.consistency,
            "average_time": self.average_time,
        }


@dataclass
class DifficultyAdjustments:
    """Signed adjustments summed onto the base difficulty."""
    performance: float = 0.0
    state: float = 0.0
    objective: float = 0.0
    time: float = 0.0
    environmental: float = 0.0

    @property
    def total(self) -> float:
        return self.performance + self.state + self.objective + self.time + self.environmental

    def to_dict(self) -> dict[str, float]:
        return {
            "performance": self.performance,
            "state": self.state,
            "objective": self.objective,
            "time": self.time,
            "environmental": self.environmental,
        }


@dataclass
class ZPDAnalysis:
    current_ability: float
    assisted_ability: float
    zpd_lower: float
    zpd_upper: float
    proposed_difficulty: float
    zone: Zone
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "current_ability": self.current_ability,
            "assisted_ability": self.assisted_ability,
            "zpd_range": [self.zpd_lower, self.zpd_upper],
            "proposed_difficulty": self.proposed_difficulty,
            "zone": self.zone.value,
            "recommendations": list(self.recommendations),
        }


@dataclass
class FlowAssessment:
    flow_potential: float
    band: FlowBand
    factors: dict[str, float] = field(default_factory=dict)
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "flow_potential": self.flow_potential,
            "band": self.band.value,
            "factors": dict(self.factors),
            "recommendations": list(self.recommendations),
        }


@dataclass
class DifficultyRecommendation:
    """
    Recommended difficulty for a learner and exercise type.

    Attributes:
        difficulty: Final difficulty, always within [0.1, 1.0]
        base: Difficulty from skill level and cognitive capacity
        adjustments: Component adjustments summed onto the base
        zpd: Zone of Proximal Development analysis
        flow: Flow-state potential
        confidence: Confidence in the recommendation (0-1)
        recommendations: Adjustment strategies to apply
        factors: Inputs that shaped the recommendation
    """
    user_id: str
    exercise_type: str
    difficulty: float
    base: float
    adjustments: DifficultyAdjustments
    zpd: ZPDAnalysis
    flow: FlowAssessment
    confidence: float
    recommendations: list[str] = field(default_factory=list)
    factors: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "exercise_type": self.exercise_type,
            "difficulty": self.difficulty,
            "base": self.base,
            "adjustments": self.adjustments.to_dict(),
            "zpd": self.zpd.to_dict(),
            "flow": self.flow.to_dict(),
            "confidence": self.confidence,
            "recommendations": list(self.recommendations),
            "factors": dict(self.factors),
        }


# =============================================================================
# Real-time Adaptation
# =============================================================================


@dataclass
class ResponseAnalysis:
    """Signals extracted from a single answer."""
    correct: bool
    confidence: float
    speed: float
    effort: float
    hints_used: int = 0
    attempts: int = 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "correct": self.correct,
            "confidence": self.confidence,
            "speed": self.speed,
            "effort": self.effort,
            "hints_used": self.hints_used,
            "attempts": self.attempts,
        }


@dataclass
class AdaptationTriggers:
    too_easy: bool = False
    too_hard: bool = False
    disengaged: bool = False

    def to_dict(self) -> dict[str, bool]:
        return {
            "too_easy": self.too_easy,
            "too_hard": self.too_hard,
            "disengaged": self.disengaged,
        }


@dataclass
class AdaptationPlan:
    """Recommendations grouped by horizon."""
    immediate: dict[str, Any] = field(default_factory=dict)
    short_term: dict[str, Any] = field(default_factory=dict)
    long_term: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "immediate": dict(self.immediate),
            "short_term": dict(self.short_term),
            "long_term": dict(self.long_term),
        }


@dataclass
class AdaptationDecision:
    """Outcome of one real-time adaptation step."""
    user_id: str
    exercise_id: str
    adaptation_type: AdaptationType
    previous_difficulty: float
    new_difficulty: float
    response: ResponseAnalysis
    triggers: AdaptationTriggers
    reasoning: list[str] = field(default_factory=list)
    plan: Optional[AdaptationPlan] = None
    next_exercise_adjustments: dict[str, Any] = field(default_factory=dict)
    user_feedback: Optional[str] = None

    @property
    def should_adapt(self) -> bool:
        return self.adaptation_type != AdaptationType.NO_CHANGE

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "exercise_id": self.exercise_id,
            "should_adapt": self.should_adapt,
            "adaptation_type": self.adaptation_type.value,
            "previous_difficulty": self.previous_difficulty,
            "new_difficulty": self.new_difficulty,
            "response": self.response.to_dict(),
            "triggers": self.triggers.to_dict(),
            "reasoning": list(self.reasoning),
            "plan": self.plan.to_dict() if self.plan else None,
            "next_exercise_adjustments": dict(self.next_exercise_adjustments),
            "user_feedback": self.user_feedback,
        }
