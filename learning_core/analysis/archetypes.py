"""
Behavior archetypes.

Each archetype is a fixed list of boolean indicators plus the interventions
to offer when the learner matches it. A match's strength is the share of its
indicators that hold.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class BehaviorArchetype(str, Enum):
    STRUGGLING = "STRUGGLING"
    MASTERING = "MASTERING"
    DISENGAGED = "DISENGAGED"
    EXPLORING = "EXPLORING"
    OPTIMAL = "OPTIMAL"


@dataclass(frozen=True)
class ArchetypeDefinition:
    indicators: tuple[str, ...]
    interventions: tuple[str, ...]


BEHAVIOR_ARCHETYPES: dict[BehaviorArchetype, ArchetypeDefinition] = {
    BehaviorArchetype.STRUGGLING: ArchetypeDefinition(
        indicators=("low_accuracy", "high_hint_usage", "long_response_times", "frequent_pauses"),
        interventions=("easier_content", "additional_examples", "concept_review", "motivational_support"),
    ),
    BehaviorArchetype.MASTERING: ArchetypeDefinition(
        indicators=("high_accuracy", "fast_response_times", "consistent_performance", "exploration_behavior"),
        interventions=("harder_content", "advanced_topics", "challenge_exercises", "peer_mentoring"),
    ),
    BehaviorArchetype.DISENGAGED: ArchetypeDefinition(
        indicators=("frequent_pauses", "declining_accuracy", "reduced_session_time", "irregular_practice"),
        interventions=("gamification_boost", "social_features", "motivational_content", "break_reminder"),
    ),
    BehaviorArchetype.EXPLORING: ArchetypeDefinition(
        indicators=("diverse_exercise_types", "curious_clicks", "exploration_patterns", "help_seeking"),
        interventions=("varied_content", "discovery_exercises", "bonus_materials", "exploration_rewards"),
    ),
    BehaviorArchetype.OPTIMAL: ArchetypeDefinition(
        indicators=("balanced_performance", "steady_progress", "consistent_engagement", "goal_oriented"),
        interventions=("maintain_difficulty", "gradual_progression", "periodic_challenges", "progress_celebration"),
    ),
}


@dataclass
class BehaviorPattern:
    """
    A matched behavior archetype.

    Attributes:
        name: The archetype
        strength: Share of the archetype's indicators that hold (0-1)
        confidence: Sample-size confidence in the match (0-1)
        indicators: Indicator name -> whether it holds
        recommendations: The archetype's intervention list
    """
    name: BehaviorArchetype
    strength: float
    confidence: float
    indicators: dict[str, bool] = field(default_factory=dict)
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name.value,
            "strength": self.strength,
            "confidence": self.confidence,
            "indicators": dict(self.indicators),
            "recommendations": list(self.recommendations),
        }
