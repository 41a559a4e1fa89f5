"""
Profiling data models.

UserProfile holds the multi-dimensional learner model. ConceptGraph and the
knowledge-state classes describe per-concept mastery within one subject.
"""
from __future__ import annotations

import heapq
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from loguru import logger


# =============================================================================
# User Profile
# =============================================================================


@dataclass
class UserProfile:
    """
    Multi-dimensional learner profile.

    Every dimension group maps a trait name to a score in [0, 1].
    learning_style["preferences"] sums to 1.
    """
    user_id: str
    cognitive: dict[str, float] = field(default_factory=dict)
    learning_style: dict[str, Any] = field(default_factory=dict)
    personality: dict[str, float] = field(default_factory=dict)
    motivation: dict[str, float] = field(default_factory=dict)
    metacognition: dict[str, float] = field(default_factory=dict)
    skill_levels: dict[str, float] = field(default_factory=dict)
    strengths: list[str] = field(default_factory=list)
    challenges: list[str] = field(default_factory=list)
    goals: list[dict[str, Any]] = field(default_factory=list)
    adaptations: list[str] = field(default_factory=list)
    updated_at: Optional[datetime] = None

    @property
    def preferences(self) -> dict[str, float]:
        return self.learning_style.get("preferences", {})

    @property
    def skill_level(self) -> float:
        return self.skill_levels.get("average", 0.5)

    @property
    def cognitive_capacity(self) -> float:
        return self.cognitive.get("average_capacity", 0.5)

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "cognitive": dict(self.cognitive),
            "learning_style": {
                **self.learning_style,
                "preferences": dict(self.preferences),
            },
            "personality": dict(self.personality),
            "motivation": dict(self.motivation),
            "metacognition": dict(self.metacognition),
            "skill_levels": dict(self.skill_levels),
            "strengths": list(self.strengths),
            "challenges": list(self.challenges),
            "goals": list(self.goals),
            "adaptations": list(self.adaptations),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


# =============================================================================
# Concept Graph
# =============================================================================


@dataclass
class Concept:
    id: str
    name: str = ""
    prerequisites: list[str] = field(default_factory=list)


class ConceptGraph:
    """
    Prerequisite graph of one subject.

    Graphs are never rejected. Ordering uses Kahn's algorithm with ties
    broken by declaration order; concepts stuck on a prerequisite cycle are
    appended after the orderable ones and listed in `cyclic_concepts`.
    """

    def __init__(self, concepts: list[Concept]):
        self.concepts: dict[str, Concept] = {}
        for concept in concepts:
            self.concepts.setdefault(concept.id, concept)

        self._index = {cid: i for i, cid in enumerate(self.concepts)}
        self._dependents: dict[str, list[str]] = {cid: [] for cid in self.concepts}
        for concept in self.concepts.values():
            for prereq in concept.prerequisites:
                if prereq in self._dependents:
                    self._dependents[prereq].append(concept.id)

        self.order, self.cyclic_concepts = self._topological_order()
        if self.cyclic_concepts:
            logger.warning(
                f"Prerequisite cycle among concepts: {', '.join(self.cyclic_concepts)}"
            )

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> ConceptGraph:
        """Build from a concept source answer: {"concepts": [{id, name, prerequisites}]}."""
        concepts = []
        for raw in (data or {}).get("concepts", []) or []:
            concepts.append(Concept(
                id=str(raw["id"]),
                name=raw.get("name") or str(raw["id"]),
                prerequisites=[str(p) for p in raw.get("prerequisites") or []],
            ))
        return cls(concepts)

    def __len__(self) -> int:
        return len(self.concepts)

    def __contains__(self, concept_id: str) -> bool:
        return concept_id in self.concepts

    def prerequisites(self, concept_id: str) -> list[str]:
        return list(self.concepts[concept_id].prerequisites)

    def _known_prerequisites(self, concept_id: str) -> list[str]:
        return [p for p in self.concepts[concept_id].prerequisites if p in self.concepts]

    def _topological_order(self) -> tuple[list[str], list[str]]:
        in_degree = {cid: len(set(self._known_prerequisites(cid))) for cid in self.concepts}
        ready = [self._index[cid] for cid, degree in in_degree.items() if degree == 0]
        heapq.heapify(ready)
        ids = list(self.concepts)

        order: list[str] = []
        while ready:
            concept_id = ids[heapq.heappop(ready)]
            order.append(concept_id)
            for dependent in dict.fromkeys(self._dependents[concept_id]):
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    heapq.heappush(ready, self._index[dependent])

        placed = set(order)
        cyclic = [cid for cid in ids if cid not in placed]
        return order + cyclic, cyclic

    def transitive_dependents(self, concept_id: str) -> set[str]:
        """Every concept that directly or indirectly requires concept_id."""
        seen: set[str] = set()
        stack = list(self._dependents.get(concept_id, []))
        while stack:
            current = stack.pop()
            if current in seen or current == concept_id:
                continue
            seen.add(current)
            stack.extend(self._dependents.get(current, []))
        return seen


# =============================================================================
# Knowledge State
# =============================================================================


@dataclass
class ForgettingCurve:
    """
    Exponential retention estimate.

    retention = exp(-days_since_practice / stability_days)
    """
    days_since_practice: Optional[float]
    stability_days: float
    retention: float
    review_due: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "days_since_practice": (
                round(self.days_since_practice, 2)
                if self.days_since_practice is not None else None
            ),
            "stability_days": round(self.stability_days, 4),
            "retention": self.retention,
            "review_due": self.review_due,
        }


@dataclass
class KnowledgeStateEntry:
    """A learner's state on one concept."""
    concept_id: str
    name: str
    mastery_level: float
    confidence: float
    last_practiced: Optional[datetime]
    forgetting_curve: ForgettingCurve
    readiness: float
    perceived_difficulty: float
    transfer_ability: float
    attempts: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "concept_id": self.concept_id,
            "name": self.name,
            "mastery_level": self.mastery_level,
            "confidence": self.confidence,
            "last_practiced": self.last_practiced.isoformat() if self.last_practiced else None,
            "forgetting_curve": self.forgetting_curve.to_dict(),
            "readiness": self.readiness,
            "perceived_difficulty": self.perceived_difficulty,
            "transfer_ability": self.transfer_ability,
            "attempts": self.attempts,
        }


@dataclass
class LearningGap:
    """An unmastered concept with its remediation plan."""
    concept_id: str
    name: str
    mastery_level: float
    gap: float
    priority: float
    dependent_count: int
    strategies: list[str] = field(default_factory=list)
    practice_minutes: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "concept_id": self.concept_id,
            "name": self.name,
            "mastery_level": self.mastery_level,
            "gap": self.gap,
            "priority": self.priority,
            "dependent_count": self.dependent_count,
            "strategies": list(self.strategies),
            "practice_minutes": self.practice_minutes,
        }


@dataclass
class KnowledgeState:
    """Per-concept knowledge map of one learner in one subject, with aggregates."""
    user_id: str
    subject: str
    concepts: dict[str, KnowledgeStateEntry] = field(default_factory=dict)
    overall_mastery: float = 0.0
    learning_gaps: list[LearningGap] = field(default_factory=list)
    strong_areas: list[str] = field(default_factory=list)
    next_concepts: list[str] = field(default_factory=list)
    learning_path: list[str] = field(default_factory=list)
    estimated_time_to_mastery: int = 0  # minutes
    cyclic_concepts: list[str] = field(default_factory=list)
    computed_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "subject": self.subject,
            "concepts": {cid: entry.to_dict() for cid, entry in self.concepts.items()},
            "overall_mastery": self.overall_mastery,
            "learning_gaps": [gap.to_dict() for gap in self.learning_gaps],
            "strong_areas": list(self.strong_areas),
            "next_concepts": list(self.next_concepts),
            "learning_path": list(self.learning_path),
            "estimated_time_to_mastery": self.estimated_time_to_mastery,
            "cyclic_concepts": list(self.cyclic_concepts),
            "computed_at": self.computed_at.isoformat() if self.computed_at else None,
        }
