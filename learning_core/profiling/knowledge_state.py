"""
Knowledge State Modeler.

Computes per-concept mastery, readiness and retention for one learner in
one subject, plus subject-level aggregates (gaps, strong areas, next
concepts, learning path, time to mastery).

Formulas:
    mastery   = 0.7 * mean(recent) + 0.3 * mean(all)
                + min(0.1, attempts * 0.01)
                + consistency(all) * 0.05        (with 3+ scores)
    readiness = 1.0 without prerequisites, else
                0.7 * mean(prereq mastery) + 0.3 * min(prereq mastery)
    stability = 1 day * (1 + 0.5 * attempts) * (0.5 + mastery)
    retention = exp(-days_since_practice / stability)

Readiness reads masteries computed in a first pass, so cyclic prerequisite
graphs cost no more than acyclic ones.
"""
from __future__ import annotations

import math
from collections.abc import Callable
from datetime import datetime
from typing import Any, Optional

from loguru import logger

from config import Settings, get_settings
from learning_core.analysis.statistics import consistency
from learning_core.core.scoring import clamp, mean, normalize_score, ratio, round_score, to_float
from learning_core.core.sources import ConceptSource, LearnerDataSource, NullLearnerDataSource
from learning_core.core.storage import InMemoryKeyValueStore, KeyValueStore
from learning_core.core.timeutils import days_between, to_datetime
from learning_core.profiling.models import (
    ConceptGraph,
    ForgettingCurve,
    KnowledgeState,
    KnowledgeStateEntry,
    LearningGap,
)

BASE_STABILITY_DAYS = 1.0
CONSISTENCY_MIN_SCORES = 3
GAP_WEIGHT = 0.6
DEPENDENCY_WEIGHT = 0.4


class KnowledgeStateModeler:
    """
    Models what a learner knows in a subject.

    Usage:
        modeler = KnowledgeStateModeler(data_source=source, concept_source=source)
        state = modeler.model_knowledge_state("u1", "spanish")
        for gap in state.learning_gaps:
            print(gap.concept_id, gap.practice_minutes)
    """

    def __init__(
        self,
        data_source: LearnerDataSource | None = None,
        concept_source: ConceptSource | None = None,
        store: KeyValueStore[KnowledgeState] | None = None,
        clock: Callable[[], datetime] = datetime.now,
        settings: Settings | None = None,
    ):
        self._settings = settings or get_settings()
        self.config = self._settings.get_knowledge_config()
        self.data_source = data_source or NullLearnerDataSource()
        self.concept_source = concept_source or NullLearnerDataSource()
        self.store: KeyValueStore[KnowledgeState] = store or InMemoryKeyValueStore()
        self._clock = clock

    # =========================================================================
    # Per-concept estimates
    # =========================================================================

    def calculate_mastery(self, record: dict[str, Any]) -> float:
        """Recency-weighted mastery with practice and consistency bonuses."""
        attempts = max(0, int(to_float(record.get("attempts"))))
        if attempts == 0:
            return 0.0

        all_scores = [normalize_score(s) for s in record.get("all_scores") or []]
        recent_scores = [normalize_score(s) for s in record.get("recent_scores") or []]
        if not recent_scores:
            recent_scores = all_scores[-self._settings.trend_window:]

        mastery = (
            self.config["recent_weight"] * mean(recent_scores)
            + self.config["overall_weight"] * mean(all_scores)
        )
        mastery += min(
            self._settings.mastery_practice_bonus_cap,
            attempts * self._settings.mastery_practice_bonus_per_attempt,
        )
        if len(all_scores) >= CONSISTENCY_MIN_SCORES:
            mastery += consistency(all_scores) * self._settings.mastery_consistency_bonus

        return round_score(clamp(mastery))

    def calculate_readiness(self, prerequisites: list[str], masteries: dict[str, float]) -> float:
        """Readiness from prerequisite mastery; unknown prerequisites count as 0."""
        if not prerequisites:
            return 1.0
        levels = [masteries.get(p, 0.0) for p in prerequisites]
        return round_score(clamp(0.7 * mean(levels) + 0.3 * min(levels)))

    def forgetting_curve(
        self,
        attempts: int,
        mastery: float,
        last_practiced: Optional[datetime],
        now: datetime,
    ) -> ForgettingCurve:
        stability = BASE_STABILITY_DAYS * (1 + 0.5 * attempts) * (0.5 + mastery)
        days = days_between(last_practiced, now)

        if days is None:
            retention = 0.0
            review_due = attempts > 0
        else:
            retention = round_score(math.exp(-days / stability))
            review_due = retention < self.config["retention_review"]

        return ForgettingCurve(
            days_since_practice=days,
            stability_days=stability,
            retention=retention,
            review_due=review_due,
        )

    def _confidence(self, attempts: int, scores: list[float]) -> float:
        sample = ratio(attempts, self._settings.confidence_attempts)
        return round_score(clamp(sample * (0.5 + 0.5 * consistency(scores))))

    @staticmethod
    def _perceived_difficulty(scores: list[float]) -> float:
        return round_score(clamp(1 - mean(scores))) if scores else 0.5

    @staticmethod
    def _transfer_ability(mastery: float, scores: list[float]) -> float:
        return round_score(clamp(mastery * (0.5 + 0.5 * consistency(scores))))

    @staticmethod
    def _last_practiced(history: list[dict[str, Any]]) -> dict[str, datetime]:
        latest: dict[str, datetime] = {}
        for entry in history:
            stamp = to_datetime(entry.get("timestamp"))
            concept_id = entry.get("concept_id")
            if stamp is None or concept_id is None:
                continue
            if concept_id not in latest or stamp > latest[concept_id]:
                latest[concept_id] = stamp
        return latest

    # =========================================================================
    # Aggregates
    # =========================================================================

    def _remediation_strategies(self, mastery: float, readiness: float) -> list[str]:
        if mastery < 0.3:
            strategies = ["reteach_fundamentals", "worked_examples", "guided_practice"]
        elif mastery < 0.5:
            strategies = ["targeted_practice", "concept_review"]
        else:
            strategies = ["spaced_review", "mixed_practice"]
        if readiness < self.config["readiness"]:
            strategies.insert(0, "review_prerequisites")
        return strategies

    def identify_learning_gaps(
        self,
        graph: ConceptGraph,
        entries: dict[str, KnowledgeStateEntry],
    ) -> list[LearningGap]:
        """Unmastered concepts ranked by gap size and how much depends on them."""
        span = max(1, len(graph) - 1)
        gaps = []
        for concept_id, entry in entries.items():
            if entry.mastery_level >= self.config["mastery_threshold"]:
                continue
            gap = round_score(self.config["mastery_target"] - entry.mastery_level)
            dependents = len(graph.transitive_dependents(concept_id))
            gaps.append(LearningGap(
                concept_id=concept_id,
                name=entry.name,
                mastery_level=entry.mastery_level,
                gap=gap,
                priority=round_score(GAP_WEIGHT * gap + DEPENDENCY_WEIGHT * dependents / span),
                dependent_count=dependents,
                strategies=self._remediation_strategies(entry.mastery_level, entry.readiness),
                practice_minutes=round(gap * self._settings.practice_minutes_per_mastery_point),
            ))

        gaps.sort(key=lambda g: g.priority, reverse=True)
        return gaps

    def next_concepts(
        self,
        graph: ConceptGraph,
        entries: dict[str, KnowledgeStateEntry],
    ) -> list[str]:
        """Unmastered concepts the learner is ready for, most ready first."""
        position = {cid: i for i, cid in enumerate(graph.order)}
        candidates = [
            entry for entry in entries.values()
            if entry.mastery_level < self.config["mastery_threshold"]
            and entry.readiness >= self.config["readiness"]
        ]
        candidates.sort(key=lambda e: (-e.readiness, position[e.concept_id]))
        return [e.concept_id for e in candidates[: self._settings.next_concepts_limit]]

    def estimate_time_to_mastery(self, entries: dict[str, KnowledgeStateEntry]) -> int:
        """Practice minutes to bring every concept to the target mastery."""
        target = self.config["mastery_target"]
        shortfall = sum(
            target - entry.mastery_level
            for entry in entries.values()
            if entry.mastery_level < target
        )
        return round(shortfall * self._settings.practice_minutes_per_mastery_point)

    # =========================================================================
    # Entry point
    # =========================================================================

    def model_knowledge_state(
        self,
        user_id: str,
        subject: str,
        now: Optional[datetime] = None,
    ) -> KnowledgeState:
        """
        Model the learner's knowledge of every concept in a subject.

        Args:
            user_id: Learner identifier
            subject: Subject whose concept graph is modeled
            now: Reference time for retention (defaults to the clock)

        Returns:
            KnowledgeState with per-concept entries and aggregates
        """
        if not user_id:
            raise ValueError("model_knowledge_state() requires a user_id")

        now = now or self._clock()
        graph = ConceptGraph.from_dict(self.concept_source.get_concept_graph(subject))
        mastery_data = self.data_source.get_user_mastery_data(user_id, subject) or {}
        last_practiced = self._last_practiced(
            self.data_source.get_learning_history(user_id, subject) or []
        )

        if not len(graph):
            logger.warning(f"No concepts found for subject '{subject}'")

        masteries = {
            concept_id: self.calculate_mastery(mastery_data.get(concept_id) or {})
            for concept_id in graph.order
        }

        entries: dict[str, KnowledgeStateEntry] = {}
        for concept_id in graph.order:
            concept = graph.concepts[concept_id]
            record = mastery_data.get(concept_id) or {}
            attempts = max(0, int(to_float(record.get("attempts"))))
            scores = [normalize_score(s) for s in record.get("all_scores") or []]
            mastery = masteries[concept_id]
            practiced = last_practiced.get(concept_id)

            entries[concept_id] = KnowledgeStateEntry(
                concept_id=concept_id,
                name=concept.name,
                mastery_level=mastery,
                confidence=self._confidence(attempts, scores),
                last_practiced=practiced,
                forgetting_curve=self.forgetting_curve(attempts, mastery, practiced, now),
                readiness=self.calculate_readiness(concept.prerequisites, masteries),
                perceived_difficulty=self._perceived_difficulty(scores),
                transfer_ability=self._transfer_ability(mastery, scores),
                attempts=attempts,
            )

        state = KnowledgeState(
            user_id=user_id,
            subject=subject,
            concepts=entries,
            overall_mastery=round_score(mean(masteries.values())),
            learning_gaps=self.identify_learning_gaps(graph, entries),
            strong_areas=[
                cid for cid, entry in entries.items()
                if entry.mastery_level >= self.config["strong_area"]
            ],
            next_concepts=self.next_concepts(graph, entries),
            learning_path=[
                cid for cid in graph.order
                if entries[cid].mastery_level < self.config["mastery_threshold"]
            ],
            estimated_time_to_mastery=self.estimate_time_to_mastery(entries),
            cyclic_concepts=list(graph.cyclic_concepts),
            computed_at=now,
        )

        self.store.put(f"{user_id}:{subject}", state)
        logger.debug(
            f"Knowledge state for {user_id}/{subject}: {len(entries)} concepts, "
            f"overall mastery {state.overall_mastery:.2f}"
        )
        return state

    def get_knowledge_state(self, user_id: str, subject: str) -> KnowledgeState | None:
        """The last knowledge state modeled for the learner and subject."""
        return self.store.get(f"{user_id}:{subject}")
