"""
Unit tests for KnowledgeStateModeler and ConceptGraph.
"""

from datetime import datetime

import pytest

from learning_core.profiling import ConceptGraph, KnowledgeStateModeler
from learning_core.profiling.models import Concept


@pytest.fixture
def modeler(data_source, clock, settings):
    return KnowledgeStateModeler(
        data_source=data_source,
        concept_source=data_source,
        clock=clock,
        settings=settings,
    )


class TestCalculateMastery:
    def test_no_attempts_is_zero(self, modeler):
        assert modeler.calculate_mastery({}) == 0.0
        assert modeler.calculate_mastery({"attempts": 0, "all_scores": [1.0]}) == 0.0

    def test_recency_weighting_and_bonuses(self, modeler):
        record = {"attempts": 4, "recent_scores": [0.5, 0.6], "all_scores": [0.4, 0.5, 0.6]}
        # 0.7 * 0.55 + 0.3 * 0.5 + 0.04 + consistency bonus
        assert modeler.calculate_mastery(record) == pytest.approx(0.6168, abs=1e-4)

    def test_practice_bonus_is_capped(self, modeler):
        record = {"attempts": 50, "recent_scores": [0.5], "all_scores": [0.5]}
        assert modeler.calculate_mastery(record) == pytest.approx(0.6)

    def test_mastery_never_exceeds_one(self, modeler):
        record = {"attempts": 30, "recent_scores": [1.0] * 5, "all_scores": [1.0] * 10}
        assert modeler.calculate_mastery(record) == 1.0

    def test_recent_falls_back_to_latest_scores(self, modeler):
        record = {"attempts": 2, "all_scores": [0.6, 0.6]}
        assert modeler.calculate_mastery(record) == pytest.approx(0.62)


class TestReadinessAndRetention:
    def test_readiness(self, modeler):
        assert modeler.calculate_readiness([], {}) == 1.0
        assert modeler.calculate_readiness(["a", "b"], {"a": 0.8, "b": 0.4}) == pytest.approx(0.54)
        assert modeler.calculate_readiness(["missing"], {}) == 0.0

    def test_forgetting_curve(self, modeler):
        now = datetime(2024, 5, 6)
        curve = modeler.forgetting_curve(10, 1.0, datetime(2024, 5, 5), now)
        assert curve.stability_days == pytest.approx(9.0)
        assert curve.retention == pytest.approx(0.8948, abs=1e-4)
        assert curve.review_due is False

    def test_never_practiced(self, modeler):
        curve = modeler.forgetting_curve(3, 0.5, None, datetime(2024, 5, 6))
        assert curve.retention == 0.0
        assert curve.review_due is True
        assert modeler.forgetting_curve(0, 0.0, None, datetime(2024, 5, 6)).review_due is False


class TestModelKnowledgeState:
    def test_entries(self, modeler):
        state = modeler.model_knowledge_state("u1", "spanish")

        assert list(state.concepts) == ["greetings", "numbers", "time", "dates"]
        assert state.concepts["greetings"].mastery_level == 1.0
        assert state.concepts["numbers"].mastery_level == pytest.approx(0.6168, abs=1e-4)
        assert state.concepts["time"].readiness == pytest.approx(0.6168, abs=1e-4)
        assert state.concepts["dates"].readiness == pytest.approx(0.2159, abs=1e-4)
        assert state.concepts["numbers"].forgetting_curve.review_due is True
        assert state.concepts["time"].forgetting_curve.retention == 0.0

    def test_aggregates(self, modeler):
        state = modeler.model_knowledge_state("u1", "spanish")

        assert state.overall_mastery == pytest.approx(0.4042, abs=1e-4)
        assert state.strong_areas == ["greetings"]
        assert state.next_concepts == ["numbers"]
        assert state.learning_path == ["numbers", "time", "dates"]
        assert state.estimated_time_to_mastery == 357
        assert state.cyclic_concepts == []

    def test_learning_gaps_ranked_by_priority(self, modeler):
        gaps = modeler.model_knowledge_state("u1", "spanish").learning_gaps

        assert [g.concept_id for g in gaps] == ["time", "dates", "numbers"]
        assert gaps[0].dependent_count == 1
        assert gaps[0].practice_minutes == 160
        assert gaps[0].strategies[0] == "review_prerequisites"
        assert gaps[2].dependent_count == 2
        assert gaps[2].practice_minutes == 37

    def test_state_is_cached(self, modeler):
        state = modeler.model_knowledge_state("u1", "spanish")
        assert modeler.get_knowledge_state("u1", "spanish") is state
        assert modeler.get_knowledge_state("u1", "french") is None

    def test_unknown_subject(self, modeler):
        state = modeler.model_knowledge_state("u1", "klingon")
        assert state.concepts == {}
        assert state.overall_mastery == 0.0
        assert state.estimated_time_to_mastery == 0

    def test_requires_user_id(self, modeler):
        with pytest.raises(ValueError):
            modeler.model_knowledge_state("", "spanish")


class TestConceptGraph:
    def test_order_respects_prerequisites(self):
        graph = ConceptGraph([
            Concept("c", prerequisites=["b"]),
            Concept("b", prerequisites=["a"]),
            Concept("a"),
        ])
        assert graph.order == ["a", "b", "c"]

    def test_ties_follow_declaration_order(self):
        graph = ConceptGraph([Concept("z"), Concept("y"), Concept("x", prerequisites=["z"])])
        assert graph.order == ["z", "y", "x"]

    def test_cycles_are_reported_not_rejected(self):
        graph = ConceptGraph([
            Concept("a"),
            Concept("b", prerequisites=["c"]),
            Concept("c", prerequisites=["b"]),
        ])
        assert graph.order == ["a", "b", "c"]
        assert graph.cyclic_concepts == ["b", "c"]
        assert graph.transitive_dependents("b") == {"c"}

    def test_unknown_prerequisites_do_not_block_ordering(self):
        graph = ConceptGraph.from_dict({"concepts": [{"id": "a", "prerequisites": ["ghost"]}]})
        assert graph.order == ["a"]
        assert graph.concepts["a"].name == "a"

    def test_transitive_dependents(self):
        graph = ConceptGraph([
            Concept("a"),
            Concept("b", prerequisites=["a"]),
            Concept("c", prerequisites=["b"]),
        ])
        assert graph.transitive_dependents("a") == {"b", "c"}
        assert graph.transitive_dependents("c") == set()
