"""
Collaborator interfaces.

The analytics core never fetches data itself. Everything it reads comes
through these protocols:

- LearnerDataSource: behavior, performance, engagement, interaction,
  mastery and learning-history data per learner
- ConceptSource: the prerequisite concept graph of a subject
- LearnerStateSource: live learning state, per-exercise-type performance
  history and current exercise difficulty
- EnvironmentProvider: locale/device/connectivity metadata stamped on events

Two implementations ship with the package. NullLearnerDataSource answers
every question with "nothing known" so the services fall back to their
conservative defaults. StaticLearnerDataSource serves a validated snapshot
and backs the CLI and the tests.
"""
from __future__ import annotations

import platform
from datetime import datetime
from typing import Any, Literal, Protocol

from pydantic import BaseModel, Field

# =============================================================================
# Protocols
# =============================================================================


class LearnerDataSource(Protocol):
    """Aggregated behavioral and performance data about a learner."""

    def get_user_behavior_data(self, user_id: str) -> dict[str, Any]:
        ...

    def get_user_performance_data(self, user_id: str) -> list[dict[str, Any]]:
        ...

    def get_user_engagement_data(self, user_id: str) -> list[dict[str, Any]]:
        ...

    def get_user_interaction_data(self, user_id: str) -> list[dict[str, Any]]:
        ...

    def get_user_mastery_data(self, user_id: str, subject: str) -> dict[str, dict[str, Any]]:
        ...

    def get_learning_history(self, user_id: str, subject: str) -> list[dict[str, Any]]:
        ...


class ConceptSource(Protocol):
    """Domain knowledge: concepts and their prerequisites."""

    def get_concept_graph(self, subject: str) -> dict[str, Any]:
        ...


class LearnerStateSource(Protocol):
    """Live learner state consumed by the difficulty layer."""

    def get_learning_state(self, user_id: str) -> dict[str, Any]:
        ...

    def get_performance_history(self, user_id: str, exercise_type: str) -> list[dict[str, Any]]:
        ...

    def get_current_difficulty(self, exercise_id: str) -> float | None:
        ...

    def get_user_state(self, user_id: str) -> dict[str, Any]:
        ...


class EnvironmentProvider(Protocol):
    """Environment and device metadata stamped onto every event."""

    def environment_context(self) -> dict[str, Any]:
        ...

    def device_context(self) -> dict[str, Any]:
        ...


# =============================================================================
# Snapshot Models (input validation)
# =============================================================================


class ConceptRecord(BaseModel):
    """A concept node in a subject's prerequisite graph."""

    id: str
    name: str = ""
    prerequisites: list[str] = Field(default_factory=list)


class MasteryRecord(BaseModel):
    """Scores a learner has on one concept."""

    attempts: int = Field(default=0, ge=0)
    recent_scores: list[float] = Field(default_factory=list)
    all_scores: list[float] = Field(default_factory=list)


class HistoryRecord(BaseModel):
    """One practice entry in a learner's subject history."""

    concept_id: str
    timestamp: datetime
    score: float | None = None


class PerformanceRecord(BaseModel):
    """A completed exercise."""

    exercise_id: str = ""
    exercise_type: str = "general"
    score: float
    complexity: Literal["low", "medium", "high"] = "medium"
    time_to_complete: float = 0.0  # seconds


class EngagementRecord(BaseModel):
    """Aggregate of one study session."""

    session_id: str
    duration: float = 0.0  # seconds
    completed: bool = False
    difficulty: float = 0.5
    attempts: int = 1
    self_directed: bool = False


class InteractionRecord(BaseModel):
    """A UI interaction, typed by what the learner touched."""

    type: str
    timestamp: datetime | None = None


class CalibrationPoint(BaseModel):
    """Self-reported confidence paired with the actual outcome."""

    confidence: float = Field(ge=0.0, le=1.0)
    correct: bool


class BehaviorData(BaseModel):
    """Behavioral aggregates for profiling."""

    response_times: list[float] = Field(default_factory=list)  # milliseconds
    session_lengths: list[float] = Field(default_factory=list)  # seconds
    interaction_patterns: list[str] = Field(default_factory=list)
    difficulty_progression: list[float] = Field(default_factory=list)
    calibration: list[CalibrationPoint] = Field(default_factory=list)


class LearningState(BaseModel):
    """
    Live learning state.

    Defaults are the conservative values used whenever a state source has
    nothing to say about a learner.
    """

    fatigue_level: float = 0.0
    motivation_level: float = 0.6
    session_duration: float = 0.0  # seconds
    current_streak: int = 0
    engagement_level: float = 0.7
    distraction_level: float = 0.2
    has_goals: bool = False
    recent_pauses: int = 0
    recent_accuracy: float | None = None
    current_goals: list[dict[str, Any]] = Field(default_factory=list)


class PerformanceSession(BaseModel):
    """A past session on one exercise type."""

    score: float
    time_to_complete: float = 0.0
    difficulty: float = 0.5


class SubjectSnapshot(BaseModel):
    """A learner's mastery and history in one subject."""

    mastery: dict[str, MasteryRecord] = Field(default_factory=dict)
    history: list[HistoryRecord] = Field(default_factory=list)


class LearnerSnapshot(BaseModel):
    """Everything the static source knows about one learner."""

    user_id: str
    behavior: BehaviorData = Field(default_factory=BehaviorData)
    performance: list[PerformanceRecord] = Field(default_factory=list)
    engagement: list[EngagementRecord] = Field(default_factory=list)
    interactions: list[InteractionRecord] = Field(default_factory=list)
    subjects: dict[str, SubjectSnapshot] = Field(default_factory=dict)
    learning_state: LearningState = Field(default_factory=LearningState)
    performance_history: dict[str, list[PerformanceSession]] = Field(default_factory=dict)
    user_state: dict[str, Any] = Field(default_factory=dict)


class DataSourceFixture(BaseModel):
    """Top-level document accepted by StaticLearnerDataSource.from_dict()."""

    learners: list[LearnerSnapshot] = Field(default_factory=list)
    concept_graphs: dict[str, list[ConceptRecord]] = Field(default_factory=dict)
    exercise_difficulties: dict[str, float] = Field(default_factory=dict)


DEFAULT_LEARNING_STATE: dict[str, Any] = LearningState().model_dump()


# =============================================================================
# Implementations
# =============================================================================


class NullLearnerDataSource:
    """A data source that knows nothing; every answer is empty."""

    def get_user_behavior_data(self, user_id: str) -> dict[str, Any]:
        return {}

    def get_user_performance_data(self, user_id: str) -> list[dict[str, Any]]:
        return []

    def get_user_engagement_data(self, user_id: str) -> list[dict[str, Any]]:
        return []

    def get_user_interaction_data(self, user_id: str) -> list[dict[str, Any]]:
        return []

    def get_user_mastery_data(self, user_id: str, subject: str) -> dict[str, dict[str, Any]]:
        return {}

    def get_learning_history(self, user_id: str, subject: str) -> list[dict[str, Any]]:
        return []

    def get_concept_graph(self, subject: str) -> dict[str, Any]:
        return {"concepts": []}

    def get_learning_state(self, user_id: str) -> dict[str, Any]:
        return {}

    def get_performance_history(self, user_id: str, exercise_type: str) -> list[dict[str, Any]]:
        return []

    def get_current_difficulty(self, exercise_id: str) -> float | None:
        return None

    def get_user_state(self, user_id: str) -> dict[str, Any]:
        return {}


class StaticLearnerDataSource(NullLearnerDataSource):
    """
    Serve learner data from an in-memory, validated snapshot.

    Usage:
        source = StaticLearnerDataSource.from_dict(json.loads(path.read_text()))
        engine = LearningAnalyticsEngine(data_source=source)
    """

    def __init__(self, fixture: DataSourceFixture | None = None):
        self._fixture = fixture or DataSourceFixture()
        self._learners = {learner.user_id: learner for learner in self._fixture.learners}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StaticLearnerDataSource:
        """Validate a raw document; raises pydantic.ValidationError when malformed."""
        return cls(DataSourceFixture.model_validate(data))

    def add_learner(self, snapshot: LearnerSnapshot) -> None:
        self._learners[snapshot.user_id] = snapshot

    def _learner(self, user_id: str) -> LearnerSnapshot | None:
        return self._learners.get(user_id)

    def get_user_behavior_data(self, user_id: str) -> dict[str, Any]:
        learner = self._learner(user_id)
        return learner.behavior.model_dump() if learner else {}

    def get_user_performance_data(self, user_id: str) -> list[dict[str, Any]]:
        learner = self._learner(user_id)
        return [record.model_dump() for record in learner.performance] if learner else []

    def get_user_engagement_data(self, user_id: str) -> list[dict[str, Any]]:
        learner = self._learner(user_id)
        return [record.model_dump() for record in learner.engagement] if learner else []

    def get_user_interaction_data(self, user_id: str) -> list[dict[str, Any]]:
        learner = self._learner(user_id)
        return [record.model_dump() for record in learner.interactions] if learner else []

    def get_user_mastery_data(self, user_id: str, subject: str) -> dict[str, dict[str, Any]]:
        learner = self._learner(user_id)
        if not learner or subject not in learner.subjects:
            return {}
        return {
            concept_id: record.model_dump()
            for concept_id, record in learner.subjects[subject].mastery.items()
        }

    def get_learning_history(self, user_id: str, subject: str) -> list[dict[str, Any]]:
        learner = self._learner(user_id)
        if not learner or subject not in learner.subjects:
            return []
        return [record.model_dump() for record in learner.subjects[subject].history]

    def get_concept_graph(self, subject: str) -> dict[str, Any]:
        concepts = self._fixture.concept_graphs.get(subject, [])
        return {"concepts": [concept.model_dump() for concept in concepts]}

    def get_learning_state(self, user_id: str) -> dict[str, Any]:
        learner = self._learner(user_id)
        return learner.learning_state.model_dump() if learner else {}

    def get_performance_history(self, user_id: str, exercise_type: str) -> list[dict[str, Any]]:
        learner = self._learner(user_id)
        if not learner:
            return []
        return [s.model_dump() for s in learner.performance_history.get(exercise_type, [])]

    def get_current_difficulty(self, exercise_id: str) -> float | None:
        return self._fixture.exercise_difficulties.get(exercise_id)

    def get_user_state(self, user_id: str) -> dict[str, Any]:
        learner = self._learner(user_id)
        return dict(learner.user_state) if learner else {}


class StaticEnvironmentProvider:
    """Environment provider returning fixed metadata (host defaults when omitted)."""

    def __init__(
        self,
        environment: dict[str, Any] | None = None,
        device: dict[str, Any] | None = None,
    ):
        self._environment = environment
        self._device = device

    def environment_context(self) -> dict[str, Any]:
        if self._environment is not None:
            return dict(self._environment)
        return {
            "timezone": datetime.now().astimezone().tzname(),
            "language": "en",
            "platform": platform.system(),
        }

    def device_context(self) -> dict[str, Any]:
        if self._device is not None:
            return dict(self._device)
        return {
            "device_type": "desktop",
            "viewport_width": None,
            "connectivity": "online",
            "touch_support": False,
        }
