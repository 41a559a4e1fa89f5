"""
Event tracking data models.

Events are immutable once created: the dataclass is frozen and its
context/metadata are exposed as read-only mapping views.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping


class EventType(str, Enum):
    """Interaction events emitted by the exercise UI."""

    EXERCISE_START = "exercise_start"
    EXERCISE_COMPLETE = "exercise_complete"
    ANSWER_SUBMIT = "answer_submit"
    HINT_REQUEST = "hint_request"
    PAUSE_SESSION = "pause_session"
    RESUME_SESSION = "resume_session"
    DIFFICULTY_CHANGE = "difficulty_change"
    LEARNING_PATH_CHANGE = "learning_path_change"
    SOCIAL_INTERACTION = "social_interaction"
    ACHIEVEMENT_UNLOCK = "achievement_unlock"
    STREAK_UPDATE = "streak_update"

    @classmethod
    def coerce(cls, value: EventType | str) -> EventType | str:
        """
        Map a raw type onto the enum.

        Unknown values are returned unchanged; ingestion is permissive.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return value


class Timeframe(str, Enum):
    """Query windows accepted by get_events()."""

    ONE_HOUR = "1hour"
    ONE_DAY = "1day"
    SEVEN_DAYS = "7days"
    THIRTY_DAYS = "30days"

    @property
    def window(self) -> timedelta:
        return {
            Timeframe.ONE_HOUR: timedelta(hours=1),
            Timeframe.ONE_DAY: timedelta(days=1),
            Timeframe.SEVEN_DAYS: timedelta(days=7),
            Timeframe.THIRTY_DAYS: timedelta(days=30),
        }[self]

    @classmethod
    def parse(cls, value: Timeframe | str | None, default: Timeframe | None = None) -> Timeframe:
        """Parse a timeframe, silently falling back to 7 days."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return default or cls.SEVEN_DAYS


def _freeze(data: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(data or {}))


@dataclass(frozen=True)
class Event:
    """
    A recorded learner interaction.

    Attributes:
        id: Unique event id (uuid4)
        user_id: Learner the event belongs to
        session_id: Session resolved at recording time
        type: EventType member, or the raw string for unknown types
        timestamp: When the event happened
        context: Caller context merged with environment/device/user-state snapshots
        metadata: user_level, session_duration (seconds), time_of_day, day_of_week
    """

    id: str
    user_id: str
    session_id: str
    type: EventType | str
    timestamp: datetime
    context: Mapping[str, Any] = field(default_factory=dict)
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "context", _freeze(self.context))
        object.__setattr__(self, "metadata", _freeze(self.metadata))

    @property
    def type_name(self) -> str:
        """The event type as a plain string."""
        return self.type.value if isinstance(self.type, EventType) else str(self.type)

    def is_type(self, event_type: EventType) -> bool:
        return self.type == event_type

    def get(self, key: str, default: Any = None) -> Any:
        """Shortcut for a caller-supplied context value."""
        return self.context.get(key, default)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "session_id": self.session_id,
            "type": self.type_name,
            "timestamp": self.timestamp.isoformat(),
            "context": dict(self.context),
            "metadata": dict(self.metadata),
        }


@dataclass
class Session:
    """A bounded run of learner activity closed by an inactivity gap."""

    session_id: str
    user_id: str
    start_time: datetime
    last_activity: datetime
    event_ids: list[str] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float:
        return (self.last_activity - self.start_time).total_seconds()

    @property
    def event_count(self) -> int:
        return len(self.event_ids)

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "user_id": self.user_id,
            "start_time": self.start_time.isoformat(),
            "last_activity": self.last_activity.isoformat(),
            "event_count": self.event_count,
            "duration_seconds": round(self.duration_seconds, 1),
        }


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class Notification:
    """An intervention enqueued for the caller while recording an event."""

    user_id: str
    kind: str
    message: str
    event_id: str
    created_at: datetime
    priority: NotificationPriority = NotificationPriority.MEDIUM

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "event_id": self.event_id,
            "created_at": self.created_at.isoformat(),
            "priority": self.priority.value,
        }


@dataclass
class RunningMetrics:
    """Lightweight per-user counters updated on every recorded event."""

    event_count: int = 0
    counts_by_type: dict[str, int] = field(default_factory=dict)
    completions: int = 0
    score_sum: float = 0.0
    last_score: float | None = None
    recent_scores: list[float] = field(default_factory=list)
    consecutive_incorrect: int = 0
    session_hints: int = 0
    current_session_id: str | None = None
    last_event_at: datetime | None = None

    @property
    def average_score(self) -> float:
        if self.completions == 0:
            return 0.0
        return self.score_sum / self.completions

    @property
    def recent_accuracy(self) -> float:
        """Mean of the retained recent completion scores."""
        if not self.recent_scores:
            return 0.0
        return sum(self.recent_scores) / len(self.recent_scores)

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_count": self.event_count,
            "counts_by_type": dict(self.counts_by_type),
            "completions": self.completions,
            "average_score": round(self.average_score, 3),
            "recent_accuracy": round(self.recent_accuracy, 3),
            "last_score": self.last_score,
            "consecutive_incorrect": self.consecutive_incorrect,
            "session_hints": self.session_hints,
        }
