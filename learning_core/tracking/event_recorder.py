"""
Event Recorder.

Ingests raw interaction events, stamps them with context, and appends them
to the per-user event log. Recording is permissive: no event is rejected,
and unknown event types are stored as-is.

Before returning, every recorded event synchronously:
1. Updates the learner's running metrics
2. Runs the immediate-intervention check, which may enqueue a notification
"""
from __future__ import annotations

import uuid
from collections.abc import Callable
from datetime import datetime
from typing import Any

from loguru import logger

from config import Settings, get_settings
from learning_core.core.scoring import normalize_score
from learning_core.core.sources import (
    EnvironmentProvider,
    LearnerStateSource,
    NullLearnerDataSource,
    StaticEnvironmentProvider,
)
from learning_core.core.storage import InMemoryKeyValueStore
from learning_core.tracking.event_store import EventStore, InMemoryEventStore
from learning_core.tracking.models import (
    Event,
    EventType,
    Notification,
    NotificationPriority,
    RunningMetrics,
    Session,
    Timeframe,
)
from learning_core.tracking.session_tracker import SessionTracker


class EventRecorder:
    """
    Records learner events and keeps per-user tracking state.

    Usage:
        recorder = EventRecorder()
        event = recorder.record_event("u1", EventType.EXERCISE_COMPLETE, {"score": 0.8})
        week = recorder.get_events("u1", "7days")
        for notice in recorder.drain_notifications("u1"):
            show(notice.message)
    """

    def __init__(
        self,
        store: EventStore | None = None,
        sessions: SessionTracker | None = None,
        state_source: LearnerStateSource | None = None,
        environment: EnvironmentProvider | None = None,
        clock: Callable[[], datetime] = datetime.now,
        settings: Settings | None = None,
    ):
        self._settings = settings or get_settings()
        self.store = store or InMemoryEventStore(settings=self._settings)
        self.sessions = sessions or SessionTracker(settings=self._settings)
        self._state_source = state_source or NullLearnerDataSource()
        self._environment = environment or StaticEnvironmentProvider()
        self._clock = clock
        self._metrics: InMemoryKeyValueStore[RunningMetrics] = InMemoryKeyValueStore()
        self._notifications: InMemoryKeyValueStore[list[Notification]] = InMemoryKeyValueStore()

    # =========================================================================
    # Recording
    # =========================================================================

    def record_event(
        self,
        user_id: str,
        event_type: EventType | str,
        context: dict[str, Any] | None = None,
        timestamp: datetime | None = None,
    ) -> Event:
        """
        Record an event for a learner.

        Args:
            user_id: Learner identifier (required)
            event_type: EventType member or raw type string
            context: Free-form caller context (score, correct, exercise_type, ...)
            timestamp: Event time; defaults to the recorder clock (used for replays)

        Returns:
            The immutable recorded Event
        """
        if not user_id:
            raise ValueError("record_event() requires a user_id")

        at = timestamp or self._clock()
        session = self.sessions.resolve(user_id, at)
        user_state = self._current_user_state(user_id)

        event = Event(
            id=str(uuid.uuid4()),
            user_id=user_id,
            session_id=session.session_id,
            type=EventType.coerce(event_type),
            timestamp=at,
            context={
                **(context or {}),
                "environment_context": self._environment.environment_context(),
                "device_context": self._environment.device_context(),
                "user_state": user_state,
            },
            metadata={
                "user_level": user_state["level"],
                "session_duration": max(0.0, (at - session.start_time).total_seconds()),
                "time_of_day": at.hour,
                "day_of_week": at.weekday(),
            },
        )

        self.store.append(event)
        self.sessions.touch(session, event)

        metrics = self._update_running_metrics(event)
        for notification in self._check_immediate_interventions(event, metrics):
            self._notifications.get_or_create(user_id, list).append(notification)
            logger.debug(f"Intervention queued for {user_id}: {notification.kind}")

        return event

    def _current_user_state(self, user_id: str) -> dict[str, Any]:
        state = {
            "level": self._settings.default_user_level,
            "current_streak": 0,
            "recent_achievements": [],
            "motivation_level": 0.6,
        }
        state.update(self._state_source.get_user_state(user_id) or {})
        return state

    # =========================================================================
    # Side Effects
    # =========================================================================

    def _update_running_metrics(self, event: Event) -> RunningMetrics:
        metrics = self._metrics.get_or_create(event.user_id, RunningMetrics)

        if metrics.current_session_id != event.session_id:
            metrics.current_session_id = event.session_id
            metrics.session_hints = 0

        type_name = event.type_name
        metrics.event_count += 1
        metrics.counts_by_type[type_name] = metrics.counts_by_type.get(type_name, 0) + 1
        metrics.last_event_at = event.timestamp

        if event.is_type(EventType.EXERCISE_COMPLETE):
            score = normalize_score(event.get("score", 0))
            metrics.completions += 1
            metrics.score_sum += score
            metrics.last_score = score
            metrics.recent_scores.append(score)
            del metrics.recent_scores[:-self._settings.trend_window]
        elif event.is_type(EventType.ANSWER_SUBMIT) and "correct" in event.context:
            if event.get("correct"):
                metrics.consecutive_incorrect = 0
            else:
                metrics.consecutive_incorrect += 1
        elif event.is_type(EventType.HINT_REQUEST):
            metrics.session_hints += 1

        return metrics

    def _check_immediate_interventions(
        self,
        event: Event,
        metrics: RunningMetrics,
    ) -> list[Notification]:
        """Rules that warrant telling the learner something right now."""
        config = self._settings.get_session_config()["interventions"]
        notices: list[tuple[str, str, NotificationPriority]] = []

        if (
            event.is_type(EventType.ANSWER_SUBMIT)
            and metrics.consecutive_incorrect >= config["incorrect_streak"]
        ):
            notices.append((
                "struggle_support",
                f"{metrics.consecutive_incorrect} incorrect answers in a row. "
                "Try a worked example before the next attempt.",
                NotificationPriority.HIGH,
            ))

        if event.is_type(EventType.HINT_REQUEST) and metrics.session_hints == config["session_hints"]:
            notices.append((
                "hint_overuse",
                "Lots of hints this session. A quick concept review may help.",
                NotificationPriority.MEDIUM,
            ))

        if (
            event.is_type(EventType.EXERCISE_COMPLETE)
            and metrics.last_score is not None
            and metrics.last_score < config["low_score"]
        ):
            notices.append((
                "easier_content",
                "That one was tough. The next exercise will be a bit easier.",
                NotificationPriority.HIGH,
            ))

        session_minutes = event.metadata["session_duration"] / 60
        if event.is_type(EventType.PAUSE_SESSION) and session_minutes >= config["break_minutes"]:
            notices.append((
                "break_reminder",
                f"You've been studying for {session_minutes:.0f} minutes. "
                "Take a 5-10 minute break.",
                NotificationPriority.MEDIUM,
            ))

        if event.is_type(EventType.ACHIEVEMENT_UNLOCK):
            notices.append((
                "celebrate_progress",
                "Achievement unlocked. Nice work!",
                NotificationPriority.LOW,
            ))

        return [
            Notification(
                user_id=event.user_id,
                kind=kind,
                message=message,
                event_id=event.id,
                created_at=event.timestamp,
                priority=priority,
            )
            for kind, message, priority in notices
        ]

    # =========================================================================
    # Queries
    # =========================================================================

    def get_events(
        self,
        user_id: str,
        timeframe: Timeframe | str = Timeframe.SEVEN_DAYS,
        now: datetime | None = None,
    ) -> list[Event]:
        """
        Events for a learner inside a timeframe, in insertion order.

        Unrecognized timeframes fall back to 7 days.
        """
        default = Timeframe.parse(self._settings.default_timeframe)
        window = Timeframe.parse(timeframe, default=default).window
        since = (now or self._clock()) - window
        return self.store.query(user_id, since)

    def get_current_session(self, user_id: str) -> Session | None:
        return self.sessions.current(user_id)

    def get_sessions(self, user_id: str) -> list[Session]:
        return self.sessions.sessions(user_id)

    def get_running_metrics(self, user_id: str) -> RunningMetrics:
        return self._metrics.get(user_id) or RunningMetrics()

    def pending_notifications(self, user_id: str) -> list[Notification]:
        return list(self._notifications.get(user_id) or [])

    def drain_notifications(self, user_id: str) -> list[Notification]:
        """Return and clear the learner's queued notifications."""
        pending = self.pending_notifications(user_id)
        self._notifications.delete(user_id)
        return pending

    def now(self) -> datetime:
        return self._clock()
