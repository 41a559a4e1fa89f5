"""
Event tracking.

Components:
- EventRecorder: stamps and records learner events, runs side effects
- SessionTracker: derives sessions from 30-minute inactivity gaps
- InMemoryEventStore: per-user capped log (10,000 -> 5,000 compaction)
"""
from learning_core.tracking.event_recorder import EventRecorder
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

__all__ = [
    "EventRecorder",
    "EventStore",
    "InMemoryEventStore",
    "SessionTracker",
    "Event",
    "EventType",
    "Notification",
    "NotificationPriority",
    "RunningMetrics",
    "Session",
    "Timeframe",
]
