"""
Session boundary detection.

A session stays open while events keep arriving; once the gap since its
last activity exceeds the inactivity timeout (30 minutes by default) the
next event opens a new session with a fresh id. Sessions are never deleted.

Resolving and touching a session is a read-modify-write on per-user state,
so callers must serialize writes for the same user.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta

from loguru import logger

from config import Settings, get_settings
from learning_core.core.storage import InMemoryKeyValueStore
from learning_core.tracking.models import Event, Session


class SessionTracker:
    """Derives and keeps learner sessions from event timestamps."""

    def __init__(self, settings: Settings | None = None, timeout: timedelta | None = None):
        settings = settings or get_settings()
        self.timeout = timeout or timedelta(minutes=settings.session_timeout_minutes)
        self._current: InMemoryKeyValueStore[Session] = InMemoryKeyValueStore()
        self._history: InMemoryKeyValueStore[list[Session]] = InMemoryKeyValueStore()

    def resolve(self, user_id: str, at: datetime) -> Session:
        """
        Return the session an event at `at` belongs to.

        Opens a new session when none exists or the inactivity gap exceeds
        the timeout; otherwise returns the open one.
        """
        session = self._current.get(user_id)
        if session is not None and at - session.last_activity <= self.timeout:
            return session

        new_session = Session(
            session_id=str(uuid.uuid4()),
            user_id=user_id,
            start_time=at,
            last_activity=at,
        )
        self._current.put(user_id, new_session)
        self._history.get_or_create(user_id, list).append(new_session)
        logger.debug(f"Opened session {new_session.session_id[:8]} for {user_id}")
        return new_session

    def touch(self, session: Session, event: Event) -> None:
        """Extend a session with a recorded event."""
        if event.timestamp > session.last_activity:
            session.last_activity = event.timestamp
        session.event_ids.append(event.id)

    def current(self, user_id: str) -> Session | None:
        return self._current.get(user_id)

    def sessions(self, user_id: str) -> list[Session]:
        """Every session the user has had, oldest first."""
        return list(self._history.get(user_id) or [])

    def duration_seconds(self, user_id: str) -> float:
        session = self._current.get(user_id)
        return session.duration_seconds if session else 0.0
