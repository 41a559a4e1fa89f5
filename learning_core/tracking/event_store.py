"""
Per-user append-only event log.

Compaction policy: each user's log holds at most `max_entries` events.
When an append pushes it past that size the log is truncated in one batch
to its most recent `compacted_entries` events. This is a periodic
compaction, not a sliding window: between compactions the log grows freely.
"""
from __future__ import annotations

from datetime import datetime
from typing import Protocol

from loguru import logger

from config import Settings, get_settings
from learning_core.tracking.models import Event


class EventStore(Protocol):
    """Interface for event persistence."""

    def append(self, event: Event) -> None:
        ...

    def query(self, user_id: str, since: datetime | None = None) -> list[Event]:
        ...


class InMemoryEventStore:
    """Event store sharded by user id with batch compaction."""

    def __init__(
        self,
        max_entries: int | None = None,
        compacted_entries: int | None = None,
        settings: Settings | None = None,
    ):
        settings = settings or get_settings()
        self.max_entries = max_entries or settings.event_log_max_entries
        self.compacted_entries = compacted_entries or settings.event_log_compacted_entries
        if self.compacted_entries > self.max_entries:
            raise ValueError("compacted_entries must not exceed max_entries")
        self._logs: dict[str, list[Event]] = {}
        self.compactions = 0

    def append(self, event: Event) -> None:
        log = self._logs.setdefault(event.user_id, [])
        log.append(event)

        if len(log) > self.max_entries:
            dropped = len(log) - self.compacted_entries
            self._logs[event.user_id] = log[-self.compacted_entries :]
            self.compactions += 1
            logger.info(
                f"Compacted event log for {event.user_id}: dropped {dropped} events, "
                f"kept {self.compacted_entries}"
            )

    def query(self, user_id: str, since: datetime | None = None) -> list[Event]:
        """Events for a user at or after `since`, in insertion order."""
        log = self._logs.get(user_id, [])
        if since is None:
            return list(log)
        return [event for event in log if event.timestamp >= since]

    def count(self, user_id: str) -> int:
        return len(self._logs.get(user_id, []))

    def users(self) -> list[str]:
        return list(self._logs)
