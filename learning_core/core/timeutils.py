"""Timestamp coercion for collaborator data."""
from __future__ import annotations

from datetime import datetime


def to_datetime(value: datetime | float | int | str | None) -> datetime | None:
    """
    Coerce a timestamp into a naive datetime.

    Accepts datetimes, epoch seconds (epoch milliseconds when the value is
    too large to be seconds) and ISO-8601 strings.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone().replace(tzinfo=None)
        return value
    if isinstance(value, str):
        return to_datetime(datetime.fromisoformat(value))
    seconds = float(value)
    if seconds > 1e11:
        seconds = seconds / 1000.0
    return datetime.fromtimestamp(seconds)


def days_between(earlier: datetime | None, later: datetime) -> float | None:
    """Days elapsed from earlier to later, None when earlier is unknown."""
    if earlier is None:
        return None
    return max(0.0, (later - earlier).total_seconds() / 86400.0)
