"""
Keyed in-memory store for derived per-user state.

Sessions, running metrics, cached profiles and knowledge states are kept
behind this interface instead of ad hoc dicts, so a caller can swap in a
durable backend without touching the services.
"""
from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any, Generic, Protocol, TypeVar

V = TypeVar("V")


class KeyValueStore(Protocol[V]):
    """Interface for keyed state stores."""

    def get(self, key: str) -> V | None:
        ...

    def put(self, key: str, value: V) -> None:
        ...

    def delete(self, key: str) -> bool:
        ...

    def keys(self) -> Iterator[str]:
        ...


class InMemoryKeyValueStore(Generic[V]):
    """
    Dict-backed KeyValueStore.

    Values are never evicted; callers own any compaction policy
    (see InMemoryEventStore for the event-log rule).
    """

    def __init__(self) -> None:
        self._data: dict[str, V] = {}

    def get(self, key: str) -> V | None:
        return self._data.get(key)

    def put(self, key: str, value: V) -> None:
        self._data[key] = value

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def keys(self) -> Iterator[str]:
        return iter(list(self._data))

    def get_or_create(self, key: str, factory: Callable[[], V]) -> V:
        """Return the stored value, creating it with factory() when absent."""
        value = self._data.get(key)
        if value is None:
            value = factory()
            self._data[key] = value
        return value

    def __contains__(self, key: Any) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)
