"""
Core building blocks shared by every analytics layer.

- scoring: clamping, score normalization and small numeric helpers
- timeutils: timestamp coercion used when reading collaborator data
- storage: keyed in-memory store for derived per-user state
- sources: collaborator protocols and the bundled data sources
"""
from learning_core.core.scoring import clamp, mean, normalize_score, round_score, to_float
from learning_core.core.storage import InMemoryKeyValueStore, KeyValueStore

__all__ = [
    "clamp",
    "mean",
    "normalize_score",
    "round_score",
    "to_float",
    "InMemoryKeyValueStore",
    "KeyValueStore",
]
