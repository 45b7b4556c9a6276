"""
Bounded in-memory embedding cache.

Entries are evicted in insertion order: reads do not refresh an entry, and
re-inserting an existing key leaves both its value and its position unchanged.
"""

from collections import OrderedDict
from typing import Iterator, Optional

import numpy as np

DEFAULT_CAPACITY = 500


class EmbeddingCache:
    """Text key → embedding map with oldest-inserted eviction."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._store: "OrderedDict[str, np.ndarray]" = OrderedDict()

    def get(self, key: str) -> Optional[np.ndarray]:
        return self._store.get(key)

    def put(self, key: str, embedding: np.ndarray) -> None:
        if key in self._store:
            return
        self._store[key] = embedding
        while len(self._store) > self.capacity:
            self._store.popitem(last=False)

    def clear(self) -> None:
        self._store.clear()

    def keys(self) -> list[str]:
        """Keys from oldest to newest insertion."""
        return list(self._store.keys())

    def __contains__(self, key: object) -> bool:
        return key in self._store

    def __len__(self) -> int:
        return len(self._store)

    def __iter__(self) -> Iterator[str]:
        return iter(self._store)
