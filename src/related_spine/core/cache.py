"""
Bounded in-process caches.

Provides ``BoundedCache``, the in-memory cache used by the item content
cache and by the correlation store's term/score caches. Caches are plain
objects owned by the component that uses them (no module-level state), so
the update scheduler can clear all of them under memory pressure.

Architecture:
    ::

        BoundedCache  - max_size entries, FIFO or LRU eviction

        API: get(key) → value | None
             set(key, value)
             delete(key)
             exists(key) → bool
             clear()

Examples:
    >>> cache = BoundedCache(max_size=2, eviction="fifo")
    >>> cache.set(1, "a"); cache.set(2, "b"); cache.set(3, "c")
    >>> cache.exists(1)
    False

Tags:
    cache, caching, in-memory, fifo, lru, bounded
"""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Hashable, Iterator
from typing import Any, Literal

EvictionPolicy = Literal["fifo", "lru"]


class BoundedCache:
    """Size-bounded in-memory cache.

    With ``eviction="fifo"`` the oldest *inserted* key is dropped when an
    insert pushes the size above ``max_size``, regardless of later reads.
    With ``eviction="lru"`` reads refresh a key's position.

    Attributes:
        max_size: Maximum number of keys kept.
        eviction: ``"fifo"`` or ``"lru"``.
        evictions: Number of keys dropped by the size bound so far.
    """

    def __init__(self, *, max_size: int = 10_000, eviction: EvictionPolicy = "lru"):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        if eviction not in ("fifo", "lru"):
            raise ValueError(f"Unknown eviction policy: {eviction!r}")
        self._store: OrderedDict[Hashable, Any] = OrderedDict()
        self.max_size = max_size
        self.eviction = eviction
        self.evictions = 0

    def get(self, key: Hashable) -> Any | None:
        """Retrieve a value by key."""
        if key not in self._store:
            return None
        if self.eviction == "lru":
            self._store.move_to_end(key)
        return self._store[key]

    def set(self, key: Hashable, value: Any) -> None:
        """Store a value; an existing key keeps its insertion position."""
        if key in self._store:
            self._store[key] = value
            if self.eviction == "lru":
                self._store.move_to_end(key)
            return

        self._store[key] = value
        while len(self._store) > self.max_size:
            self._store.popitem(last=False)
            self.evictions += 1

    def delete(self, key: Hashable) -> None:
        """Remove a key from the cache."""
        self._store.pop(key, None)

    def exists(self, key: Hashable) -> bool:
        """Check if key is cached."""
        return key in self._store

    def clear(self) -> None:
        """Remove all keys."""
        self._store.clear()

    def size(self) -> int:
        """Return current number of cached keys."""
        return len(self._store)

    def keys(self) -> list[Hashable]:
        """Keys in eviction order (next to be evicted first)."""
        return list(self._store)

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: object) -> bool:
        return key in self._store

    def __iter__(self) -> Iterator[Hashable]:
        return iter(list(self._store))


__all__ = [
    "BoundedCache",
    "EvictionPolicy",
]
