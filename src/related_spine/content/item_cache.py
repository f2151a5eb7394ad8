"""
Item Content Cache.

Keeps recently loaded items so a long update pass does not reload the
source item (and popular targets) for every pair. The cache is bounded and
evicts by *insertion* order: once full, inserting a new item drops the
oldest inserted one, however often it was read since.

The cache does not check that an item still exists; callers do that
before asking for field values.

Examples:
    >>> cache = ItemContentCache(store, capacity=100)
    >>> cache.get_field_value(42, "Title")
    'Harbour at dusk'

Tags:
    cache, item-cache, fifo, memory
"""

from __future__ import annotations

from typing import Any

from related_spine.core.cache import BoundedCache
from related_spine.core.protocols import ItemRecord, ItemStore

DEFAULT_CAPACITY = 100


class ItemContentCache:
    """Bounded id → loaded item cache with FIFO eviction."""

    def __init__(self, item_store: ItemStore, capacity: int = DEFAULT_CAPACITY):
        self._item_store = item_store
        self._cache = BoundedCache(max_size=capacity, eviction="fifo")

    @property
    def capacity(self) -> int:
        return self._cache.max_size

    @property
    def evictions(self) -> int:
        return self._cache.evictions

    def get_item(self, item_id: int) -> ItemRecord:
        """Return the cached item, loading it on first access."""
        item = self._cache.get(item_id)
        if item is None:
            item = self._item_store.load_item(item_id)
            self._cache.set(item_id, item)
        return item

    def get_field_value(self, item_id: int, field_name: str) -> Any:
        return self.get_item(item_id).get(field_name)

    def invalidate(self, item_id: int) -> None:
        """Forget one item so its next access reloads it."""
        self._cache.delete(item_id)

    def clear(self) -> None:
        self._cache.clear()

    def cached_ids(self) -> list[int]:
        """Cached ids, oldest inserted first."""
        return list(self._cache.keys())

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._cache


__all__ = ["DEFAULT_CAPACITY", "ItemContentCache"]
