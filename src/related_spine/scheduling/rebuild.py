"""
Full correlation rebuild.

Two ways to recompute everything:

- :meth:`CorrelationRebuilder.process_chunk` walks the item ids in
  ascending order a few items at a time, scoring each item only against
  later ids so every pair is computed exactly once per rebuild. The caller
  feeds the returned id back in until it gets ``None``.
- :meth:`CorrelationRebuilder.queue_all` hands the work to the task queue
  as one update job per item.

Examples:
    >>> rebuilder = CorrelationRebuilder(updater)
    >>> next_id = 0
    >>> while next_id is not None:
    ...     next_id = rebuilder.process_chunk(next_id, chunk_size=10)

Tags:
    rebuild, correlation, batch
"""

from __future__ import annotations

from related_spine.core.logging import get_logger
from related_spine.scheduling.updater import CorrelationUpdater

logger = get_logger(__name__)

DEFAULT_CHUNK_SIZE = 2


class CorrelationRebuilder:
    """Rebuilds stored correlations for the whole collection."""

    def __init__(self, updater: CorrelationUpdater):
        self.updater = updater

    @property
    def store(self):
        return self.updater.store

    @property
    def item_store(self):
        return self.updater.item_store

    def process_chunk(self, start_id: int, chunk_size: int = DEFAULT_CHUNK_SIZE) -> int | None:
        """Rebuild up to ``chunk_size`` items with id >= ``start_id``.

        Returns the id to pass on the next call, or ``None`` once the
        highest id has been processed (correlations are pruned then).
        """
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")

        ids = [i for i in self.item_store.list_item_ids() if i >= 0]
        pending = [i for i in ids if i >= start_id]
        chunk, rest = pending[:chunk_size], pending[chunk_size:]

        pairs = 0
        for item_id in chunk:
            self.store.drop_forward_pairs(item_id)
            schema_ids = set(self.item_store.list_ids_in_schema(self.item_store.schema_of(item_id)))
            for other in ids:
                if other > item_id and other in schema_ids:
                    self.store.update_correlation(item_id, other)
                    pairs += 1

        logger.info(
            "rebuild_chunk_processed",
            start_id=start_id,
            items=len(chunk),
            pairs=pairs,
            remaining=len(rest),
        )

        if rest:
            return rest[0]

        self.store.prune_correlations(self.item_store.item_exists)
        return None

    def queue_all(self, priority: int | None = None) -> int:
        """Queue an update job for every item; returns how many were accepted."""
        accepted = 0
        for item_id in self.item_store.list_item_ids():
            if item_id < 0:
                continue
            if self.updater.queue_update(item_id, priority):
                accepted += 1
        logger.info("rebuild_queued", accepted=accepted)
        return accepted


__all__ = ["DEFAULT_CHUNK_SIZE", "CorrelationRebuilder"]
