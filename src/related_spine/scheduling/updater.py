"""
Correlation Update Scheduler.

Recomputing one item's correlations means scoring it against every other
item of its schema, which is far too much work for one task-queue slot on
a large collection. The updater therefore runs one *logical* job per
source item as a chain of bounded *slices*. Each slice resumes from a
cursor into the target list, stops before it runs out of time or memory,
and re-queues itself with the advanced cursor.

Job lifecycle:
    ::

        queue_update(X)  ──►  [X, 0]  STARTING
                                 │  run_update_slice(X, 0)
                                 │    - source gone?        → ABANDONED
                                 │    - drop X's old pairs
                                 ▼
                   ┌──►  [X, k]  RUNNING
                   │             │  run_update_slice(X, k)
                   │             │    for target in targets[k:]:
                   │             │      transient or deleted?       → skip
                   │             │      time left < 2 × last pair?  → stop
                   │             │      memory low? clear caches, gc
                   │             │        still below floor?        → stop
                   │             │      store.update_correlation(X, target)
                   │   stopped   ▼
                   └─── REQUEUED (Priority.LOW)
                                 │ end of list
                                 ▼
                               DONE  ── 1 in prune_chance, time left ──► PRUNED

Resume cursor:
    The cursor is an index into the target list, which is re-fetched (in
    ascending id order) by every slice. Items created or deleted between
    two slices of the same job shift the list, so a pair can be skipped or
    recomputed once. Recomputing is harmless; a skipped pair is picked up
    by the next update of either item.

Examples:
    >>> updater = CorrelationUpdater(store, items, queue, probe, settings)
    >>> updater.queue_update(42)
    True
    >>> runner.run_queued_tasks()   # drives run_update_slice(42, k) slices

Tags:
    scheduler, resumable-job, budget, correlation, requeue
"""

from __future__ import annotations

import gc
import random
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from related_spine.content.fields import FieldWeightModel
from related_spine.content.item_cache import ItemContentCache
from related_spine.core.logging import LogContext, get_logger
from related_spine.core.protocols import Connection, ItemStore, MemoryProbe, TaskQueue
from related_spine.core.settings import CorrelationSettings
from related_spine.scheduling.memory import ProcessMemoryProbe
from related_spine.scheduling.queue import Priority
from related_spine.scheduling.registry import HandlerRegistry
from related_spine.store.correlations import CorrelationStore, PruneReport

logger = get_logger(__name__)

UPDATE_HANDLER = "correlations.update_slice"
TASK_KEY_PREFIX = "related:update:"


def task_key(item_id: int) -> str:
    """Uniqueness key of the update job for one source item."""
    return f"{TASK_KEY_PREFIX}{item_id}"


class SliceState(str, Enum):
    """Where a job stands after (or before) a slice."""

    STARTING = "STARTING"
    RUNNING = "RUNNING"
    DONE = "DONE"
    REQUEUED = "REQUEUED"
    PRUNED = "PRUNED"
    ABANDONED = "ABANDONED"


@dataclass(frozen=True)
class UpdateJob:
    """Queued state of one update job."""

    source_item_id: int
    resume_index: int = 0

    @property
    def state(self) -> SliceState:
        return SliceState.STARTING if self.resume_index == 0 else SliceState.RUNNING

    @property
    def key(self) -> str:
        return task_key(self.source_item_id)

    @property
    def args(self) -> list[int]:
        return [self.source_item_id, self.resume_index]


@dataclass
class SliceResult:
    """Outcome of one :meth:`CorrelationUpdater.run_update_slice` call."""

    state: SliceState
    source_item_id: int
    start_index: int
    next_index: int
    pairs_processed: int = 0
    caches_cleared: bool = False
    prune_report: PruneReport | None = None

    @property
    def finished(self) -> bool:
        return self.state in (SliceState.DONE, SliceState.PRUNED, SliceState.ABANDONED)

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "source_item_id": self.source_item_id,
            "start_index": self.start_index,
            "next_index": self.next_index,
            "pairs_processed": self.pairs_processed,
            "caches_cleared": self.caches_cleared,
        }


class CorrelationUpdater:
    """Runs resumable, budgeted correlation updates for source items.

    Args:
        store: Correlation store (owns the item cache it scores through).
        item_store: Source of item existence, schema and id listings.
        queue: Host task queue used for unique enqueue and time left.
        memory_probe: Reports free memory before every pair.
        settings: Budget and pruning tunables.
        rng: Random source deciding probabilistic pruning.
        clock: Monotonic clock used to time each pair.
        registry: When given, the slice handler is registered on it.
        collect_garbage: Called after caches are cleared under pressure.
    """

    def __init__(
        self,
        store: CorrelationStore,
        item_store: ItemStore,
        queue: TaskQueue,
        memory_probe: MemoryProbe,
        settings: CorrelationSettings | None = None,
        *,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.perf_counter,
        registry: HandlerRegistry | None = None,
        collect_garbage: Callable[[], Any] = gc.collect,
    ):
        self.store = store
        self.item_store = item_store
        self.queue = queue
        self.memory_probe = memory_probe
        self.settings = settings or CorrelationSettings()
        self.rng = rng or random.Random()
        self._clock = clock
        self._collect_garbage = collect_garbage
        self._priority = Priority.BACKGROUND
        if registry is not None:
            registry.register(
                UPDATE_HANDLER,
                self.run_update_slice,
                description="Run one slice of a content correlation update",
            )

    @classmethod
    def build(
        cls,
        conn: Connection,
        item_store: ItemStore,
        queue: TaskQueue,
        memory_probe: MemoryProbe | None = None,
        settings: CorrelationSettings | None = None,
        **kwargs: Any,
    ) -> CorrelationUpdater:
        """Wire an updater from a connection and an item store.

        The field weight model is built from the item store's current
        schema, once.
        """
        settings = settings or CorrelationSettings()
        model = FieldWeightModel.from_schema(item_store.list_schema_fields())
        item_cache = ItemContentCache(item_store, capacity=settings.item_cache_capacity)
        store = CorrelationStore(conn, item_cache, model, threshold=settings.correlation_threshold)
        probe = memory_probe or ProcessMemoryProbe(settings.memory_limit_bytes)
        return cls(store, item_store, queue, probe, settings, **kwargs)

    @property
    def item_cache(self) -> ItemContentCache:
        return self.store.item_cache

    # ------------------------------------------------------------------ #
    # Caller interface
    # ------------------------------------------------------------------ #

    @property
    def update_priority(self) -> Priority:
        return self._priority

    def set_update_priority(self, priority: int) -> None:
        """Default priority for jobs queued from now on."""
        self._priority = Priority.clamp(priority)

    def queue_update(self, item_or_id: Any, priority: int | None = None) -> bool:
        """Queue a fresh update job for an item.

        Returns False when a job for the item is already queued or running.
        """
        item_id = int(getattr(item_or_id, "item_id", item_or_id))
        prio = Priority.clamp(priority) if priority is not None else self._priority
        job = UpdateJob(item_id)
        accepted = self.queue.enqueue_unique(
            job.key,
            UPDATE_HANDLER,
            job.args,
            prio,
            f"Update content correlations for item {item_id}",
        )
        logger.debug("update_queued", source_item_id=item_id, priority=prio.name, accepted=accepted)
        return accepted

    def clear_caches(self) -> None:
        """Drop the item cache and the store's caches."""
        self.item_cache.clear()
        self.store.clear_cache()
        logger.info("caches_cleared")

    def target_ids(self, source_item_id: int) -> list[int]:
        """All item ids in the source item's schema, ascending."""
        schema_id = self.item_store.schema_of(source_item_id)
        in_schema = set(self.item_store.list_ids_in_schema(schema_id))
        return sorted(i for i in self.item_store.list_item_ids() if i in in_schema)

    # ------------------------------------------------------------------ #
    # Slice execution
    # ------------------------------------------------------------------ #

    def _memory_is_low(self) -> bool:
        probe = self.memory_probe
        return (
            probe.free_memory_bytes() < self.settings.min_free_memory_bytes
            or probe.free_percent_of_limit() < self.settings.low_memory_percent
        )

    def _relieve_memory(self) -> bool:
        """Clear caches and collect garbage; True if the floor is met after."""
        self.clear_caches()
        self._collect_garbage()
        free = self.memory_probe.free_memory_bytes()
        if free < self.settings.min_free_memory_bytes:
            logger.warning(
                "memory_floor_reached",
                free_bytes=free,
                floor_bytes=self.settings.min_free_memory_bytes,
            )
            return False
        return True

    def run_update_slice(self, source_item_id: int, resume_index: int = 0) -> SliceResult:
        """Run one bounded slice of the update job for ``source_item_id``.

        Safe to retry with the same ``resume_index``: every write is an
        idempotent per-pair upsert or delete.
        """
        with LogContext(source_item_id=source_item_id):
            return self._run_slice(source_item_id, resume_index)

    def _run_slice(self, source_item_id: int, resume_index: int) -> SliceResult:
        result = SliceResult(
            state=UpdateJob(source_item_id, resume_index).state,
            source_item_id=source_item_id,
            start_index=resume_index,
            next_index=resume_index,
        )

        if not self.item_store.item_exists(source_item_id):
            logger.debug("source_missing", resume_index=resume_index)
            result.state = SliceState.ABANDONED
            return result

        if resume_index == 0:
            self.store.drop_item(source_item_id)

        targets = self.target_ids(source_item_id)
        index = resume_index
        last_pair_seconds = 0.0
        stopped = False

        while index < len(targets):
            target = targets[index]
            if target < 0 or not self.item_store.item_exists(target):
                index += 1
                continue

            if result.pairs_processed > 0:
                remaining = self.queue.remaining_time_in_window()
                if remaining < self.settings.time_safety_factor * last_pair_seconds:
                    stopped = True
                    break

            if self._memory_is_low():
                result.caches_cleared = True
                if not self._relieve_memory():
                    stopped = True
                    break

            started = self._clock()
            self.store.update_correlation(source_item_id, target)
            last_pair_seconds = self._clock() - started
            result.pairs_processed += 1
            index += 1

        result.next_index = index

        if stopped:
            return self._requeue(result)

        result.state = SliceState.DONE
        roll = self.rng.randint(1, self.settings.prune_chance)
        remaining = self.queue.remaining_time_in_window()
        if roll == 1 and remaining > self.settings.prune_min_seconds:
            result.prune_report = self.store.prune_correlations(self.item_store.item_exists)
            result.state = SliceState.PRUNED

        logger.info(
            "update_finished",
            state=result.state.value,
            pairs_processed=result.pairs_processed,
            targets=len(targets),
        )
        return result

    def _requeue(self, result: SliceResult) -> SliceResult:
        job = UpdateJob(result.source_item_id, result.next_index)
        accepted = self.queue.enqueue_unique(
            job.key,
            UPDATE_HANDLER,
            job.args,
            Priority.LOW,
            f"Continue content correlation update for item {job.source_item_id}"
            f" at position {job.resume_index}",
        )
        if not accepted:
            logger.warning("continuation_rejected", next_index=result.next_index)
        logger.info(
            "slice_requeued",
            start_index=result.start_index,
            next_index=result.next_index,
            pairs_processed=result.pairs_processed,
            caches_cleared=result.caches_cleared,
        )
        result.state = SliceState.REQUEUED
        return result


__all__ = [
    "TASK_KEY_PREFIX",
    "UPDATE_HANDLER",
    "CorrelationUpdater",
    "SliceResult",
    "SliceState",
    "UpdateJob",
    "task_key",
]
