"""
Correlation Store.

Durable mapping of an unordered item pair to its similarity score, stored
once per pair in ``rec_content_correlations`` with ``item_id_a < item_id_b``.

Scoring:
    score(A, B) = Σ  weight(field) × comparator(field)(value_A, value_B)
                 fields

The comparators always see the lower id first, so the stored score does not
depend on which item's update job computed it. A pair is stored only when
its score reaches ``threshold``; a recomputation that falls below the
threshold deletes the old row.

Caches:
    - prepared values  (item_id, field) → parsed value (tokens, dates, ...)
    - pair scores      (lower_id, higher_id) → score over all fields

Both are pure recomputation caches and can be cleared at any time.

Pruning:
    Rows scoring at or below the table average are deleted when the
    average is positive. With an ``item_exists`` callable, rows that
    reference deleted items are removed too.

Examples:
    >>> store = CorrelationStore(conn, item_cache, model)
    >>> store.update_correlation(1, 2)
    3.0
    >>> store.related_items(2)
    [(1, 3.0)]

Tags:
    correlation, store, pruning, similarity, repository
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from related_spine.content.comparators import ComparatorRegistry, get_comparator_registry
from related_spine.content.fields import FieldSpec, FieldWeightModel
from related_spine.content.item_cache import ItemContentCache
from related_spine.core.cache import BoundedCache
from related_spine.core.dialect import Dialect
from related_spine.core.errors import StorageError
from related_spine.core.logging import get_logger
from related_spine.core.protocols import Connection
from related_spine.core.repository import BaseRepository
from related_spine.store.schema import TABLES

logger = get_logger(__name__)

DEFAULT_THRESHOLD = 1.0

_TABLE = TABLES["correlations"]


def canonical_pair(item_a: int, item_b: int) -> tuple[int, int]:
    """Return the pair ordered lower id first."""
    return (item_a, item_b) if item_a <= item_b else (item_b, item_a)


@dataclass(frozen=True)
class PruneReport:
    """Outcome of one pruning run."""

    average: float | None
    below_average_deleted: int = 0
    orphaned_deleted: int = 0

    @property
    def total_deleted(self) -> int:
        return self.below_average_deleted + self.orphaned_deleted


class CorrelationStore(BaseRepository):
    """Computes, stores and prunes pairwise content correlations.

    Args:
        conn: Database connection holding ``rec_content_correlations``.
        item_cache: Source of field values.
        model: Fields and weights taking part in the score.
        comparators: Comparator registry; the process-wide one by default.
        threshold: Minimum score that gets stored.
        dialect: SQL dialect (SQLite by default).
        cache_size: Bound for each of the value and pair-score caches.
    """

    def __init__(
        self,
        conn: Connection,
        item_cache: ItemContentCache,
        model: FieldWeightModel,
        *,
        comparators: ComparatorRegistry | None = None,
        threshold: float = DEFAULT_THRESHOLD,
        dialect: Dialect | None = None,
        cache_size: int = 10_000,
    ):
        super().__init__(conn, dialect)
        self.item_cache = item_cache
        self.model = model
        self.threshold = threshold
        self._comparators = comparators or get_comparator_registry()
        self._values = BoundedCache(max_size=cache_size, eviction="lru")
        self._scores = BoundedCache(max_size=cache_size, eviction="lru")

    # ------------------------------------------------------------------ #
    # Scoring
    # ------------------------------------------------------------------ #

    def _prepared(self, item_id: int, spec: FieldSpec) -> Any:
        key = (item_id, spec.name)
        if self._values.exists(key):
            return self._values.get(key)
        comparator = self._comparators.get(spec.comparison_type)
        value = comparator.prepare(self.item_cache.get_field_value(item_id, spec.name))
        self._values.set(key, value)
        return value

    def calculate_correlation(
        self,
        item_a: int,
        item_b: int,
        field_names: Iterable[str] | None = None,
    ) -> float:
        """Weighted similarity of two items, without storing it.

        Scores over the full model are cached per pair; restricted
        scores (``field_names`` given) are always recomputed.
        """
        if item_a == item_b:
            return 0.0
        low, high = canonical_pair(item_a, item_b)

        if field_names is None:
            cached = self._scores.get((low, high))
            if cached is not None:
                return cached
            model = self.model
        else:
            model = self.model.subset(field_names)

        score = 0.0
        for spec in model:
            if spec.weight == 0:
                continue
            comparator = self._comparators.get(spec.comparison_type)
            similarity = comparator.compare(self._prepared(low, spec), self._prepared(high, spec))
            score += spec.weight * float(similarity)

        if field_names is None:
            self._scores.set((low, high), score)
        return score

    def update_correlation(self, item_a: int, item_b: int) -> float:
        """Compute and persist the score for one pair; returns the score.

        The same id on both sides returns 0 and writes nothing.

        Raises:
            StorageError: If either id is negative (transient items are
                never stored).
        """
        if item_a == item_b:
            return 0.0
        if item_a < 0 or item_b < 0:
            raise StorageError(
                f"Refusing to store correlation for transient item pair ({item_a}, {item_b})"
            )

        score = self.calculate_correlation(item_a, item_b)
        low, high = canonical_pair(item_a, item_b)
        if score >= self.threshold:
            self.execute(
                self.dialect.upsert(_TABLE, ["item_id_a", "item_id_b", "correlation"], ["item_id_a", "item_id_b"]),
                (low, high, score),
            )
        else:
            self.execute(
                f"DELETE FROM {_TABLE} WHERE item_id_a = {self.ph(1)} AND item_id_b = {self.ph(1)}",
                (low, high),
            )
        self.commit()
        return score

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def get_correlation(self, item_a: int, item_b: int) -> float:
        """Stored score for a pair, 0 when nothing is stored."""
        low, high = canonical_pair(item_a, item_b)
        value = self.query_scalar(
            f"SELECT correlation FROM {_TABLE} WHERE item_id_a = {self.ph(1)} AND item_id_b = {self.ph(1)}",
            (low, high),
        )
        return float(value) if value is not None else 0.0

    def related_items(self, item_id: int, limit: int = 10) -> list[tuple[int, float]]:
        """Items correlated with ``item_id``, best first.

        Both columns are searched, so the result does not depend on which
        side of the pair the item was stored on.
        """
        ph = self.ph(1)
        rows = self.query(
            f"SELECT item_id_b AS other_id, correlation FROM {_TABLE} WHERE item_id_a = {ph} "
            f"UNION ALL "
            f"SELECT item_id_a AS other_id, correlation FROM {_TABLE} WHERE item_id_b = {ph} "
            f"ORDER BY correlation DESC, other_id ASC LIMIT {ph}",
            (item_id, item_id, limit),
        )
        return [(int(r["other_id"]), float(r["correlation"])) for r in rows]

    def count(self) -> int:
        return int(self.query_scalar(f"SELECT COUNT(*) FROM {_TABLE}") or 0)

    # ------------------------------------------------------------------ #
    # Deletes
    # ------------------------------------------------------------------ #

    def drop_item(self, item_id: int) -> int:
        """Delete every row referencing ``item_id``; returns rows deleted.

        Cached data for the item is discarded as well, so the next score
        reads its current field values.
        """
        cursor = self.execute(
            f"DELETE FROM {_TABLE} WHERE item_id_a = {self.ph(1)} OR item_id_b = {self.ph(1)}",
            (item_id, item_id),
        )
        deleted = max(getattr(cursor, "rowcount", 0) or 0, 0)
        self.commit()
        self._forget(item_id)
        logger.debug("correlations_dropped", item_id=item_id, deleted=deleted)
        return deleted

    def drop_forward_pairs(self, item_id: int) -> int:
        """Delete the rows where ``item_id`` is the lower id of the pair.

        A full rebuild scores each item against later ids only, so these
        are exactly the rows it is about to recompute.
        """
        cursor = self.execute(
            f"DELETE FROM {_TABLE} WHERE item_id_a = {self.ph(1)}",
            (item_id,),
        )
        self.commit()
        self._forget(item_id)
        return max(getattr(cursor, "rowcount", 0) or 0, 0)

    def prune_correlations(
        self,
        item_exists: Callable[[int], bool] | None = None,
    ) -> PruneReport:
        """Delete low-relevance rows, and rows of deleted items if asked."""
        average = self.query_scalar(f"SELECT AVG(correlation) FROM {_TABLE}")
        below = 0
        if average is not None and average > 0:
            cursor = self.execute(
                f"DELETE FROM {_TABLE} WHERE correlation <= {self.ph(1)}",
                (average,),
            )
            below = max(getattr(cursor, "rowcount", 0) or 0, 0)

        orphaned = 0
        if item_exists is not None:
            referenced = self.query_column(
                f"SELECT item_id_a FROM {_TABLE} UNION SELECT item_id_b FROM {_TABLE}"
            )
            for missing in (i for i in referenced if not item_exists(i)):
                cursor = self.execute(
                    f"DELETE FROM {_TABLE} WHERE item_id_a = {self.ph(1)} OR item_id_b = {self.ph(1)}",
                    (missing, missing),
                )
                orphaned += max(getattr(cursor, "rowcount", 0) or 0, 0)
                self._forget(missing)

        self.commit()
        report = PruneReport(
            average=float(average) if average is not None else None,
            below_average_deleted=below,
            orphaned_deleted=orphaned,
        )
        logger.info(
            "correlations_pruned",
            average=report.average,
            below_average_deleted=below,
            orphaned_deleted=orphaned,
        )
        return report

    # ------------------------------------------------------------------ #
    # Caches
    # ------------------------------------------------------------------ #

    def _forget(self, item_id: int) -> None:
        self.item_cache.invalidate(item_id)
        for key in [k for k in self._values if k[0] == item_id]:
            self._values.delete(key)
        for key in [k for k in self._scores if item_id in k]:
            self._scores.delete(key)

    def clear_cache(self) -> None:
        """Drop prepared values and cached pair scores."""
        self._values.clear()
        self._scores.clear()

    @property
    def cached_scores(self) -> int:
        return self._scores.size()


__all__ = [
    "DEFAULT_THRESHOLD",
    "CorrelationStore",
    "PruneReport",
    "canonical_pair",
]
