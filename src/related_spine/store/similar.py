"""
On-demand similarity search and field value recommendations.

Unlike the update scheduler, which stores correlations incrementally,
:class:`SimilarityFinder` scores an item against every other item of its
schema at call time. It suits small collections and interactive editing,
where stored correlations may be stale or restricted to a subset of fields.

Tags:
    similarity, recommendation, search
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any

from related_spine.core.logging import get_logger
from related_spine.core.protocols import ItemStore
from related_spine.store.correlations import CorrelationStore

logger = get_logger(__name__)

# Minimum number of similar items sharing a value before it is recommended.
MIN_MATCHING_COUNT = 3

ResultFilter = Callable[[int], bool]


def _count_key(value: Any) -> Any:
    """Hashable stand-in for a field value (mappings and lists included)."""
    if isinstance(value, Mapping):
        return tuple(sorted((str(k), _count_key(v)) for k, v in value.items()))
    if isinstance(value, (list, tuple, set)):
        return tuple(_count_key(v) for v in value)
    return value


class SimilarityFinder:
    """Dynamic "items like this one" search over the item store.

    Result filters are callables taking an item id; an item is dropped
    from the results when any filter returns True for it.
    """

    def __init__(self, store: CorrelationStore, item_store: ItemStore):
        self.store = store
        self.item_store = item_store
        self._filters: list[ResultFilter] = []

    def add_result_filter(self, fn: ResultFilter) -> None:
        self._filters.append(fn)

    def _candidates(self, item_id: int) -> list[int]:
        schema_id = self.item_store.schema_of(item_id)
        in_schema = set(self.item_store.list_ids_in_schema(schema_id))
        return [
            i for i in self.item_store.list_item_ids()
            if i >= 0 and i != item_id and i in in_schema
        ]

    def find_similar_items(
        self,
        item_id: int,
        field_names: Iterable[str] | None = None,
    ) -> dict[int, float]:
        """Items scoring above the store threshold, most similar first."""
        names = list(field_names) if field_names is not None else None
        similar: dict[int, float] = {}
        for other in self._candidates(item_id):
            score = self.store.calculate_correlation(item_id, other, names)
            if score > self.store.threshold:
                similar[other] = score

        if similar and self._filters:
            similar = {
                i: s for i, s in similar.items()
                if not any(fn(i) for fn in self._filters)
            }

        logger.debug("similar_items_found", item_id=item_id, found=len(similar))
        return dict(sorted(similar.items(), key=lambda kv: (-kv[1], kv[0])))

    def recommend_field_values(
        self,
        item_id: int,
        field_names: Iterable[str] | None = None,
    ) -> dict[str, list[Any]]:
        """Values common among the items most similar to ``item_id``.

        Only the best similar items are consulted: those within the top
        third of the range between the average and the highest score. A
        value is recommended when enough of them share it, at least
        ``MIN_MATCHING_COUNT`` and at least halfway between the average and
        the highest count for that field.

        ``field_names`` narrows the similarity search only. Values are
        counted across every field of the weight model. List values count
        each element; any other value, date-range mappings included, counts
        as a whole.
        """
        names = list(field_names) if field_names is not None else None
        similar = self.find_similar_items(item_id, names)
        if not similar:
            return {}

        average = int(sum(similar.values()) / len(similar))
        highest = next(iter(similar.values()))
        cutoff = int(highest - (highest - average) / 3)
        best = [i for i, score in similar.items() if score >= cutoff]

        counts: dict[str, dict[Any, int]] = {}
        originals: dict[Any, Any] = {}
        for other in best:
            for name in self.store.model.names:
                value = self.store.item_cache.get_field_value(other, name)
                values = value if isinstance(value, (list, tuple, set)) else [value]
                for v in values:
                    if v is None:
                        continue
                    v = v.strip() if isinstance(v, str) else v
                    if v == "":
                        continue
                    key = _count_key(v)
                    originals.setdefault(key, v)
                    field_counts = counts.setdefault(name, {})
                    field_counts[key] = field_counts.get(key, 0) + 1

        recommended: dict[str, list[Any]] = {}
        for name, field_counts in counts.items():
            ranked = sorted(field_counts.items(), key=lambda kv: -kv[1])
            top = ranked[0][1]
            avg_count = int(sum(field_counts.values()) / len(field_counts))
            threshold = max(MIN_MATCHING_COUNT, int(avg_count + (top - avg_count) / 2))
            recommended[name] = [originals[k] for k, n in ranked if n >= threshold]
        return recommended


__all__ = ["MIN_MATCHING_COUNT", "ResultFilter", "SimilarityFinder"]
