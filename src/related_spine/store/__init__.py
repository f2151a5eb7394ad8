"""Correlation storage: schema, store and on-demand similarity search."""

from related_spine.store.correlations import (
    DEFAULT_THRESHOLD,
    CorrelationStore,
    PruneReport,
    canonical_pair,
)
from related_spine.store.schema import DDL, TABLES, create_tables
from related_spine.store.similar import SimilarityFinder

__all__ = [
    "DDL",
    "DEFAULT_THRESHOLD",
    "TABLES",
    "CorrelationStore",
    "PruneReport",
    "SimilarityFinder",
    "canonical_pair",
    "create_tables",
]
