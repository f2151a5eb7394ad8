"""
related-spine - incremental content correlations for "related items".

Scores every pair of items in a growing collection by weighted field
similarity and keeps the scores current through resumable, time- and
memory-budgeted update jobs that run on a task queue.

Architecture::

    content/       Field weight model, comparators, item cache, item stores
    store/         Correlation store, schema, on-demand similarity search
    scheduling/    Task queues, runner, memory probe, updater, full rebuild
    core/          Errors, logging, settings, caches, SQL helpers
    cli/           ``related-spine`` typer application

Examples:
    >>> from related_spine import (
    ...     CorrelationUpdater, InMemoryTaskQueue, HandlerRegistry, TaskRunner,
    ... )
    >>> updater = CorrelationUpdater.build(conn, items, queue, registry=registry)
    >>> updater.queue_update(42)
    True
"""

__version__ = "0.1.0"

from related_spine.content import (
    ComparisonType,
    FieldSpec,
    FieldWeightModel,
    InMemoryItemStore,
    Item,
    ItemContentCache,
    SchemaField,
    SqlItemStore,
)
from related_spine.core import (
    ConfigError,
    CorrelationSettings,
    RelatedSpineError,
    SqliteConnection,
    configure_logging,
    get_logger,
)
from related_spine.scheduling import (
    CorrelationRebuilder,
    CorrelationUpdater,
    HandlerRegistry,
    InMemoryTaskQueue,
    Priority,
    ProcessMemoryProbe,
    SliceResult,
    SliceState,
    SqliteTaskQueue,
    TaskRunner,
)
from related_spine.store import CorrelationStore, PruneReport, SimilarityFinder, create_tables

__all__ = [
    "__version__",
    "ComparisonType",
    "ConfigError",
    "CorrelationRebuilder",
    "CorrelationSettings",
    "CorrelationStore",
    "CorrelationUpdater",
    "FieldSpec",
    "FieldWeightModel",
    "HandlerRegistry",
    "InMemoryItemStore",
    "InMemoryTaskQueue",
    "Item",
    "ItemContentCache",
    "Priority",
    "ProcessMemoryProbe",
    "PruneReport",
    "RelatedSpineError",
    "SchemaField",
    "SimilarityFinder",
    "SliceResult",
    "SliceState",
    "SqlItemStore",
    "SqliteConnection",
    "SqliteTaskQueue",
    "TaskRunner",
    "configure_logging",
    "create_tables",
    "get_logger",
]
