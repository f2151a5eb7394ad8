"""
Shared pytest fixtures for related-spine tests.

This module provides:
- A deterministic clock for pair timing and execution windows
- The three-item sample collection (plus one item in a second schema)
- In-memory SQLite connections with all tables created
- Factories wiring a CorrelationUpdater over those pieces

Usage:
    Fixtures are auto-discovered by pytest::

        def test_something(make_updater):
            updater = make_updater(window_seconds=1.0)
"""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

import pytest
import structlog

from related_spine.content.comparators import reset_comparator_registry
from related_spine.content.fields import FieldWeightModel, SchemaField, reset_field_type_registry
from related_spine.content.item_cache import ItemContentCache
from related_spine.content.items import InMemoryItemStore
from related_spine.core.settings import CorrelationSettings
from related_spine.core.sqlite_conn import SqliteConnection
from related_spine.scheduling.memory import StaticMemoryProbe
from related_spine.scheduling.queue import InMemoryTaskQueue
from related_spine.scheduling.registry import HandlerRegistry
from related_spine.scheduling.updater import CorrelationUpdater
from related_spine.store.correlations import CorrelationStore
from related_spine.store.schema import create_tables

MIB = 1024 * 1024


class FakeClock:
    """Clock that advances by ``step`` seconds on every call."""

    def __init__(self, start: float = 0.0, step: float = 1.0):
        self.now = start
        self.step = step

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _isolate_registries() -> Generator[None, None, None]:
    """Restore process-wide registries and logging config after each test."""
    yield
    reset_field_type_registry()
    reset_comparator_registry()
    structlog.reset_defaults()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Keep RELATED_* variables and stray .env files out of settings."""
    import os

    for name in list(os.environ):
        if name.startswith("RELATED_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


# =============================================================================
# Sample collection
# =============================================================================

SAMPLE_ITEMS: dict[int, dict[str, Any]] = {
    1: {"Title": "Harbour at dusk", "Description": "Fishing boats in the harbour at dusk"},
    2: {"Title": "Harbour at dawn", "Description": "Boats leaving the harbour"},
    3: {"Title": "Harbour lights", "Description": "Lights over the quiet harbour"},
}


@pytest.fixture
def schema_fields() -> list[SchemaField]:
    """Title (weight 2) and Description (weight 1), both keyword-searchable."""
    return [
        SchemaField("Title", "text", search_weight=2),
        SchemaField("Description", "paragraph", search_weight=1),
        SchemaField("Internal Notes", "paragraph", include_in_keyword_search=False),
    ]


@pytest.fixture
def item_store(schema_fields) -> InMemoryItemStore:
    """Items 1-3 in schema 1, item 4 (a copy of item 1) in schema 2."""
    store = InMemoryItemStore(schema_fields)
    for item_id, fields in SAMPLE_ITEMS.items():
        store.add_item(item_id, fields, schema_id=1)
    store.add_item(4, SAMPLE_ITEMS[1], schema_id=2)
    return store


@pytest.fixture
def conn() -> Generator[SqliteConnection, None, None]:
    connection = SqliteConnection(":memory:")
    create_tables(connection)
    yield connection
    connection.close()


@pytest.fixture
def model(schema_fields) -> FieldWeightModel:
    return FieldWeightModel.from_schema(schema_fields)


@pytest.fixture
def item_cache(item_store) -> ItemContentCache:
    return ItemContentCache(item_store, capacity=100)


@pytest.fixture
def store(conn, item_cache, model) -> CorrelationStore:
    return CorrelationStore(conn, item_cache, model, threshold=1.0)


@pytest.fixture
def probe() -> StaticMemoryProbe:
    """Plenty of free memory."""
    return StaticMemoryProbe(free_bytes=400 * MIB, limit_bytes=512 * MIB)


@pytest.fixture
def settings(tmp_path) -> CorrelationSettings:
    return CorrelationSettings(
        database=tmp_path / "related.db",
        prune_min_seconds=0,
        memory_limit_bytes=512 * MIB,
    )


@pytest.fixture
def make_updater(store, item_store, probe, settings):
    """Factory: updater over the sample collection with its own queue."""

    def _make(
        window_seconds: float = 30.0,
        *,
        clock: FakeClock | None = None,
        memory_probe: Any = None,
        **kwargs: Any,
    ) -> CorrelationUpdater:
        queue = kwargs.pop("queue", None)
        if queue is None:
            queue = InMemoryTaskQueue(window_seconds)
        registry = kwargs.pop("registry", None) or HandlerRegistry()
        if clock is not None:
            kwargs["clock"] = clock
        return CorrelationUpdater(
            store,
            item_store,
            queue,
            memory_probe or probe,
            settings,
            registry=registry,
            **kwargs,
        )

    return _make


def run_next_task(queue, registry) -> Any:
    """Claim and execute the next queued task the way the runner does."""
    task = queue.claim_next()
    assert task is not None, "queue is empty"
    try:
        return registry.get(task.handler)(*task.args)
    finally:
        queue.complete(task)


@pytest.fixture
def run_next():
    return run_next_task


@pytest.fixture
def fake_clock() -> FakeClock:
    """Clock ticking one second per call: every pair appears to take 1s."""
    return FakeClock(step=1.0)


@pytest.fixture
def clock_factory():
    """Build clocks with a custom start and step."""
    return FakeClock
