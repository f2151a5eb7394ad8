"""
Canonical protocol definitions for related-spine.

Every collaborator the correlation engine talks to is described here as a
structural protocol, so the engine depends on shape rather than on a
concrete database, task queue or item store.

Architecture:
    ::

        protocols.py
        ├── Connection   - sync DB protocol (sqlite3 adapter, psycopg, ...)
        ├── ItemRecord   - one loaded item (get field value by name)
        ├── ItemStore    - item existence, field values, id listings
        ├── TaskQueue    - unique-job enqueue + remaining time in window
        └── MemoryProbe  - free memory in bytes and percent of limit

    Consumers:
        content/item_cache.py, store/correlations.py, store/similar.py,
        scheduling/updater.py, scheduling/runner.py, scheduling/rebuild.py

Tags:
    protocol, connection, item-store, task-queue, memory-probe, contracts
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

# ---------------------------------------------------------------------------
# Database Connection Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class Connection(Protocol):
    """Minimal SYNCHRONOUS connection interface for database operations.

    Implementations:
        - :class:`related_spine.core.sqlite_conn.SqliteConnection`
        - any DB-API adapter exposing connection-level fetch methods
    """

    def execute(self, sql: str, params: tuple = ()) -> Any:
        """Execute SQL statement with optional parameters."""
        ...

    def fetchone(self) -> Any:
        """Fetch one row from last query."""
        ...

    def fetchall(self) -> list:
        """Fetch all rows from last query."""
        ...

    def commit(self) -> None:
        """Commit current transaction."""
        ...


# ---------------------------------------------------------------------------
# Item storage
# ---------------------------------------------------------------------------


class ItemRecord(Protocol):
    """A loaded item. Only field access by name is needed by the engine."""

    @property
    def item_id(self) -> int: ...

    def get(self, field_name: str) -> Any:
        """Return the field value, or ``None`` when the item has none."""
        ...


class ItemStore(Protocol):
    """Read-only view of the item collection.

    Items are owned by an external store; the engine never writes them.
    """

    def item_exists(self, item_id: int) -> bool:
        """Return True if the item currently exists."""
        ...

    def load_item(self, item_id: int) -> ItemRecord:
        """Load the full item (all field values)."""
        ...

    def get_field_value(self, item_id: int, field_name: str) -> Any:
        """Return one field value without caching."""
        ...

    def list_item_ids(self) -> list[int]:
        """All item ids in ascending order, transient (negative) ids included."""
        ...

    def schema_of(self, item_id: int) -> int:
        """Schema id the item belongs to."""
        ...

    def list_ids_in_schema(self, schema_id: int) -> list[int]:
        """Ids of all items in the given schema."""
        ...

    def list_schema_fields(self) -> Sequence[Any]:
        """Field descriptors of the active schema (see ``SchemaField``)."""
        ...


# ---------------------------------------------------------------------------
# Host services
# ---------------------------------------------------------------------------


class TaskQueue(Protocol):
    """Host task queue as seen by the update scheduler.

    ``enqueue_unique`` guarantees at most one queued-or-running task per
    key and returns False when the key is already live.
    """

    def enqueue_unique(
        self,
        key: str,
        handler: str,
        args: Sequence[Any],
        priority: int,
        description: str = "",
    ) -> bool:
        """Queue a task unless one with the same key is live."""
        ...

    def remaining_time_in_window(self) -> float:
        """Seconds left in the current execution window."""
        ...


class MemoryProbe(Protocol):
    """Reports how much memory the process may still use."""

    def free_memory_bytes(self) -> int:
        """Bytes left before the process memory limit."""
        ...

    def free_percent_of_limit(self) -> float:
        """Free memory as a percentage (0-100) of the limit."""
        ...


__all__ = [
    "Connection",
    "ItemRecord",
    "ItemStore",
    "TaskQueue",
    "MemoryProbe",
]
