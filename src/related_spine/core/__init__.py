"""Related Spine Core -- shared primitives for the correlation engine.

Architecture::

    errors.py        Structured error hierarchy (RelatedSpineError, ConfigError)
    logging.py       structlog configuration + context binding
    settings.py      CorrelationSettings (pydantic-settings, RELATED_* env)
    cache.py         BoundedCache (FIFO / LRU)
    protocols.py     Connection, ItemStore, TaskQueue, MemoryProbe protocols
    dialect.py       SQLite / PostgreSQL placeholders and upserts
    repository.py    BaseRepository with dialect-aware query helpers
    sqlite_conn.py   sqlite3 adapter for the Connection protocol

Tags:
    related-spine, core, foundation, protocols
"""

from related_spine.core.cache import BoundedCache
from related_spine.core.dialect import Dialect, PostgreSQLDialect, SQLiteDialect
from related_spine.core.errors import (
    ConfigError,
    ErrorCategory,
    ErrorContext,
    HandlerNotFoundError,
    QueueError,
    RelatedSpineError,
    StorageError,
)
from related_spine.core.logging import (
    LogContext,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)
from related_spine.core.protocols import (
    Connection,
    ItemRecord,
    ItemStore,
    MemoryProbe,
    TaskQueue,
)
from related_spine.core.repository import BaseRepository
from related_spine.core.settings import CorrelationSettings, get_settings
from related_spine.core.sqlite_conn import SqliteConnection

__all__ = [
    # cache
    "BoundedCache",
    # dialect
    "Dialect",
    "PostgreSQLDialect",
    "SQLiteDialect",
    # errors
    "ConfigError",
    "ErrorCategory",
    "ErrorContext",
    "HandlerNotFoundError",
    "QueueError",
    "RelatedSpineError",
    "StorageError",
    # logging
    "LogContext",
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_logger",
    # protocols
    "Connection",
    "ItemRecord",
    "ItemStore",
    "MemoryProbe",
    "TaskQueue",
    # persistence
    "BaseRepository",
    "SqliteConnection",
    # settings
    "CorrelationSettings",
    "get_settings",
]
