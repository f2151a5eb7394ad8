"""
Tables used by related-spine.

Defines table names and DDL for the correlation store, the reference SQL
item store and the SQLite task queue. All statements use
``CREATE ... IF NOT EXISTS`` so :func:`create_tables` is safe to call on
every start.

Architecture:
    ::

        TABLES
        ├── correlations   → rec_content_correlations  (a < b, score)
        ├── items          → rec_items                 (id, schema)
        ├── item_fields    → rec_item_fields           (id, field, JSON value)
        ├── schema_fields  → rec_schema_fields         (active schema)
        └── task_queue     → rec_task_queue            (unique task_key)

Examples:
    >>> from related_spine.store.schema import TABLES, create_tables
    >>> TABLES["correlations"]
    'rec_content_correlations'
    >>> create_tables(conn)

Tags:
    schema, ddl, tables, sqlite
"""

TABLES = {
    "correlations": "rec_content_correlations",
    "items": "rec_items",
    "item_fields": "rec_item_fields",
    "schema_fields": "rec_schema_fields",
    "task_queue": "rec_task_queue",
}


DDL = {
    # One row per unordered pair, item_id_a < item_id_b.
    "correlations": """
        CREATE TABLE IF NOT EXISTS rec_content_correlations (
            item_id_a INTEGER NOT NULL,
            item_id_b INTEGER NOT NULL,
            correlation REAL NOT NULL,
            PRIMARY KEY (item_id_a, item_id_b)
        )
    """,
    "correlations_b_idx": """
        CREATE INDEX IF NOT EXISTS idx_rec_content_correlations_b
            ON rec_content_correlations(item_id_b)
    """,
    "items": """
        CREATE TABLE IF NOT EXISTS rec_items (
            item_id INTEGER PRIMARY KEY,
            schema_id INTEGER NOT NULL
        )
    """,
    "items_schema_idx": """
        CREATE INDEX IF NOT EXISTS idx_rec_items_schema
            ON rec_items(schema_id)
    """,
    "item_fields": """
        CREATE TABLE IF NOT EXISTS rec_item_fields (
            item_id INTEGER NOT NULL,
            field_name TEXT NOT NULL,
            value TEXT,                     -- JSON
            PRIMARY KEY (item_id, field_name)
        )
    """,
    "schema_fields": """
        CREATE TABLE IF NOT EXISTS rec_schema_fields (
            name TEXT PRIMARY KEY,
            field_type TEXT NOT NULL,
            enabled INTEGER NOT NULL DEFAULT 1,
            include_in_keyword_search INTEGER NOT NULL DEFAULT 1,
            search_weight REAL NOT NULL DEFAULT 1.0,
            position INTEGER NOT NULL DEFAULT 0
        )
    """,
    # Persisted host task queue; task_key is the uniqueness key.
    "task_queue": """
        CREATE TABLE IF NOT EXISTS rec_task_queue (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            task_key TEXT NOT NULL UNIQUE,
            handler TEXT NOT NULL,
            params TEXT NOT NULL,           -- JSON list of positional args
            priority INTEGER NOT NULL,
            description TEXT,
            status TEXT NOT NULL DEFAULT 'queued',
            created_at TEXT NOT NULL
        )
    """,
    "task_queue_order_idx": """
        CREATE INDEX IF NOT EXISTS idx_rec_task_queue_order
            ON rec_task_queue(status, priority, id)
    """,
}


def create_tables(conn) -> None:
    """
    Create all related-spine tables and indexes.

    Safe to call multiple times (CREATE IF NOT EXISTS).
    """
    for _name, ddl in DDL.items():
        conn.execute(ddl)
    conn.commit()


__all__ = ["TABLES", "DDL", "create_tables"]
