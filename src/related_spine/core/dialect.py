"""
SQL dialect abstraction.

Repositories interpolate dialect fragments (placeholders, upserts) into
their SQL templates so the correlation store and the task queue run on
SQLite or PostgreSQL without code changes.

Examples:
    >>> d = SQLiteDialect()
    >>> d.placeholders(3)
    '?, ?, ?'
    >>> d.upsert("t", ["a", "b", "v"], ["a", "b"])
    'INSERT INTO t (a, b, v) VALUES (?, ?, ?) ON CONFLICT (a, b) DO UPDATE SET v = excluded.v'

Tags:
    dialect, sql, portability, sqlite, postgresql
"""

from __future__ import annotations

from typing import Protocol


class Dialect(Protocol):
    """SQL dialect contract."""

    @property
    def name(self) -> str: ...

    def placeholder(self, index: int) -> str:
        """Single positional placeholder (0-based index)."""
        ...

    def placeholders(self, count: int) -> str:
        """Comma-separated placeholder list."""
        ...

    def upsert(self, table: str, columns: list[str], key_columns: list[str]) -> str:
        """``INSERT … ON CONFLICT (keys) DO UPDATE SET …`` statement."""
        ...


class _OnConflictDialect:
    """Shared ``ON CONFLICT`` DML for SQLite and PostgreSQL."""

    def placeholder(self, index: int) -> str:  # pragma: no cover - overridden
        raise NotImplementedError

    def placeholders(self, count: int) -> str:
        return ", ".join(self.placeholder(i) for i in range(count))

    def upsert(self, table: str, columns: list[str], key_columns: list[str]) -> str:
        cols = ", ".join(columns)
        ph = self.placeholders(len(columns))
        keys = ", ".join(key_columns)
        update_cols = [c for c in columns if c not in key_columns]
        updates = ", ".join(f"{c} = excluded.{c}" for c in update_cols)
        return (
            f"INSERT INTO {table} ({cols}) VALUES ({ph}) "
            f"ON CONFLICT ({keys}) DO UPDATE SET {updates}"
        )


class SQLiteDialect(_OnConflictDialect):
    """SQLite dialect - ``?`` placeholders."""

    @property
    def name(self) -> str:
        return "sqlite"

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "?"


class PostgreSQLDialect(_OnConflictDialect):
    """PostgreSQL dialect - ``%s`` placeholders (psycopg)."""

    @property
    def name(self) -> str:
        return "postgresql"

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "%s"


__all__ = ["Dialect", "SQLiteDialect", "PostgreSQLDialect"]
