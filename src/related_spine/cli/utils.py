"""
CLI utility helpers - engine wiring and output formatting.
"""

from __future__ import annotations

import json
import sys
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from related_spine.content.items import SqlItemStore
from related_spine.core.logging import configure_logging
from related_spine.core.settings import CorrelationSettings, get_settings
from related_spine.core.sqlite_conn import SqliteConnection
from related_spine.scheduling.queue import Priority, SqliteTaskQueue
from related_spine.scheduling.registry import HandlerRegistry
from related_spine.scheduling.runner import TaskRunner
from related_spine.scheduling.updater import CorrelationUpdater
from related_spine.store.schema import create_tables

console = Console()
err_console = Console(stderr=True)


# ── Engine wiring ────────────────────────────────────────────────────────


@dataclass
class Engine:
    """Everything a CLI command needs, wired over one SQLite database."""

    settings: CorrelationSettings
    conn: SqliteConnection
    items: SqlItemStore
    queue: SqliteTaskQueue
    registry: HandlerRegistry
    updater: CorrelationUpdater
    runner: TaskRunner

    def close(self) -> None:
        self.conn.close()


def open_engine(database: str | None = None, **overrides: Any) -> Engine:
    """Open the database (creating tables) and wire the engine on top."""
    if database:
        overrides["database"] = Path(database)
    settings = get_settings(**overrides)
    configure_logging(
        level=settings.log_level,
        json_format=settings.json_logs,
        stream=sys.stderr,
        cache_loggers=False,
    )

    conn = SqliteConnection(settings.database)
    create_tables(conn)
    items = SqlItemStore(conn)
    queue = SqliteTaskQueue(conn, settings.window_seconds)
    registry = HandlerRegistry()
    updater = CorrelationUpdater.build(conn, items, queue, settings=settings, registry=registry)
    runner = TaskRunner(queue, registry, updater.memory_probe, settings)
    return Engine(settings, conn, items, queue, registry, updater, runner)


def parse_priority(value: str) -> Priority:
    """Accept a priority name (``low``) or number (``3``)."""
    if value.isdigit():
        return Priority.clamp(int(value))
    try:
        return Priority[value.upper()]
    except KeyError:
        names = ", ".join(p.name.lower() for p in Priority)
        raise typer.BadParameter(f"Unknown priority {value!r} (expected one of: {names})") from None


# ── Output helpers ───────────────────────────────────────────────────────


def _to_dict(obj: Any) -> dict[str, Any]:
    """Convert dataclass / object with to_dict / dict to plain dict."""
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    if isinstance(obj, dict):
        return obj
    return {"value": str(obj)}


def output(data: Any, *, as_json: bool = False, title: str = "") -> None:
    """Render a record or a list of records to the terminal."""
    if as_json:
        payload = [_to_dict(d) for d in data] if isinstance(data, list | tuple) else _to_dict(data)
        console.print_json(json.dumps(payload, default=str))
        return

    if isinstance(data, list):
        if not data:
            console.print("[dim]No items.[/dim]")
            return
        _print_table(data, title=title)
    else:
        _print_dict(_to_dict(data), title=title)


def _print_table(items: list, *, title: str = "") -> None:
    """Render a list of dataclasses/dicts as a Rich table."""
    first = _to_dict(items[0])
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in first:
        table.add_column(col, overflow="fold")
    for item in items:
        d = _to_dict(item)
        table.add_row(*(str(v) for v in d.values()))
    console.print(table)


def _print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as key-value pairs."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")
