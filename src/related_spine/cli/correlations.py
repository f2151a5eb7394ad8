"""
CLI: ``related-spine update | related | prune | rebuild``.
"""

from __future__ import annotations

import typer

from related_spine.cli.utils import console, err_console, open_engine, output, parse_priority
from related_spine.scheduling.rebuild import DEFAULT_CHUNK_SIZE, CorrelationRebuilder

DB_OPTION = typer.Option(None, "--db", "-d", help="SQLite database path (default: RELATED_DATABASE)")


def update(
    item_id: int = typer.Argument(..., help="Item whose correlations should be recomputed"),
    priority: str = typer.Option("background", "--priority", "-p", help="high, medium, low or background"),
    db: str | None = DB_OPTION,  # noqa: UP007
) -> None:
    """Queue a fresh correlation update job for an item."""
    prio = parse_priority(priority)
    engine = open_engine(db)
    try:
        if not engine.items.item_exists(item_id):
            err_console.print(f"[bold red]Error[/bold red]: item {item_id} does not exist")
            raise typer.Exit(code=1)
        if engine.updater.queue_update(item_id, prio):
            console.print(f"[green]Queued[/green] update for item {item_id} ({prio.name.lower()})")
        else:
            console.print(f"[yellow]Update for item {item_id} is already queued or running[/yellow]")
    finally:
        engine.close()


def related(
    item_id: int = typer.Argument(..., help="Item to look up"),
    limit: int = typer.Option(10, "--limit", "-n", min=1, help="Maximum number of results"),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
    db: str | None = DB_OPTION,  # noqa: UP007
) -> None:
    """Show the stored items most related to an item."""
    engine = open_engine(db)
    try:
        rows = [
            {"item_id": other, "correlation": score}
            for other, score in engine.updater.store.related_items(item_id, limit)
        ]
        output(rows, as_json=as_json, title=f"Related to item {item_id}")
    finally:
        engine.close()


def prune(
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
    db: str | None = DB_OPTION,  # noqa: UP007
) -> None:
    """Delete below-average correlations and those of deleted items."""
    engine = open_engine(db)
    try:
        report = engine.updater.store.prune_correlations(engine.items.item_exists)
        output(
            {
                "average": report.average,
                "below_average_deleted": report.below_average_deleted,
                "orphaned_deleted": report.orphaned_deleted,
                "remaining": engine.updater.store.count(),
            },
            as_json=as_json,
            title="Pruned correlations",
        )
    finally:
        engine.close()


def rebuild(
    chunk_size: int = typer.Option(DEFAULT_CHUNK_SIZE, "--chunk-size", min=1, help="Items per chunk"),
    queue: bool = typer.Option(False, "--queue", help="Queue one update job per item instead"),
    db: str | None = DB_OPTION,  # noqa: UP007
) -> None:
    """Recompute every stored correlation."""
    engine = open_engine(db)
    try:
        rebuilder = CorrelationRebuilder(engine.updater)
        if queue:
            accepted = rebuilder.queue_all()
            console.print(f"[green]Queued[/green] {accepted} update job(s)")
            return

        next_id: int | None = 0
        chunks = 0
        with console.status("Rebuilding correlations…"):
            while next_id is not None:
                next_id = rebuilder.process_chunk(next_id, chunk_size)
                chunks += 1
        console.print(
            f"[green]Rebuilt[/green] correlations in {chunks} chunk(s); "
            f"{engine.updater.store.count()} stored"
        )
    finally:
        engine.close()
