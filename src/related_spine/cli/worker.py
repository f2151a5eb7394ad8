"""
CLI: ``related-spine worker`` - run queued correlation update slices.
"""

from __future__ import annotations

import typer

from related_spine.cli.utils import console, open_engine, output

app = typer.Typer(no_args_is_help=True)


@app.command("run")
def run(
    window: float | None = typer.Option(None, "--window", "-w", help="Execution window in seconds"),  # noqa: UP007
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
    db: str | None = typer.Option(None, "--db", "-d", help="SQLite database path"),  # noqa: UP007
) -> None:
    """Run queued tasks for one execution window, then exit."""
    overrides = {"window_seconds": window} if window is not None else {}
    engine = open_engine(db, **overrides)
    try:
        engine.queue.recover_running()
        report = engine.runner.run_queued_tasks()
        output(report, as_json=as_json, title="Run cycle")
        if report.failed:
            raise typer.Exit(code=1)
    finally:
        engine.close()


@app.command("start")
def start(
    poll_interval: float | None = typer.Option(None, "--poll-interval", help="Seconds between cycles"),  # noqa: UP007
    window: float | None = typer.Option(None, "--window", "-w", help="Execution window in seconds"),  # noqa: UP007
    db: str | None = typer.Option(None, "--db", "-d", help="SQLite database path"),  # noqa: UP007
) -> None:
    """Run execution windows until interrupted.

    Example::

        related-spine worker start --poll-interval 2 --window 30
    """
    overrides: dict[str, float] = {}
    if poll_interval is not None:
        overrides["poll_interval"] = poll_interval
    if window is not None:
        overrides["window_seconds"] = window
    engine = open_engine(db, **overrides)

    console.print(
        f"[bold green]Starting related-spine worker[/bold green] "
        f"(window={engine.settings.window_seconds}s, poll={engine.settings.poll_interval}s)"
    )
    try:
        engine.queue.recover_running()
        engine.runner.start()
    except KeyboardInterrupt:
        console.print("\n[yellow]Worker stopped by user[/yellow]")
    finally:
        engine.close()


@app.command("pending")
def pending(
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
    db: str | None = typer.Option(None, "--db", "-d", help="SQLite database path"),  # noqa: UP007
) -> None:
    """List queued tasks in execution order."""
    engine = open_engine(db)
    try:
        output(engine.queue.pending(), as_json=as_json, title="Queued tasks")
    finally:
        engine.close()
