"""
Root Typer application for the related-spine CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

app = Typer(
    name="related-spine",
    help="related-spine - incremental content correlations for related-item recommendations.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from related_spine import __version__

        typer.echo(f"related-spine {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """related-spine CLI - queue, run and inspect correlation updates."""


# ── Sub-command registration ─────────────────────────────────────────────

from related_spine.cli.correlations import prune, rebuild, related, update  # noqa: E402
from related_spine.cli.worker import app as worker_app  # noqa: E402

app.command("update")(update)
app.command("related")(related)
app.command("prune")(prune)
app.command("rebuild")(rebuild)
app.add_typer(worker_app, name="worker", help="Run queued update slices.")
