"""related-spine command-line interface (typer + rich)."""

from related_spine.cli.app import app

__all__ = ["app"]
