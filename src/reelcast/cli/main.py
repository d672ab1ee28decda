"""
Main CLI application using Typer with router-based command dispatch.

This module provides the operator command-line interface for Reelcast, calling
the usecases and outputting JSON when requested.
"""

from __future__ import annotations

import typer

from ..infra.logging import configure_logging
from .commands import command, db, display, playlist, serve, timeline
from .router import get_router

app = typer.Typer(help="Reelcast display scheduler operator CLI")

router = get_router(app)

router.register("display", display.app, help_text="Display registration and inspection")
router.register("playlist", playlist.app, help_text="Playlist and block management")
router.register("command", command.app, help_text="Queue commands for displays")
router.register("timeline", timeline.app, help_text="Timeline inspection and repair")
router.register("db", db.app, help_text="Database management")

app.command("serve")(serve.serve)


@app.callback()
def main(
    ctx: typer.Context,
    json: bool = typer.Option(False, "--json", help="Output in JSON format"),
    log_level: str | None = typer.Option(None, "--log-level", help="Override LOG_LEVEL"),
):
    """Reelcast - playlist timelines for unattended displays."""
    configure_logging(log_level)
    ctx.ensure_object(dict)
    ctx.obj["json"] = json


def cli():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    cli()
