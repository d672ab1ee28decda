from __future__ import annotations

import typer

from ...web.server import run_server


def serve(
    host: str | None = typer.Option(None, "--host", help="Bind address (defaults to HOST)"),
    port: int | None = typer.Option(None, "--port", "-p", help="Port (defaults to PORT)"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Run the poll and admin HTTP server."""
    run_server(host=host, port=port, reload=reload)
