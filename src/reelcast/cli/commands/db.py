from __future__ import annotations

import typer

from ...infra import db as _db

app = typer.Typer(name="db", help="Database management")


@app.command("init")
def init_database():
    """Create missing tables from the models (development stores).

    Production schemas are managed with ``alembic upgrade head``.
    """
    _db.init_db()
    typer.echo("Database tables created")
