"""
Unit of Work for Reelcast.

Every CLI command, admin request and display poll runs inside one session from
here: committed when the work returns, rolled back when it raises, always
closed. The timeline manager may commit inside that session (population and
loop restarts commit their own replace transaction); the final commit then only
covers what the caller wrote afterwards.

Sessions come from ``db.SessionLocal`` at call time, so tests can point the
whole application at a per-test database by swapping that one factory.
"""

from __future__ import annotations

import contextlib
from collections.abc import Generator

from sqlalchemy.orm import Session

from . import db as _db


@contextlib.contextmanager
def session() -> Generator[Session, None, None]:
    """
    Session scope for CLI commands and scripts.

    Usage:
        with session() as db:
            result = _uc_display_add.add_display(db, name="Lobby")
    """
    db = _db.SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency: one unit of work per request, same semantics as session()."""
    with session() as db:
        yield db
