from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from ..domain.entities import Display
from .playlist_add import _resolve_playlist, serialize_playlist


def show_playlist(db: Session, *, playlist_identifier: str) -> dict[str, Any]:
    """Show a playlist with its blocks and the displays it is assigned to.

    Raises:
        ValueError: If the playlist is not found
    """
    playlist = _resolve_playlist(db, playlist_identifier)
    displays = (
        db.query(Display)
        .filter(Display.playlist_id == playlist.id)
        .order_by(Display.code.asc())
        .all()
    )

    return {
        "status": "ok",
        "playlist": serialize_playlist(playlist),
        "displays": [d.code for d in displays],
    }


__all__ = ["show_playlist"]
