from __future__ import annotations

from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..domain.entities import Playlist
from .playlist_add import serialize_playlist


def list_playlists(db: Session) -> dict[str, Any]:
    """List playlists sorted by name, then creation time."""
    playlists = (
        db.query(Playlist)
        .order_by(func.lower(Playlist.name).asc(), Playlist.created_at.asc(), Playlist.id.asc())
        .all()
    )

    return {
        "status": "ok",
        "total": len(playlists),
        "playlists": [serialize_playlist(p, include_blocks=False) for p in playlists],
    }


__all__ = ["list_playlists"]
