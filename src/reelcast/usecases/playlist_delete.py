from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from ..domain.entities import Display
from ..infra.exceptions import ValidationError
from .playlist_add import _resolve_playlist


def delete_playlist(db: Session, *, playlist_identifier: str) -> dict[str, Any]:
    """Delete a playlist that no active display is using.

    Raises:
        ValueError: If the playlist is not found or still assigned
    """
    playlist = _resolve_playlist(db, playlist_identifier)

    in_use = (
        db.query(Display)
        .filter(Display.playlist_id == playlist.id, Display.is_active.is_(True))
        .count()
    )
    if in_use:
        raise ValidationError(
            f"Playlist {playlist.name} is assigned to {in_use} active display(s); "
            "assign another playlist or stop them first"
        )

    playlist_id = str(playlist.id)
    db.delete(playlist)
    db.commit()

    return {
        "status": "ok",
        "deleted": 1,
        "id": playlist_id,
    }


__all__ = ["delete_playlist"]
