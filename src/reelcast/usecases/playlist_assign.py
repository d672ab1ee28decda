from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy.orm import Session

from ..runtime.timeline_manager import TimelineManager
from .display_add import _resolve_display
from .playlist_add import _resolve_playlist

logger = structlog.get_logger(__name__)


def assign_playlist(
    db: Session,
    *,
    code: str,
    playlist_identifier: str,
    timeline: TimelineManager,
) -> dict[str, Any]:
    """Assign a playlist to a display and materialise its first timeline.

    The loop counter restarts at 0 and the cursor at the first entry.

    Raises:
        ValueError: If the display or playlist is not found, or the display is inactive
    """
    display = _resolve_display(db, code, include_inactive=False)
    playlist = _resolve_playlist(db, playlist_identifier)

    display.playlist_id = playlist.id
    display.playlist = playlist
    display.loop_count = 0

    entries = timeline.populate_timeline(db, display, playlist, loop_iteration=0)
    logger.info(
        "playlist_assigned",
        display=display.code,
        playlist_id=str(playlist.id),
        entries=entries,
    )

    return {
        "status": "ok",
        "code": display.code,
        "playlist_id": str(playlist.id),
        "playlist_name": playlist.name,
        "entries": entries,
        "timeline_state": timeline.timeline_state(db, display).value,
    }


__all__ = ["assign_playlist"]
