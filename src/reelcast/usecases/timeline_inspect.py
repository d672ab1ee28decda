"""Admin operations on a display's materialised timeline."""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy.orm import Session

from ..domain.entities import Display
from ..infra.exceptions import TimelineEntryNotFoundError, ValidationError
from ..runtime.timeline_manager import TimelineManager, serialize_entries
from .display_add import _resolve_display

logger = structlog.get_logger(__name__)


def inspect_timeline(
    db: Session,
    *,
    code: str,
    timeline: TimelineManager,
    limit: int = 10,
    include_all: bool = False,
) -> dict[str, Any]:
    """Upcoming entries (or the whole timeline), state and progress for one display."""
    if limit < 1:
        raise ValidationError("limit must be at least 1")
    display = _resolve_display(db, code)
    entries = (
        timeline.get_all_entries(db, display)
        if include_all
        else timeline.get_upcoming(db, display, limit=limit)
    )

    return {
        "status": "ok",
        "code": display.code,
        "timeline_state": timeline.timeline_state(db, display).value,
        "timeline_position": display.timeline_position,
        "loop_count": display.loop_count,
        "entries": serialize_entries(entries),
        "progress": timeline.get_timeline_progress(db, display),
    }


def reset_timeline_position(db: Session, *, code: str, timeline: TimelineManager) -> dict[str, Any]:
    display = _resolve_display(db, code)
    timeline.reset_position(db, display)
    db.commit()
    return {"status": "ok", "code": display.code, "timeline_position": 0}


def repopulate_timeline(db: Session, *, code: str, timeline: TimelineManager) -> dict[str, Any]:
    """Rebuild the current loop from the assigned playlist.

    Raises:
        ValueError: If the display is unknown or has no playlist
    """
    display = _resolve_display(db, code, include_inactive=False)
    if display.playlist is None:
        raise ValidationError(f"Display {display.code} has no playlist assigned")
    entries = timeline.populate_timeline(db, display)
    logger.info("timeline_repopulated", display=display.code, entries=entries)
    return {
        "status": "ok",
        "code": display.code,
        "entries": entries,
        "loop_count": display.loop_count,
    }


def stop_display(db: Session, *, code: str, timeline: TimelineManager) -> dict[str, Any]:
    """Clear the timeline and return playback to idle; the playlist stays assigned."""
    display = _resolve_display(db, code)
    cleared = timeline.clear_timeline(db, display)
    db.commit()
    return {"status": "ok", "code": display.code, "cleared": cleared}


def mark_entry_played(db: Session, *, entry_id: str, timeline: TimelineManager) -> dict[str, Any]:
    """Mark a timeline entry played on behalf of its display.

    Duplicate or stale reports return ``advanced: False`` without changes.
    """
    entry = timeline.get_entry_by_id(db, entry_id)
    if entry is None:
        raise TimelineEntryNotFoundError(f"Timeline entry not found: {entry_id}")
    display = db.get(Display, entry.display_id)
    advanced = timeline.mark_played(db, display, entry)
    db.commit()
    return {
        "status": "ok",
        "id": str(entry.id),
        "advanced": advanced,
        "timeline_position": display.timeline_position,
    }


__all__ = [
    "inspect_timeline",
    "reset_timeline_position",
    "repopulate_timeline",
    "stop_display",
    "mark_entry_played",
]
