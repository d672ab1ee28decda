"""Timeline endpoints not scoped to a display code."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from ...runtime import TimelineManager
from ...usecases import timeline_inspect
from .deps import get_db, get_timeline, raise_http

router = APIRouter(prefix="/api/timeline", tags=["timeline"])


class MarkPlayed(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    timeline_entry_id: str = Field(
        ..., alias="timelineEntryId", description="Timeline entry the display finished"
    )


@router.post("/mark-played")
def mark_played(
    body: MarkPlayed,
    db: Session = Depends(get_db),
    timeline: TimelineManager = Depends(get_timeline),
) -> dict[str, Any]:
    """Mark an entry played outside the poll; duplicates are no-ops."""
    try:
        return timeline_inspect.mark_entry_played(
            db, entry_id=body.timeline_entry_id, timeline=timeline
        )
    except ValueError as e:
        raise_http(e)
