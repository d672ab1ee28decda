"""
Display poll endpoint.

Displays call ``POST /api/poll/{code}`` about once a second with their reported
state and receive commands, the next timeline entry and progress in one reply.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...infra.exceptions import DisplayNotFoundError, StoreError
from ...runtime import PollHandler, PollReport
from .deps import get_db, get_poll_handler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/poll", tags=["poll"])


class PollRequest(BaseModel):
    """State a display reports on each poll."""

    model_config = ConfigDict(populate_by_name=True)

    status: str | None = Field(None, max_length=32, description="Reported display status")
    current_video_id: str | None = Field(
        None, alias="currentVideoId", description="Video the display is showing"
    )
    current_timeline_entry_id: str | None = Field(
        None,
        validation_alias=AliasChoices("currentTimelineEntryId", "currentTimelineVideoId"),
        description="Timeline entry the display is showing",
    )
    position: float | None = Field(None, ge=0, description="Playback position in seconds")
    completed_timeline_entry_id: str | None = Field(
        None,
        alias="completedTimelineEntryId",
        description="Entry the display finished since the last poll",
    )
    skipped_timeline_entry_id: str | None = Field(
        None,
        alias="skippedTimelineEntryId",
        description="Entry the display skipped since the last poll",
    )

    def to_report(self) -> PollReport:
        return PollReport(
            status=self.status,
            current_video_id=self.current_video_id,
            current_timeline_entry_id=self.current_timeline_entry_id,
            position=self.position,
            completed_timeline_entry_id=self.completed_timeline_entry_id,
            skipped_timeline_entry_id=self.skipped_timeline_entry_id,
        )


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": "error", "error": message})


@router.post("/{code}", response_model=None)
def poll(
    code: str,
    body: PollRequest | None = None,
    db: Session = Depends(get_db),
    handler: PollHandler = Depends(get_poll_handler),
) -> dict[str, Any] | JSONResponse:
    """Record the display's state and return its next instructions."""
    report = body.to_report() if body is not None else PollReport()
    try:
        reply = handler.handle_poll(db, code, report)
        db.commit()
    except DisplayNotFoundError:
        return _error(404, "Display not found")
    except StoreError:
        return _error(503, "Poll failed")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Poll commit failed for display %s", code)
        return _error(503, "Poll failed")
    return reply


@router.get("/{code}", response_model=None)
def poll_status(
    code: str,
    db: Session = Depends(get_db),
    handler: PollHandler = Depends(get_poll_handler),
) -> dict[str, Any] | JSONResponse:
    """Display record with derived online status and timeline progress."""
    try:
        return handler.status_view(db, code)
    except DisplayNotFoundError:
        return _error(404, "Display not found")
