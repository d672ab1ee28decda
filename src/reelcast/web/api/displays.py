"""
Display administration endpoints.

Create, list, rename and deactivate displays; queue commands; assign playlists
and repair or stop a display's timeline.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ...runtime import DisplayRegistry, TimelineManager
from ...usecases import (
    command_send,
    display_add,
    display_list,
    display_show,
    display_update,
    playlist_assign,
    timeline_inspect,
)
from .deps import get_db, get_registry, get_timeline, raise_http

router = APIRouter(prefix="/api/displays", tags=["displays"])


class DisplayCreate(BaseModel):
    """Request model for registering a display."""

    name: str = Field(..., min_length=1, description="Human-readable display name")
    code: str | None = Field(
        None, max_length=16, description="Display code; generated (6 characters) when omitted"
    )


class DisplayUpdate(BaseModel):
    """Request model for renaming a display."""

    name: str = Field(..., min_length=1, description="New display name")


class CommandCreate(BaseModel):
    """Request model for queueing a display command."""

    type: str = Field(..., description="play|pause|next|previous|seek|playVideo|mute|unmute")
    payload: dict[str, Any] | None = Field(None, description="Command payload, e.g. {position}")


class PlaylistAssignment(BaseModel):
    """Request model for assigning a playlist to a display."""

    playlist_id: str = Field(..., description="Playlist UUID or name")


@router.post("", status_code=201)
def create_display(
    body: DisplayCreate,
    db: Session = Depends(get_db),
    registry: DisplayRegistry = Depends(get_registry),
) -> dict[str, Any]:
    try:
        return display_add.add_display(db, name=body.name, code=body.code, registry=registry)
    except ValueError as e:
        raise_http(e)


@router.get("")
def list_displays(
    include_inactive: bool = Query(False, description="Include deactivated displays"),
    db: Session = Depends(get_db),
    registry: DisplayRegistry = Depends(get_registry),
) -> dict[str, Any]:
    return display_list.list_displays(db, include_inactive=include_inactive, registry=registry)


@router.get("/{code}")
def get_display(
    code: str,
    db: Session = Depends(get_db),
    registry: DisplayRegistry = Depends(get_registry),
    timeline: TimelineManager = Depends(get_timeline),
) -> dict[str, Any]:
    try:
        return display_show.show_display(db, code=code, timeline=timeline, registry=registry)
    except ValueError as e:
        raise_http(e)


@router.patch("/{code}")
def rename_display(
    code: str,
    body: DisplayUpdate,
    db: Session = Depends(get_db),
    registry: DisplayRegistry = Depends(get_registry),
) -> dict[str, Any]:
    try:
        return display_update.rename_display(db, code=code, name=body.name, registry=registry)
    except ValueError as e:
        raise_http(e)


@router.delete("/{code}")
def deactivate_display(
    code: str,
    db: Session = Depends(get_db),
    registry: DisplayRegistry = Depends(get_registry),
) -> dict[str, Any]:
    """Deactivate a display; it stays in the store for history."""
    try:
        return display_update.deactivate_display(db, code=code, registry=registry)
    except ValueError as e:
        raise_http(e)


@router.post("/{code}/commands", status_code=202)
def send_command(
    code: str,
    body: CommandCreate,
    db: Session = Depends(get_db),
    registry: DisplayRegistry = Depends(get_registry),
) -> dict[str, Any]:
    """Queue a command; it is delivered on the display's next poll."""
    try:
        return command_send.send_command(
            db, code=code, command_type=body.type, payload=body.payload, registry=registry
        )
    except ValueError as e:
        raise_http(e)


@router.post("/{code}/playlist")
def assign_playlist(
    code: str,
    body: PlaylistAssignment,
    db: Session = Depends(get_db),
    timeline: TimelineManager = Depends(get_timeline),
) -> dict[str, Any]:
    """Assign a playlist and materialise the display's first timeline."""
    try:
        return playlist_assign.assign_playlist(
            db, code=code, playlist_identifier=body.playlist_id, timeline=timeline
        )
    except ValueError as e:
        raise_http(e)


@router.get("/{code}/timeline")
def get_timeline_view(
    code: str,
    limit: int = Query(10, ge=1, le=500, description="Number of upcoming entries"),
    all_entries: bool = Query(False, alias="all", description="Return the whole timeline"),
    db: Session = Depends(get_db),
    timeline: TimelineManager = Depends(get_timeline),
) -> dict[str, Any]:
    try:
        return timeline_inspect.inspect_timeline(
            db, code=code, timeline=timeline, limit=limit, include_all=all_entries
        )
    except ValueError as e:
        raise_http(e)


@router.post("/{code}/timeline/reset-position")
def reset_position(
    code: str,
    db: Session = Depends(get_db),
    timeline: TimelineManager = Depends(get_timeline),
) -> dict[str, Any]:
    try:
        return timeline_inspect.reset_timeline_position(db, code=code, timeline=timeline)
    except ValueError as e:
        raise_http(e)


@router.post("/{code}/timeline/repopulate")
def repopulate(
    code: str,
    db: Session = Depends(get_db),
    timeline: TimelineManager = Depends(get_timeline),
) -> dict[str, Any]:
    try:
        return timeline_inspect.repopulate_timeline(db, code=code, timeline=timeline)
    except ValueError as e:
        raise_http(e)


@router.post("/{code}/stop")
def stop_display(
    code: str,
    db: Session = Depends(get_db),
    timeline: TimelineManager = Depends(get_timeline),
) -> dict[str, Any]:
    """Clear the timeline and return the display to idle."""
    try:
        return timeline_inspect.stop_display(db, code=code, timeline=timeline)
    except ValueError as e:
        raise_http(e)
