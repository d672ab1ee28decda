"""Playlist administration endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from ...usecases import playlist_add, playlist_delete, playlist_list, playlist_show
from .deps import get_db, raise_http

router = APIRouter(prefix="/api/playlists", tags=["playlists"])


class BlockCreate(BaseModel):
    """One block of a playlist."""

    model_config = ConfigDict(populate_by_name=True)

    search_term: str = Field(..., alias="searchTerm", description="Words to match; -word excludes")
    video_count: int = Field(..., alias="videoCount", ge=1, description="Videos to play")
    fetch_mode: str = Field("random", alias="fetchMode", description="newest|random")
    video_format: str = Field("mixed", alias="format", description="mixed|wide|tall")


class PlaylistCreate(BaseModel):
    """Request model for creating a playlist."""

    name: str = Field(..., min_length=1, description="Playlist name")
    loop: bool = Field(True, description="Restart from the first block when exhausted")
    blocks: list[BlockCreate] = Field(..., min_length=1, description="Ordered blocks")


@router.post("", status_code=201)
def create_playlist(body: PlaylistCreate, db: Session = Depends(get_db)) -> dict[str, Any]:
    try:
        return playlist_add.add_playlist(
            db,
            name=body.name,
            loop=body.loop,
            blocks=[block.model_dump() for block in body.blocks],
        )
    except ValueError as e:
        raise_http(e)


@router.get("")
def list_playlists(db: Session = Depends(get_db)) -> dict[str, Any]:
    return playlist_list.list_playlists(db)


@router.get("/{playlist_id}")
def get_playlist(playlist_id: str, db: Session = Depends(get_db)) -> dict[str, Any]:
    try:
        return playlist_show.show_playlist(db, playlist_identifier=playlist_id)
    except ValueError as e:
        raise_http(e)


@router.delete("/{playlist_id}")
def delete_playlist(playlist_id: str, db: Session = Depends(get_db)) -> dict[str, Any]:
    try:
        return playlist_delete.delete_playlist(db, playlist_identifier=playlist_id)
    except ValueError as e:
        raise_http(e)
