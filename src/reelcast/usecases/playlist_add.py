from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..domain.entities import Block, Playlist
from ..infra.exceptions import PlaylistNotFoundError, ValidationError
from ..shared.types import FetchMode, VideoFormat

MAX_VIDEO_COUNT = 500


def _resolve_playlist(db: Session, identifier: str) -> Playlist:
    """Resolve a playlist by UUID or by (case-insensitive) name."""
    try:
        playlist = db.get(Playlist, uuid.UUID(str(identifier)))
    except ValueError:
        playlist = None
    if playlist is None:
        matches = (
            db.query(Playlist)
            .filter(func.lower(Playlist.name) == str(identifier).strip().lower())
            .all()
        )
        if len(matches) > 1:
            raise ValidationError(f"Playlist name is ambiguous: {identifier}; use its id")
        playlist = matches[0] if matches else None
    if playlist is None:
        raise PlaylistNotFoundError(f"Playlist not found: {identifier}")
    return playlist


def _validate_blocks(blocks: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    validated: list[dict[str, Any]] = []
    for i, block in enumerate(blocks, start=1):
        search_term = block.get("search_term")
        if not isinstance(search_term, str) or not search_term.strip():
            raise ValidationError(f"Block {i}: search term is required and cannot be empty")

        video_count = block.get("video_count")
        if (
            not isinstance(video_count, int)
            or isinstance(video_count, bool)
            or not (1 <= video_count <= MAX_VIDEO_COUNT)
        ):
            raise ValidationError(
                f"Block {i}: video count must be an integer in 1..{MAX_VIDEO_COUNT}"
            )

        fetch_mode = block.get("fetch_mode") or FetchMode.RANDOM.value
        try:
            fetch_mode = FetchMode(fetch_mode).value
        except ValueError:
            raise ValidationError(f"Block {i}: fetch mode must be 'newest' or 'random'") from None

        video_format = block.get("video_format") or VideoFormat.MIXED.value
        try:
            video_format = VideoFormat(video_format).value
        except ValueError:
            raise ValidationError(
                f"Block {i}: format must be 'mixed', 'wide', or 'tall'"
            ) from None

        validated.append(
            {
                "search_term": search_term.strip(),
                "video_count": video_count,
                "fetch_mode": fetch_mode,
                "video_format": video_format,
            }
        )
    if not validated:
        raise ValidationError("A playlist needs at least one block")
    return validated


def serialize_playlist(playlist: Playlist, *, include_blocks: bool = True) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": str(playlist.id),
        "name": playlist.name,
        "loop": playlist.loop,
        "total_blocks": playlist.total_blocks,
        "total_videos": playlist.total_videos,
        "created_at": playlist.created_at.isoformat() if playlist.created_at else None,
        "updated_at": playlist.updated_at.isoformat() if playlist.updated_at else None,
    }
    if include_blocks:
        data["blocks"] = [
            {
                "id": str(block.id),
                "block_order": block.block_order,
                "search_term": block.search_term,
                "video_count": block.video_count,
                "fetch_mode": block.fetch_mode,
                "video_format": block.video_format,
                "times_played": block.times_played,
                "last_played_at": block.last_played_at.isoformat()
                if block.last_played_at
                else None,
            }
            for block in playlist.blocks
        ]
    return data


def add_playlist(
    db: Session,
    *,
    name: str,
    blocks: Iterable[Mapping[str, Any]],
    loop: bool = True,
) -> dict[str, Any]:
    """Create a Playlist with its ordered Blocks and return a contract-aligned dict.

    Raises:
        ValueError: If the name is empty or any block is invalid
    """
    if not name or not name.strip():
        raise ValidationError("name is required")
    validated = _validate_blocks(blocks)

    playlist = Playlist(name=name.strip(), loop=loop)
    playlist.blocks = [Block(block_order=order, **block) for order, block in enumerate(validated)]
    db.add(playlist)
    db.commit()
    db.refresh(playlist)

    return {
        "status": "ok",
        "playlist": serialize_playlist(playlist),
    }


__all__ = ["add_playlist"]
