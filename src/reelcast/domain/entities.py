"""
Domain entities for Reelcast.

This module contains the persistent records the scheduler works with: displays,
playlists and their blocks, the materialised per-display timeline, the command
outbox and the play history used for deduplication.

Types are the generic SQLAlchemy ones (``Uuid``, ``JSON``) so the same schema runs on
PostgreSQL in production and SQLite in development and tests.
"""

from __future__ import annotations

import uuid as uuid_module
from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy import (
    Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from ..infra.db import Base
from ..shared.types import EntryStatus, FetchMode, PlaybackState, VideoFormat


class Display(Base):
    """A registered playback client, identified by its short code."""

    __tablename__ = "displays"

    id: Mapped[uuid_module.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid_module.uuid4
    )
    code: Mapped[str] = mapped_column(String(16), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    last_seen_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Reported by the display on every poll
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="offline")
    current_video_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    current_timeline_entry_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    current_position: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    # Server-side playback state (source of truth returned on each poll)
    playback_state: Mapped[str] = mapped_column(
        SQLEnum(*[s.value for s in PlaybackState], name="playback_state"),
        nullable=False,
        default=PlaybackState.IDLE.value,
    )
    is_playing: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_muted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    video_position: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    last_state_change: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Scheduling
    playlist_id: Mapped[uuid_module.UUID | None] = mapped_column(
        Uuid, ForeignKey("playlists.id", ondelete="SET NULL"), nullable=True
    )
    timeline_position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    loop_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=sa.text("true")
    )

    playlist: Mapped[Playlist | None] = relationship("Playlist", lazy="joined")

    __table_args__ = (
        CheckConstraint("timeline_position >= 0", name="timeline_position_non_negative"),
    )

    def __repr__(self) -> str:
        return (
            f"<Display(code={self.code}, name={self.name}, "
            f"timeline_position={self.timeline_position}, loop_count={self.loop_count})>"
        )


class Playlist(Base):
    """An ordered list of search-term blocks, optionally looping."""

    __tablename__ = "playlists"

    id: Mapped[uuid_module.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid_module.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    loop: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=sa.text("true")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    blocks: Mapped[list[Block]] = relationship(
        "Block",
        back_populates="playlist",
        order_by="Block.block_order",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def total_blocks(self) -> int:
        return len(self.blocks)

    @property
    def total_videos(self) -> int:
        return sum(block.video_count for block in self.blocks)

    def __repr__(self) -> str:
        return f"<Playlist(id={self.id}, name={self.name}, loop={self.loop})>"


class Block(Base):
    """Declarative unit of a playlist: a search term and a target video count."""

    __tablename__ = "playlist_blocks"

    id: Mapped[uuid_module.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid_module.uuid4
    )
    playlist_id: Mapped[uuid_module.UUID] = mapped_column(
        Uuid, ForeignKey("playlists.id", ondelete="CASCADE"), nullable=False
    )
    block_order: Mapped[int] = mapped_column(Integer, nullable=False)
    search_term: Mapped[str] = mapped_column(Text, nullable=False)
    video_count: Mapped[int] = mapped_column(Integer, nullable=False)
    fetch_mode: Mapped[str] = mapped_column(
        SQLEnum(*[m.value for m in FetchMode], name="block_fetch_mode"),
        nullable=False,
        default=FetchMode.RANDOM.value,
    )
    video_format: Mapped[str] = mapped_column(
        SQLEnum(*[f.value for f in VideoFormat], name="block_video_format"),
        nullable=False,
        default=VideoFormat.MIXED.value,
    )
    times_played: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_played_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    playlist: Mapped[Playlist] = relationship("Playlist", back_populates="blocks")

    __table_args__ = (
        UniqueConstraint("playlist_id", "block_order", name="uq_playlist_blocks_order"),
        CheckConstraint("video_count >= 1", name="video_count_positive"),
    )

    def __repr__(self) -> str:
        return (
            f"<Block(order={self.block_order}, search_term={self.search_term!r}, "
            f"video_count={self.video_count})>"
        )


class TimelineEntry(Base):
    """One concrete video slot in a display's materialised timeline."""

    __tablename__ = "timeline_entries"

    id: Mapped[uuid_module.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid_module.uuid4
    )
    display_id: Mapped[uuid_module.UUID] = mapped_column(
        Uuid, ForeignKey("displays.id", ondelete="CASCADE"), nullable=False
    )
    playlist_id: Mapped[uuid_module.UUID] = mapped_column(Uuid, nullable=False)
    block_id: Mapped[uuid_module.UUID] = mapped_column(
        Uuid, ForeignKey("playlist_blocks.id", ondelete="CASCADE"), nullable=False
    )
    video_id: Mapped[str] = mapped_column(String(255), nullable=False)
    video_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    block_position: Mapped[int] = mapped_column(Integer, nullable=False)
    timeline_position: Mapped[int] = mapped_column(Integer, nullable=False)
    loop_iteration: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(
        SQLEnum(*[s.value for s in EntryStatus], name="timeline_entry_status"),
        nullable=False,
        default=EntryStatus.QUEUED.value,
    )
    played_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    block: Mapped[Block] = relationship("Block", passive_deletes=True)

    __table_args__ = (
        UniqueConstraint(
            "display_id", "timeline_position", name="uq_timeline_entries_display_position"
        ),
        Index("ix_timeline_entries_display_status", "display_id", "status", "timeline_position"),
    )

    def __repr__(self) -> str:
        return (
            f"<TimelineEntry(position={self.timeline_position}, video_id={self.video_id}, "
            f"status={self.status})>"
        )


class DisplayCommand(Base):
    """Pending out-of-band instruction in a display's FIFO outbox."""

    __tablename__ = "display_commands"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    display_id: Mapped[uuid_module.UUID] = mapped_column(
        Uuid, ForeignKey("displays.id", ondelete="CASCADE"), nullable=False
    )
    command_type: Mapped[str] = mapped_column(String(32), nullable=False)
    payload: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    delivered: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=sa.text("false")
    )
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_display_commands_pending", "display_id", "delivered", "id"),
    )

    def __repr__(self) -> str:
        return f"<DisplayCommand(id={self.id}, type={self.command_type}, delivered={self.delivered})>"


class PlayHistory(Base):
    """A video a display actually played; feeds recent-play deduplication."""

    __tablename__ = "play_history"

    id: Mapped[uuid_module.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid_module.uuid4
    )
    display_id: Mapped[uuid_module.UUID] = mapped_column(
        Uuid, ForeignKey("displays.id", ondelete="CASCADE"), nullable=False
    )
    video_id: Mapped[str] = mapped_column(String(255), nullable=False)
    block_id: Mapped[uuid_module.UUID | None] = mapped_column(Uuid, nullable=True)
    search_term: Mapped[str | None] = mapped_column(Text, nullable=True)
    loop_iteration: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    played_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_play_history_display_played", "display_id", "played_at"),
    )

    def __repr__(self) -> str:
        return f"<PlayHistory(display_id={self.display_id}, video_id={self.video_id})>"
