"""create_scheduler_tables

Revision ID: 3f1c9a7d2b10
Revises:
Create Date: 2026-03-01 00:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f1c9a7d2b10"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

playback_state = sa.Enum("idle", "loading", "playing", "paused", name="playback_state")
fetch_mode = sa.Enum("newest", "random", name="block_fetch_mode")
video_format = sa.Enum("mixed", "wide", "tall", name="block_video_format")
entry_status = sa.Enum("queued", "played", "skipped", name="timeline_entry_status")


def upgrade() -> None:
    op.create_table(
        "playlists",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("loop", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_playlists"),
    )

    op.create_table(
        "displays",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("code", sa.String(length=16), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("current_video_id", sa.String(length=255), nullable=True),
        sa.Column("current_timeline_entry_id", sa.String(length=64), nullable=True),
        sa.Column("current_position", sa.Float(), nullable=False),
        sa.Column("playback_state", playback_state, nullable=False),
        sa.Column("is_playing", sa.Boolean(), nullable=False),
        sa.Column("is_muted", sa.Boolean(), nullable=False),
        sa.Column("video_position", sa.Float(), nullable=False),
        sa.Column("last_state_change", sa.DateTime(timezone=True), nullable=True),
        sa.Column("playlist_id", sa.Uuid(), nullable=True),
        sa.Column("timeline_position", sa.Integer(), nullable=False),
        sa.Column("loop_count", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.CheckConstraint(
            "timeline_position >= 0", name="ck_displays_timeline_position_non_negative"
        ),
        sa.ForeignKeyConstraint(
            ["playlist_id"],
            ["playlists.id"],
            name="fk_displays_playlist_id_playlists",
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_displays"),
        sa.UniqueConstraint("code", name="uq_displays_code"),
    )

    op.create_table(
        "playlist_blocks",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("playlist_id", sa.Uuid(), nullable=False),
        sa.Column("block_order", sa.Integer(), nullable=False),
        sa.Column("search_term", sa.Text(), nullable=False),
        sa.Column("video_count", sa.Integer(), nullable=False),
        sa.Column("fetch_mode", fetch_mode, nullable=False),
        sa.Column("video_format", video_format, nullable=False),
        sa.Column("times_played", sa.Integer(), nullable=False),
        sa.Column("last_played_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("video_count >= 1", name="ck_playlist_blocks_video_count_positive"),
        sa.ForeignKeyConstraint(
            ["playlist_id"],
            ["playlists.id"],
            name="fk_playlist_blocks_playlist_id_playlists",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_playlist_blocks"),
        sa.UniqueConstraint("playlist_id", "block_order", name="uq_playlist_blocks_order"),
    )

    op.create_table(
        "timeline_entries",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("display_id", sa.Uuid(), nullable=False),
        sa.Column("playlist_id", sa.Uuid(), nullable=False),
        sa.Column("block_id", sa.Uuid(), nullable=False),
        sa.Column("video_id", sa.String(length=255), nullable=False),
        sa.Column("video_data", sa.JSON(), nullable=True),
        sa.Column("block_position", sa.Integer(), nullable=False),
        sa.Column("timeline_position", sa.Integer(), nullable=False),
        sa.Column("loop_iteration", sa.Integer(), nullable=False),
        sa.Column("status", entry_status, nullable=False),
        sa.Column("played_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(
            ["display_id"],
            ["displays.id"],
            name="fk_timeline_entries_display_id_displays",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["block_id"],
            ["playlist_blocks.id"],
            name="fk_timeline_entries_block_id_playlist_blocks",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_timeline_entries"),
        sa.UniqueConstraint(
            "display_id", "timeline_position", name="uq_timeline_entries_display_position"
        ),
    )
    op.create_index(
        "ix_timeline_entries_display_status",
        "timeline_entries",
        ["display_id", "status", "timeline_position"],
    )

    op.create_table(
        "display_commands",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("display_id", sa.Uuid(), nullable=False),
        sa.Column("command_type", sa.String(length=32), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column("delivered", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(
            ["display_id"],
            ["displays.id"],
            name="fk_display_commands_display_id_displays",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_display_commands"),
    )
    op.create_index(
        "ix_display_commands_pending", "display_commands", ["display_id", "delivered", "id"]
    )

    op.create_table(
        "play_history",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("display_id", sa.Uuid(), nullable=False),
        sa.Column("video_id", sa.String(length=255), nullable=False),
        sa.Column("block_id", sa.Uuid(), nullable=True),
        sa.Column("search_term", sa.Text(), nullable=True),
        sa.Column("loop_iteration", sa.Integer(), nullable=False),
        sa.Column("played_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(
            ["display_id"],
            ["displays.id"],
            name="fk_play_history_display_id_displays",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_play_history"),
    )
    op.create_index(
        "ix_play_history_display_played", "play_history", ["display_id", "played_at"]
    )


def downgrade() -> None:
    op.drop_index("ix_play_history_display_played", table_name="play_history")
    op.drop_table("play_history")
    op.drop_index("ix_display_commands_pending", table_name="display_commands")
    op.drop_table("display_commands")
    op.drop_index("ix_timeline_entries_display_status", table_name="timeline_entries")
    op.drop_table("timeline_entries")
    op.drop_table("playlist_blocks")
    op.drop_table("displays")
    op.drop_table("playlists")

    bind = op.get_bind()
    for enum in (entry_status, video_format, fetch_mode, playback_state):
        enum.drop(bind, checkfirst=True)
