"""
Display Registry: Identity, heartbeat and reported state of displays, plus the
per-display command outbox.

Online status is never stored; it is derived from ``last_seen_at`` against the
configured online window. Commands are append-only and drained FIFO on the
display's next poll (at-most-once delivery).
"""

from __future__ import annotations

import logging
import secrets
import string
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..domain.entities import Display, DisplayCommand
from ..infra.exceptions import DisplayNotFoundError, ValidationError
from ..shared.timeutil import ensure_aware, isoformat, utcnow
from ..shared.types import CommandType, PlaybackState

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 6
MAX_CODE_ATTEMPTS = 20

REPORTED_STATUSES = {"online", "playing", "paused", "idle", "offline", "loading", "error"}


@dataclass
class PollReport:
    """State a display reports on each poll; every field is optional."""

    status: str | None = None
    current_video_id: str | None = None
    current_timeline_entry_id: str | None = None
    position: float | None = None
    completed_timeline_entry_id: str | None = None
    skipped_timeline_entry_id: str | None = None


def generate_code(length: int = CODE_LENGTH) -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def normalize_code(code: str) -> str:
    return code.strip().upper()


class DisplayRegistry:
    """Stores display identity and state; owns the command outbox."""

    def __init__(self, *, online_window_seconds: int = 30) -> None:
        self.online_window = timedelta(seconds=online_window_seconds)

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def get_display(self, db: Session, code: str) -> Display | None:
        return db.scalars(select(Display).where(Display.code == normalize_code(code))).first()

    def require_display(self, db: Session, code: str) -> Display:
        display = self.get_display(db, code)
        if display is None:
            raise DisplayNotFoundError(code)
        return display

    def create_display(self, db: Session, name: str, code: str | None = None) -> Display:
        """Create a display; a unique code is generated when none is supplied."""
        name = (name or "").strip()
        if not name:
            raise ValidationError("Display name cannot be empty")

        if code:
            code = normalize_code(code)
            if not code.isalnum() or len(code) > 16:
                raise ValidationError(f"Invalid display code: {code}")
            if self.get_display(db, code) is not None:
                raise ValidationError(f"Display code already in use: {code}")
        else:
            code = self._unique_code(db)

        display = Display(code=code, name=name)
        db.add(display)
        db.flush()
        logger.info("Created display %s (%s)", code, name)
        return display

    def register_or_get(self, db: Session, code: str, name: str | None = None) -> Display:
        """Return the display for ``code``, creating it on first contact."""
        display = self.get_display(db, code)
        if display is not None:
            return display
        return self.create_display(db, name or f"Display {normalize_code(code)}", code=code)

    def _unique_code(self, db: Session) -> str:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_code()
            if self.get_display(db, code) is None:
                return code
        raise ValidationError("Could not generate a unique display code")

    def rename_display(self, db: Session, display: Display, name: str) -> Display:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Display name cannot be empty")
        display.name = name
        db.flush()
        return display

    def deactivate_display(self, db: Session, display: Display) -> Display:
        """Deactivate rather than delete; history rows keep referencing the display."""
        display.is_active = False
        db.flush()
        logger.info("Deactivated display %s", display.code)
        return display

    def list_displays(self, db: Session, *, include_inactive: bool = False) -> list[Display]:
        query = select(Display).order_by(Display.created_at.asc(), Display.code.asc())
        if not include_inactive:
            query = query.where(Display.is_active.is_(True))
        return list(db.scalars(query).unique().all())

    def stats(self, db: Session, now: datetime | None = None) -> dict[str, int]:
        displays = self.list_displays(db)
        online = [d for d in displays if self.is_online(d, now)]
        return {
            "total": len(displays),
            "online": len(online),
            "playing": sum(1 for d in online if d.is_playing),
        }

    # ------------------------------------------------------------------
    # Heartbeat and reported state
    # ------------------------------------------------------------------

    def record_poll(self, db: Session, display: Display, report: PollReport) -> Display:
        """Stamp ``last_seen_at`` and store whatever state the display reported."""
        display.last_seen_at = utcnow()
        if report.status:
            if report.status not in REPORTED_STATUSES:
                logger.debug("Display %s reported unknown status %r", display.code, report.status)
            display.status = report.status[:32]
        if report.current_video_id is not None:
            display.current_video_id = report.current_video_id or None
        if report.current_timeline_entry_id is not None:
            display.current_timeline_entry_id = report.current_timeline_entry_id or None
        if report.position is not None:
            display.current_position = max(float(report.position), 0.0)
        db.flush()
        return display

    def update_playback_state(
        self,
        db: Session,
        display: Display,
        *,
        state: PlaybackState | str | None = None,
        is_playing: bool | None = None,
        is_muted: bool | None = None,
        video_position: float | None = None,
    ) -> Display:
        if state is not None:
            display.playback_state = PlaybackState(state).value
        if is_playing is not None:
            display.is_playing = is_playing
        if is_muted is not None:
            display.is_muted = is_muted
        if video_position is not None:
            display.video_position = max(float(video_position), 0.0)
        display.last_state_change = utcnow()
        db.flush()
        return display

    def is_online(self, display: Display, now: datetime | None = None) -> bool:
        last_seen = ensure_aware(display.last_seen_at)
        if last_seen is None:
            return False
        return (now or utcnow()) - last_seen <= self.online_window

    def playback_snapshot(self, display: Display) -> dict[str, Any]:
        return {
            "state": display.playback_state,
            "isPlaying": display.is_playing,
            "isMuted": display.is_muted,
            "videoPosition": display.video_position,
            "lastStateChange": isoformat(display.last_state_change),
        }

    # ------------------------------------------------------------------
    # Command outbox
    # ------------------------------------------------------------------

    def enqueue_command(
        self,
        db: Session,
        display: Display,
        command_type: CommandType | str,
        payload: dict[str, Any] | None = None,
    ) -> DisplayCommand:
        """Append a command to the display's outbox.

        Playback commands also move the stored playback state so the next poll
        reply already reflects them.
        """
        try:
            kind = CommandType(command_type)
        except ValueError:
            raise ValidationError(f"Invalid command type: {command_type}") from None

        payload = dict(payload or {})
        if kind is CommandType.SEEK:
            position = payload.get("position")
            if not isinstance(position, (int, float)) or isinstance(position, bool):
                raise ValidationError("Seek command requires a numeric payload.position")

        command = DisplayCommand(
            display_id=display.id,
            command_type=kind.value,
            payload=payload or None,
        )
        db.add(command)
        self._apply_playback_command(db, display, kind, payload)
        db.flush()
        logger.info("Queued %s command for display %s", kind.value, display.code)
        return command

    def _apply_playback_command(
        self, db: Session, display: Display, kind: CommandType, payload: dict[str, Any]
    ) -> None:
        if kind is CommandType.PLAY:
            self.update_playback_state(db, display, state=PlaybackState.PLAYING, is_playing=True)
        elif kind is CommandType.PAUSE:
            self.update_playback_state(db, display, state=PlaybackState.PAUSED, is_playing=False)
        elif kind is CommandType.MUTE:
            self.update_playback_state(db, display, is_muted=True)
        elif kind is CommandType.UNMUTE:
            self.update_playback_state(db, display, is_muted=False)
        elif kind is CommandType.SEEK:
            self.update_playback_state(db, display, video_position=payload["position"])

    def pending_commands(self, db: Session, display: Display) -> list[DisplayCommand]:
        return list(
            db.scalars(
                select(DisplayCommand)
                .where(
                    DisplayCommand.display_id == display.id,
                    DisplayCommand.delivered.is_(False),
                )
                .order_by(DisplayCommand.id.asc())
            ).all()
        )

    def get_and_clear_commands(self, db: Session, display: Display) -> list[dict[str, Any]]:
        """Drain pending commands in enqueue order, marking them delivered."""
        commands = self.pending_commands(db, display)
        if not commands:
            return []
        now = utcnow()
        for command in commands:
            command.delivered = True
            command.delivered_at = now
        db.flush()
        logger.debug("Delivering %d commands to display %s", len(commands), display.code)
        return [serialize_command(c) for c in commands]

    def count_pending(self, db: Session, display: Display) -> int:
        return int(
            db.scalar(
                select(func.count())
                .select_from(DisplayCommand)
                .where(
                    DisplayCommand.display_id == display.id,
                    DisplayCommand.delivered.is_(False),
                )
            )
            or 0
        )


def serialize_command(command: DisplayCommand) -> dict[str, Any]:
    return {
        "id": command.id,
        "type": command.command_type,
        "payload": command.payload or {},
        "timestamp": isoformat(command.created_at),
    }


def serialize_display(display: Display, *, is_online: bool | None = None) -> dict[str, Any]:
    """Admin view of a display record."""
    data = {
        "id": str(display.id),
        "code": display.code,
        "name": display.name,
        "status": display.status,
        "is_active": display.is_active,
        "playlist_id": str(display.playlist_id) if display.playlist_id else None,
        "playlist_name": display.playlist.name if display.playlist else None,
        "current_video_id": display.current_video_id,
        "current_timeline_entry_id": display.current_timeline_entry_id,
        "current_position": display.current_position,
        "timeline_position": display.timeline_position,
        "loop_count": display.loop_count,
        "playback_state": display.playback_state,
        "is_playing": display.is_playing,
        "is_muted": display.is_muted,
        "video_position": display.video_position,
        "last_seen_at": isoformat(display.last_seen_at),
        "created_at": isoformat(display.created_at),
    }
    if is_online is not None:
        data["isOnline"] = is_online
    return data
