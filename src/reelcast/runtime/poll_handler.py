"""
Poll Protocol Handler: Composes the single reply a display receives per poll.

Order of work for one poll:
  1. resolve the display (unknown code is a hard error)
  2. record the reported state and heartbeat
  3. apply a reported completion or skip, which advances the cursor
  4. drain pending commands
  5. resolve the next entry, restarting the loop when the timeline is exhausted
  6. attach progress and the stored playback state

Polls are at-least-once: a retried poll re-reports the same completion, which the
Timeline Manager treats as a no-op, and the next entry is withheld while the
display says it is already playing it.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..domain.entities import Display, TimelineEntry
from ..infra.exceptions import StoreError
from ..shared.types import LoopOutcome
from .display_registry import DisplayRegistry, PollReport, serialize_display
from .timeline_manager import TimelineManager, serialize_entry

logger = logging.getLogger(__name__)


class PollHandler:
    def __init__(self, registry: DisplayRegistry, timeline: TimelineManager) -> None:
        self.registry = registry
        self.timeline = timeline

    def handle_poll(self, db: Session, code: str, report: PollReport | None = None) -> dict[str, Any]:
        """Process one poll and build the reply.

        Raises DisplayNotFoundError for an unknown code and StoreError when the
        store fails mid-poll (the unit of work is rolled back).
        """
        report = report or PollReport()
        display = self.registry.require_display(db, code)
        try:
            return self._handle(db, display, report)
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("Poll failed for display %s", display.code)
            raise StoreError(f"Poll failed for display {code}") from e

    def _handle(self, db: Session, display: Display, report: PollReport) -> dict[str, Any]:
        self.registry.record_poll(db, display, report)
        self._apply_transitions(db, display, report)

        commands = self.registry.get_and_clear_commands(db, display)

        entry = self.timeline.get_next_timeline_video(db, display)
        if entry is None:
            outcome = self.timeline.check_and_start_new_loop(db, display)
            if outcome in (LoopOutcome.RESTARTED, LoopOutcome.NOT_EXHAUSTED):
                entry = self.timeline.get_next_timeline_video(db, display)
            else:
                logger.debug("Display %s has no next entry (%s)", display.code, outcome.value)

        next_video = None
        if entry is not None and str(entry.id) != (report.current_timeline_entry_id or ""):
            next_video = self._entry_payload(db, entry)

        progress = self.timeline.get_timeline_progress(db, display)
        return {
            "commands": commands,
            "nextVideo": next_video,
            "displayName": display.name,
            "progress": progress,
            "status": "ok",
            "playbackState": self.registry.playback_snapshot(display),
        }

    def _apply_transitions(self, db: Session, display: Display, report: PollReport) -> None:
        if report.completed_timeline_entry_id:
            entry = self.timeline.get_entry(db, display, report.completed_timeline_entry_id)
            if entry is None:
                logger.warning(
                    "Display %s reported unknown completed entry %s",
                    display.code,
                    report.completed_timeline_entry_id,
                )
            else:
                self.timeline.mark_played(db, display, entry)

        if report.skipped_timeline_entry_id:
            entry = self.timeline.get_entry(db, display, report.skipped_timeline_entry_id)
            if entry is None:
                logger.warning(
                    "Display %s reported unknown skipped entry %s",
                    display.code,
                    report.skipped_timeline_entry_id,
                )
            else:
                self.timeline.mark_skipped(db, display, entry)

    def _entry_payload(self, db: Session, entry: TimelineEntry) -> dict[str, Any]:
        return serialize_entry(
            entry, {"totalVideosInBlock": self.timeline.total_videos_in_block(db, entry)}
        )

    def status_view(self, db: Session, code: str) -> dict[str, Any]:
        """Admin snapshot: the display record, whether it is online, and progress."""
        display = self.registry.require_display(db, code)
        return {
            "display": serialize_display(display, is_online=self.registry.is_online(display)),
            "progress": self.timeline.get_timeline_progress(db, display),
        }
