"""
Timeline Manager: Materialises a display's playlist into a concrete, ordered
timeline and moves the display's cursor through it.

Invariants maintained here:
  - timeline positions for one display are 0..n-1, contiguous and unique
  - the display cursor (``Display.timeline_position``) only moves forward, to
    ``entry.timeline_position + 1``, except for a full reset to 0
  - "next" is the queued entry with the smallest position at or after the cursor
  - at most one loop restart per display runs at a time (LoopRestartGuard)

Population resolves every block before touching any row, then replaces the
timeline in a single transaction, so a failed or empty resolution never leaves a
display without its previous entries. A loop restart first commits whatever the
caller has pending, so the store is never write-locked while the resolver runs.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..content.resolver import ResolverGateway, Video, widen_search_term
from ..domain.entities import Block, Display, PlayHistory, Playlist, TimelineEntry
from ..infra.exceptions import ValidationError
from ..shared.timeutil import utcnow
from ..shared.types import EntryStatus, LoopOutcome, PlaybackState, TimelineState
from .restart_guard import LoopRestartGuard

logger = logging.getLogger(__name__)

# One guard per process: every TimelineManager in this process shares it.
_PROCESS_GUARD = LoopRestartGuard()

DEFAULT_HISTORY_WINDOW = 200


@dataclass(frozen=True)
class PlannedEntry:
    """A resolved video waiting to be written as a timeline entry."""

    block: Block
    video: Video
    block_position: int


class TimelineManager:
    """Owns population, next-entry resolution, cursor advancement and loop restart."""

    def __init__(
        self,
        gateway: ResolverGateway,
        *,
        guard: LoopRestartGuard | None = None,
        history_window: int = DEFAULT_HISTORY_WINDOW,
    ) -> None:
        self.gateway = gateway
        self.guard = guard or _PROCESS_GUARD
        self.history_window = history_window

    # ------------------------------------------------------------------
    # Population
    # ------------------------------------------------------------------

    def populate_timeline(
        self,
        db: Session,
        display: Display,
        playlist: Playlist | None = None,
        *,
        loop_iteration: int | None = None,
    ) -> int:
        """Replace the display's timeline with a fresh materialisation of ``playlist``.

        Resets the cursor to 0 and commits. Returns the number of entries written.
        """
        playlist = playlist or display.playlist
        if playlist is None:
            raise ValidationError(f"Display {display.code} has no playlist assigned")

        iteration = display.loop_count if loop_iteration is None else loop_iteration
        planned = self.plan_timeline(db, display, playlist)
        try:
            self._replace_timeline(db, display, playlist, planned, iteration)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise

        logger.info(
            "Populated timeline for display %s: %d entries across %d blocks (loop %d)",
            display.code,
            len(planned),
            len(playlist.blocks),
            iteration,
        )
        return len(planned)

    def plan_timeline(self, db: Session, display: Display, playlist: Playlist) -> list[PlannedEntry]:
        """Resolve every block of ``playlist`` in order without writing anything."""
        recent = self._recent_history(db, display)
        chosen: set[str] = set()
        planned: list[PlannedEntry] = []
        for block in playlist.blocks:
            videos = self._resolve_block(block, recent | chosen)
            for index, video in enumerate(videos):
                planned.append(PlannedEntry(block=block, video=video, block_position=index))
                chosen.add(video.id)
        return planned

    def _resolve_block(self, block: Block, exclude: set[str]) -> list[Video]:
        """Resolve one block, falling back until something plays or nothing can.

        Ladder: query, retry once, widened term, then accept repeats by dropping
        the exclusions. A block that still resolves empty contributes nothing.
        """
        term = block.search_term
        videos = self._fetch(block, term, exclude)
        if not videos:
            logger.info("No videos for %r on first attempt, retrying", term)
            videos = self._fetch(block, term, exclude)

        widened = widen_search_term(term)
        if not videos and widened:
            logger.info("Widening %r to %r", term, widened)
            videos = self._fetch(block, widened, exclude)

        if not videos and exclude:
            logger.info("Accepting recently played videos for %r", term)
            videos = self._fetch(block, term, set())
            if not videos and widened:
                videos = self._fetch(block, widened, set())

        if not videos:
            logger.warning(
                "Block %d (%r) resolved no videos; skipping it for this loop",
                block.block_order,
                term,
            )
        elif len(videos) < block.video_count:
            logger.warning(
                "Block %d (%r) resolved %d of %d videos",
                block.block_order,
                term,
                len(videos),
                block.video_count,
            )
        return videos

    def _fetch(self, block: Block, term: str, exclude: set[str]) -> list[Video]:
        raw = self.gateway.resolve(
            term,
            block.video_count,
            mode=block.fetch_mode,
            video_format=block.video_format,
            exclude_ids=sorted(exclude),
        )
        seen: set[str] = set()
        accepted: list[Video] = []
        for video in raw:
            if video.id in seen or video.id in exclude:
                continue
            if not video.matches_format(block.video_format):
                logger.debug(
                    "Dropping %s: %sx%s does not match format %s",
                    video.id,
                    video.width,
                    video.height,
                    block.video_format,
                )
                continue
            seen.add(video.id)
            accepted.append(video)
            if len(accepted) >= block.video_count:
                break
        return accepted

    def _replace_timeline(
        self,
        db: Session,
        display: Display,
        playlist: Playlist,
        planned: Sequence[PlannedEntry],
        loop_iteration: int,
    ) -> None:
        db.execute(delete(TimelineEntry).where(TimelineEntry.display_id == display.id))
        db.add_all(
            TimelineEntry(
                display_id=display.id,
                playlist_id=playlist.id,
                block_id=item.block.id,
                video_id=item.video.id,
                video_data=item.video.to_snapshot(),
                block_position=item.block_position,
                timeline_position=position,
                loop_iteration=loop_iteration,
                status=EntryStatus.QUEUED.value,
            )
            for position, item in enumerate(planned)
        )
        display.timeline_position = 0
        db.flush()

    def _recent_history(self, db: Session, display: Display) -> set[str]:
        if self.history_window <= 0:
            return set()
        rows = db.scalars(
            select(PlayHistory.video_id)
            .where(PlayHistory.display_id == display.id)
            .order_by(PlayHistory.played_at.desc())
            .limit(self.history_window)
        ).all()
        return set(rows)

    # ------------------------------------------------------------------
    # Serving
    # ------------------------------------------------------------------

    def get_next_timeline_video(self, db: Session, display: Display) -> TimelineEntry | None:
        """Queued entry with the smallest position at or after the cursor."""
        return db.scalars(
            select(TimelineEntry)
            .where(
                TimelineEntry.display_id == display.id,
                TimelineEntry.status == EntryStatus.QUEUED.value,
                TimelineEntry.timeline_position >= display.timeline_position,
            )
            .order_by(TimelineEntry.timeline_position.asc())
            .limit(1)
        ).first()

    def get_entry_by_id(self, db: Session, entry_id: Any) -> TimelineEntry | None:
        if not isinstance(entry_id, uuid.UUID):
            try:
                entry_id = uuid.UUID(str(entry_id))
            except ValueError:
                return None
        return db.get(TimelineEntry, entry_id)

    def get_entry(self, db: Session, display: Display, entry_id: Any) -> TimelineEntry | None:
        """The display's entry with ``entry_id``; None for unknown or foreign ids."""
        entry = self.get_entry_by_id(db, entry_id)
        if entry is None or entry.display_id != display.id:
            return None
        return entry

    def mark_played(self, db: Session, display: Display, entry: TimelineEntry) -> bool:
        """Mark ``entry`` played and advance the cursor past it.

        Returns False (and changes nothing) when the entry is no longer queued or
        lies behind the cursor, e.g. a retried poll reporting the same completion.
        """
        return self._mark(db, display, entry, EntryStatus.PLAYED)

    def mark_skipped(self, db: Session, display: Display, entry: TimelineEntry) -> bool:
        """Mark ``entry`` skipped; it is forfeited for the rest of this loop."""
        return self._mark(db, display, entry, EntryStatus.SKIPPED)

    def _mark(
        self, db: Session, display: Display, entry: TimelineEntry, status: EntryStatus
    ) -> bool:
        if entry.display_id != display.id:
            raise ValidationError(
                f"Timeline entry {entry.id} does not belong to display {display.code}"
            )
        if entry.timeline_position < display.timeline_position:
            logger.debug(
                "Ignoring %s for entry at %d behind cursor %d on %s",
                status.value,
                entry.timeline_position,
                display.timeline_position,
                display.code,
            )
            return False

        now = utcnow()
        # Conditional single-row updates: a duplicate report loses the race
        # and changes nothing.
        result = db.execute(
            update(TimelineEntry)
            .where(
                TimelineEntry.id == entry.id,
                TimelineEntry.status == EntryStatus.QUEUED.value,
            )
            .values(status=status.value, played_at=now)
        )
        if result.rowcount == 0:
            return False

        db.execute(
            update(Display)
            .where(
                Display.id == display.id,
                Display.timeline_position <= entry.timeline_position,
            )
            .values(timeline_position=entry.timeline_position + 1)
        )

        if status is EntryStatus.PLAYED:
            db.add(
                PlayHistory(
                    display_id=display.id,
                    video_id=entry.video_id,
                    block_id=entry.block_id,
                    search_term=entry.block.search_term if entry.block else None,
                    loop_iteration=entry.loop_iteration,
                    played_at=now,
                )
            )
            db.execute(
                update(Block)
                .where(Block.id == entry.block_id)
                .values(times_played=Block.times_played + 1, last_played_at=now)
            )
        db.flush()
        db.refresh(display)
        return True

    def total_videos_in_block(self, db: Session, entry: TimelineEntry) -> int:
        """Materialised size of the entry's block in this timeline."""
        count = db.scalar(
            select(func.count())
            .select_from(TimelineEntry)
            .where(
                TimelineEntry.display_id == entry.display_id,
                TimelineEntry.block_id == entry.block_id,
            )
        )
        if count:
            return int(count)
        return entry.block.video_count if entry.block else 1

    def get_upcoming(self, db: Session, display: Display, limit: int = 10) -> list[TimelineEntry]:
        return list(
            db.scalars(
                select(TimelineEntry)
                .where(
                    TimelineEntry.display_id == display.id,
                    TimelineEntry.status == EntryStatus.QUEUED.value,
                    TimelineEntry.timeline_position >= display.timeline_position,
                )
                .order_by(TimelineEntry.timeline_position.asc())
                .limit(limit)
            ).all()
        )

    def get_all_entries(self, db: Session, display: Display) -> list[TimelineEntry]:
        return list(
            db.scalars(
                select(TimelineEntry)
                .where(TimelineEntry.display_id == display.id)
                .order_by(TimelineEntry.timeline_position.asc())
            ).all()
        )

    # ------------------------------------------------------------------
    # Looping
    # ------------------------------------------------------------------

    def check_and_start_new_loop(self, db: Session, display: Display) -> LoopOutcome:
        """Regenerate an exhausted, looping timeline exactly once.

        Never blocks: when another caller is already restarting this display the
        outcome is IN_PROGRESS and the next poll simply tries again.
        """
        playlist = display.playlist
        if playlist is None:
            return LoopOutcome.NO_PLAYLIST
        if self.get_next_timeline_video(db, display) is not None:
            return LoopOutcome.NOT_EXHAUSTED
        if not playlist.loop:
            return LoopOutcome.NO_RESTART

        with self.guard.claim(str(display.id)) as acquired:
            if not acquired:
                logger.info("Loop restart already in progress for display %s", display.code)
                return LoopOutcome.IN_PROGRESS

            # No write transaction stays open across resolver calls. Committing
            # also expires the display, so the re-check sees a restart that
            # finished between the first check and the claim.
            db.commit()
            if self.get_next_timeline_video(db, display) is not None:
                return LoopOutcome.NOT_EXHAUSTED

            next_iteration = display.loop_count + 1
            planned = self.plan_timeline(db, display, playlist)
            if not planned:
                logger.warning(
                    "Loop %d for display %s resolved no videos; keeping exhausted timeline",
                    next_iteration,
                    display.code,
                )
                return LoopOutcome.NO_CONTENT

            try:
                self._replace_timeline(db, display, playlist, planned, next_iteration)
                display.loop_count = next_iteration
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                raise

            logger.info(
                "Started loop %d for display %s with %d entries",
                next_iteration,
                display.code,
                len(planned),
            )
            return LoopOutcome.RESTARTED

    # ------------------------------------------------------------------
    # Observation and repair
    # ------------------------------------------------------------------

    def get_timeline_progress(self, db: Session, display: Display) -> dict[str, Any] | None:
        """Aggregate progress for observers, or None while there is nothing to report.

        Derived only from the timeline rows and the cursor.
        """
        playlist = display.playlist
        if playlist is None or not playlist.blocks:
            return None

        rows = db.execute(
            select(TimelineEntry.block_id, TimelineEntry.timeline_position)
            .where(TimelineEntry.display_id == display.id)
            .order_by(TimelineEntry.timeline_position.asc())
        ).all()
        if not rows:
            return None

        counts: dict[Any, int] = {}
        first_position: dict[Any, int] = {}
        block_at: dict[int, Any] = {}
        for block_id, position in rows:
            counts[block_id] = counts.get(block_id, 0) + 1
            first_position.setdefault(block_id, position)
            block_at[position] = block_id

        materialised = [b for b in playlist.blocks if b.id in counts]
        if not materialised:
            return None
        index_of = {b.id: i for i, b in enumerate(playlist.blocks)}

        cursor = display.timeline_position
        total = len(rows)
        if cursor < total:
            current_block_id = block_at.get(cursor)
            if current_block_id is None or current_block_id not in index_of:
                return None
            block_index = index_of[current_block_id]
            position_in_block = cursor - first_position[current_block_id]
        else:
            last = materialised[-1]
            block_index = index_of[last.id]
            position_in_block = counts[last.id]

        current = playlist.blocks[block_index]
        block_total = counts.get(current.id, 0)
        clamped = min(position_in_block, max(block_total - 1, 0))
        finished = cursor >= total

        return {
            "currentBlock": {
                "index": block_index,
                "name": current.search_term,
                "position": position_in_block,
                "currentVideo": min(clamped + 1, block_total),
                "totalVideos": block_total,
                "progress": (100.0 if finished else (clamped / block_total) * 100)
                if block_total
                else 0.0,
            },
            "blocks": [
                {
                    "name": block.search_term,
                    "videoCount": counts.get(block.id, 0),
                    "targetCount": block.video_count,
                    "isActive": i == block_index and not finished,
                    "isCompleted": i < block_index or finished,
                    "timesPlayed": block.times_played,
                }
                for i, block in enumerate(playlist.blocks)
            ],
            "overallProgress": {
                "currentPosition": cursor,
                "totalInCurrentLoop": total,
                "loopCount": display.loop_count,
            },
        }

    def timeline_state(self, db: Session, display: Display) -> TimelineState:
        """Coarse state of the display's timeline for admin views."""
        if display.playlist_id is None:
            return TimelineState.UNASSIGNED
        if self.guard.is_held(str(display.id)):
            return TimelineState.LOOPING
        has_entries = db.scalar(
            select(func.count())
            .select_from(TimelineEntry)
            .where(TimelineEntry.display_id == display.id)
        )
        if not has_entries:
            return TimelineState.POPULATING
        if self.get_next_timeline_video(db, display) is not None:
            return TimelineState.SERVING
        if display.playlist is not None and display.playlist.loop:
            return TimelineState.EXHAUSTED
        return TimelineState.STOPPED

    def reset_position(self, db: Session, display: Display) -> None:
        """Rewind the cursor to 0; already played or skipped entries stay forfeited."""
        display.timeline_position = 0
        db.flush()
        logger.info("Reset timeline position for display %s", display.code)

    def clear_timeline(self, db: Session, display: Display) -> int:
        """Stop the display: drop its timeline and return playback to idle."""
        result = db.execute(delete(TimelineEntry).where(TimelineEntry.display_id == display.id))
        display.timeline_position = 0
        display.current_video_id = None
        display.current_timeline_entry_id = None
        display.current_position = 0.0
        display.video_position = 0.0
        display.playback_state = PlaybackState.IDLE.value
        display.is_playing = False
        display.last_state_change = utcnow()
        db.flush()
        logger.info("Cleared %d timeline entries for display %s", result.rowcount, display.code)
        return result.rowcount or 0


def serialize_entry(entry: TimelineEntry, extra: dict[str, Any] | None = None) -> dict[str, Any]:
    """Wire payload for a timeline entry."""
    payload = {
        "id": str(entry.id),
        "video_id": entry.video_id,
        "block_id": str(entry.block_id),
        "playlist_id": str(entry.playlist_id),
        "block_position": entry.block_position,
        "timeline_position": entry.timeline_position,
        "loop_iteration": entry.loop_iteration,
        "status": entry.status,
        "video_data": entry.video_data,
    }
    if extra:
        payload.update(extra)
    return payload


def serialize_entries(entries: Iterable[TimelineEntry]) -> list[dict[str, Any]]:
    return [serialize_entry(e) for e in entries]
