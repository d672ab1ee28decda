"""Timeline population, cursor movement, loop restart and progress."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from sqlalchemy import func, select

from reelcast.content.resolver import ResolverGateway, Video
from reelcast.domain.entities import Block, PlayHistory, TimelineEntry
from reelcast.infra.exceptions import ValidationError
from reelcast.runtime.timeline_manager import TimelineManager
from reelcast.shared.types import EntryStatus, LoopOutcome, PlaybackState, TimelineState


def _entries(db, display):
    return list(
        db.scalars(
            select(TimelineEntry)
            .where(TimelineEntry.display_id == display.id)
            .order_by(TimelineEntry.timeline_position)
        )
    )


def _play_through(db, timeline, display):
    while (entry := timeline.get_next_timeline_video(db, display)) is not None:
        assert timeline.mark_played(db, display, entry)
    db.commit()


class TestPopulateTimeline:
    def test_block_counts_round_trip(self, db, assigned_display):
        entries = _entries(db, assigned_display)

        assert [e.timeline_position for e in entries] == [0, 1, 2, 3, 4]
        assert [e.block_position for e in entries] == [0, 1, 2, 0, 1]
        assert all(e.status == EntryStatus.QUEUED.value for e in entries)
        assert all(e.video_id.startswith("sun-") for e in entries[:3])
        assert all(e.video_id.startswith("sea-") for e in entries[3:])
        assert assigned_display.timeline_position == 0
        assert len({e.video_id for e in entries}) == 5

    def test_entries_carry_video_snapshot(self, db, assigned_display):
        entry = _entries(db, assigned_display)[0]

        post = entry.video_data["post"]
        assert post["id"] == entry.video_id
        assert post["attachments"][0]["encodings"]["source"]["path"].endswith(".mp4")
        assert entry.video_data["profile"]["username"] == "creator"

    def test_empty_block_does_not_stall_population(
        self, db, timeline, playlist_factory, display_factory
    ):
        playlist = playlist_factory([("sunset", 2), ("volcano", 3), ("ocean", 2)])
        display = display_factory(playlist=playlist)

        count = timeline.populate_timeline(db, display)

        entries = _entries(db, display)
        assert count == 4
        assert [e.timeline_position for e in entries] == [0, 1, 2, 3]
        assert {e.block_id for e in entries} == {playlist.blocks[0].id, playlist.blocks[2].id}

    def test_short_block_keeps_positions_contiguous(
        self, db, timeline, playlist_factory, display_factory
    ):
        playlist = playlist_factory([("cat", 5), ("sunset", 1)])
        display = display_factory(playlist=playlist)

        assert timeline.populate_timeline(db, display) == 2
        assert [e.timeline_position for e in _entries(db, display)] == [0, 1]

    def test_format_filter(self, db, timeline, playlist_factory, display_factory):
        playlist = playlist_factory(
            [{"search_term": "sunset", "video_count": 6, "video_format": "tall"}]
        )
        display = display_factory(playlist=playlist)

        timeline.populate_timeline(db, display)

        assert {e.video_id for e in _entries(db, display)} == {"sun-2", "sun-5"}

    def test_newest_mode_orders_by_posted_at(
        self, db, timeline, playlist_factory, display_factory
    ):
        playlist = playlist_factory(
            [{"search_term": "sunset", "video_count": 2, "fetch_mode": "newest"}]
        )
        display = display_factory(playlist=playlist)

        timeline.populate_timeline(db, display)

        assert [e.video_id for e in _entries(db, display)] == ["sun-6", "sun-5"]

    def test_exclusion_terms_are_honoured(self, db, timeline, playlist_factory, display_factory):
        playlist = playlist_factory([("ocean -storm", 4)])
        display = display_factory(playlist=playlist)

        timeline.populate_timeline(db, display)

        assert {e.video_id for e in _entries(db, display)} == {"sea-1", "sea-2", "sea-3"}

    def test_widened_term_used_when_phrase_has_no_match(
        self, db, timeline, playlist_factory, display_factory
    ):
        playlist = playlist_factory([("big sunset", 2)])
        display = display_factory(playlist=playlist)

        assert timeline.populate_timeline(db, display) == 2
        assert all(e.video_id.startswith("sun-") for e in _entries(db, display))

    def test_recently_played_videos_are_avoided(
        self, db, timeline, playlist_factory, display_factory
    ):
        playlist = playlist_factory([("ocean", 2)])
        display = display_factory(playlist=playlist)
        for video_id in ("sea-1", "sea-2"):
            db.add(PlayHistory(display_id=display.id, video_id=video_id))
        db.commit()

        timeline.populate_timeline(db, display)

        assert {e.video_id for e in _entries(db, display)} == {"sea-3", "sea-4"}

    def test_repeats_accepted_when_history_exhausts_catalog(
        self, db, timeline, playlist_factory, display_factory
    ):
        playlist = playlist_factory([("cat", 1)])
        display = display_factory(playlist=playlist)
        db.add(PlayHistory(display_id=display.id, video_id="cat-1"))
        db.commit()

        assert timeline.populate_timeline(db, display) == 1
        assert _entries(db, display)[0].video_id == "cat-1"

    def test_resolver_failure_degrades_to_empty_block(
        self, db, guard, playlist_factory, display_factory
    ):
        failing = MagicMock()
        failing.resolve.side_effect = RuntimeError("search backend down")
        gateway = ResolverGateway(failing, timeout_seconds=1.0)
        manager = TimelineManager(gateway, guard=guard)
        playlist = playlist_factory([("sunset", 2)])
        display = display_factory(playlist=playlist)
        try:
            assert manager.populate_timeline(db, display) == 0
        finally:
            gateway.shutdown()
        assert _entries(db, display) == []

    def test_repopulate_replaces_existing_entries(self, db, timeline, assigned_display):
        first = {e.id for e in _entries(db, assigned_display)}
        entry = timeline.get_next_timeline_video(db, assigned_display)
        timeline.mark_played(db, assigned_display, entry)
        db.commit()

        timeline.populate_timeline(db, assigned_display)

        entries = _entries(db, assigned_display)
        assert len(entries) == 5
        assert first.isdisjoint({e.id for e in entries})
        assert assigned_display.timeline_position == 0

    def test_populate_without_playlist_raises(self, db, timeline, display_factory):
        display = display_factory()
        with pytest.raises(ValidationError):
            timeline.populate_timeline(db, display)


class TestCursor:
    def test_next_is_lowest_queued_at_or_after_cursor(self, db, timeline, assigned_display):
        entry = timeline.get_next_timeline_video(db, assigned_display)
        assert entry.timeline_position == 0

    def test_mark_played_advances_cursor_by_one(self, db, timeline, assigned_display):
        positions = [assigned_display.timeline_position]
        while (entry := timeline.get_next_timeline_video(db, assigned_display)) is not None:
            assert entry.timeline_position >= assigned_display.timeline_position
            timeline.mark_played(db, assigned_display, entry)
            positions.append(assigned_display.timeline_position)
        db.commit()

        assert positions == [0, 1, 2, 3, 4, 5]

    def test_mark_played_records_history_and_block_stats(self, db, timeline, assigned_display):
        entry = timeline.get_next_timeline_video(db, assigned_display)
        timeline.mark_played(db, assigned_display, entry)
        db.commit()

        history = db.scalars(select(PlayHistory)).all()
        assert [h.video_id for h in history] == [entry.video_id]
        assert history[0].search_term == "sunset"
        block = db.get(Block, entry.block_id)
        assert block.times_played == 1
        assert block.last_played_at is not None
        assert entry.status == EntryStatus.PLAYED.value
        assert entry.played_at is not None

    def test_duplicate_mark_is_noop(self, db, timeline, assigned_display):
        entry = timeline.get_next_timeline_video(db, assigned_display)
        assert timeline.mark_played(db, assigned_display, entry) is True
        assert timeline.mark_played(db, assigned_display, entry) is False
        db.commit()

        assert assigned_display.timeline_position == 1
        assert db.scalar(select(func.count()).select_from(PlayHistory)) == 1

    def test_stale_mark_below_cursor_does_not_rewind(self, db, timeline, assigned_display):
        entries = _entries(db, assigned_display)
        timeline.mark_played(db, assigned_display, entries[0])
        timeline.mark_played(db, assigned_display, entries[3])
        db.commit()
        assert assigned_display.timeline_position == 4

        assert timeline.mark_skipped(db, assigned_display, entries[0]) is False
        assert timeline.mark_played(db, assigned_display, entries[2]) is False
        assert assigned_display.timeline_position == 4
        assert entries[2].status == EntryStatus.QUEUED.value

    def test_skipped_entry_is_forfeited(self, db, timeline, assigned_display):
        entry = timeline.get_next_timeline_video(db, assigned_display)
        assert timeline.mark_skipped(db, assigned_display, entry)
        db.commit()

        assert entry.status == EntryStatus.SKIPPED.value
        assert assigned_display.timeline_position == 1
        assert timeline.get_next_timeline_video(db, assigned_display).timeline_position == 1
        assert db.scalar(select(func.count()).select_from(PlayHistory)) == 0

    def test_completion_far_ahead_jumps_cursor(self, db, timeline, assigned_display):
        entries = _entries(db, assigned_display)
        timeline.mark_played(db, assigned_display, entries[3])
        db.commit()

        assert assigned_display.timeline_position == 4
        assert timeline.get_next_timeline_video(db, assigned_display).timeline_position == 4

    def test_mark_for_other_display_is_rejected(
        self, db, timeline, assigned_display, display_factory
    ):
        other = display_factory(code="D2", name="Cafe")
        entry = timeline.get_next_timeline_video(db, assigned_display)

        with pytest.raises(ValidationError):
            timeline.mark_played(db, other, entry)

    def test_get_entry_ignores_foreign_and_malformed_ids(
        self, db, timeline, assigned_display, display_factory
    ):
        other = display_factory(code="D2", name="Cafe")
        entry = timeline.get_next_timeline_video(db, assigned_display)

        assert timeline.get_entry(db, assigned_display, str(entry.id)) is entry
        assert timeline.get_entry(db, other, str(entry.id)) is None
        assert timeline.get_entry(db, assigned_display, "not-a-uuid") is None

    def test_total_videos_in_block_counts_materialised_entries(
        self, db, timeline, assigned_display
    ):
        entries = _entries(db, assigned_display)
        assert timeline.total_videos_in_block(db, entries[0]) == 3
        assert timeline.total_videos_in_block(db, entries[4]) == 2

    def test_upcoming_starts_at_cursor(self, db, timeline, assigned_display):
        entry = timeline.get_next_timeline_video(db, assigned_display)
        timeline.mark_played(db, assigned_display, entry)
        db.commit()

        upcoming = timeline.get_upcoming(db, assigned_display, limit=2)

        assert [e.timeline_position for e in upcoming] == [1, 2]
        assert len(timeline.get_all_entries(db, assigned_display)) == 5


class TestLoopRestart:
    def test_scenario_restarts_after_exhaustion(self, db, timeline, assigned_display):
        _play_through(db, timeline, assigned_display)
        assert assigned_display.timeline_position == 5
        assert timeline.get_next_timeline_video(db, assigned_display) is None

        outcome = timeline.check_and_start_new_loop(db, assigned_display)

        entries = _entries(db, assigned_display)
        assert outcome is LoopOutcome.RESTARTED
        assert assigned_display.loop_count == 1
        assert assigned_display.timeline_position == 0
        assert [e.timeline_position for e in entries] == [0, 1, 2, 3, 4]
        assert all(e.status == EntryStatus.QUEUED.value for e in entries)
        assert all(e.loop_iteration == 1 for e in entries)

    def test_not_exhausted(self, db, timeline, assigned_display):
        assert timeline.check_and_start_new_loop(db, assigned_display) is LoopOutcome.NOT_EXHAUSTED
        assert assigned_display.loop_count == 0

    def test_no_playlist(self, db, timeline, display_factory):
        display = display_factory()
        assert timeline.check_and_start_new_loop(db, display) is LoopOutcome.NO_PLAYLIST

    def test_loop_disabled(self, db, timeline, playlist_factory, display_factory):
        playlist = playlist_factory([("sunset", 1)], loop=False)
        display = display_factory(playlist=playlist)
        timeline.populate_timeline(db, display)
        _play_through(db, timeline, display)

        assert timeline.check_and_start_new_loop(db, display) is LoopOutcome.NO_RESTART
        assert timeline.timeline_state(db, display) is TimelineState.STOPPED
        assert display.loop_count == 0

    def test_guard_held_returns_in_progress(self, db, timeline, guard, assigned_display):
        _play_through(db, timeline, assigned_display)

        with guard.claim(str(assigned_display.id)):
            assert timeline.timeline_state(db, assigned_display) is TimelineState.LOOPING
            outcome = timeline.check_and_start_new_loop(db, assigned_display)

        assert outcome is LoopOutcome.IN_PROGRESS
        assert assigned_display.loop_count == 0
        assert not guard.is_held(str(assigned_display.id))

    def test_no_content_keeps_exhausted_rows(
        self, db, timeline, resolver, assigned_display
    ):
        _play_through(db, timeline, assigned_display)
        resolver._videos.clear()

        outcome = timeline.check_and_start_new_loop(db, assigned_display)

        assert outcome is LoopOutcome.NO_CONTENT
        assert len(_entries(db, assigned_display)) == 5
        assert assigned_display.loop_count == 0
        assert timeline.timeline_state(db, assigned_display) is TimelineState.EXHAUSTED

    def test_new_loop_prefers_unplayed_videos(self, db, timeline, assigned_display):
        played = {e.video_id for e in _entries(db, assigned_display)}
        _play_through(db, timeline, assigned_display)

        timeline.check_and_start_new_loop(db, assigned_display)

        fresh = [e.video_id for e in _entries(db, assigned_display)]
        sunset_fresh = [v for v in fresh if v.startswith("sun-")]
        assert len(sunset_fresh) == 3
        assert set(sunset_fresh).isdisjoint(played)


class TestProgress:
    def test_none_without_playlist_or_entries(
        self, db, timeline, display_factory, playlist_factory
    ):
        assert timeline.get_timeline_progress(db, display_factory()) is None
        playlist = playlist_factory([("sunset", 1)], name="Unpopulated")
        display = display_factory(code="D2", playlist=playlist)
        assert timeline.get_timeline_progress(db, display) is None

    def test_progress_at_start(self, db, timeline, assigned_display):
        progress = timeline.get_timeline_progress(db, assigned_display)

        assert progress["currentBlock"] == {
            "index": 0,
            "name": "sunset",
            "position": 0,
            "currentVideo": 1,
            "totalVideos": 3,
            "progress": 0.0,
        }
        assert [b["videoCount"] for b in progress["blocks"]] == [3, 2]
        assert [b["isActive"] for b in progress["blocks"]] == [True, False]
        assert progress["overallProgress"] == {
            "currentPosition": 0,
            "totalInCurrentLoop": 5,
            "loopCount": 0,
        }

    def test_progress_in_second_block(self, db, timeline, assigned_display):
        for _ in range(4):
            timeline.mark_played(db, assigned_display, timeline.get_next_timeline_video(db, assigned_display))
        db.commit()

        progress = timeline.get_timeline_progress(db, assigned_display)

        assert progress["currentBlock"]["name"] == "ocean"
        assert progress["currentBlock"]["currentVideo"] == 2
        assert progress["currentBlock"]["progress"] == pytest.approx(50.0)
        assert [b["isCompleted"] for b in progress["blocks"]] == [True, False]
        assert progress["blocks"][0]["timesPlayed"] == 3

    def test_cursor_past_end_reports_last_block_completed(self, db, timeline, assigned_display):
        _play_through(db, timeline, assigned_display)

        progress = timeline.get_timeline_progress(db, assigned_display)

        assert progress["currentBlock"]["name"] == "ocean"
        assert progress["currentBlock"]["progress"] == 100.0
        assert all(b["isCompleted"] for b in progress["blocks"])
        assert not any(b["isActive"] for b in progress["blocks"])

    def test_empty_block_reported_with_zero_videos(
        self, db, timeline, playlist_factory, display_factory
    ):
        playlist = playlist_factory([("volcano", 2), ("sunset", 2)])
        display = display_factory(playlist=playlist)
        timeline.populate_timeline(db, display)

        progress = timeline.get_timeline_progress(db, display)

        assert progress["currentBlock"]["name"] == "sunset"
        assert progress["blocks"][0]["videoCount"] == 0
        assert progress["blocks"][0]["targetCount"] == 2


class TestAdminOperations:
    def test_states(self, db, timeline, display_factory, playlist_factory):
        display = display_factory()
        assert timeline.timeline_state(db, display) is TimelineState.UNASSIGNED

        playlist = playlist_factory([("sunset", 1)])
        display.playlist = playlist
        db.commit()
        assert timeline.timeline_state(db, display) is TimelineState.POPULATING

        timeline.populate_timeline(db, display)
        assert timeline.timeline_state(db, display) is TimelineState.SERVING

    def test_reset_position(self, db, timeline, assigned_display):
        entries = _entries(db, assigned_display)
        timeline.mark_played(db, assigned_display, entries[0])
        timeline.mark_played(db, assigned_display, entries[1])

        timeline.reset_position(db, assigned_display)
        db.commit()

        assert assigned_display.timeline_position == 0
        # played entries stay forfeited; next is the first queued one
        assert timeline.get_next_timeline_video(db, assigned_display).timeline_position == 2

    def test_clear_timeline_stops_display(self, db, timeline, registry, assigned_display):
        registry.update_playback_state(db, assigned_display, state=PlaybackState.PLAYING, is_playing=True)

        cleared = timeline.clear_timeline(db, assigned_display)
        db.commit()

        assert cleared == 5
        assert _entries(db, assigned_display) == []
        assert assigned_display.playback_state == PlaybackState.IDLE.value
        assert assigned_display.is_playing is False
        assert assigned_display.timeline_position == 0
        assert timeline.get_timeline_progress(db, assigned_display) is None


class TestGatewayContract:
    def test_fetch_dedupes_and_truncates(self, db, guard, playlist_factory, display_factory):
        video = Video(id="dup", text="sunset", width=10, height=5)
        resolver = MagicMock()
        resolver.resolve.return_value = [video, video, Video(id="b", text="sunset")]
        gateway = ResolverGateway(resolver, timeout_seconds=1.0)
        manager = TimelineManager(gateway, guard=guard)
        playlist = playlist_factory([("sunset", 3)])
        display = display_factory(playlist=playlist)
        try:
            manager.populate_timeline(db, display)
        finally:
            gateway.shutdown()

        assert [e.video_id for e in _entries(db, display)] == ["dup", "b"]
