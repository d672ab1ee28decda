from __future__ import annotations

import uuid

import pytest

from reelcast.infra.exceptions import TimelineEntryNotFoundError, ValidationError
from reelcast.usecases.command_send import send_command
from reelcast.usecases.timeline_inspect import (
    inspect_timeline,
    mark_entry_played,
    repopulate_timeline,
    reset_timeline_position,
    stop_display,
)


class TestInspectTimeline:
    def test_upcoming_is_limited(self, db, timeline, assigned_display):
        result = inspect_timeline(db, code="D1", timeline=timeline, limit=2)

        assert [e["timeline_position"] for e in result["entries"]] == [0, 1]
        assert result["timeline_state"] == "serving"
        assert result["loop_count"] == 0

    def test_include_all_shows_played_entries(self, db, timeline, assigned_display):
        first = timeline.get_next_timeline_video(db, assigned_display)
        mark_entry_played(db, entry_id=str(first.id), timeline=timeline)

        upcoming = inspect_timeline(db, code="D1", timeline=timeline)
        everything = inspect_timeline(db, code="D1", timeline=timeline, include_all=True)

        assert len(upcoming["entries"]) == 4
        assert [e["status"] for e in everything["entries"]][:2] == ["played", "queued"]

    def test_limit_must_be_positive(self, db, timeline, assigned_display):
        with pytest.raises(ValidationError):
            inspect_timeline(db, code="D1", timeline=timeline, limit=0)


class TestTimelineAdmin:
    def test_mark_entry_played_is_idempotent(self, db, timeline, assigned_display):
        entry = timeline.get_next_timeline_video(db, assigned_display)

        first = mark_entry_played(db, entry_id=str(entry.id), timeline=timeline)
        second = mark_entry_played(db, entry_id=str(entry.id), timeline=timeline)

        assert first["advanced"] is True
        assert first["timeline_position"] == 1
        assert second["advanced"] is False
        assert second["timeline_position"] == 1

    @pytest.mark.parametrize("entry_id", ["not-a-uuid", str(uuid.uuid4())])
    def test_mark_unknown_entry(self, db, timeline, entry_id):
        with pytest.raises(TimelineEntryNotFoundError):
            mark_entry_played(db, entry_id=entry_id, timeline=timeline)

    def test_reset_position(self, db, timeline, assigned_display):
        entry = timeline.get_next_timeline_video(db, assigned_display)
        mark_entry_played(db, entry_id=str(entry.id), timeline=timeline)

        result = reset_timeline_position(db, code="D1", timeline=timeline)

        assert result["timeline_position"] == 0
        assert assigned_display.timeline_position == 0
        # The played entry stays forfeited; the next entry is still position 1.
        assert timeline.get_next_timeline_video(db, assigned_display).timeline_position == 1

    def test_repopulate_keeps_loop_count(self, db, timeline, assigned_display):
        assigned_display.loop_count = 2
        db.commit()

        result = repopulate_timeline(db, code="D1", timeline=timeline)

        assert result["entries"] == 5
        assert result["loop_count"] == 2
        assert {e.loop_iteration for e in timeline.get_all_entries(db, assigned_display)} == {2}

    def test_repopulate_without_playlist(self, db, timeline, display_factory):
        display_factory()

        with pytest.raises(ValidationError, match="no playlist"):
            repopulate_timeline(db, code="D1", timeline=timeline)

    def test_stop_clears_timeline(self, db, timeline, assigned_display):
        result = stop_display(db, code="D1", timeline=timeline)

        assert result["cleared"] == 5
        assert assigned_display.playback_state == "idle"
        assert assigned_display.playlist_id is not None
        assert timeline.timeline_state(db, assigned_display).value == "populating"


class TestSendCommand:
    def test_send_seek(self, db, assigned_display):
        result = send_command(db, code="D1", command_type="seek", payload={"position": 15})

        assert result["status"] == "queued"
        assert result["type"] == "seek"
        assert result["payload"] == {"position": 15}
        assert isinstance(result["command_id"], int)

    def test_send_invalid(self, db, assigned_display):
        with pytest.raises(ValidationError):
            send_command(db, code="D1", command_type="rewind")
