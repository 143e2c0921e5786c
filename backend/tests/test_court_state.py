"""
Court classification and selection.
"""
from datetime import datetime, timedelta

import pytest

from app.services.board import Block, Court, Player, Session
from app.services.court_state import (
    classify_board,
    classify_courts,
    closing_time_for,
    get_free_courts,
    get_free_courts_info,
    get_next_free_times,
    get_selectable_courts_strict,
    has_soon_block_conflict,
    should_allow_waitlist_join,
)
from app.utils.clock import coerce_datetime

NOW = datetime(2026, 6, 6, 10, 0)


def session_ending(offset_minutes, session_id="s"):
    end = NOW + timedelta(minutes=offset_minutes)
    return Session(
        id=session_id,
        players=[Player(name="Ann"), Player(name="Bo")],
        start_time=end - timedelta(minutes=60),
        end_time=end,
        duration=60,
        assigned_at=end - timedelta(minutes=60),
    )


def block(court, start_offset, end_offset, wet=False):
    return Block(
        id=f"b{court}_{start_offset}",
        court_number=court,
        start_time=NOW + timedelta(minutes=start_offset),
        end_time=NOW + timedelta(minutes=end_offset),
        reason="WET COURT" if wet else "Lesson",
        is_wet_court=wet,
    )


def courts(*sessions):
    """One court per argument; None means unoccupied."""
    return [Court(number=i + 1, session=s) for i, s in enumerate(sessions)]


class TestClassification:
    def test_session_ending_exactly_now_is_overtime(self):
        view = classify_board(courts(session_ending(0)), NOW)[0]
        assert view.is_overtime is True
        assert view.is_active is False

    def test_buckets(self):
        board = courts(None, session_ending(30), session_ending(-5), None, None)
        blocks = [block(4, -10, 50), block(5, -10, 500, wet=True)]
        info = get_free_courts_info(board, NOW, blocks)
        assert info.free == [1]
        assert info.occupied == [2]
        assert info.overtime == [3]
        assert info.blocked == [4]
        assert info.wet == [5]
        assert info.to_dict()["meta"] == {"total": 5, "overtime_count": 1}

    def test_blocked_overtime_court_is_not_overtime_bucket(self):
        board = courts(session_ending(-5))
        info = get_free_courts_info(board, NOW, [block(1, -1, 30)])
        assert info.blocked == [1]
        assert info.overtime == []

    def test_wet_set_marks_courts_wet(self):
        info = get_free_courts_info(courts(None, None), NOW, [], wet_set=[2])
        assert info.free == [1]
        assert info.wet == [2]

    def test_free_courts_ascending(self):
        board = [Court(number=3), Court(number=1), Court(number=2, session=session_ending(10))]
        assert get_free_courts(board, NOW) == [1, 3]


class TestSelection:
    def test_empty_board_has_nothing_selectable(self):
        assert get_selectable_courts_strict([], NOW) == []

    def test_free_courts_preferred_over_overtime(self):
        board = courts(None, session_ending(-10))
        assert get_selectable_courts_strict(board, NOW) == [1]

    def test_overtime_fallback_when_no_free(self):
        board = courts(session_ending(10), session_ending(-10), session_ending(0))
        assert get_selectable_courts_strict(board, NOW) == [2, 3]

    def test_all_active_means_nothing_selectable(self):
        board = courts(session_ending(10), session_ending(20))
        assert get_selectable_courts_strict(board, NOW) == []

    def test_never_offers_blocked_or_active(self):
        board = courts(None, session_ending(30), None)
        selectable = get_selectable_courts_strict(board, NOW, [block(3, -5, 30)])
        assert selectable == [1]

    def test_waitlist_join_only_when_no_free_court(self):
        assert should_allow_waitlist_join(courts(None, session_ending(10)), NOW) is False
        assert should_allow_waitlist_join(courts(session_ending(-5), session_ending(10)), NOW) is True


class TestSoonBlockConflict:
    def test_overlap(self):
        assert has_soon_block_conflict(1, NOW, [block(1, 30, 60)], 60) is True
        assert has_soon_block_conflict(1, NOW, [block(1, 60, 90)], 60) is False
        assert has_soon_block_conflict(1, NOW, [block(1, -60, 0)], 60) is False

    def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            has_soon_block_conflict(0, NOW, [], 60)
        with pytest.raises(ValueError):
            has_soon_block_conflict(1, NOW, [], 0)


class TestClassifyCourts:
    def test_overtime_not_selectable_when_usable_free_exists(self):
        statuses = classify_courts(courts(None, session_ending(-10)), NOW)
        by_number = {s.court_number: s for s in statuses}
        assert by_number[1].selectable is True
        assert by_number[1].selectable_reason == "free"
        assert by_number[2].status == "overtime"
        assert by_number[2].selectable is False

    def test_overtime_offered_when_free_court_is_about_to_be_blocked(self):
        statuses = classify_courts(courts(None, session_ending(-10)), NOW, [block(1, 10, 60)])
        by_number = {s.court_number: s for s in statuses}
        assert by_number[1].status == "free"
        assert by_number[2].selectable is True
        assert by_number[2].selectable_reason == "overtime_fallback"

    def test_blocked_status_carries_label(self):
        status = classify_courts(courts(None), NOW, [block(1, -5, 25)])[0]
        data = status.to_dict()
        assert data["status"] == "blocked"
        assert data["blocked_label"] == "Lesson"
        assert data["blocked_end"] == "2026-06-06T10:25:00"

    def test_wet_status(self):
        status = classify_courts(courts(session_ending(30)), NOW, [block(1, -60, 600, wet=True)])[0]
        assert status.status == "wet"
        assert status.selectable is False
        assert status.blocked_label == "WET COURT"


class TestNextFreeTimes:
    def test_free_court_is_now(self):
        assert get_next_free_times(courts(None), NOW) == {1: NOW}

    def test_session_end_used_when_later(self):
        assert get_next_free_times(courts(session_ending(40)), NOW)[1] == NOW + timedelta(minutes=40)

    def test_buffered_block_pushes_past_block_end(self):
        """Session ends 10 minutes before a block: inside the 15-minute buffer."""
        result = get_next_free_times(courts(session_ending(50)), NOW, [block(1, 60, 120)])
        assert result[1] == NOW + timedelta(minutes=120)

    def test_chained_blocks(self):
        blocks = [block(1, 0, 60), block(1, 70, 100)]
        assert get_next_free_times(courts(None), NOW, blocks)[1] == NOW + timedelta(minutes=100)

    def test_wet_court_free_at_closing(self):
        result = get_next_free_times(courts(None), NOW, [block(1, -10, 600, wet=True)], closing_hour=22)
        assert result[1] == datetime(2026, 6, 6, 22, 0)

    def test_closing_hour_is_on_the_utc_clock(self):
        # 08:00 at UTC-4 is 12:00 UTC; closing lands at 22:00 UTC, not 22:00 local
        now = coerce_datetime("2026-06-06T08:00:00-04:00")
        assert now == datetime(2026, 6, 6, 12, 0)
        assert closing_time_for(now, 22) == datetime(2026, 6, 6, 22, 0)

    def test_closing_never_before_now(self):
        late = datetime(2026, 6, 6, 23, 0)
        assert closing_time_for(late, 22) == late
