"""
Block resolution and upcoming-block warnings.
"""
from datetime import datetime, timedelta

import pytest

from app.services.block_scheduler import (
    effective_block_start,
    get_court_block_status,
    get_future_blocks_for_court,
    get_upcoming_block_warning,
    is_block_active,
    resolve_effective_block,
    wet_court_numbers,
)
from app.services.board import Block

NOW = datetime(2026, 6, 6, 10, 0)


def make_block(court, start_offset, end_offset, reason="Lesson", wet=False, block_id=None, title=None):
    return Block(
        id=block_id or f"b{court}_{start_offset}",
        court_number=court,
        start_time=NOW + timedelta(minutes=start_offset),
        end_time=NOW + timedelta(minutes=end_offset),
        reason=reason,
        is_wet_court=wet,
        title=title,
    )


class TestIsBlockActive:
    def test_non_wet_end_is_exclusive(self):
        block = make_block(1, -60, 0)
        assert not is_block_active(block, NOW)

    def test_wet_end_is_inclusive(self):
        block = make_block(1, -60, 0, reason="WET COURT", wet=True)
        assert is_block_active(block, NOW)

    def test_start_is_inclusive(self):
        assert is_block_active(make_block(1, 0, 30), NOW)


def test_effective_block_start_applies_registration_buffer():
    block = make_block(1, 60, 120)
    assert effective_block_start(block) == NOW + timedelta(minutes=45)


class TestCourtBlockStatus:
    def test_unblocked_court(self):
        status = get_court_block_status(1, NOW, [make_block(2, -10, 10)])
        assert status.is_blocked is False
        assert status.to_dict() == {"is_blocked": False, "is_current": False, "is_wet_court": False}

    def test_wet_outranks_other_active_block(self):
        blocks = [
            make_block(3, -30, 60, reason="Lesson"),
            make_block(3, -10, 600, reason="WET COURT", wet=True),
        ]
        status = get_court_block_status(3, NOW, blocks)
        assert status.is_wet_court is True
        assert status.reason == "WET COURT"

    def test_earliest_starting_block_wins(self):
        blocks = [
            make_block(3, -10, 60, reason="Clinic", block_id="late"),
            make_block(3, -30, 30, reason="Lesson", block_id="early"),
        ]
        assert resolve_effective_block(3, NOW, blocks).id == "early"

    def test_remaining_minutes_round_up(self):
        block = Block(
            id="b",
            court_number=1,
            start_time=NOW - timedelta(minutes=5),
            end_time=NOW + timedelta(minutes=10, seconds=1),
            reason="Lesson",
        )
        assert get_court_block_status(1, NOW, [block]).remaining_minutes == 11


def test_wet_court_numbers_only_active_wet():
    blocks = [
        make_block(1, -10, 100, reason="WET COURT", wet=True),
        make_block(2, 30, 100, reason="WET COURT", wet=True),
        make_block(3, -10, 100),
    ]
    assert wet_court_numbers(blocks, NOW) == {1}


def test_future_blocks_sorted_and_unexpired():
    blocks = [make_block(1, 120, 180), make_block(1, -120, -60), make_block(1, 30, 60), make_block(2, 10, 20)]
    starts = [b.start_time for b in get_future_blocks_for_court(1, NOW, blocks)]
    assert starts == [NOW + timedelta(minutes=30), NOW + timedelta(minutes=120)]


class TestUpcomingBlockWarning:
    def test_block_within_five_minutes_refuses(self):
        warning = get_upcoming_block_warning(1, 60, [make_block(1, 5, 65)], NOW)
        assert warning.type == "blocked"
        assert warning.minutes_until_block == 5
        assert "limited_duration" not in warning.to_dict()

    def test_block_before_natural_end_limits(self):
        warning = get_upcoming_block_warning(1, 60, [make_block(1, 40, 100)], NOW)
        assert warning.type == "limited"
        assert warning.limited_duration == 40
        assert warning.original_duration == 60

    def test_block_after_session_is_ignored(self):
        assert get_upcoming_block_warning(1, 60, [make_block(1, 60, 120)], NOW) is None

    def test_duration_zero_reports_any_upcoming_block(self):
        warning = get_upcoming_block_warning(1, 0, [make_block(1, 300, 360)], NOW)
        assert warning.type == "limited"
        assert warning.minutes_until_block == 300

    def test_active_and_wet_blocks_are_ignored(self):
        blocks = [make_block(1, -10, 30), make_block(1, 20, 200, reason="WET COURT", wet=True)]
        assert get_upcoming_block_warning(1, 60, blocks, NOW) is None

    def test_earliest_block_reported(self):
        blocks = [make_block(1, 50, 70, reason="Second"), make_block(1, 20, 30, reason="First")]
        assert get_upcoming_block_warning(1, 60, blocks, NOW).reason == "First"

    def test_reason_falls_back_to_title_then_reserved(self):
        titled = make_block(1, 30, 60, reason="", title="League")
        assert get_upcoming_block_warning(1, 60, [titled], NOW).reason == "League"
        bare = make_block(1, 30, 60, reason="")
        assert get_upcoming_block_warning(1, 60, [bare], NOW).reason == "Reserved"

    def test_minutes_floor_against_refusal_threshold(self):
        """5m59s out still floors to 5 minutes and refuses."""
        block = Block(
            id="b",
            court_number=1,
            start_time=NOW + timedelta(minutes=5, seconds=59),
            end_time=NOW + timedelta(minutes=60),
            reason="Lesson",
        )
        assert get_upcoming_block_warning(1, 60, [block], NOW).type == "blocked"

    def test_negative_duration_raises(self):
        with pytest.raises(ValueError):
            get_upcoming_block_warning(1, -1, [], NOW)
