"""Time coercion and legacy court-record splitting."""
from datetime import datetime

from app.utils.clock import coerce_datetime, minutes_until_ceil, minutes_until_floor, to_iso
from app.utils.normalize import as_bool, as_int, pick, split_court_record


class TestCoerceDatetime:
    def test_naive_datetime_passes_through(self):
        value = datetime(2026, 6, 6, 10, 0)
        assert coerce_datetime(value) == value

    def test_iso_string_with_z_becomes_naive_utc(self):
        assert coerce_datetime("2026-06-06T10:00:00Z") == datetime(2026, 6, 6, 10, 0)

    def test_offset_string_converted_to_utc(self):
        assert coerce_datetime("2026-06-06T12:00:00+02:00") == datetime(2026, 6, 6, 10, 0)

    def test_epoch_milliseconds(self):
        assert coerce_datetime(0) == datetime(1970, 1, 1, 0, 0)

    def test_unreadable_values_are_none(self):
        assert coerce_datetime(None) is None
        assert coerce_datetime("") is None
        assert coerce_datetime("not a date") is None
        assert coerce_datetime(True) is None
        assert coerce_datetime({"a": 1}) is None


def test_minutes_until_rounding():
    now = datetime(2026, 6, 6, 10, 0, 0)
    target = datetime(2026, 6, 6, 10, 4, 30)
    assert minutes_until_ceil(target, now) == 5
    assert minutes_until_floor(target, now) == 4
    # ceil never goes negative; floor does
    assert minutes_until_ceil(now, target) == 0
    assert minutes_until_floor(now, target) == -5


def test_to_iso():
    assert to_iso(None) is None
    assert to_iso(datetime(2026, 6, 6, 10, 0)) == "2026-06-06T10:00:00"


def test_pick_returns_first_present_key():
    assert pick({"startTime": 1}, "start_time", "startTime") == 1
    assert pick({"a": None}, "a", default=5) == 5
    assert pick("nope", "a", default=0) == 0


def test_as_int_and_as_bool():
    assert as_int("12") == 12
    assert as_int("x", default=3) == 3
    assert as_int(True, default=1) == 1
    assert as_bool("yes") is True
    assert as_bool("no") is False
    assert as_bool(1) is True


class TestSplitCourtRecord:
    def test_current_shape(self):
        session, history, block = split_court_record({"current": {"players": ["A"]}, "history": [{"x": 1}, "junk"]})
        assert session == {"players": ["A"]}
        assert history == [{"x": 1}]
        assert block is None

    def test_session_shape_with_null_session(self):
        session, history, _ = split_court_record({"session": None, "history": []})
        assert session is None
        assert history == []

    def test_flat_shape(self):
        raw = {"players": ["A"], "startTime": "2026-06-06T10:00:00", "endTime": "2026-06-06T11:00:00"}
        session, _, _ = split_court_record(raw)
        assert session is raw

    def test_null_and_empty_records(self):
        assert split_court_record(None) == (None, [], None)
        assert split_court_record({}) == (None, [], None)

    def test_embedded_block(self):
        _, _, block = split_court_record({"block": {"reason": "Lesson"}})
        assert block == {"reason": "Lesson"}
