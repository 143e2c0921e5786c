"""
Board record normalization.

Stored boards come in several legacy shapes; from_dict must read all of them
and degrade to safe defaults instead of raising.
"""
from datetime import datetime

from app.services.board import (
    Block,
    BoardSnapshot,
    CommandResult,
    Player,
    Session,
    WaitlistEntry,
)

NOW = datetime(2026, 6, 6, 10, 0)


def _session_dict(**overrides):
    data = {
        "id": "s_1",
        "players": [{"name": "Ann Lee"}, {"name": "Bo Park"}],
        "start_time": "2026-06-06T09:00:00",
        "end_time": "2026-06-06T10:00:00",
    }
    data.update(overrides)
    return data


class TestPlayer:
    def test_from_string(self):
        assert Player.from_dict("  Ann Lee ").name == "Ann Lee"

    def test_from_camel_case_dict(self):
        player = Player.from_dict({"name": "Ann", "memberId": 42, "isGuest": True, "clubNumber": "1001"})
        assert player.member_id == "42"
        assert player.is_guest is True
        assert player.club_number == "1001"

    def test_blank_or_garbage_is_none(self):
        assert Player.from_dict("   ") is None
        assert Player.from_dict(17) is None
        assert Player.from_dict({}) is None


class TestSession:
    def test_duration_derived_from_times(self):
        session = Session.from_dict(_session_dict())
        assert session.duration == 60
        assert session.assigned_at == datetime(2026, 6, 6, 9, 0)

    def test_end_before_start_rejected(self):
        assert Session.from_dict(_session_dict(end_time="2026-06-06T08:00:00")) is None

    def test_zero_length_cleared_session_kept(self):
        """A session cleared at its own start instant still reloads from history."""
        session = Session.from_dict(_session_dict(end_time="2026-06-06T09:00:00", clear_reason="Cleared"))
        assert session is not None
        assert session.clear_reason == "Cleared"

    def test_no_players_rejected(self):
        assert Session.from_dict(_session_dict(players=[])) is None


class TestBlock:
    def test_wet_reason_implies_wet_flag(self):
        block = Block.from_dict(
            {
                "id": "b1",
                "courtNumber": 4,
                "startTime": "2026-06-06T08:00:00",
                "endTime": "2026-06-06T20:00:00",
                "reason": "WET COURT",
            }
        )
        assert block.is_wet_court is True
        assert block.court_number == 4

    def test_label_prefers_title(self):
        block = Block(id="b", court_number=1, start_time=NOW, end_time=NOW, reason="Lesson", title="Junior clinic")
        assert block.label == "Junior clinic"
        assert Block(id="b", court_number=1, start_time=NOW, end_time=NOW).label == "Blocked"


class TestSnapshotFromDict:
    def test_current_history_shape(self):
        data = {
            "courts": [
                {"current": _session_dict(), "history": [_session_dict(id="s_0")]},
                {"current": None, "history": []},
            ]
        }
        snapshot = BoardSnapshot.from_dict(data, court_count=2)
        assert snapshot.court(1).session.id == "s_1"
        assert [h.id for h in snapshot.court(1).history] == ["s_0"]
        assert snapshot.court(2).session is None

    def test_flat_legacy_court_record(self):
        flat = {"players": ["Ann", "Bo"], "startTime": "2026-06-06T09:00:00Z", "endTime": "2026-06-06T10:30:00Z"}
        snapshot = BoardSnapshot.from_dict({"courts": [flat]}, court_count=1)
        session = snapshot.court(1).session
        assert [p.name for p in session.players] == ["Ann", "Bo"]
        assert session.duration == 90

    def test_null_entries_and_missing_arrays(self):
        snapshot = BoardSnapshot.from_dict({"courts": [None, None]}, court_count=3)
        assert [c.number for c in snapshot.courts] == [1, 2, 3]
        assert all(c.session is None for c in snapshot.courts)
        assert snapshot.blocks == []
        assert snapshot.waitlist == []

    def test_not_a_dict(self):
        snapshot = BoardSnapshot.from_dict(None, court_count=2)
        assert len(snapshot.courts) == 2
        assert snapshot.version == 0

    def test_explicit_numbers_and_overflow_dropped(self):
        data = {"courts": [{"number": 3, "session": None}, {"number": 1, "session": None}, {"number": 9}]}
        snapshot = BoardSnapshot.from_dict(data, court_count=3)
        assert [c.number for c in snapshot.courts] == [1, 2, 3]

    def test_embedded_block_lifted_and_deduped(self):
        block = {
            "id": "b1",
            "start_time": "2026-06-06T12:00:00",
            "end_time": "2026-06-06T13:00:00",
            "reason": "Lesson",
        }
        data = {
            "courts": [{"current": None, "block": block}],
            "blocks": [dict(block, court_number=1)],
        }
        snapshot = BoardSnapshot.from_dict(data, court_count=1)
        assert len(snapshot.blocks) == 1
        assert snapshot.blocks[0].court_number == 1

    def test_waitlist_group_key_and_version(self):
        data = {
            "version": "7",
            "waitlist": [{"id": "w1", "group": ["Ann", "Bo"], "joinedAt": "2026-06-06T09:55:00"}, {"players": []}],
        }
        snapshot = BoardSnapshot.from_dict(data, court_count=1)
        assert snapshot.version == 7
        assert len(snapshot.waitlist) == 1
        assert snapshot.waitlist_position("w1") == 1


class TestSnapshotToDict:
    def test_waitlist_positions_are_derived(self):
        snapshot = BoardSnapshot.empty(2)
        snapshot.waitlist = [
            WaitlistEntry(id="w1", players=[Player(name="A")], joined_at=NOW),
            WaitlistEntry(id="w2", players=[Player(name="B")], joined_at=NOW),
        ]
        data = snapshot.to_dict()
        assert [e["position"] for e in data["waitlist"]] == [1, 2]

    def test_clone_is_independent(self):
        snapshot = BoardSnapshot.empty(1)
        copy = snapshot.clone()
        copy.courts[0].history.append(Session.from_dict(_session_dict()))
        assert snapshot.courts[0].history == []


class TestCommandResult:
    def test_ok_flattens_records(self):
        result = CommandResult.ok(when=NOW, players=[Player(name="A")], version=3)
        data = result.to_dict()
        assert data["success"] is True
        assert data["when"] == "2026-06-06T10:00:00"
        assert data["players"][0]["name"] == "A"
        assert "error" not in data

    def test_fail_carries_conflict(self):
        data = CommandResult.fail("stale", conflict=True, version=4).to_dict()
        assert data == {"success": False, "error": "stale", "conflict": True, "version": 4}
