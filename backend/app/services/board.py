"""
Board records for the court scheduling core.

Every record is a plain dataclass with to_dict() / from_dict() producing
JSON-serializable dicts (snake_case keys, ISO timestamps). from_dict() is
lenient: it accepts camelCase keys and the legacy court shapes handled in
app.utils.normalize, and degrades to safe defaults rather than raising.
"""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.utils.clock import coerce_datetime, minutes_between, to_iso
from app.utils.normalize import as_bool, as_int, as_list, pick, split_court_record


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


@dataclass
class Player:
    name: str
    id: Optional[str] = None
    member_id: Optional[str] = None
    is_guest: bool = False
    sponsor: Optional[str] = None
    club_number: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "id": self.id,
            "member_id": self.member_id,
            "is_guest": self.is_guest,
            "sponsor": self.sponsor,
            "club_number": self.club_number,
        }

    @classmethod
    def from_dict(cls, data: Any) -> Optional["Player"]:
        if isinstance(data, Player):
            return data
        if isinstance(data, str):
            return cls(name=data.strip()) if data.strip() else None
        if not isinstance(data, dict):
            return None
        name = pick(data, "name", "displayName", "display_name", default="")
        member_id = pick(data, "member_id", "memberId")
        raw_id = pick(data, "id")
        club_number = pick(data, "club_number", "clubNumber")
        if not str(name).strip() and member_id is None and raw_id is None:
            return None
        return cls(
            name=str(name).strip(),
            id=str(raw_id) if raw_id is not None else None,
            member_id=str(member_id) if member_id is not None else None,
            is_guest=as_bool(pick(data, "is_guest", "isGuest", default=False)),
            sponsor=pick(data, "sponsor"),
            club_number=str(club_number) if club_number is not None else None,
        )


def players_from_list(raw: Any) -> List[Player]:
    players = []
    for item in as_list(raw):
        player = Player.from_dict(item)
        if player is not None:
            players.append(player)
    return players


@dataclass
class Session:
    """One group's occupancy of a court. A live session always ends after it starts."""

    id: str
    players: List[Player]
    start_time: datetime
    end_time: datetime
    duration: int
    assigned_at: datetime
    guests: int = 0
    is_time_limited: bool = False
    clear_reason: Optional[str] = None
    cleared_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "players": [p.to_dict() for p in self.players],
            "guests": self.guests,
            "start_time": to_iso(self.start_time),
            "end_time": to_iso(self.end_time),
            "duration": self.duration,
            "assigned_at": to_iso(self.assigned_at),
            "is_time_limited": self.is_time_limited,
            "clear_reason": self.clear_reason,
            "cleared_at": to_iso(self.cleared_at),
        }

    @classmethod
    def from_dict(cls, data: Any) -> Optional["Session"]:
        if not isinstance(data, dict):
            return None
        players = players_from_list(data.get("players"))
        start = coerce_datetime(pick(data, "start_time", "startTime"))
        end = coerce_datetime(pick(data, "end_time", "endTime"))
        if not players or start is None or end is None or end < start:
            return None
        duration = as_int(pick(data, "duration"), default=0)
        if duration <= 0:
            duration = int(round(minutes_between(start, end)))
        return cls(
            id=str(pick(data, "id", default="") or new_id("s")),
            players=players,
            guests=max(0, as_int(pick(data, "guests"), default=0)),
            start_time=start,
            end_time=end,
            duration=duration,
            assigned_at=coerce_datetime(pick(data, "assigned_at", "assignedAt")) or start,
            is_time_limited=as_bool(pick(data, "is_time_limited", "isTimeLimited", default=False)),
            clear_reason=pick(data, "clear_reason", "clearReason"),
            cleared_at=coerce_datetime(pick(data, "cleared_at", "clearedAt")),
        )


@dataclass
class Block:
    """Admin-defined window during which a court is unavailable."""

    id: str
    court_number: int
    start_time: datetime
    end_time: datetime
    reason: str = ""
    is_wet_court: bool = False
    created_at: Optional[datetime] = None
    title: Optional[str] = None

    @property
    def label(self) -> str:
        return self.title or self.reason or "Blocked"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "court_number": self.court_number,
            "start_time": to_iso(self.start_time),
            "end_time": to_iso(self.end_time),
            "reason": self.reason,
            "is_wet_court": self.is_wet_court,
            "created_at": to_iso(self.created_at),
            "title": self.title,
        }

    @classmethod
    def from_dict(cls, data: Any, court_number: Optional[int] = None) -> Optional["Block"]:
        if not isinstance(data, dict):
            return None
        number = as_int(pick(data, "court_number", "courtNumber"), default=court_number or 0)
        start = coerce_datetime(pick(data, "start_time", "startTime"))
        end = coerce_datetime(pick(data, "end_time", "endTime"))
        if number <= 0 or start is None or end is None or end <= start:
            return None
        reason = str(pick(data, "reason", default="") or "")
        return cls(
            id=str(pick(data, "id", default="") or new_id("b")),
            court_number=number,
            start_time=start,
            end_time=end,
            reason=reason,
            is_wet_court=as_bool(pick(data, "is_wet_court", "isWetCourt", default=False))
            or reason.upper() == "WET COURT",
            created_at=coerce_datetime(pick(data, "created_at", "createdAt")),
            title=pick(data, "title"),
        )


@dataclass
class Court:
    number: int
    id: str = ""
    session: Optional[Session] = None
    history: List[Session] = field(default_factory=list)

    def __post_init__(self):
        if not self.id:
            self.id = f"court-{self.number}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "number": self.number,
            "id": self.id,
            "session": self.session.to_dict() if self.session else None,
            "history": [h.to_dict() for h in self.history],
        }


@dataclass
class WaitlistEntry:
    """Queued group. Position is the list index + 1 and is never stored."""

    id: str
    players: List[Player]
    joined_at: datetime
    guests: int = 0
    deferred: bool = False

    def to_dict(self, position: Optional[int] = None) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "players": [p.to_dict() for p in self.players],
            "guests": self.guests,
            "joined_at": to_iso(self.joined_at),
            "deferred": self.deferred,
        }
        if position is not None:
            data["position"] = position
        return data

    @classmethod
    def from_dict(cls, data: Any, fallback_time: Optional[datetime] = None) -> Optional["WaitlistEntry"]:
        if not isinstance(data, dict):
            return None
        players = players_from_list(pick(data, "players", "group"))
        if not players:
            return None
        return cls(
            id=str(pick(data, "id", default="") or new_id("w")),
            players=players,
            guests=max(0, as_int(pick(data, "guests"), default=0)),
            joined_at=coerce_datetime(pick(data, "joined_at", "joinedAt", "timestamp"))
            or fallback_time
            or datetime.utcnow(),
            deferred=as_bool(pick(data, "deferred", default=False)),
        )


@dataclass
class RecentlyClearedEntry:
    """A cleared session whose original end time has not yet passed."""

    court_number: int
    cleared_at: datetime
    original_end_time: datetime
    players: List[Player]
    source: str = "Cleared"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "court_number": self.court_number,
            "cleared_at": to_iso(self.cleared_at),
            "original_end_time": to_iso(self.original_end_time),
            "players": [p.to_dict() for p in self.players],
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: Any) -> Optional["RecentlyClearedEntry"]:
        if not isinstance(data, dict):
            return None
        cleared_at = coerce_datetime(pick(data, "cleared_at", "clearedAt"))
        original_end = coerce_datetime(pick(data, "original_end_time", "originalEndTime"))
        players = players_from_list(data.get("players"))
        if cleared_at is None or original_end is None or not players:
            return None
        return cls(
            court_number=as_int(pick(data, "court_number", "courtNumber"), default=0),
            cleared_at=cleared_at,
            original_end_time=original_end,
            players=players,
            source=str(pick(data, "source", default="Cleared")),
        )


@dataclass
class DisplacementRecord:
    """Returned by assign_court when it bumps an occupant; consumed by undo."""

    displaced_session_id: str
    takeover_session_id: str
    court_number: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "displaced_session_id": self.displaced_session_id,
            "takeover_session_id": self.takeover_session_id,
            "court_number": self.court_number,
        }


@dataclass
class BoardSnapshot:
    courts: List[Court] = field(default_factory=list)
    blocks: List[Block] = field(default_factory=list)
    waitlist: List[WaitlistEntry] = field(default_factory=list)
    recently_cleared: List[RecentlyClearedEntry] = field(default_factory=list)
    version: int = 0

    @classmethod
    def empty(cls, court_count: int) -> "BoardSnapshot":
        return cls(courts=[Court(number=n) for n in range(1, court_count + 1)])

    def court(self, number: int) -> Optional[Court]:
        for court in self.courts:
            if court.number == number:
                return court
        return None

    def waitlist_position(self, entry_id: str) -> Optional[int]:
        for index, entry in enumerate(self.waitlist):
            if entry.id == entry_id:
                return index + 1
        return None

    def blocks_for_court(self, court_number: int) -> List[Block]:
        return [b for b in self.blocks if b.court_number == court_number]

    def clone(self) -> "BoardSnapshot":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "courts": [c.to_dict() for c in self.courts],
            "blocks": [b.to_dict() for b in self.blocks],
            "waitlist": [e.to_dict(position=i + 1) for i, e in enumerate(self.waitlist)],
            "recently_cleared": [r.to_dict() for r in self.recently_cleared],
        }

    @classmethod
    def from_dict(cls, data: Any, court_count: Optional[int] = None) -> "BoardSnapshot":
        """
        Build a snapshot from any stored board shape.

        Courts are numbered by their "number" field when present, else by
        array position. When court_count is given, missing courts are filled
        in as empty and courts beyond it are dropped.
        """
        if not isinstance(data, dict):
            data = {}

        courts: Dict[int, Court] = {}
        blocks: List[Block] = []
        for index, raw in enumerate(as_list(data.get("courts"))):
            number = as_int(pick(raw, "number", "courtNumber", "court_number"), default=index + 1)
            if number <= 0 or number in courts:
                number = index + 1
            if number in courts:
                continue
            session_raw, history_raw, block_raw = split_court_record(raw)
            history = [s for s in (Session.from_dict(h) for h in history_raw) if s is not None]
            courts[number] = Court(
                number=number,
                id=str(pick(raw, "id", default="") or ""),
                session=Session.from_dict(session_raw),
                history=history,
            )
            embedded = Block.from_dict(block_raw, court_number=number)
            if embedded is not None:
                blocks.append(embedded)

        if court_count is not None:
            for number in range(1, court_count + 1):
                courts.setdefault(number, Court(number=number))
            courts = {n: c for n, c in courts.items() if n <= court_count}

        known_ids = {b.id for b in blocks}
        for raw in as_list(data.get("blocks")):
            block = Block.from_dict(raw)
            if block is not None and block.id not in known_ids:
                blocks.append(block)
                known_ids.add(block.id)

        waitlist = [e for e in (WaitlistEntry.from_dict(w) for w in as_list(data.get("waitlist"))) if e is not None]
        recently_cleared = [
            r
            for r in (RecentlyClearedEntry.from_dict(x) for x in as_list(pick(data, "recently_cleared", "recentlyCleared")))
            if r is not None
        ]

        return cls(
            courts=[courts[n] for n in sorted(courts)],
            blocks=blocks,
            waitlist=waitlist,
            recently_cleared=recently_cleared,
            version=as_int(data.get("version"), default=0),
        )


@dataclass
class CommandResult:
    """Uniform envelope returned by every mutation."""

    success: bool
    error: Optional[str] = None
    conflict: bool = False
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, **data: Any) -> "CommandResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, conflict: bool = False, **data: Any) -> "CommandResult":
        return cls(success=False, error=error, conflict=conflict, data=data)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"success": self.success}
        if self.error is not None:
            result["error"] = self.error
        if self.conflict:
            result["conflict"] = True
        for key, value in self.data.items():
            result[key] = _plain(value)
        return result


def _plain(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, datetime):
        return to_iso(value)
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    return value
