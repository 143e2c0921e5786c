"""
Roster Conflict Checker

Player identity and engagement:
- normalize_name / hash53: identity keys and reproducible pseudo-ids
- check_group_conflicts / find_engagement_for: is anyone in a candidate group
  already on a court or in the queue?
- resolve_member_id / enrich_players_with_ids: attach directory ids, but only
  when the match is unambiguous. Two members sharing a name resolve to None
  so the caller asks instead of guessing.

Nothing here mutates its inputs.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Optional, Tuple

from app.services.board import BoardSnapshot, Player
from app.utils.normalize import pick

_WHITESPACE = re.compile(r"\s+")
_KEPT_PUNCTUATION = {"'", "-"}
_MASK32 = 0xFFFFFFFF
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def normalize_name(name: Optional[str]) -> str:
    """NFKC, lowercase, trimmed, single-spaced; drops punctuation except ' and -."""
    text = unicodedata.normalize("NFKC", str(name or "")).lower()
    text = "".join(ch for ch in text if ch.isalnum() or ch.isspace() or ch in _KEPT_PUNCTUATION)
    return _WHITESPACE.sub(" ", text).strip()


def _imul(a: int, b: int) -> int:
    return (a * b) & _MASK32


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def hash53(text: str) -> str:
    """
    Deterministic 53-bit string hash rendered in base 36 (cyrb53).

    Iterates UTF-16 code units so ids minted here match ids minted by the
    browser kiosks for the same name.
    """
    raw = text.encode("utf-16-le")
    units = [raw[i] | (raw[i + 1] << 8) for i in range(0, len(raw), 2)]
    length = len(units)

    h1 = (0xDEADBEEF ^ length) & _MASK32
    h2 = (0x41C6CE57 ^ length) & _MASK32
    for ch in units:
        h1 = _imul(h1 ^ ch, 2654435761)
        h2 = _imul(h2 ^ ch, 1597334677)

    h1 = _imul(h1 ^ (h1 >> 16), 2246822507) ^ _imul(h2 ^ (h2 >> 13), 3266489909)
    h2 = _imul(h2 ^ (h2 >> 16), 2246822507) ^ _imul(h1 ^ (h1 >> 13), 3266489909)
    return _to_base36(4294967296 * (0x1FFFFF & h2) + (h1 & _MASK32))


def identity_key(player: Player) -> str:
    """member id, then id, then normalized name."""
    if player.member_id:
        return f"member:{player.member_id}"
    if player.id:
        return f"id:{player.id}"
    return f"name:{normalize_name(player.name)}"


def same_group(a: Iterable[Player], b: Iterable[Player]) -> bool:
    """Exact identity-set match; partial overlaps are not the same group."""
    left = sorted(identity_key(p) for p in a)
    right = sorted(identity_key(p) for p in b)
    return bool(left) and left == right


def players_match(candidate: Player, other: Player) -> bool:
    if candidate.member_id and other.member_id:
        return candidate.member_id == other.member_id
    name = normalize_name(candidate.name)
    return bool(name) and name == normalize_name(other.name)


@dataclass
class Engagement:
    type: str  # "playing" or "waitlist"
    court: Optional[int] = None
    position: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.type == "playing":
            return {"type": "playing", "court": self.court}
        return {"type": "waitlist", "position": self.position}


@dataclass
class GroupConflicts:
    playing: List[Dict[str, Any]]
    waiting: List[Dict[str, Any]]

    @property
    def has_conflicts(self) -> bool:
        return bool(self.playing or self.waiting)

    def to_dict(self) -> Dict[str, Any]:
        return {"playing": self.playing, "waiting": self.waiting}


def find_engagement_for(player: Player, snapshot: BoardSnapshot) -> Optional[Engagement]:
    """Where is this player right now: on a court, in the queue, or nowhere."""
    for court in sorted(snapshot.courts, key=lambda c: c.number):
        if court.session is None:
            continue
        if any(players_match(player, seated) for seated in court.session.players):
            return Engagement(type="playing", court=court.number)

    for index, entry in enumerate(snapshot.waitlist):
        if any(players_match(player, queued) for queued in entry.players):
            return Engagement(type="waitlist", position=index + 1)

    return None


def check_group_conflicts(snapshot: BoardSnapshot, group_players: Iterable[Player]) -> GroupConflicts:
    """
    Report every candidate already engaged.

    A player seated on a court is reported under playing only, even if they
    are also queued.
    """
    playing: List[Dict[str, Any]] = []
    waiting: List[Dict[str, Any]] = []
    seen = set()
    for player in group_players:
        key = identity_key(player)
        if key in seen:
            continue
        seen.add(key)
        engagement = find_engagement_for(player, snapshot)
        if engagement is None:
            continue
        if engagement.type == "playing":
            playing.append({"name": player.name, "court": engagement.court})
        else:
            waiting.append({"name": player.name, "position": engagement.position})
    return GroupConflicts(playing=playing, waiting=waiting)


def engagement_message(player: Player, engagement: Engagement) -> str:
    if engagement.type == "playing":
        return f"{player.name} is already playing on Court {engagement.court}."
    return f"{player.name} is already on the waitlist (position {engagement.position})."


# ============================================================================
# Member directory
# ============================================================================


@dataclass
class RosterEntry:
    name: str
    member_id: Optional[str] = None
    club_number: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "RosterEntry":
        club = pick(data, "club_number", "clubNumber", "member_number", "memberNumber")
        member_id = pick(data, "member_id", "memberId")
        return cls(
            name=str(pick(data, "name", "fullName", "full_name", default="")),
            member_id=str(member_id) if member_id is not None else None,
            club_number=str(club).strip() if club is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "member_id": self.member_id, "club_number": self.club_number}


def roster_key(name: Optional[str], club_number: Optional[str] = None) -> str:
    normalized = normalize_name(name)
    club = (club_number or "").strip()
    return f"{normalized}#{club}" if club else normalized


def minted_member_id(entry: RosterEntry) -> str:
    return f"m_{hash53(roster_key(entry.name, entry.club_number))}"


def ensure_member_ids(roster: Iterable[RosterEntry]) -> Tuple[List[RosterEntry], int]:
    """
    Give every roster entry a member id.

    Entries lacking one get a deterministic m_<hash53> id derived from the
    normalized name and club number, so separate processes converge on the
    same id. Returns (new_roster, assigned_count); the input is untouched.
    """
    result: List[RosterEntry] = []
    assigned = 0
    for entry in roster:
        if entry.member_id:
            result.append(entry)
            continue
        result.append(replace(entry, member_id=minted_member_id(entry)))
        assigned += 1
    return result, assigned


def resolve_member_id(player: Optional[Player], roster: Iterable[RosterEntry]) -> Optional[str]:
    """
    Directory id for a player, or None when it cannot be determined.

    Only a single roster entry matching the normalized name (and club number
    when the player carries one) resolves; zero or several matches return None.
    """
    if player is None:
        return None
    if player.member_id:
        return player.member_id

    name = normalize_name(player.name)
    if not name:
        return None
    club = (player.club_number or "").strip()
    matches = [
        entry
        for entry in roster
        if normalize_name(entry.name) == name and (not club or (entry.club_number or "").strip() == club)
    ]
    if len(matches) != 1:
        return None
    entry = matches[0]
    return entry.member_id or minted_member_id(entry)


def enrich_players_with_ids(players: Iterable[Player], roster: Iterable[RosterEntry]) -> List[Player]:
    """Attach resolvable member ids; unresolved players are returned unchanged."""
    roster = list(roster)
    enriched = []
    for player in players:
        if player.member_id:
            enriched.append(player)
            continue
        member_id = resolve_member_id(player, roster)
        enriched.append(replace(player, member_id=member_id) if member_id else player)
    return enriched
