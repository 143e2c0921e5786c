"""
Waitlist Engine

Wait-time estimation and servability for the queue.

Estimation comes in three flavours:
- estimate_wait_minutes: quick single-position estimate from court turnover
- estimate_wait_for_positions: batched min-heap simulation over next-free times
- simulate_waitlist_estimates: per-entry simulation that honours court
  eligibility, deferred groups, wet courts and the minimum useful session

Servability (find_servable_entries) decides which entries are offered a
court right now: position 1, position 2, and a pass-through scan so a group
needing an unavailable court type does not hold up everyone behind it.
"""

from __future__ import annotations

import bisect
import heapq
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from app.config import ClubConfig
from app.services.block_scheduler import (
    effective_block_start,
    get_future_blocks_for_court,
    get_upcoming_block_warning,
    wet_court_numbers,
)
from app.services.board import Block, BoardSnapshot, Court, Player, WaitlistEntry
from app.services.court_state import (
    MIN_USEFUL_SESSION_MINUTES,
    closing_time_for,
    get_selectable_courts_strict,
)
from app.services.roster import identity_key
from app.utils.clock import minutes_until_ceil

logger = logging.getLogger(__name__)

# Deferred groups in the simulation need their full session plus this slack.
DEFERRED_SLACK_MINUTES = 5


def validate_group(group: Any, max_players: int = 4) -> Tuple[bool, Optional[str]]:
    """
    Check that a group is a non-empty list of named, distinct players.

    Returns:
        (is_valid, error_if_not)
    """
    if not isinstance(group, (list, tuple)):
        return False, "Group must be a list of players"
    if len(group) == 0:
        return False, "Group cannot be empty"
    if len(group) > max_players:
        return False, f"Group cannot have more than {max_players} players"

    keys = set()
    for index, player in enumerate(group, start=1):
        if not isinstance(player, Player):
            return False, f"Player {index} is invalid"
        if not player.name or not player.name.strip():
            return False, f"Player {index} must have a valid name"
        key = identity_key(player)
        if key in keys:
            return False, "Duplicate players are not allowed in the same group"
        keys.add(key)

    return True, None


def is_court_eligible_for_group(court_number: int, player_count: int, singles_only_courts: Iterable[int] = (8,)) -> bool:
    """Singles-only courts reject groups of four or more."""
    return not (player_count >= 4 and court_number in set(singles_only_courts))


def session_duration_for(player_count: int, config: Optional[ClubConfig] = None) -> int:
    config = config or ClubConfig()
    if player_count >= 4:
        return config.doubles_duration_minutes
    return config.singles_duration_minutes


def get_court_next_true_availability(court: Court, now: datetime, blocks: Iterable[Block]) -> datetime:
    """
    When the court can actually take a new group.

    Starts at the later of now and the session end, then pushes past any
    block covering that instant. Blocks are walked in start order so a
    session ending into a block, which itself abuts another, chains through
    both.
    """
    available = now
    if court.session is not None and court.session.end_time > available:
        available = court.session.end_time

    for block in get_future_blocks_for_court(court.number, now, blocks):
        if block.start_time <= available < block.end_time:
            available = block.end_time
    return available


def estimate_wait_minutes(
    position: int,
    courts: Sequence[Court],
    now: datetime,
    blocks: Optional[Iterable[Block]] = None,
    avg_game_minutes: int = 75,
) -> int:
    """
    Estimate minutes until the group at `position` gets a court.

    Courts available now count as available at `now`, so position 1 is 0
    whenever any court is free.
    """
    if position < 1:
        raise ValueError(f"position must be a positive integer, got {position}")
    if avg_game_minutes <= 0:
        raise ValueError(f"avg_game_minutes must be positive, got {avg_game_minutes}")

    blocks = list(blocks or [])
    court_count = max(len(courts), 1)
    times = sorted(max(now, get_court_next_true_availability(c, now, blocks)) for c in courts)

    if not times:
        return math.ceil(((position - 1) / court_count) * avg_game_minutes)

    if position <= len(times):
        return minutes_until_ceil(times[position - 1], now)

    rounds = math.ceil(position / court_count)
    wait = minutes_until_ceil(times[0], now) + (rounds - 1) * avg_game_minutes
    logger.debug("estimate_wait_minutes position=%s rounds=%s wait=%s", position, rounds, wait)
    return wait


def estimate_wait_for_positions(
    positions: Sequence[int],
    current_free_count: int,
    next_free_times: Sequence[datetime],
    now: datetime,
    avg_game_minutes: int = 75,
) -> List[int]:
    """
    Minutes until playable for each requested position (rounded up, >= 0).

    Seats are handed out from a min-heap of court availability times; each
    seat pushes its court back by one average game. Positions within the
    currently free count are 0 immediately.
    """
    if not positions:
        return []
    if any(p < 1 for p in positions):
        raise ValueError("positions must be positive integers")
    avg = int(avg_game_minutes) if avg_game_minutes and avg_game_minutes > 0 else 75

    total = max(len(next_free_times), current_free_count)
    times: List[datetime] = [now] * min(current_free_count, total)
    times.extend(t for t in next_free_times if t > now)
    while len(times) < total:
        times.append(now)

    if not times:
        return [0 if p <= current_free_count else math.ceil((p - 1) * avg) for p in positions]

    heapq.heapify(times)
    seat_times: List[datetime] = []
    for _ in range(max(positions)):
        earliest = heapq.heappop(times)
        seat_times.append(earliest)
        heapq.heappush(times, earliest + timedelta(minutes=avg))

    return [0 if p <= current_free_count else minutes_until_ceil(seat_times[p - 1], now) for p in positions]


def _step_past_blocks(base: datetime, court_blocks: List[Block]) -> datetime:
    advanced = True
    while advanced:
        advanced = False
        for block in court_blocks:
            if effective_block_start(block) <= base < block.end_time:
                base = block.end_time
                advanced = True
    return base


def _next_block_start_after(base: datetime, court_blocks: List[Block]) -> Optional[Block]:
    later = [b for b in court_blocks if b.start_time > base]
    return min(later, key=lambda b: b.start_time) if later else None


def _simulation_start(court: Court, now: datetime, court_blocks: List[Block]) -> datetime:
    base = now
    if court.session is not None and court.session.end_time > base:
        base = court.session.end_time
    base = _step_past_blocks(base, court_blocks)

    min_useful = timedelta(minutes=MIN_USEFUL_SESSION_MINUTES)
    while True:
        upcoming = _next_block_start_after(base, court_blocks)
        if upcoming is None or upcoming.start_time - base >= min_useful:
            return base
        base = _step_past_blocks(upcoming.end_time, court_blocks)


def simulate_waitlist_estimates(
    courts: Sequence[Court],
    waitlist: Sequence[WaitlistEntry],
    blocks: Iterable[Block],
    now: datetime,
    config: Optional[ClubConfig] = None,
) -> List[int]:
    """
    Estimated minutes for every waitlist position, in queue order.

    Each court gets an availability instant (wet courts: closing time;
    otherwise the session end pushed past buffered blocks and past gaps
    shorter than the minimum useful session). Entries then take the earliest
    eligible court in turn; deferred entries also need their full session
    plus DEFERRED_SLACK_MINUTES before the court's next block. An entry that
    finds nothing gets a rough turnover estimate.
    """
    config = config or ClubConfig()
    if not waitlist:
        return []

    blocks = list(blocks)
    dry_blocks = [b for b in blocks if not b.is_wet_court]
    wet = wet_court_numbers(blocks, now)
    closing = closing_time_for(now, config.closing_hour)

    timeline: List[Tuple[datetime, int]] = []
    for court in courts:
        if court.number in wet:
            timeline.append((closing, court.number))
            continue
        court_blocks = [b for b in dry_blocks if b.court_number == court.number]
        timeline.append((_simulation_start(court, now, court_blocks), court.number))
    timeline.sort()

    total = max(len(courts), 1)
    results: List[int] = []
    for index, entry in enumerate(waitlist):
        player_count = len(entry.players)
        duration = session_duration_for(player_count, config)
        found = None
        for slot, (available_at, number) in enumerate(timeline):
            if not is_court_eligible_for_group(number, player_count, config.singles_only_courts):
                continue
            if entry.deferred:
                court_blocks = [b for b in dry_blocks if b.court_number == number]
                upcoming = _next_block_start_after(available_at, court_blocks)
                required = timedelta(minutes=duration + DEFERRED_SLACK_MINUTES)
                if upcoming is not None and upcoming.start_time - available_at < required:
                    continue
            found = slot
            break

        if found is None:
            results.append(math.ceil(((index + 1) * config.avg_game_minutes) / total))
            continue

        available_at, number = timeline.pop(found)
        results.append(minutes_until_ceil(available_at, now))
        bisect.insort(timeline, (available_at + timedelta(minutes=config.avg_game_minutes), number))

    logger.debug("simulate_waitlist_estimates entries=%s results=%s", len(waitlist), results)
    return results


# ============================================================================
# Servability
# ============================================================================


@dataclass
class CourtSelection:
    """Selectable courts at one instant, queried per group size."""

    selectable_courts: List[int]
    blocks: List[Block]
    now: datetime
    config: ClubConfig = field(default_factory=ClubConfig)

    @classmethod
    def from_snapshot(cls, snapshot: BoardSnapshot, now: datetime, config: Optional[ClubConfig] = None) -> "CourtSelection":
        return cls(
            selectable_courts=get_selectable_courts_strict(snapshot.courts, now, snapshot.blocks),
            blocks=list(snapshot.blocks),
            now=now,
            config=config or ClubConfig(),
        )

    def eligible_courts_for_group(self, player_count: int) -> List[int]:
        return [
            n
            for n in self.selectable_courts
            if is_court_eligible_for_group(n, player_count, self.config.singles_only_courts)
        ]

    def count_selectable_for_group(self, player_count: int) -> int:
        return len(self.eligible_courts_for_group(player_count))

    def full_time_courts_for_group(self, player_count: int) -> List[int]:
        """Eligible courts where a full session fits before any block."""
        duration = session_duration_for(player_count, self.config)
        return [
            n
            for n in self.eligible_courts_for_group(player_count)
            if get_upcoming_block_warning(n, duration, self.blocks, self.now) is None
        ]

    def count_full_time_for_group(self, player_count: int) -> int:
        return len(self.full_time_courts_for_group(player_count))

    def available_for_entry(self, entry: WaitlistEntry) -> int:
        """
        Courts an entry could take right now.

        A deferred entry counts only full-time courts, unless none exists, in
        which case waiting longer is pointless and any eligible court counts.
        """
        player_count = len(entry.players)
        if entry.deferred:
            full_time = self.count_full_time_for_group(player_count)
            if full_time > 0:
                return full_time
        return self.count_selectable_for_group(player_count)


@dataclass
class ServableEntry:
    id: str
    position: int
    players: List[Player]
    deferred: bool
    available_courts: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "position": self.position,
            "players": [p.to_dict() for p in self.players],
            "deferred": self.deferred,
            "available_courts": self.available_courts,
        }


@dataclass
class ServableEntries:
    first: Optional[ServableEntry] = None
    second: Optional[ServableEntry] = None
    pass_through: Optional[ServableEntry] = None
    can_first_play: bool = False
    can_second_play: bool = False

    @property
    def can_pass_through_play(self) -> bool:
        return self.pass_through is not None

    def servable_ids(self) -> List[str]:
        ids = []
        if self.can_first_play and self.first:
            ids.append(self.first.id)
        if self.can_second_play and self.second:
            ids.append(self.second.id)
        if self.pass_through:
            ids.append(self.pass_through.id)
        return ids

    def to_dict(self) -> Dict[str, Any]:
        return {
            "first": self.first.to_dict() if self.first else None,
            "second": self.second.to_dict() if self.second else None,
            "pass_through": self.pass_through.to_dict() if self.pass_through else None,
            "can_first_play": self.can_first_play,
            "can_second_play": self.can_second_play,
            "can_pass_through_play": self.can_pass_through_play,
        }


def _servable(entry: WaitlistEntry, position: int, selection: CourtSelection) -> ServableEntry:
    return ServableEntry(
        id=entry.id,
        position=position,
        players=list(entry.players),
        deferred=entry.deferred,
        available_courts=selection.available_for_entry(entry),
    )


def find_servable_entries(waitlist: Sequence[WaitlistEntry], selection: CourtSelection) -> ServableEntries:
    """
    Decide which queued groups may take a court now.

    Position 1 plays if it has at least one available court. Position 2 needs
    two when position 1 is also playing, else one. When neither can play and
    something is selectable, the first later entry with an available court
    passes through.
    """
    result = ServableEntries()
    if not waitlist:
        return result

    result.first = _servable(waitlist[0], 1, selection)
    result.can_first_play = result.first.available_courts > 0

    if len(waitlist) > 1:
        result.second = _servable(waitlist[1], 2, selection)
        needed = 2 if result.can_first_play else 1
        result.can_second_play = result.second.available_courts >= needed

    if not result.can_first_play and not result.can_second_play and selection.selectable_courts:
        for index in range(2, len(waitlist)):
            candidate = _servable(waitlist[index], index + 1, selection)
            if candidate.available_courts >= 1:
                result.pass_through = candidate
                break

    return result
