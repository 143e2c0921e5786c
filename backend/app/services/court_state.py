"""
Court State Classifier

Classifies each court on the board at a given instant and derives the sets a
kiosk may offer:

- unoccupied: no session and no active block
- active:     session whose end_time is still in the future
- overtime:   session whose end_time <= now (boundary counts as overtime)
- blocked:    an active block (wet or otherwise) covers now

Selection policy: free courts when any exist, otherwise overtime courts
(takeover). Active and blocked courts are never selectable.

All functions are pure and take `now` from the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Set

from app.services.block_scheduler import (
    effective_block_start,
    get_future_blocks_for_court,
    resolve_effective_block,
    wet_court_numbers,
)
from app.services.board import Block, Court
from app.utils.clock import to_iso

# Free courts with less than this before their next block don't count as
# usable when deciding whether overtime courts may be offered.
MIN_USEFUL_SESSION_MINUTES = 20


@dataclass
class CourtView:
    number: int
    is_unoccupied: bool
    is_active: bool
    is_overtime: bool
    is_blocked: bool
    is_wet: bool
    block: Optional[Block] = None


@dataclass
class FreeCourtsInfo:
    free: List[int] = field(default_factory=list)
    overtime: List[int] = field(default_factory=list)
    occupied: List[int] = field(default_factory=list)
    blocked: List[int] = field(default_factory=list)
    wet: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "free": self.free,
            "overtime": self.overtime,
            "occupied": self.occupied,
            "blocked": self.blocked,
            "wet": self.wet,
            "meta": {
                "total": len(self.free) + len(self.overtime) + len(self.occupied) + len(self.blocked) + len(self.wet),
                "overtime_count": len(self.overtime),
            },
        }


@dataclass
class CourtStatus:
    """Display-ready status for one court."""

    court_number: int
    status: str
    selectable: bool
    selectable_reason: Optional[str]
    is_wet: bool
    is_blocked: bool
    is_free: bool
    is_overtime: bool
    is_occupied: bool
    blocked_label: Optional[str] = None
    blocked_end: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "court_number": self.court_number,
            "status": self.status,
            "selectable": self.selectable,
            "selectable_reason": self.selectable_reason,
            "is_wet": self.is_wet,
            "is_blocked": self.is_blocked,
            "is_free": self.is_free,
            "is_overtime": self.is_overtime,
            "is_occupied": self.is_occupied,
        }
        if self.status in ("blocked", "wet"):
            data["blocked_label"] = self.blocked_label
            data["blocked_end"] = to_iso(self.blocked_end)
        return data


def _wet_numbers(blocks: List[Block], now: datetime, wet_set: Optional[Iterable[int]]) -> Set[int]:
    wet = wet_court_numbers(blocks, now)
    if wet_set:
        wet |= set(wet_set)
    return wet


def classify_court(court: Court, now: datetime, blocks: List[Block], wet: Set[int]) -> CourtView:
    block = resolve_effective_block(court.number, now, blocks)
    is_wet = court.number in wet
    is_blocked = block is not None or is_wet
    session = court.session
    return CourtView(
        number=court.number,
        is_unoccupied=session is None and not is_blocked,
        is_active=session is not None and session.end_time > now,
        is_overtime=session is not None and session.end_time <= now,
        is_blocked=is_blocked,
        is_wet=is_wet,
        block=block,
    )


def classify_board(
    courts: List[Court],
    now: datetime,
    blocks: Optional[List[Block]] = None,
    wet_set: Optional[Iterable[int]] = None,
) -> List[CourtView]:
    blocks = list(blocks or [])
    wet = _wet_numbers(blocks, now, wet_set)
    views = [classify_court(c, now, blocks, wet) for c in courts]
    return sorted(views, key=lambda v: v.number)


def get_free_courts_info(
    courts: List[Court],
    now: datetime,
    blocks: Optional[List[Block]] = None,
    wet_set: Optional[Iterable[int]] = None,
) -> FreeCourtsInfo:
    """Bucket every court; blocked and wet courts never land in free/overtime."""
    info = FreeCourtsInfo()
    for view in classify_board(courts, now, blocks, wet_set):
        if view.is_wet:
            info.wet.append(view.number)
        elif view.is_blocked:
            info.blocked.append(view.number)
        elif view.is_unoccupied:
            info.free.append(view.number)
        elif view.is_overtime:
            info.overtime.append(view.number)
        else:
            info.occupied.append(view.number)
    return info


def get_free_courts(
    courts: List[Court],
    now: datetime,
    blocks: Optional[List[Block]] = None,
    wet_set: Optional[Iterable[int]] = None,
) -> List[int]:
    return get_free_courts_info(courts, now, blocks, wet_set).free


def get_selectable_courts_strict(
    courts: List[Court],
    now: datetime,
    blocks: Optional[List[Block]] = None,
    wet_set: Optional[Iterable[int]] = None,
) -> List[int]:
    """What a kiosk can offer right now: free courts, else overtime courts."""
    info = get_free_courts_info(courts, now, blocks, wet_set)
    return info.free if info.free else info.overtime


def should_allow_waitlist_join(
    courts: List[Court],
    now: datetime,
    blocks: Optional[List[Block]] = None,
    wet_set: Optional[Iterable[int]] = None,
) -> bool:
    """Joining the queue only makes sense when no court is free."""
    return not get_free_courts(courts, now, blocks, wet_set)


def has_soon_block_conflict(court_number: int, now: datetime, blocks: Iterable[Block], required_minutes: int) -> bool:
    """True if any block on the court overlaps [now, now + required_minutes)."""
    if court_number < 1:
        raise ValueError(f"Invalid court number: {court_number}")
    if required_minutes <= 0:
        raise ValueError(f"required_minutes must be positive, got {required_minutes}")

    required_end = now + timedelta(minutes=required_minutes)
    return any(
        b.court_number == court_number and b.start_time < required_end and b.end_time > now
        for b in blocks
    )


def _has_usable_free(free: List[int], now: datetime, blocks: List[Block]) -> bool:
    min_useful = timedelta(minutes=MIN_USEFUL_SESSION_MINUTES)
    for number in free:
        upcoming = [b for b in get_future_blocks_for_court(number, now, blocks) if b.start_time > now]
        if not upcoming or upcoming[0].start_time - now >= min_useful:
            return True
    return False


def classify_courts(
    courts: List[Court],
    now: datetime,
    blocks: Optional[List[Block]] = None,
    wet_set: Optional[Iterable[int]] = None,
) -> List[CourtStatus]:
    """
    Per-court status records for display and selection.

    Overtime courts are only selectable when no free court has at least
    MIN_USEFUL_SESSION_MINUTES before its next block.
    """
    blocks = list(blocks or [])
    views = classify_board(courts, now, blocks, wet_set)
    free = [v.number for v in views if v.is_unoccupied]
    has_usable_free = bool(free) and _has_usable_free(free, now, blocks)

    statuses = []
    for view in views:
        if view.is_wet:
            status = "wet"
        elif view.is_blocked:
            status = "blocked"
        elif view.is_overtime:
            status = "overtime"
        elif view.is_active:
            status = "occupied"
        else:
            status = "free"

        selectable = status == "free" or (status == "overtime" and not has_usable_free)
        statuses.append(
            CourtStatus(
                court_number=view.number,
                status=status,
                selectable=selectable,
                selectable_reason=("free" if status == "free" else "overtime_fallback") if selectable else None,
                is_wet=view.is_wet,
                is_blocked=view.is_blocked,
                is_free=view.is_unoccupied,
                is_overtime=view.is_overtime,
                is_occupied=view.is_active,
                blocked_label=view.block.label if view.block else ("WET COURT" if view.is_wet else None),
                blocked_end=view.block.end_time if view.block else None,
            )
        )
    return statuses


def closing_time_for(now: datetime, closing_hour: int) -> datetime:
    """closing_hour o'clock UTC on the day of now, never earlier than now."""
    closing = now.replace(hour=closing_hour, minute=0, second=0, microsecond=0)
    return max(closing, now)


def get_next_free_times(
    courts: List[Court],
    now: datetime,
    blocks: Optional[List[Block]] = None,
    wet_set: Optional[Iterable[int]] = None,
    closing_hour: int = 22,
) -> Dict[int, datetime]:
    """
    Earliest instant each court is free, keyed by court number.

    Wet courts are unavailable until closing. Otherwise start from the later
    of now and the session end, then step past every block whose buffered
    window (start - REGISTRATION_BUFFER_MINUTES .. end) covers that instant,
    repeating because blocks can be stacked back to back.
    """
    blocks = list(blocks or [])
    wet = _wet_numbers(blocks, now, wet_set)
    out: Dict[int, datetime] = {}

    for court in courts:
        if court.number in wet:
            out[court.number] = closing_time_for(now, closing_hour)
            continue

        base = now
        if court.session is not None and court.session.end_time > base:
            base = court.session.end_time

        court_blocks = [b for b in blocks if b.court_number == court.number]
        advanced = True
        while advanced:
            advanced = False
            for block in court_blocks:
                if effective_block_start(block) <= base < block.end_time:
                    base = block.end_time
                    advanced = True
        out[court.number] = base

    return out


