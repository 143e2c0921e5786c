"""
Block Scheduler

Resolves which block governs a court at a given instant and predicts whether
an upcoming block will cut short a session that is about to start.

Priority at read time:
1. an active wet-court block (window inclusive at both ends)
2. the earliest-starting active non-wet block
Overlapping blocks on the same court are allowed; only the winner is reported.

Everything here is pure: callers supply `now` and the block list, nothing is
mutated.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Set

from app.services.board import Block
from app.utils.clock import minutes_until_ceil, minutes_until_floor, to_iso

# Blocks are treated as starting this much earlier when projecting when a
# court next frees up, so staff have time to clear it.
REGISTRATION_BUFFER_MINUTES = 15

# A session may not start when a block begins within this many minutes.
BLOCK_REFUSAL_MINUTES = 5

WET_COURT_REASON = "WET COURT"


@dataclass
class BlockStatus:
    is_blocked: bool = False
    is_current: bool = False
    is_wet_court: bool = False
    reason: Optional[str] = None
    title: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    remaining_minutes: int = 0
    block_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if not self.is_blocked:
            return {"is_blocked": False, "is_current": False, "is_wet_court": False}
        return {
            "is_blocked": True,
            "is_current": self.is_current,
            "is_wet_court": self.is_wet_court,
            "reason": self.reason,
            "title": self.title,
            "start_time": to_iso(self.start_time),
            "end_time": to_iso(self.end_time),
            "remaining_minutes": self.remaining_minutes,
            "block_id": self.block_id,
        }


@dataclass
class BlockWarning:
    """Outcome of checking an about-to-start session against upcoming blocks.

    type is "blocked" (refuse to start) or "limited" (session will be cut
    short at the block start).
    """

    type: str
    reason: str
    start_time: datetime
    minutes_until_block: int
    limited_duration: Optional[int] = None
    original_duration: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "type": self.type,
            "reason": self.reason,
            "start_time": to_iso(self.start_time),
            "minutes_until_block": self.minutes_until_block,
        }
        if self.type == "limited":
            data["limited_duration"] = self.limited_duration
            data["original_duration"] = self.original_duration
        return data


def is_block_active(block: Block, now: datetime) -> bool:
    """Wet blocks cover their end instant; other blocks end exclusively."""
    if block.is_wet_court:
        return block.start_time <= now <= block.end_time
    return block.start_time <= now < block.end_time


def effective_block_start(block: Block) -> datetime:
    return block.start_time - timedelta(minutes=REGISTRATION_BUFFER_MINUTES)


def resolve_effective_block(court_number: int, now: datetime, blocks: Iterable[Block]) -> Optional[Block]:
    """Return the single block that governs the court at now, if any."""
    court_blocks = [b for b in blocks if b.court_number == court_number and is_block_active(b, now)]
    for block in court_blocks:
        if block.is_wet_court:
            return block
    others = sorted(court_blocks, key=lambda b: b.start_time)
    return others[0] if others else None


def get_court_block_status(court_number: int, now: datetime, blocks: Iterable[Block]) -> BlockStatus:
    block = resolve_effective_block(court_number, now, blocks)
    if block is None:
        return BlockStatus()

    if block.is_wet_court:
        return BlockStatus(
            is_blocked=True,
            is_current=True,
            is_wet_court=True,
            reason=WET_COURT_REASON,
            start_time=block.start_time,
            end_time=block.end_time,
            remaining_minutes=minutes_until_ceil(block.end_time, now),
            block_id=block.id,
        )

    return BlockStatus(
        is_blocked=True,
        is_current=True,
        is_wet_court=False,
        reason=block.reason,
        title=block.title,
        start_time=block.start_time,
        end_time=block.end_time,
        remaining_minutes=minutes_until_ceil(block.end_time, now),
        block_id=block.id,
    )


def wet_court_numbers(blocks: Iterable[Block], now: datetime) -> Set[int]:
    return {b.court_number for b in blocks if b.is_wet_court and is_block_active(b, now)}


def get_future_blocks_for_court(court_number: int, now: datetime, blocks: Iterable[Block]) -> List[Block]:
    """Blocks for the court that have not yet ended, ordered by start."""
    return sorted(
        (b for b in blocks if b.court_number == court_number and b.end_time > now),
        key=lambda b: b.start_time,
    )


def get_upcoming_block_warning(
    court_number: int,
    duration: int,
    blocks: Iterable[Block],
    now: datetime,
) -> Optional[BlockWarning]:
    """
    Check whether a session of `duration` minutes starting now runs into a block.

    Only future (not yet started), non-wet blocks are considered, and only the
    earliest qualifying one is reported. duration == 0 asks for any upcoming
    block, for display.

    Returns:
        BlockWarning of type "blocked" when the block starts within
        BLOCK_REFUSAL_MINUTES, "limited" when it starts before the session
        would end naturally (or duration == 0), otherwise None.
    """
    if duration < 0:
        raise ValueError(f"duration must be >= 0, got {duration}")

    session_end = now + timedelta(minutes=duration)
    candidates = [
        b
        for b in blocks
        if b.court_number == court_number
        and b.start_time > now
        and b.end_time > now
        and not b.is_wet_court
        and (duration == 0 or b.start_time < session_end)
    ]
    if not candidates:
        return None

    block = min(candidates, key=lambda b: b.start_time)
    minutes_until = minutes_until_floor(block.start_time, now)
    reason = block.reason or block.title or "Reserved"

    if minutes_until <= BLOCK_REFUSAL_MINUTES:
        return BlockWarning(
            type="blocked",
            reason=reason,
            start_time=block.start_time,
            minutes_until_block=minutes_until,
        )

    if duration == 0 or minutes_until < duration:
        return BlockWarning(
            type="limited",
            reason=reason,
            start_time=block.start_time,
            minutes_until_block=minutes_until,
            limited_duration=minutes_until,
            original_duration=duration,
        )

    return None
