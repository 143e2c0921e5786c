"""
Assignment Orchestrator

The command layer of the scheduling core. Each command:
1. loads a snapshot from the gateway (optionally checking expected_version)
2. plans the whole change on a private copy
3. applies it in one MutationIntent (compare-and-swap on version)
4. publishes change topics only after the gateway accepts

Court lifecycle: UNOCCUPIED -> ACTIVE (assign) -> OVERTIME (clock only)
-> UNOCCUPIED (clear) or ACTIVE again (takeover, occupant archived as
"Bumped"). Blocks overlay every state and take priority over selection.

Input problems come back as CommandResult(success=False, error=...) with no
partial mutation. Gateway conflicts come back with conflict=True, except for
undo_overtime_takeover, which falls back to clearing the takeover session.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from app.config import ClubConfig
from app.services.block_scheduler import (
    WET_COURT_REASON,
    BlockWarning,
    get_court_block_status,
    get_upcoming_block_warning,
    is_block_active,
)
from app.services.board import (
    Block,
    BoardSnapshot,
    CommandResult,
    Court,
    DisplacementRecord,
    Player,
    RecentlyClearedEntry,
    Session,
    WaitlistEntry,
    new_id,
)
from app.services.board_store import BoardGateway, MutationIntent
from app.services.court_state import should_allow_waitlist_join
from app.services.events import BLOCKS_CHANGED, COURTS_CHANGED, WAITLIST_CHANGED, ChangeNotifier
from app.services.roster import (
    RosterEntry,
    check_group_conflicts,
    engagement_message,
    enrich_players_with_ids,
    find_engagement_for,
    players_match,
    same_group,
)
from app.services.waitlist_engine import session_duration_for, simulate_waitlist_estimates, validate_group
from app.utils.courts import parse_court_numbers

logger = logging.getLogger(__name__)

CONFLICT_MESSAGE = "The board was changed by another device. Reload and try again."

# Sessions kept per court in the board row; SessionHistory holds the full log.
COURT_HISTORY_LIMIT = 50


@dataclass
class _AssignmentPlan:
    session: Session
    is_time_limited: bool
    displacement: Optional[DisplacementRecord] = None
    replaced_group: Optional[Dict[str, Any]] = None
    archived: Optional[Session] = None
    warning: Optional[BlockWarning] = None
    waitlist_changed: bool = False


def _coerce_group(group: Any) -> Any:
    if not isinstance(group, (list, tuple)):
        return group
    return [item if isinstance(item, Player) else Player.from_dict(item) for item in group]


def get_original_end_time_for_group(
    players: Sequence[Player],
    recently_cleared: Iterable[RecentlyClearedEntry],
    now: datetime,
) -> Optional[datetime]:
    """Original end time of a still-running cleared session by this exact group."""
    for entry in reversed(list(recently_cleared)):
        if entry.original_end_time <= now:
            continue
        if same_group(players, entry.players):
            return entry.original_end_time
    return None


class AssignmentOrchestrator:
    def __init__(
        self,
        gateway: BoardGateway,
        config: Optional[ClubConfig] = None,
        notifier: Optional[ChangeNotifier] = None,
        roster: Optional[List[RosterEntry]] = None,
    ):
        self.gateway = gateway
        self.config = config or ClubConfig()
        self.notifier = notifier
        self.roster = roster or []

    # ------------------------------------------------------------------
    # plumbing
    # ------------------------------------------------------------------

    def _begin(self, expected_version: Optional[int]) -> Tuple[BoardSnapshot, Optional[CommandResult]]:
        snapshot = self.gateway.load()
        if expected_version is not None and expected_version != snapshot.version:
            logger.warning("Stale request: expected version %s, board at %s", expected_version, snapshot.version)
            return snapshot, CommandResult.fail(CONFLICT_MESSAGE, conflict=True, version=snapshot.version)
        return snapshot, None

    def _commit(
        self,
        kind: str,
        base: BoardSnapshot,
        working: BoardSnapshot,
        now: datetime,
        topics: Sequence[str],
        archived: Optional[List[Tuple[int, Session]]] = None,
        restored: Optional[List[str]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Tuple[bool, Optional[CommandResult], Optional[int]]:
        working.recently_cleared = [r for r in working.recently_cleared if r.original_end_time > now]
        for court in working.courts:
            if len(court.history) > COURT_HISTORY_LIMIT:
                court.history = court.history[-COURT_HISTORY_LIMIT:]
        result = self.gateway.apply(
            MutationIntent(
                kind=kind,
                base_version=base.version,
                snapshot=working,
                archived_sessions=archived or [],
                restored_session_ids=restored or [],
            )
        )
        if not result.ok:
            if result.conflict:
                return False, CommandResult.fail(CONFLICT_MESSAGE, conflict=True, version=result.version), None
            return False, CommandResult.fail(result.error or "Could not save the board."), None

        logger.info("Applied %s (version %s -> %s)", kind, base.version, result.version)
        if self.notifier is not None:
            event = {"kind": kind, "version": result.version}
            event.update(payload or {})
            for topic in topics:
                self.notifier.publish(topic, event)
        return True, None, result.version

    def _court_number_error(self, court_number: Any) -> Optional[str]:
        if isinstance(court_number, bool) or not isinstance(court_number, int):
            return f"Invalid court number. Please select 1-{self.config.court_count}."
        if court_number < 1 or court_number > self.config.court_count:
            return f"Invalid court number. Please select 1-{self.config.court_count}."
        return None

    def _duration_error(self, duration: Any) -> Optional[str]:
        if isinstance(duration, bool) or not isinstance(duration, int):
            return "Invalid duration. Please select a valid time period."
        if duration <= 0 or duration > self.config.max_duration_minutes:
            return "Invalid duration. Please select a valid time period."
        return None

    def _prepare_players(self, group: Any) -> Tuple[Optional[List[Player]], Optional[str]]:
        players = _coerce_group(group)
        is_valid, error = validate_group(players, self.config.max_players_per_group)
        if not is_valid:
            return None, error
        if self.roster:
            players = enrich_players_with_ids(players, self.roster)
        return list(players), None

    # ------------------------------------------------------------------
    # court commands
    # ------------------------------------------------------------------

    def _plan_assignment(
        self,
        working: BoardSnapshot,
        court_number: int,
        players: List[Player],
        now: datetime,
        duration: Optional[int],
        guests: int,
    ) -> Tuple[Optional[_AssignmentPlan], Optional[str]]:
        """Write the assignment into `working`; nothing is saved here."""
        error = self._court_number_error(court_number)
        if error:
            return None, error
        if duration is None:
            duration = session_duration_for(len(players), self.config)
        error = self._duration_error(duration)
        if error:
            return None, error
        if isinstance(guests, bool) or not isinstance(guests, int) or guests < 0:
            return None, "Guests must be a non-negative whole number."

        court = working.court(court_number)
        if court is None:
            court = Court(number=court_number)
            working.courts.append(court)
            working.courts.sort(key=lambda c: c.number)

        status = get_court_block_status(court_number, now, working.blocks)
        if status.is_blocked:
            return None, f"Court {court_number} is unavailable ({status.title or status.reason or 'Blocked'})."

        warning = get_upcoming_block_warning(court_number, duration, working.blocks, now)
        if warning is not None and warning.type == "blocked":
            return None, (
                f"Court {court_number} is reserved for {warning.reason} "
                f"starting in {warning.minutes_until_block} minutes."
            )

        for player in players:
            engagement = find_engagement_for(player, working)
            if engagement is not None and engagement.type == "playing" and engagement.court != court_number:
                return None, engagement_message(player, engagement)

        original_end = get_original_end_time_for_group(players, working.recently_cleared, now)
        if original_end is not None:
            end_time = original_end
            is_time_limited = True
        else:
            end_time = now + timedelta(minutes=duration)
            is_time_limited = False

        session = Session(
            id=new_id("s"),
            players=players,
            guests=guests,
            start_time=now,
            end_time=end_time,
            duration=duration,
            assigned_at=now,
            is_time_limited=is_time_limited,
        )
        plan = _AssignmentPlan(session=session, is_time_limited=is_time_limited, warning=warning)

        if court.session is not None:
            occupant = court.session
            plan.replaced_group = {
                "players": [p.to_dict() for p in occupant.players],
                "end_time": occupant.end_time.isoformat(),
            }
            bumped = replace(occupant, clear_reason="Bumped", cleared_at=now)
            court.history.append(bumped)
            plan.archived = bumped
            plan.displacement = DisplacementRecord(
                displaced_session_id=occupant.id,
                takeover_session_id=session.id,
                court_number=court_number,
            )
        court.session = session

        remaining: List[WaitlistEntry] = []
        for entry in working.waitlist:
            kept = [q for q in entry.players if not any(players_match(p, q) for p in players)]
            if len(kept) != len(entry.players):
                plan.waitlist_changed = True
            if kept:
                entry.players = kept
                remaining.append(entry)
        working.waitlist = remaining

        return plan, None

    def _finish_assignment(
        self,
        kind: str,
        base: BoardSnapshot,
        working: BoardSnapshot,
        plan: _AssignmentPlan,
        court_number: int,
        now: datetime,
        extra_topics: Sequence[str] = (),
    ) -> CommandResult:
        topics = [COURTS_CHANGED]
        if plan.waitlist_changed:
            topics.append(WAITLIST_CHANGED)
        for topic in extra_topics:
            if topic not in topics:
                topics.append(topic)
        archived = [(court_number, plan.archived)] if plan.archived is not None else []

        ok, failure, version = self._commit(
            kind, base, working, now, topics, archived=archived, payload={"court_number": court_number}
        )
        if not ok:
            return failure

        if plan.displacement is not None:
            logger.info(
                "Court %s takeover: session %s bumped by %s",
                court_number,
                plan.displacement.displaced_session_id,
                plan.displacement.takeover_session_id,
            )
        return CommandResult.ok(
            court_number=court_number,
            session=plan.session,
            replaced_group=plan.replaced_group,
            displacement=plan.displacement,
            is_time_limited=plan.is_time_limited,
            block_warning=plan.warning,
            version=version,
        )

    def assign_court(
        self,
        court_number: int,
        group: Any,
        now: datetime,
        duration: Optional[int] = None,
        guests: int = 0,
        expected_version: Optional[int] = None,
    ) -> CommandResult:
        """
        Put a group on a court.

        duration defaults to the singles/doubles length for the group size.
        A group that cleared a court early and re-registers as the exact same
        group inherits its original end time (is_time_limited=True). Any
        current occupant is archived as "Bumped" and a DisplacementRecord is
        returned for undo. Assigned players leave any waitlist entry.
        """
        players, error = self._prepare_players(group)
        if error:
            return CommandResult.fail(error)

        base, stale = self._begin(expected_version)
        if stale:
            return stale
        working = base.clone()
        plan, error = self._plan_assignment(working, court_number, players, now, duration, guests)
        if error:
            return CommandResult.fail(error)
        return self._finish_assignment("assign_court", base, working, plan, court_number, now)

    def assign_from_waitlist(
        self,
        entry_id: str,
        court_number: int,
        now: datetime,
        duration: Optional[int] = None,
        expected_version: Optional[int] = None,
    ) -> CommandResult:
        """Remove the entry and assign its group in a single write."""
        base, stale = self._begin(expected_version)
        if stale:
            return stale
        working = base.clone()

        entry = next((e for e in working.waitlist if e.id == entry_id), None)
        if entry is None:
            return CommandResult.fail("Waitlist entry not found.", not_found=True)
        working.waitlist = [e for e in working.waitlist if e.id != entry_id]

        plan, error = self._plan_assignment(working, court_number, list(entry.players), now, duration, entry.guests)
        if error:
            return CommandResult.fail(error)
        return self._finish_assignment(
            "assign_from_waitlist", base, working, plan, court_number, now, extra_topics=[WAITLIST_CHANGED]
        )

    def clear_court(
        self,
        court_number: int,
        now: datetime,
        reason: str = "Cleared",
        source: str = "manual",
        expected_version: Optional[int] = None,
    ) -> CommandResult:
        """
        End the current session on a court.

        A session cleared before its end time is foreshortened to now; its
        original end time is kept in recently_cleared so the same group cannot
        restart a fresh full session elsewhere.
        """
        error = self._court_number_error(court_number)
        if error:
            return CommandResult.fail(error)

        base, stale = self._begin(expected_version)
        if stale:
            return stale
        working = base.clone()
        court = working.court(court_number)
        if court is None or court.session is None:
            return CommandResult.fail(f"Court {court_number} is already empty.")

        session = court.session
        original_end = session.end_time
        if session.end_time > now:
            session.end_time = max(now, session.start_time)
        session.clear_reason = reason
        session.cleared_at = now
        court.history.append(session)
        court.session = None

        working.recently_cleared.append(
            RecentlyClearedEntry(
                court_number=court_number,
                cleared_at=now,
                original_end_time=original_end,
                players=list(session.players),
                source=source,
            )
        )

        ok, failure, version = self._commit(
            "clear_court",
            base,
            working,
            now,
            [COURTS_CHANGED],
            archived=[(court_number, session)],
            payload={"court_number": court_number},
        )
        if not ok:
            return failure
        return CommandResult.ok(court_number=court_number, cleared_session=session, version=version)

    def move_court(
        self,
        from_court: int,
        to_court: int,
        now: datetime,
        expected_version: Optional[int] = None,
    ) -> CommandResult:
        for number in (from_court, to_court):
            error = self._court_number_error(number)
            if error:
                return CommandResult.fail(error)
        if from_court == to_court:
            return CommandResult.fail("Choose a different court to move to.")

        base, stale = self._begin(expected_version)
        if stale:
            return stale
        working = base.clone()
        source = working.court(from_court)
        target = working.court(to_court)
        if source is None or source.session is None:
            return CommandResult.fail(f"Court {from_court} is empty.")
        if target is None:
            target = Court(number=to_court)
            working.courts.append(target)
            working.courts.sort(key=lambda c: c.number)
        if target.session is not None:
            return CommandResult.fail(f"Court {to_court} is already occupied.")

        target.session = source.session
        source.session = None

        ok, failure, version = self._commit(
            "move_court", base, working, now, [COURTS_CHANGED], payload={"from_court": from_court, "to_court": to_court}
        )
        if not ok:
            return failure
        return CommandResult.ok(from_court=from_court, to_court=to_court, session=target.session, version=version)

    def undo_overtime_takeover(
        self,
        takeover_session_id: Optional[str],
        displaced_session_id: Optional[str],
        now: datetime,
        court_number: Optional[int] = None,
    ) -> CommandResult:
        """
        Put the bumped group back and discard the takeover session.

        If the takeover can no longer be undone cleanly (ids missing, records
        gone, or the gateway reports a conflict), the takeover session is
        cleared as "Bumped" instead. The undo itself is never retried.
        """
        if takeover_session_id and displaced_session_id:
            base = self.gateway.load()
            working = base.clone()
            court = next(
                (c for c in working.courts if c.session is not None and c.session.id == takeover_session_id), None
            )
            index = None
            if court is not None:
                for i in range(len(court.history) - 1, -1, -1):
                    if court.history[i].id == displaced_session_id:
                        index = i
                        break

            if court is not None and index is not None:
                displaced = court.history.pop(index)
                court.session = replace(displaced, clear_reason=None, cleared_at=None)
                ok, failure, version = self._commit(
                    "undo_overtime_takeover",
                    base,
                    working,
                    now,
                    [COURTS_CHANGED],
                    restored=[displaced.id],
                    payload={"court_number": court.number},
                )
                if ok:
                    return CommandResult.ok(
                        court_number=court.number, restored_session=court.session, fallback=False, version=version
                    )
                logger.warning("Undo of takeover %s failed (%s); clearing instead", takeover_session_id, failure.error)
            else:
                logger.warning("Takeover %s has no undo record; clearing instead", takeover_session_id)

        return self._undo_fallback(takeover_session_id, court_number, now)

    def _undo_fallback(self, takeover_session_id: Optional[str], court_number: Optional[int], now: datetime) -> CommandResult:
        snapshot = self.gateway.load()
        target = None
        if takeover_session_id:
            target = next(
                (c.number for c in snapshot.courts if c.session is not None and c.session.id == takeover_session_id),
                None,
            )
        if target is None and court_number is not None and not takeover_session_id:
            court = snapshot.court(court_number)
            if court is not None and court.session is not None:
                target = court_number

        if target is None:
            return CommandResult.fail("Nothing to undo: the takeover session is no longer on a court.", fallback=True)

        result = self.clear_court(target, now, reason="Bumped", source="undo_fallback")
        result.data["fallback"] = True
        return result

    # ------------------------------------------------------------------
    # waitlist commands
    # ------------------------------------------------------------------

    def join_waitlist(
        self,
        group: Any,
        now: datetime,
        guests: int = 0,
        deferred: bool = False,
        expected_version: Optional[int] = None,
    ) -> CommandResult:
        players, error = self._prepare_players(group)
        if error:
            return CommandResult.fail(error)
        if isinstance(guests, bool) or not isinstance(guests, int) or guests < 0:
            return CommandResult.fail("Guests must be a non-negative whole number.")

        base, stale = self._begin(expected_version)
        if stale:
            return stale
        if not should_allow_waitlist_join(base.courts, now, base.blocks):
            return CommandResult.fail("A court is available now. Please take a court instead of joining the waitlist.")

        conflicts = check_group_conflicts(base, players)
        if conflicts.has_conflicts:
            messages = [f"{p['name']} is already playing on Court {p['court']}" for p in conflicts.playing]
            messages += [f"{w['name']} is already on the waitlist (position {w['position']})" for w in conflicts.waiting]
            return CommandResult.fail("\n".join(messages), conflicts=conflicts.to_dict())

        working = base.clone()
        entry = WaitlistEntry(id=new_id("w"), players=players, guests=guests, joined_at=now, deferred=bool(deferred))
        working.waitlist.append(entry)
        position = len(working.waitlist)
        estimates = simulate_waitlist_estimates(working.courts, working.waitlist, working.blocks, now, self.config)

        ok, failure, version = self._commit(
            "join_waitlist", base, working, now, [WAITLIST_CHANGED], payload={"entry_id": entry.id}
        )
        if not ok:
            return failure
        return CommandResult.ok(
            entry=entry.to_dict(position=position),
            position=position,
            estimated_wait_minutes=estimates[position - 1],
            version=version,
        )

    def _edit_waitlist(self, kind: str, entry_id: str, now: datetime, expected_version: Optional[int], edit) -> CommandResult:
        base, stale = self._begin(expected_version)
        if stale:
            return stale
        working = base.clone()
        index = next((i for i, e in enumerate(working.waitlist) if e.id == entry_id), None)
        if index is None:
            return CommandResult.fail("Waitlist entry not found.", not_found=True)
        error = edit(working, index)
        if error:
            return CommandResult.fail(error)

        ok, failure, version = self._commit(kind, base, working, now, [WAITLIST_CHANGED], payload={"entry_id": entry_id})
        if not ok:
            return failure
        return CommandResult.ok(entry_id=entry_id, position=working.waitlist_position(entry_id), version=version)

    def remove_from_waitlist(self, entry_id: str, now: datetime, expected_version: Optional[int] = None) -> CommandResult:
        def edit(working: BoardSnapshot, index: int) -> Optional[str]:
            working.waitlist.pop(index)
            return None

        return self._edit_waitlist("remove_from_waitlist", entry_id, now, expected_version, edit)

    def defer_waitlist(
        self, entry_id: str, now: datetime, deferred: bool = True, expected_version: Optional[int] = None
    ) -> CommandResult:
        def edit(working: BoardSnapshot, index: int) -> Optional[str]:
            working.waitlist[index].deferred = bool(deferred)
            return None

        return self._edit_waitlist("defer_waitlist", entry_id, now, expected_version, edit)

    def reorder_waitlist(
        self, entry_id: str, new_position: int, now: datetime, expected_version: Optional[int] = None
    ) -> CommandResult:
        def edit(working: BoardSnapshot, index: int) -> Optional[str]:
            if isinstance(new_position, bool) or not isinstance(new_position, int):
                return "Position must be a whole number."
            if new_position < 1 or new_position > len(working.waitlist):
                return f"Position must be between 1 and {len(working.waitlist)}."
            entry = working.waitlist.pop(index)
            working.waitlist.insert(new_position - 1, entry)
            return None

        return self._edit_waitlist("reorder_waitlist", entry_id, now, expected_version, edit)

    def clear_waitlist(self, now: datetime, expected_version: Optional[int] = None) -> CommandResult:
        base, stale = self._begin(expected_version)
        if stale:
            return stale
        working = base.clone()
        removed = len(working.waitlist)
        working.waitlist = []
        ok, failure, version = self._commit("clear_waitlist", base, working, now, [WAITLIST_CHANGED])
        if not ok:
            return failure
        return CommandResult.ok(removed_count=removed, version=version)

    # ------------------------------------------------------------------
    # block commands
    # ------------------------------------------------------------------

    def _block_courts(self, court_numbers: Any) -> Tuple[Optional[List[int]], Optional[str]]:
        if court_numbers is None:
            return list(range(1, self.config.court_count + 1)), None
        numbers = parse_court_numbers(court_numbers)
        if not numbers:
            return None, "Select at least one court."
        for number in numbers:
            error = self._court_number_error(number)
            if error:
                return None, error
        return numbers, None

    def create_block(
        self,
        court_numbers: Any,
        start_time: datetime,
        end_time: datetime,
        reason: str,
        now: datetime,
        is_wet_court: bool = False,
        title: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> CommandResult:
        """One block per listed court. Overlapping blocks are allowed."""
        numbers, error = self._block_courts(court_numbers)
        if error:
            return CommandResult.fail(error)
        if end_time <= start_time:
            return CommandResult.fail("Block end time must be after its start time.")
        if end_time <= now:
            return CommandResult.fail("Block would already be over.")
        if not (reason or "").strip() and not (title or "").strip():
            return CommandResult.fail("A block needs a reason.")

        base, stale = self._begin(expected_version)
        if stale:
            return stale
        working = base.clone()
        created = [
            Block(
                id=new_id("b"),
                court_number=number,
                start_time=start_time,
                end_time=end_time,
                reason=(reason or "").strip(),
                is_wet_court=bool(is_wet_court),
                created_at=now,
                title=title,
            )
            for number in numbers
        ]
        working.blocks.extend(created)

        ok, failure, version = self._commit(
            "create_block", base, working, now, [BLOCKS_CHANGED], payload={"court_numbers": numbers}
        )
        if not ok:
            return failure
        return CommandResult.ok(blocks=created, version=version)

    def remove_block(self, block_id: str, now: datetime, expected_version: Optional[int] = None) -> CommandResult:
        base, stale = self._begin(expected_version)
        if stale:
            return stale
        working = base.clone()
        if not any(b.id == block_id for b in working.blocks):
            return CommandResult.fail("Block not found.", not_found=True)
        working.blocks = [b for b in working.blocks if b.id != block_id]

        ok, failure, version = self._commit(
            "remove_block", base, working, now, [BLOCKS_CHANGED], payload={"block_id": block_id}
        )
        if not ok:
            return failure
        return CommandResult.ok(block_id=block_id, version=version)

    def mark_wet_courts(
        self,
        now: datetime,
        court_numbers: Any = None,
        duration_minutes: Optional[int] = None,
        expected_version: Optional[int] = None,
    ) -> CommandResult:
        """Wet-court blocks from now on every listed court (all courts by default)."""
        numbers, error = self._block_courts(court_numbers)
        if error:
            return CommandResult.fail(error)
        minutes = duration_minutes if duration_minutes is not None else self.config.wet_court_duration_minutes
        if isinstance(minutes, bool) or not isinstance(minutes, int) or minutes <= 0:
            return CommandResult.fail("Wet court duration must be a positive number of minutes.")

        base, stale = self._begin(expected_version)
        if stale:
            return stale
        working = base.clone()
        already_wet = {b.court_number for b in working.blocks if b.is_wet_court and is_block_active(b, now)}
        created = [
            Block(
                id=new_id("b"),
                court_number=number,
                start_time=now,
                end_time=now + timedelta(minutes=minutes),
                reason=WET_COURT_REASON,
                is_wet_court=True,
                created_at=now,
            )
            for number in numbers
            if number not in already_wet
        ]
        if not created:
            return CommandResult.ok(blocks=[], court_numbers=[], version=base.version)
        working.blocks.extend(created)

        ok, failure, version = self._commit(
            "mark_wet_courts", base, working, now, [BLOCKS_CHANGED], payload={"court_numbers": numbers}
        )
        if not ok:
            return failure
        return CommandResult.ok(blocks=created, court_numbers=[b.court_number for b in created], version=version)

    def clear_wet_courts(self, now: datetime, court_numbers: Any = None, expected_version: Optional[int] = None) -> CommandResult:
        """Remove wet-court blocks: all courts dry, or only the listed ones."""
        numbers, error = self._block_courts(court_numbers)
        if error:
            return CommandResult.fail(error)
        wanted = set(numbers)

        base, stale = self._begin(expected_version)
        if stale:
            return stale
        working = base.clone()
        removed = [b for b in working.blocks if b.is_wet_court and b.court_number in wanted]
        if not removed:
            return CommandResult.ok(removed_count=0, court_numbers=[], version=base.version)
        removed_ids = {b.id for b in removed}
        working.blocks = [b for b in working.blocks if b.id not in removed_ids]

        ok, failure, version = self._commit(
            "clear_wet_courts", base, working, now, [BLOCKS_CHANGED], payload={"court_numbers": sorted(wanted)}
        )
        if not ok:
            return failure
        return CommandResult.ok(
            removed_count=len(removed),
            court_numbers=sorted({b.court_number for b in removed}),
            version=version,
        )

    def cleanup_expired_blocks(self, now: datetime, expected_version: Optional[int] = None) -> CommandResult:
        base, stale = self._begin(expected_version)
        if stale:
            return stale
        working = base.clone()
        kept = [b for b in working.blocks if b.end_time > now or is_block_active(b, now)]
        removed = len(working.blocks) - len(kept)
        if removed == 0:
            return CommandResult.ok(removed_count=0, version=base.version)
        working.blocks = kept

        ok, failure, version = self._commit("cleanup_expired_blocks", base, working, now, [BLOCKS_CHANGED])
        if not ok:
            return failure
        return CommandResult.ok(removed_count=removed, version=version)
