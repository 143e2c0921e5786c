"""
Waitlist endpoints: queue view with estimates and servability, conflict
checks, and queue commands.
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.config import ClubConfig
from app.dependencies import get_config, get_gateway, get_orchestrator, resolve_now
from app.routes.schemas import (
    AssignFromWaitlistRequest,
    ConflictCheckRequest,
    DeferRequest,
    JoinWaitlistRequest,
    ReorderRequest,
)
from app.services.assignment_orchestrator import AssignmentOrchestrator
from app.services.board_store import SqlBoardGateway
from app.services.court_state import get_free_courts, get_next_free_times
from app.services.roster import check_group_conflicts
from app.services.waitlist_engine import (
    CourtSelection,
    estimate_wait_for_positions,
    estimate_wait_minutes,
    find_servable_entries,
    simulate_waitlist_estimates,
)
from app.utils.clock import to_iso
from app.utils.version_guards import require_success

router = APIRouter()


@router.get("/waitlist")
def get_waitlist(
    now: Optional[datetime] = Query(None),
    gateway: SqlBoardGateway = Depends(get_gateway),
    config: ClubConfig = Depends(get_config),
):
    """Queue in order, each entry with its simulated wait, plus who can play now."""
    at = resolve_now(now)
    snapshot = gateway.load()
    estimates = simulate_waitlist_estimates(snapshot.courts, snapshot.waitlist, snapshot.blocks, at, config)
    entries = []
    for index, entry in enumerate(snapshot.waitlist):
        data = entry.to_dict(position=index + 1)
        data["estimated_wait_minutes"] = estimates[index]
        entries.append(data)

    selection = CourtSelection.from_snapshot(snapshot, at, config)
    return {
        "version": snapshot.version,
        "now": to_iso(at),
        "entries": entries,
        "servable": find_servable_entries(snapshot.waitlist, selection).to_dict(),
    }


@router.get("/waitlist/estimate")
def get_wait_estimate(
    position: int = Query(..., ge=1),
    now: Optional[datetime] = Query(None),
    gateway: SqlBoardGateway = Depends(get_gateway),
    config: ClubConfig = Depends(get_config),
):
    """Estimated wait for a hypothetical queue position."""
    at = resolve_now(now)
    snapshot = gateway.load()
    next_free = get_next_free_times(snapshot.courts, at, snapshot.blocks, closing_hour=config.closing_hour)
    free_count = len(get_free_courts(snapshot.courts, at, snapshot.blocks))
    return {
        "position": position,
        "estimated_wait_minutes": estimate_wait_minutes(
            position, snapshot.courts, at, snapshot.blocks, avg_game_minutes=config.avg_game_minutes
        ),
        "turnover_estimate_minutes": estimate_wait_for_positions(
            [position], free_count, list(next_free.values()), at, avg_game_minutes=config.avg_game_minutes
        )[0],
    }


@router.post("/waitlist/conflicts")
def check_conflicts(
    payload: ConflictCheckRequest,
    gateway: SqlBoardGateway = Depends(get_gateway),
):
    """Who in the candidate group is already on a court or in the queue."""
    snapshot = gateway.load()
    return check_group_conflicts(snapshot, [p.to_player() for p in payload.players]).to_dict()


@router.post("/waitlist")
def join_waitlist(
    payload: JoinWaitlistRequest,
    orchestrator: AssignmentOrchestrator = Depends(get_orchestrator),
):
    result = orchestrator.join_waitlist(
        [p.to_player() for p in payload.players],
        resolve_now(payload.now),
        guests=payload.guests,
        deferred=payload.deferred,
        expected_version=payload.expected_version,
    )
    return require_success(result)


@router.delete("/waitlist")
def clear_waitlist(
    orchestrator: AssignmentOrchestrator = Depends(get_orchestrator),
):
    return require_success(orchestrator.clear_waitlist(resolve_now()))


@router.delete("/waitlist/{entry_id}")
def remove_from_waitlist(
    entry_id: str,
    orchestrator: AssignmentOrchestrator = Depends(get_orchestrator),
):
    return require_success(orchestrator.remove_from_waitlist(entry_id, resolve_now()))


@router.post("/waitlist/{entry_id}/defer")
def defer_waitlist_entry(
    entry_id: str,
    payload: Optional[DeferRequest] = None,
    orchestrator: AssignmentOrchestrator = Depends(get_orchestrator),
):
    payload = payload or DeferRequest()
    result = orchestrator.defer_waitlist(
        entry_id, resolve_now(payload.now), deferred=payload.deferred, expected_version=payload.expected_version
    )
    return require_success(result)


@router.post("/waitlist/{entry_id}/reorder")
def reorder_waitlist_entry(
    entry_id: str,
    payload: ReorderRequest,
    orchestrator: AssignmentOrchestrator = Depends(get_orchestrator),
):
    result = orchestrator.reorder_waitlist(
        entry_id, payload.position, resolve_now(payload.now), expected_version=payload.expected_version
    )
    return require_success(result)


@router.post("/waitlist/{entry_id}/assign")
def assign_from_waitlist(
    entry_id: str,
    payload: AssignFromWaitlistRequest,
    orchestrator: AssignmentOrchestrator = Depends(get_orchestrator),
    config: ClubConfig = Depends(get_config),
):
    if payload.court_number < 1 or payload.court_number > config.court_count:
        raise HTTPException(status_code=400, detail=f"Invalid court number. Please select 1-{config.court_count}.")
    result = orchestrator.assign_from_waitlist(
        entry_id,
        payload.court_number,
        resolve_now(payload.now),
        duration=payload.duration,
        expected_version=payload.expected_version,
    )
    return require_success(result)
