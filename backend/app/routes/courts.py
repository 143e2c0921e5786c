"""
Court commands (assign, clear, move, undo takeover) and per-court block queries.
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.config import ClubConfig
from app.dependencies import get_config, get_gateway, get_orchestrator, resolve_now
from app.routes.schemas import AssignRequest, ClearRequest, MoveRequest, UndoTakeoverRequest
from app.services.assignment_orchestrator import AssignmentOrchestrator
from app.services.block_scheduler import get_court_block_status, get_upcoming_block_warning
from app.services.board_store import SqlBoardGateway
from app.utils.version_guards import require_success

logger = logging.getLogger(__name__)

router = APIRouter()


def _check_court(court_number: int, config: ClubConfig) -> None:
    if court_number < 1 or court_number > config.court_count:
        raise HTTPException(status_code=404, detail=f"Court {court_number} not found")


@router.post("/courts/{court_number}/assign")
def assign_court(
    court_number: int,
    payload: AssignRequest,
    orchestrator: AssignmentOrchestrator = Depends(get_orchestrator),
):
    result = orchestrator.assign_court(
        court_number,
        [p.to_player() for p in payload.players],
        resolve_now(payload.now),
        duration=payload.duration,
        guests=payload.guests,
        expected_version=payload.expected_version,
    )
    return require_success(result)


@router.post("/courts/{court_number}/clear")
def clear_court(
    court_number: int,
    payload: Optional[ClearRequest] = None,
    orchestrator: AssignmentOrchestrator = Depends(get_orchestrator),
):
    payload = payload or ClearRequest()
    result = orchestrator.clear_court(
        court_number,
        resolve_now(payload.now),
        reason=payload.reason,
        expected_version=payload.expected_version,
    )
    return require_success(result)


@router.post("/courts/move")
def move_court(
    payload: MoveRequest,
    orchestrator: AssignmentOrchestrator = Depends(get_orchestrator),
):
    result = orchestrator.move_court(
        payload.from_court,
        payload.to_court,
        resolve_now(payload.now),
        expected_version=payload.expected_version,
    )
    return require_success(result)


@router.post("/courts/undo-takeover")
def undo_takeover(
    payload: UndoTakeoverRequest,
    orchestrator: AssignmentOrchestrator = Depends(get_orchestrator),
):
    """Restore a bumped group; falls back to clearing the takeover session.

    The envelope is returned as-is: a fallback is a normal outcome, not an error.
    """
    result = orchestrator.undo_overtime_takeover(
        payload.takeover_session_id,
        payload.displaced_session_id,
        resolve_now(payload.now),
        court_number=payload.court_number,
    )
    if result.data.get("fallback"):
        logger.info("Undo takeover fell back to clear: %s", result.to_dict())
    return result.to_dict()


@router.get("/courts/{court_number}/block-status")
def court_block_status(
    court_number: int,
    now: Optional[datetime] = Query(None),
    gateway: SqlBoardGateway = Depends(get_gateway),
    config: ClubConfig = Depends(get_config),
):
    _check_court(court_number, config)
    snapshot = gateway.load()
    return get_court_block_status(court_number, resolve_now(now), snapshot.blocks).to_dict()


@router.get("/courts/{court_number}/block-warning")
def court_block_warning(
    court_number: int,
    duration: int = Query(60, ge=0),
    now: Optional[datetime] = Query(None),
    gateway: SqlBoardGateway = Depends(get_gateway),
    config: ClubConfig = Depends(get_config),
):
    _check_court(court_number, config)
    snapshot = gateway.load()
    warning = get_upcoming_block_warning(court_number, duration, snapshot.blocks, resolve_now(now))
    return {"court_number": court_number, "warning": warning.to_dict() if warning else None}
