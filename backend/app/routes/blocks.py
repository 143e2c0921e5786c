"""
Court block endpoints: scheduled blocks and wet-court handling.
"""
from typing import Optional

from fastapi import APIRouter, Depends

from app.dependencies import get_gateway, get_orchestrator, resolve_now
from app.routes.schemas import BlockCreate, MutationRequest, WetCourtsRequest
from app.services.assignment_orchestrator import AssignmentOrchestrator
from app.services.board_store import SqlBoardGateway
from app.utils.clock import coerce_datetime
from app.utils.version_guards import require_success

router = APIRouter()


@router.get("/blocks")
def list_blocks(
    court_number: Optional[int] = None,
    gateway: SqlBoardGateway = Depends(get_gateway),
):
    blocks = gateway.load().blocks
    if court_number is not None:
        blocks = [b for b in blocks if b.court_number == court_number]
    return [b.to_dict() for b in sorted(blocks, key=lambda b: (b.start_time, b.court_number))]


@router.post("/blocks", status_code=201)
def create_block(
    payload: BlockCreate,
    orchestrator: AssignmentOrchestrator = Depends(get_orchestrator),
):
    result = orchestrator.create_block(
        payload.court_numbers,
        coerce_datetime(payload.start_time),
        coerce_datetime(payload.end_time),
        payload.reason,
        resolve_now(payload.now),
        is_wet_court=payload.is_wet_court,
        title=payload.title,
        expected_version=payload.expected_version,
    )
    return require_success(result)


@router.delete("/blocks/{block_id}")
def remove_block(
    block_id: str,
    orchestrator: AssignmentOrchestrator = Depends(get_orchestrator),
):
    return require_success(orchestrator.remove_block(block_id, resolve_now()))


@router.post("/blocks/wet")
def mark_wet_courts(
    payload: Optional[WetCourtsRequest] = None,
    orchestrator: AssignmentOrchestrator = Depends(get_orchestrator),
):
    """Mark courts wet from now (all courts when none are listed)."""
    payload = payload or WetCourtsRequest()
    result = orchestrator.mark_wet_courts(
        resolve_now(payload.now),
        court_numbers=payload.court_numbers,
        duration_minutes=payload.duration_minutes,
        expected_version=payload.expected_version,
    )
    return require_success(result)


@router.post("/blocks/wet/clear")
def clear_wet_courts(
    payload: Optional[WetCourtsRequest] = None,
    orchestrator: AssignmentOrchestrator = Depends(get_orchestrator),
):
    payload = payload or WetCourtsRequest()
    result = orchestrator.clear_wet_courts(
        resolve_now(payload.now),
        court_numbers=payload.court_numbers,
        expected_version=payload.expected_version,
    )
    return require_success(result)


@router.post("/blocks/cleanup")
def cleanup_expired_blocks(
    payload: Optional[MutationRequest] = None,
    orchestrator: AssignmentOrchestrator = Depends(get_orchestrator),
):
    payload = payload or MutationRequest()
    result = orchestrator.cleanup_expired_blocks(resolve_now(payload.now), expected_version=payload.expected_version)
    return require_success(result)
