"""
Board read endpoints: snapshot, per-court status and session history.
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.config import ClubConfig
from app.dependencies import get_config, get_gateway, resolve_now
from app.services.board_store import SqlBoardGateway
from app.services.court_state import (
    classify_courts,
    get_free_courts_info,
    get_next_free_times,
    get_selectable_courts_strict,
    should_allow_waitlist_join,
)
from app.utils.clock import to_iso
from app.utils.version_guards import require_board_version

router = APIRouter()


@router.get("/board")
def get_board(gateway: SqlBoardGateway = Depends(get_gateway)):
    """Full board snapshot (courts, blocks, waitlist with positions)."""
    return gateway.load().to_dict()


@router.get("/board/version")
def check_board_version(
    expected_version: Optional[int] = Query(None),
    gateway: SqlBoardGateway = Depends(get_gateway),
):
    """Cheap freshness check for polling kiosks; 409 when the board moved on."""
    snapshot = require_board_version(gateway.load(), expected_version)
    return {"version": snapshot.version}


@router.get("/board/status")
def get_board_status(
    now: Optional[datetime] = Query(None),
    gateway: SqlBoardGateway = Depends(get_gateway),
    config: ClubConfig = Depends(get_config),
):
    at = resolve_now(now)
    snapshot = gateway.load()
    next_free = get_next_free_times(snapshot.courts, at, snapshot.blocks, closing_hour=config.closing_hour)
    return {
        "version": snapshot.version,
        "now": to_iso(at),
        "courts": [s.to_dict() for s in classify_courts(snapshot.courts, at, snapshot.blocks)],
        "info": get_free_courts_info(snapshot.courts, at, snapshot.blocks).to_dict(),
        "selectable": get_selectable_courts_strict(snapshot.courts, at, snapshot.blocks),
        "can_join_waitlist": should_allow_waitlist_join(snapshot.courts, at, snapshot.blocks),
        "next_free_times": {str(n): to_iso(t) for n, t in sorted(next_free.items())},
    }


@router.get("/board/history")
def get_session_history(
    court_number: Optional[int] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    gateway: SqlBoardGateway = Depends(get_gateway),
):
    """Sessions that have left a court, newest first."""
    rows = gateway.session_history(court_number=court_number, limit=limit)
    return [
        {
            "session_id": r.session_id,
            "court_number": r.court_number,
            "players": r.players,
            "guests": r.guests,
            "start_time": to_iso(r.start_time),
            "end_time": to_iso(r.end_time),
            "duration": r.duration,
            "clear_reason": r.clear_reason,
            "cleared_at": to_iso(r.cleared_at),
        }
        for r in rows
    ]
