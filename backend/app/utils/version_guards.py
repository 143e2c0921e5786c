"""
Board Version Guards

HTTP-side guards for the board's optimistic concurrency:
- Stale client versions are rejected before any mutation is planned
- Command envelopes are translated into HTTP errors
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException

from app.services.board import BoardSnapshot, CommandResult


def require_board_version(snapshot: BoardSnapshot, expected_version: Optional[int] = None) -> BoardSnapshot:
    """
    Require that the client saw the current board, otherwise raise 409.

    Args:
        snapshot: Board as currently stored
        expected_version: Version the client last read (None skips the check)

    Returns:
        The snapshot, unchanged

    Raises:
        HTTPException 409: Board has moved on since the client read it
    """
    if expected_version is not None and expected_version != snapshot.version:
        raise HTTPException(
            status_code=409,
            detail={
                "error": "BOARD_VERSION_CONFLICT",
                "message": f"Board is at version {snapshot.version}, request was based on {expected_version}.",
                "version": snapshot.version,
            },
        )
    return snapshot


def require_success(result: CommandResult) -> Dict[str, Any]:
    """
    Return the envelope of a successful command or raise the matching error.

    Raises:
        HTTPException 409: Concurrent write detected
        HTTPException 404: Referenced waitlist entry or block does not exist
        HTTPException 400: Validation failure
    """
    if result.success:
        return result.to_dict()
    if result.conflict:
        raise HTTPException(
            status_code=409,
            detail={"error": "BOARD_VERSION_CONFLICT", "message": result.error, "version": result.data.get("version")},
        )
    if result.data.get("not_found"):
        raise HTTPException(status_code=404, detail=result.error)
    raise HTTPException(status_code=400, detail=result.error)
