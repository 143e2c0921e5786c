"""
Member directory endpoints. Members back player identity resolution on
assignment and waitlist join.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session, select

from app.database import get_session
from app.models.member import Member
from app.routes.schemas import MemberCreate, MemberResponse
from app.services.board import Player
from app.services.board_store import load_roster
from app.services.roster import RosterEntry, ensure_member_ids, resolve_member_id

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/members", response_model=List[MemberResponse])
def list_members(session: Session = Depends(get_session)):
    return session.exec(select(Member).order_by(Member.name, Member.id)).all()


@router.post("/members", response_model=MemberResponse, status_code=201)
def create_member(member: MemberCreate, session: Session = Depends(get_session)):
    """Add a member; a missing member_id is minted from name and club number."""
    entries, minted = ensure_member_ids(
        [RosterEntry(name=member.name, member_id=member.member_id, club_number=member.club_number)]
    )
    entry = entries[0]

    existing = session.exec(select(Member).where(Member.member_id == entry.member_id)).first()
    if existing:
        raise HTTPException(status_code=409, detail=f"Member id {entry.member_id} is already taken by {existing.name}")

    db_member = Member(name=entry.name, member_id=entry.member_id, club_number=entry.club_number)
    session.add(db_member)
    session.commit()
    session.refresh(db_member)
    if minted:
        logger.info("Minted member id %s for %s", db_member.member_id, db_member.name)
    return db_member


@router.get("/members/resolve")
def resolve_member(
    name: str = Query(..., min_length=1),
    club_number: Optional[str] = Query(None),
    session: Session = Depends(get_session),
):
    """Member id for a typed name, or null when zero or several members match."""
    player = Player(name=name, club_number=club_number)
    return {"name": name, "member_id": resolve_member_id(player, load_roster(session))}
