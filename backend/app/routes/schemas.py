"""Request bodies shared by the board routers."""
from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from app.services.board import Player


class PlayerIn(BaseModel):
    name: str
    id: Optional[str] = None
    member_id: Optional[str] = None
    is_guest: bool = False
    sponsor: Optional[str] = None
    club_number: Optional[str] = None

    def to_player(self) -> Player:
        return Player(
            name=self.name.strip(),
            id=self.id,
            member_id=self.member_id,
            is_guest=self.is_guest,
            sponsor=self.sponsor,
            club_number=self.club_number,
        )


class MutationRequest(BaseModel):
    now: Optional[datetime] = None
    expected_version: Optional[int] = None


class AssignRequest(MutationRequest):
    players: List[PlayerIn]
    duration: Optional[int] = None
    guests: int = 0


class ClearRequest(MutationRequest):
    reason: str = "Cleared"


class MoveRequest(MutationRequest):
    from_court: int
    to_court: int


class UndoTakeoverRequest(MutationRequest):
    takeover_session_id: Optional[str] = None
    displaced_session_id: Optional[str] = None
    court_number: Optional[int] = None


class JoinWaitlistRequest(MutationRequest):
    players: List[PlayerIn]
    guests: int = 0
    deferred: bool = False


class DeferRequest(MutationRequest):
    deferred: bool = True


class ReorderRequest(MutationRequest):
    position: int


class AssignFromWaitlistRequest(MutationRequest):
    court_number: int
    duration: Optional[int] = None


class ConflictCheckRequest(BaseModel):
    players: List[PlayerIn]


class BlockCreate(MutationRequest):
    court_numbers: Union[List[int], str]
    start_time: datetime
    end_time: datetime
    reason: str = ""
    title: Optional[str] = None
    is_wet_court: bool = False


class WetCourtsRequest(MutationRequest):
    court_numbers: Optional[Union[List[int], str]] = None
    duration_minutes: Optional[int] = Field(default=None, gt=0)


class MemberCreate(BaseModel):
    name: str
    club_number: Optional[str] = None
    member_id: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()


class MemberResponse(BaseModel):
    id: int
    name: str
    member_id: Optional[str] = None
    club_number: Optional[str] = None

    class Config:
        from_attributes = True
