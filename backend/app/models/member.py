from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class Member(SQLModel, table=True):
    """Club directory entry used to resolve player identities."""

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    member_id: Optional[str] = Field(default=None, index=True, unique=True)
    club_number: Optional[str] = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
