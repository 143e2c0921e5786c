from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel


class SessionHistory(SQLModel, table=True):
    """Append-only log of sessions that left a court (cleared or bumped)."""

    __tablename__ = "sessionhistory"

    id: Optional[int] = Field(default=None, primary_key=True)
    board_id: int = Field(foreign_key="clubboard.id", index=True)
    session_id: str = Field(index=True)
    court_number: int = Field(index=True)
    players: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    guests: int = Field(default=0)
    start_time: datetime
    end_time: datetime
    duration: int
    clear_reason: Optional[str] = Field(default=None)
    cleared_at: Optional[datetime] = Field(default=None)
    recorded_at: datetime = Field(default_factory=datetime.utcnow)
