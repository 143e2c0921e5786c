from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel


class ClubBoard(SQLModel, table=True):
    """Current board for one club: courts, blocks, waitlist, recently cleared.

    version is bumped on every accepted write and is the compare-and-swap
    token for concurrent kiosks.
    """

    __tablename__ = "clubboard"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(default="main", index=True, unique=True)
    version: int = Field(default=0)
    courts: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    blocks: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    waitlist: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    recently_cleared: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    updated_at: datetime = Field(default_factory=datetime.utcnow)
