"""
FastAPI dependencies shared by the board routers.

Each request gets its own gateway and orchestrator bound to the request's
database session; the change notifier lives on app.state for the life of
the process.
"""
from datetime import datetime
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Request
from sqlmodel import Session

from app.config import ClubConfig
from app.database import get_session
from app.services.assignment_orchestrator import AssignmentOrchestrator
from app.services.board_store import SqlBoardGateway, load_roster
from app.services.events import ChangeNotifier
from app.utils.clock import coerce_datetime


@lru_cache()
def get_config() -> ClubConfig:
    return ClubConfig.from_env()


def get_notifier(request: Request) -> Optional[ChangeNotifier]:
    return getattr(request.app.state, "notifier", None)


def get_gateway(
    session: Session = Depends(get_session),
    config: ClubConfig = Depends(get_config),
) -> SqlBoardGateway:
    return SqlBoardGateway(session, config)


def get_orchestrator(
    session: Session = Depends(get_session),
    gateway: SqlBoardGateway = Depends(get_gateway),
    config: ClubConfig = Depends(get_config),
    notifier: Optional[ChangeNotifier] = Depends(get_notifier),
) -> AssignmentOrchestrator:
    return AssignmentOrchestrator(gateway, config=config, notifier=notifier, roster=load_roster(session))


def resolve_now(value: Optional[datetime] = None) -> datetime:
    """Clients may pin the clock (kiosk replay, tests); default is the server's."""
    return coerce_datetime(value) or datetime.utcnow()
