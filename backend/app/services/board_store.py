"""
Board persistence gateways.

The scheduling core never talks to storage directly. It loads a
BoardSnapshot, plans a mutation against a copy, and hands the result to a
gateway as a MutationIntent. The gateway applies it only if the board is
still at intent.base_version (compare-and-swap) and otherwise reports a
conflict so the caller can reload and re-present current state.

- InMemoryBoardGateway: process-local, lock-protected; for tests and
  embedding the core without a database
- SqlBoardGateway: one ClubBoard row per club, conditional UPDATE on
  version, cleared/bumped sessions appended to SessionHistory and
  dropped from it again when an undo puts them back on a court
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import delete, update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from app.config import ClubConfig
from app.models.club_board import ClubBoard
from app.models.member import Member
from app.models.session_history import SessionHistory
from app.services.board import BoardSnapshot
from app.services.board import Session as CourtSession
from app.services.roster import RosterEntry

logger = logging.getLogger(__name__)


@dataclass
class MutationIntent:
    """A planned change: the full next snapshot plus sessions leaving or returning to courts."""

    kind: str
    base_version: int
    snapshot: BoardSnapshot
    archived_sessions: List[Tuple[int, CourtSession]] = field(default_factory=list)
    restored_session_ids: List[str] = field(default_factory=list)


@dataclass
class ApplyResult:
    ok: bool
    conflict: bool = False
    version: Optional[int] = None
    error: Optional[str] = None


class BoardGateway:
    """Interface every persistence adapter implements."""

    def load(self) -> BoardSnapshot:
        raise NotImplementedError

    def apply(self, intent: MutationIntent) -> ApplyResult:
        raise NotImplementedError


class InMemoryBoardGateway(BoardGateway):
    def __init__(self, snapshot: Optional[BoardSnapshot] = None, config: Optional[ClubConfig] = None):
        config = config or ClubConfig()
        self._snapshot = (snapshot or BoardSnapshot.empty(config.court_count)).clone()
        self._lock = threading.Lock()
        self.history: List[Tuple[int, CourtSession]] = []
        self.applied_kinds: List[str] = []

    def load(self) -> BoardSnapshot:
        with self._lock:
            return self._snapshot.clone()

    def apply(self, intent: MutationIntent) -> ApplyResult:
        with self._lock:
            if intent.base_version != self._snapshot.version:
                logger.warning(
                    "Rejected %s: base version %s, board at %s",
                    intent.kind,
                    intent.base_version,
                    self._snapshot.version,
                )
                return ApplyResult(ok=False, conflict=True, version=self._snapshot.version)

            next_snapshot = intent.snapshot.clone()
            next_snapshot.version = self._snapshot.version + 1
            self._snapshot = next_snapshot
            if intent.restored_session_ids:
                restored = set(intent.restored_session_ids)
                self.history = [(n, s) for n, s in self.history if s.id not in restored]
            self.history.extend(intent.archived_sessions)
            self.applied_kinds.append(intent.kind)
            return ApplyResult(ok=True, version=next_snapshot.version)

    def bump_version(self) -> int:
        """Simulate an external writer touching the board."""
        with self._lock:
            self._snapshot.version += 1
            return self._snapshot.version


class SqlBoardGateway(BoardGateway):
    def __init__(self, session: Session, config: Optional[ClubConfig] = None, board_name: str = "main"):
        self.session = session
        self.config = config or ClubConfig()
        self.board_name = board_name

    def _get_or_create_row(self) -> ClubBoard:
        row = self.session.exec(select(ClubBoard).where(ClubBoard.name == self.board_name)).first()
        if row is not None:
            return row

        empty = BoardSnapshot.empty(self.config.court_count).to_dict()
        row = ClubBoard(
            name=self.board_name,
            version=0,
            courts=empty["courts"],
            blocks=[],
            waitlist=[],
            recently_cleared=[],
        )
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        logger.info("Created board %r with %s courts", self.board_name, self.config.court_count)
        return row

    def load(self) -> BoardSnapshot:
        row = self._get_or_create_row()
        self.session.refresh(row)
        return BoardSnapshot.from_dict(
            {
                "version": row.version,
                "courts": row.courts,
                "blocks": row.blocks,
                "waitlist": row.waitlist,
                "recently_cleared": row.recently_cleared,
            },
            court_count=self.config.court_count,
        )

    def apply(self, intent: MutationIntent) -> ApplyResult:
        row = self._get_or_create_row()
        board_id = row.id
        data = intent.snapshot.to_dict()
        next_version = intent.base_version + 1

        try:
            stmt = (
                update(ClubBoard)
                .where(ClubBoard.id == board_id, ClubBoard.version == intent.base_version)
                .values(
                    version=next_version,
                    courts=data["courts"],
                    blocks=data["blocks"],
                    waitlist=[_stored_entry(e) for e in data["waitlist"]],
                    recently_cleared=data["recently_cleared"],
                    updated_at=datetime.utcnow(),
                )
            )
            result = self.session.execute(stmt)
            if result.rowcount == 0:
                self.session.rollback()
                current = self.session.get(ClubBoard, board_id)
                current_version = current.version if current else None
                logger.warning(
                    "Rejected %s: base version %s, board at %s",
                    intent.kind,
                    intent.base_version,
                    current_version,
                )
                return ApplyResult(ok=False, conflict=True, version=current_version)

            if intent.restored_session_ids:
                self.session.execute(
                    delete(SessionHistory).where(
                        SessionHistory.board_id == board_id,
                        SessionHistory.session_id.in_(intent.restored_session_ids),
                    )
                )
            for court_number, archived in intent.archived_sessions:
                self.session.add(
                    SessionHistory(
                        board_id=board_id,
                        session_id=archived.id,
                        court_number=court_number,
                        players=[p.to_dict() for p in archived.players],
                        guests=archived.guests,
                        start_time=archived.start_time,
                        end_time=archived.end_time,
                        duration=archived.duration,
                        clear_reason=archived.clear_reason,
                        cleared_at=archived.cleared_at,
                    )
                )
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Failed to apply %s: %s", intent.kind, e)
            return ApplyResult(ok=False, error=f"Storage error: {e.__class__.__name__}")

        self.session.expire_all()
        return ApplyResult(ok=True, version=next_version)

    def session_history(self, court_number: Optional[int] = None, limit: int = 100) -> List[SessionHistory]:
        query = select(SessionHistory).order_by(SessionHistory.id.desc())
        if court_number is not None:
            query = query.where(SessionHistory.court_number == court_number)
        return list(self.session.exec(query.limit(limit)).all())


def _stored_entry(entry: dict) -> dict:
    # position is derived on read, never stored
    return {k: v for k, v in entry.items() if k != "position"}


def load_roster(session: Session) -> List[RosterEntry]:
    members = session.exec(select(Member).order_by(Member.name, Member.id)).all()
    return [RosterEntry(name=m.name, member_id=m.member_id, club_number=m.club_number) for m in members]
