from app.models.club_board import ClubBoard
from app.models.member import Member
from app.models.session_history import SessionHistory

__all__ = [
    "ClubBoard",
    "Member",
    "SessionHistory",
]
