# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
from app.models.club_board import ClubBoard  # noqa: F401
from app.models.member import Member  # noqa: F401
from app.models.session_history import SessionHistory  # noqa: F401
