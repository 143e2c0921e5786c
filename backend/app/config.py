"""
Club configuration loaded from the environment.

Values come from a .env file (python-dotenv) or the process environment.
Times of day (CLOSING_HOUR) are read on the UTC clock, the same naive-UTC
clock the board stores. Product rules that never vary per deployment
(registration buffer, block refusal threshold, minimum useful session) live
as module constants in the services that apply them.
"""

import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

from app.utils.courts import parse_court_numbers

load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class ClubConfig:
    """Deployment settings for one club."""

    court_count: int = 12
    singles_only_courts: List[int] = field(default_factory=lambda: [8])
    singles_duration_minutes: int = 60
    doubles_duration_minutes: int = 90
    avg_game_minutes: int = 75
    max_duration_minutes: int = 240
    max_players_per_group: int = 4
    # hour of day on the UTC clock, like every stored timestamp
    closing_hour: int = 22
    wet_court_duration_minutes: int = 720

    @classmethod
    def from_env(cls) -> "ClubConfig":
        singles_raw = os.getenv("SINGLES_ONLY_COURTS")
        singles = parse_court_numbers(singles_raw) if singles_raw is not None else [8]
        return cls(
            court_count=_env_int("COURT_COUNT", 12),
            singles_only_courts=singles,
            singles_duration_minutes=_env_int("SINGLES_DURATION_MINUTES", 60),
            doubles_duration_minutes=_env_int("DOUBLES_DURATION_MINUTES", 90),
            avg_game_minutes=_env_int("AVG_GAME_MINUTES", 75),
            max_duration_minutes=_env_int("MAX_DURATION_MINUTES", 240),
            max_players_per_group=_env_int("MAX_PLAYERS_PER_GROUP", 4),
            closing_hour=_env_int("CLOSING_HOUR", 22),
            wet_court_duration_minutes=_env_int("WET_COURT_DURATION_MINUTES", 720),
        )


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./courts.db")
SQL_ECHO = _env_bool("SQL_ECHO")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")
