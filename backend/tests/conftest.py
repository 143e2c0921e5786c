from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.config import ClubConfig
from app.database import get_session
from app.dependencies import get_config
from app.main import app
from app.services.board import BoardSnapshot
from app.services.board_store import InMemoryBoardGateway
from app.services.assignment_orchestrator import AssignmentOrchestrator
from app.services.events import ChangeNotifier

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. Use sqlite:///:memory: with StaticPool so ALL sessions share same DB
# 2. check_same_thread=False required for TestClient/threaded access
# 3. All models MUST be imported before create_all() (see session_fixture)
# 4. App dependency overridden to use test_engine (see client_fixture)
# 5. Tables are dropped after each test so every test starts from an empty board
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Fixed clock for scheduling tests: a Saturday morning
NOW = datetime(2026, 6, 6, 10, 0, 0)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


def override_get_config():
    return ClubConfig()


@pytest.fixture(name="now")
def now_fixture():
    return NOW


@pytest.fixture(name="config")
def config_fixture():
    return ClubConfig()


@pytest.fixture(name="gateway")
def gateway_fixture(config):
    """Empty in-memory board at version 0"""
    return InMemoryBoardGateway(BoardSnapshot.empty(config.court_count), config)


@pytest.fixture(name="notifier")
def notifier_fixture():
    return ChangeNotifier()


@pytest.fixture(name="orchestrator")
def orchestrator_fixture(gateway, config, notifier):
    return AssignmentOrchestrator(gateway, config=config, notifier=notifier)


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on a freshly created schema"""
    # Import all models to ensure they're registered BEFORE create_all
    from app.models.club_board import ClubBoard  # noqa: F401
    from app.models.member import Member  # noqa: F401
    from app.models.session_history import SessionHistory  # noqa: F401

    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session

    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Provide a test client with overridden database session

    Override MUST be set BEFORE TestClient() and stay in place
    for the entire duration. This ensures the app never uses its own engine.
    """
    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_config] = override_get_config

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
