"""Shared test fixtures and configuration."""
import pytest
import os
import httpx
import yaml
from unittest.mock import Mock, AsyncMock
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing app
os.environ.setdefault("OPENAI_API_KEY", "test-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from receptionist.main import app
from receptionist.db.database import get_db
from receptionist.db.models import Base
from receptionist.core.dependencies import (
    get_call_controller,
    get_client_config_repository,
    get_session_store,
)
from receptionist.services.agent.policy import get_policy
from receptionist.services.agent.turn_engine import TurnEngine
from receptionist.services.call_session.controller import CallLifecycleController
from receptionist.services.call_session.store import SessionStore
from receptionist.services.clients.repository import ClientConfigRepository
from receptionist.services.clients.yaml_provider import YamlClientConfigProvider
from receptionist.services.persistence.calls import CallLogWriter


# Test database URL (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_CLIENTS = {
    "clients": [
        {
            "client_id": "acme",
            "greeting": "Hi, Acme here",
            "escalation_number": "+1900",
            "business_hours": "Mon-Fri 9-5",
        },
        {
            "client_id": "bakery",
            "greeting": "Thanks for calling the bakery",
            "escalation_number": None,
            "business_hours": None,
        },
    ]
}


@pytest.fixture
async def test_db_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_db_engine):
    """Session factory bound to the test database."""
    return async_sessionmaker(
        test_db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
async def test_db(session_factory):
    """Create test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def clients_file(tmp_path):
    """Client config YAML with an escalating and a voicemail-only client."""
    path = tmp_path / "clients.yaml"
    with open(path, "w") as f:
        yaml.safe_dump(TEST_CLIENTS, f, default_flow_style=False, sort_keys=False)
    return path


@pytest.fixture
def config_repository(clients_file):
    """Client config repository over the test YAML file."""
    return ClientConfigRepository(YamlClientConfigProvider(str(clients_file)))


@pytest.fixture
def mock_completion():
    """Completion engine fake; set complete.side_effect / return_value per test."""
    client = Mock()
    client.complete = AsyncMock(return_value="How can I help?")
    return client


@pytest.fixture
def turn_engine(mock_completion):
    return TurnEngine(mock_completion, policy=get_policy(), max_tokens=150)


@pytest.fixture
def session_store():
    return SessionStore()


@pytest.fixture
def log_writer(session_factory):
    """Call log writer against the test database, no backoff delay."""
    return CallLogWriter(session_factory, max_attempts=3, backoff_seconds=0)


@pytest.fixture
async def controller(session_store, turn_engine, config_repository, log_writer):
    """Call lifecycle controller wired to test collaborators."""
    controller = CallLifecycleController(
        store=session_store,
        turn_engine=turn_engine,
        config_repository=config_repository,
        log_writer=log_writer,
        policy=get_policy(),
        max_turns=12,
        record_max_length_seconds=120,
        max_consecutive_failures=3,
    )
    yield controller
    # Let background call log writes land before the database goes away
    await log_writer.drain()


@pytest.fixture
def override_get_db(test_db):
    """Override get_db dependency with test database."""
    async def _override_get_db():
        yield test_db
    return _override_get_db


@pytest.fixture
async def async_client(controller, session_store, config_repository, override_get_db):
    """HTTP client running the app on the test's event loop."""
    app.dependency_overrides[get_call_controller] = lambda: controller
    app.dependency_overrides[get_session_store] = lambda: session_store
    app.dependency_overrides[get_client_config_repository] = lambda: config_repository
    app.dependency_overrides[get_db] = override_get_db

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def test_client(config_repository):
    """Synchronous FastAPI test client for endpoints without loop-bound state."""
    app.dependency_overrides[get_client_config_repository] = lambda: config_repository

    client = TestClient(app)

    yield client

    app.dependency_overrides.clear()
