"""Shared test fixtures and configuration."""
import json
import os
from typing import Any, Optional

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing app
os.environ.setdefault("TELNYX_API_KEY", "test-key")
os.environ.setdefault("TELNYX_CONNECTION_ID", "test-connection")
os.environ.setdefault("TELNYX_FROM_NUMBER", "+15550000000")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("AUTH_SECRET", "test-secret")

from app.main import app
from app.db.database import get_db
from app.db.models import Base
from app.core.config import Settings
from app.core.dependencies import get_settings, get_telephony_gateway
from app.services.call_session.correlation import CorrelationToken, encode_client_state
from app.services.persistence.calls import CallSessionStore
from app.services.telephony.base import PlaceCallRequest, PlacedCall, TelephonyGateway


# Test database URL (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeGateway(TelephonyGateway):
    """In-memory TelephonyGateway that records what it was asked to do."""

    def __init__(
        self,
        provider_call_id: Optional[str] = "call_abc",
        provider_control_id: Optional[str] = "ctrl_abc",
        error: Optional[Exception] = None,
    ):
        self.provider_call_id = provider_call_id
        self.provider_control_id = provider_control_id
        self.error = error
        self.requests: list[PlaceCallRequest] = []
        self.started: list[tuple[str, str]] = []
        self.on_place_call = None

    async def place_call(self, request: PlaceCallRequest) -> PlacedCall:
        self.requests.append(request)
        if self.on_place_call is not None:
            await self.on_place_call(request)
        if self.error is not None:
            raise self.error
        return PlacedCall(
            provider_call_id=self.provider_call_id,
            provider_control_id=self.provider_control_id,
        )

    async def start_assistant(self, control_id: str, assistant_id: str) -> None:
        self.started.append((control_id, assistant_id))


@pytest.fixture
def test_settings():
    """Override settings for testing."""
    return Settings(
        telnyx_api_key="test-key",
        telnyx_connection_id="test-connection",
        telnyx_from_number="+15550000000",
        telnyx_api_base_url="https://telnyx.test/v2",
        database_url=TEST_DATABASE_URL,
        auth_secret="test-secret",
        auth_owner_id="owner-1",
        base_url="https://calls.example.com",
        webhook_verification="warn",
    )


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
async def test_db(test_db_engine):
    """Create test database session."""
    async_session = async_sessionmaker(
        test_db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session


@pytest.fixture
def store(test_db):
    """Call session store on the test database."""
    return CallSessionStore(test_db)


@pytest.fixture
def fake_gateway():
    """Telephony gateway test double that accepts every call."""
    return FakeGateway()


@pytest.fixture
def auth_headers(test_settings):
    """Authorization header for the test owner."""
    return {"Authorization": f"Bearer {test_settings.auth_secret}"}


@pytest.fixture
async def api_client(test_db, test_settings, fake_gateway):
    """Async HTTP client against the app with test dependencies."""
    async def _override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_telephony_gateway] = lambda: fake_gateway

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    # Clear overrides
    app.dependency_overrides.clear()


@pytest.fixture
def make_webhook():
    """Build a raw provider webhook body in the nested `data` shape."""

    def _make(
        event_type: str,
        session_id: Optional[str] = None,
        assistant_id: str = "asst_1",
        client_state: Optional[str] = None,
        **payload: Any,
    ) -> bytes:
        if client_state is None and session_id is not None:
            client_state = encode_client_state(
                CorrelationToken(session_id=session_id, assistant_id=assistant_id)
            )
        if client_state is not None:
            payload["client_state"] = client_state
        event = {
            "data": {
                "event_type": event_type,
                "id": "evt_1",
                "occurred_at": "2026-10-19T12:00:00Z",
                "payload": payload,
            }
        }
        return json.dumps(event).encode("utf-8")

    return _make
