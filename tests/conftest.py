"""
Shared test configuration and fixtures.

Every test gets its own in-memory SQLite database with the full schema. The
app runs against it with Redis and the email provider replaced through
dependency overrides.
"""

import re
import uuid
import jwt
import pytest
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Dict, List, Optional
from unittest.mock import AsyncMock
from httpx import ASGITransport, AsyncClient

from src.app import create_app
from src.core.dependencies import get_database, get_email_client, get_redis_client, get_token_store
from src.core.service.auth.models.user import CallerIdentity
from src.infra.config.settings import get_settings
from src.infra.database import DatabaseManager
from src.infra.models import UserModel

settings = get_settings()

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeClock:
    """Controllable replacement for datetime.now(timezone.utc)"""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class InMemoryTokenStore:
    """Token blacklist kept in process memory"""

    def __init__(self):
        self.revoked: Dict[str, Optional[str]] = {}

    async def add_to_blacklist(self, jti: str, exp: datetime, reason: Optional[str] = None) -> None:
        self.revoked[jti] = reason

    async def is_blacklisted(self, jti: str) -> bool:
        return jti in self.revoked


class RecordingEmailClient:
    """Collects outgoing email instead of calling the provider"""

    is_configured = True

    def __init__(self):
        self.outbox: List[Dict[str, str]] = []

    async def send(self, to_address: str, subject: str, html_body: str) -> None:
        self.outbox.append({"to": to_address, "subject": subject, "html": html_body})

    def last_code(self) -> str:
        return re.search(r">(\d{6})<", self.outbox[-1]["html"]).group(1)


async def seed_user(database: DatabaseManager, user_id: str, email: Optional[str] = "player@example.com", **fields):
    """Insert a user row the way the identity provider would"""
    async def work(session):
        session.add(UserModel(id=user_id, email=email, **fields))

    await database.run_in_transaction(work)
    return CallerIdentity(user_id=user_id, email=email)


@pytest.fixture
async def database() -> AsyncGenerator[DatabaseManager, None]:
    manager = DatabaseManager(TEST_DATABASE_URL)
    await manager.create_tables()
    try:
        yield manager
    finally:
        await manager.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
async def player(database) -> CallerIdentity:
    return await seed_user(database, "k97d8f3x2m1p0q9r8s7t6u5v")


@pytest.fixture
def make_user(database):
    """Factory for additional users in the test database"""
    async def _make(user_id: str, email: Optional[str] = "player@example.com", **fields) -> CallerIdentity:
        return await seed_user(database, user_id, email, **fields)

    return _make


@pytest.fixture
def token_store() -> InMemoryTokenStore:
    return InMemoryTokenStore()


@pytest.fixture
def email_client() -> RecordingEmailClient:
    return RecordingEmailClient()


@pytest.fixture
def redis_client():
    client = AsyncMock()
    client.ping.return_value = True
    return client


@pytest.fixture
def app(database, token_store, email_client, redis_client):
    """Create FastAPI app instance for testing."""
    app = create_app()
    app.dependency_overrides[get_database] = lambda: database
    app.dependency_overrides[get_token_store] = lambda: token_store
    app.dependency_overrides[get_email_client] = lambda: email_client
    app.dependency_overrides[get_redis_client] = lambda: redis_client
    return app


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac


@pytest.fixture
def auth_headers():
    """Bearer headers for a token issued to the given user"""
    def _headers(user_id: str, jti: Optional[str] = None) -> Dict[str, str]:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "iat": now,
            "exp": now + timedelta(minutes=30),
            "jti": jti or str(uuid.uuid4()),
        }
        token = jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
        return {"Authorization": f"Bearer {token}"}

    return _headers
