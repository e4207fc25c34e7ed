"""
Meganote Backend - Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the whole suite.
How:   Every test gets a fresh in-memory SQLite database (aiosqlite,
       StaticPool so all sessions share the one connection) with the schema
       created from the ORM metadata. Endpoint tests talk to a freshly built
       app through httpx's ASGITransport; the database session and the mail
       capability are swapped in with dependency overrides.

Fixture Hierarchy:
    db_engine → session_factory → db_session          (service tests)
                                → client               (endpoint tests)
                                   ├── registered_user
                                   └── auth_headers
    mail_outbox: recording MailService shared by client and tests
"""

import os
import tempfile

# Override settings for testing BEFORE any meganote imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ACCESS_TOKEN_SECRET"] = "test-secret-not-real-0123456789abcdef"
os.environ["BCRYPT_ROUNDS"] = "4"  # fastest cost bcrypt accepts
os.environ["MAIL_BACKEND"] = "console"
os.environ["APP_ENV"] = "development"
os.environ["LOG_DIR"] = tempfile.mkdtemp(prefix="meganote_test_logs_")
os.environ["LOG_LEVEL"] = "WARNING"

from dataclasses import dataclass
from typing import List

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from meganote.database import Base, get_db_session
from meganote.dependencies import get_mail_service
from meganote.exceptions import DeliveryError
from meganote.main import create_app
from meganote.services.mail_base import MailService

import meganote.models  # noqa: F401  (registers tables on Base.metadata)


# ══════════════════════════════════════════════════════════════════════════
# Mail
# ══════════════════════════════════════════════════════════════════════════

@dataclass
class SentMail:
    to: str
    subject: str
    body: str


class RecordingMailService(MailService):
    """Keeps every message instead of sending it. Set `fail` to simulate a relay outage."""

    def __init__(self):
        self.sent: List[SentMail] = []
        self.fail = False

    async def send(self, to: str, subject: str, body: str) -> None:
        if self.fail:
            raise DeliveryError(context={"reason": "relay down (test)"})
        self.sent.append(SentMail(to=to, subject=subject, body=body))


@pytest.fixture
def mail_outbox():
    return RecordingMailService()


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    """A plain session for service-level tests. Not used together with `client`."""
    async with session_factory() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# HTTP
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def client(session_factory, mail_outbox):
    """
    HTTPX AsyncClient bound to a fresh app instance.

    A new app per test also means a new login rate-limit window.
    """
    app = create_app()

    async def override_get_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session
    app.dependency_overrides[get_mail_service] = lambda: mail_outbox

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


USER_PAYLOAD = {
    "username": "dan",
    "fullname": "Dan Abramov",
    "email": "dan@example.com",
    "password": "s3cret-pass",
}


@pytest.fixture
def user_payload():
    return dict(USER_PAYLOAD)


@pytest_asyncio.fixture
async def registered_user(client):
    """Registers USER_PAYLOAD through the public endpoint; returns the response user."""
    response = await client.post("/auth/register", json=USER_PAYLOAD)
    assert response.status_code == 201, response.text
    return response.json()["user"]


@pytest_asyncio.fixture
async def auth_headers(client, registered_user):
    response = await client.post(
        "/auth",
        json={"username": USER_PAYLOAD["username"], "password": USER_PAYLOAD["password"]},
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['accessToken']}"}
