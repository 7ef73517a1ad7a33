"""
Pytest configuration and fixtures

Each test gets its own in-memory SQLite database (aiosqlite) and a mock
mail provider; nothing talks to a real mailbox.
"""
import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["MAIL_PROVIDER"] = "mock"
os.environ["EMAIL_POLL_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["GEMINI_API_KEY"] = ""
os.environ["OPENAI_API_KEY"] = ""

from datetime import datetime

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from leaddesk.core.security import get_password_hash, create_access_token
from leaddesk.database import get_session
from leaddesk.models import User, Roles, Lead, LeadStatus, EmailMessage, Direction, Notification
from leaddesk.main import app
from leaddesk.services.integrations.email import MockMailProvider, set_mail_provider


@pytest.fixture
async def engine():
    """Fresh in-memory database per test"""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def provider():
    """Mock mail provider"""
    return MockMailProvider(domain="test.local")


@pytest.fixture
def make_user(session):
    """Factory for users; password is always 'secret123'"""
    async def _make(username="admin", role=Roles.ADMIN, **kwargs):
        user = User(
            username=username,
            email=kwargs.pop("email", f"{username}@leaddesk.test"),
            password_hash=get_password_hash("secret123"),
            role=role,
            **kwargs
        )
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user
    return _make


@pytest.fixture
def make_lead(session):
    """Factory for leads"""
    async def _make(client_name="Jane Doe", email="jane@acme.com", **kwargs):
        kwargs.setdefault("status", LeadStatus.NEW)
        lead = Lead(client_name=client_name, email=email, **kwargs)
        session.add(lead)
        await session.commit()
        await session.refresh(lead)
        return lead
    return _make


@pytest.fixture
def make_email(session):
    """Factory for stored correspondence"""
    async def _make(lead, direction=Direction.SENT, **kwargs):
        kwargs.setdefault("subject", "Quote")
        kwargs.setdefault("body", "Hello")
        kwargs.setdefault("sent_at", datetime.utcnow())
        email = EmailMessage(lead_id=lead.id, direction=direction, **kwargs)
        session.add(email)
        await session.commit()
        await session.refresh(email)
        return email
    return _make


@pytest.fixture
def auth_headers():
    """Bearer header for a user"""
    def _headers(user) -> dict:
        token = create_access_token({
            "sub": user.username,
            "user_id": str(user.id),
            "role": user.role
        })
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
async def client(session, provider):
    """API client bound to the test database and the mock provider"""
    async def override_session():
        yield session

    app.dependency_overrides[get_session] = override_session
    set_mail_provider(provider)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    set_mail_provider(None)


@pytest.fixture
def failing_notifications(session, monkeypatch):
    """Every commit that carries a new notification fails"""
    commit = session.commit

    async def _commit():
        if any(isinstance(obj, Notification) for obj in session.new):
            raise SQLAlchemyError("notification insert failed")
        await commit()

    monkeypatch.setattr(session, "commit", _commit)
