"""
Test configuration and fixtures.

Provides:
- in-memory SQLite database (aiosqlite + StaticPool), fresh per test
- identity factories for patients, researchers and admins
- HTTPX AsyncClient bound to the app, authenticated with a minted cookie
"""
import os
import uuid
from contextlib import AsyncExitStack

# settings are read at import time
os.environ["ENV"] = "test"
os.environ["DATABASE_DSN"] = "sqlite+aiosqlite:///:memory:"
os.environ["OUTBOX_RELAY_ENABLED"] = "false"
os.environ["CACHE_PROVIDER"] = "memory"
os.environ["EVENT_BUS_PROVIDER"] = "noop"
os.environ["JWT_SECRET"] = "test-secret"

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from curalink.core.base import Base
from curalink.core.db import get_session, import_models
from curalink.core.security import create_access_token
from curalink.main import app
from curalink.modules.users.models import User, Role, PatientProfile, ResearcherProfile
from curalink.platform.provider_registry import registry


@pytest.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    import_models()
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture(autouse=True)
def _fresh_providers():
    registry.reset()
    yield
    registry.reset()


@pytest.fixture
def make_user(session_factory):
    async def _make(name: str, role: str = Role.PATIENT, *, email: str | None = None,
                    available: bool = True, institution: str | None = None, conditions=None) -> User:
        async with session_factory() as s:
            user = User(
                id=uuid.uuid4(),
                email=email or f"{name.lower().replace(' ', '.').replace('..', '.')}@example.org",
                name=name,
                role=role,
            )
            s.add(user)
            await s.flush()
            if role == Role.RESEARCHER:
                s.add(ResearcherProfile(user_id=user.id, institution=institution,
                                        specialties=["Oncology"], research_interests=["Immunotherapy"],
                                        available_for_meetings=available))
            elif role == Role.PATIENT:
                s.add(PatientProfile(user_id=user.id, conditions=conditions or ["Glioma"], age=42,
                                     gender="female", city="Boston", country="USA"))
            await s.commit()
            return user
    return _make


@pytest.fixture
async def patient(make_user):
    return await make_user("Pat Patient", Role.PATIENT)


@pytest.fixture
async def researcher(make_user):
    return await make_user("Dr. Ada Lee", Role.RESEARCHER, institution="General Hospital")


@pytest.fixture
async def other_researcher(make_user):
    return await make_user("Dr. Sam Okafor", Role.RESEARCHER, institution="City Lab")


@pytest.fixture
async def unavailable_researcher(make_user):
    return await make_user("Dr. Busy Bee", Role.RESEARCHER, available=False)


@pytest.fixture
async def admins(make_user):
    return [await make_user("Admin One", Role.ADMIN), await make_user("Admin Two", Role.ADMIN)]


def token_for(user: User) -> str:
    return create_access_token(user.id, email=user.email, role=user.role, name=user.name)


@pytest.fixture
async def client_for(session_factory):
    """Factory: ``await client_for(user)`` gives an AsyncClient carrying that user's auth cookie."""
    async def override_get_session():
        async with session_factory() as s:
            yield s

    app.dependency_overrides[get_session] = override_get_session
    async with AsyncExitStack() as stack:
        async def _client(user: User | None = None, cookie_name: str = "token", token: str | None = None) -> AsyncClient:
            if token is None and user is not None:
                token = token_for(user)
            cookies = {cookie_name: token} if token else None
            return await stack.enter_async_context(
                AsyncClient(transport=ASGITransport(app=app), base_url="http://test/api/v1", cookies=cookies)
            )
        yield _client
    app.dependency_overrides.clear()


@pytest.fixture
def notifications_for(session_factory):
    """Rows delivered to a recipient, oldest first, read through a fresh session."""
    from sqlalchemy import select
    from curalink.modules.notifications.models import Notification

    async def _fetch(user_id: uuid.UUID):
        async with session_factory() as s:
            res = await s.execute(
                select(Notification).where(Notification.recipient_id == user_id).order_by(Notification.created_at.asc())
            )
            return list(res.scalars().all())
    return _fetch


@pytest.fixture
def outbox_events(session_factory):
    from sqlalchemy import select
    from curalink.modules.events.outbox import EventOutbox

    async def _fetch(event_type: str | None = None):
        async with session_factory() as s:
            q = select(EventOutbox).order_by(EventOutbox.created_at.asc())
            if event_type:
                q = q.where(EventOutbox.event_type == event_type)
            res = await s.execute(q)
            return list(res.scalars().all())
    return _fetch
