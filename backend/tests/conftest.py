"""
Pytest fixtures for test database, client, and authentication.

Tests run against a throwaway SQLite file through aiosqlite, so several
sessions can hit the database at once (needed for the concurrent admission
tests). Tables are created and dropped around every test for isolation.
Redis is disabled: the cache falls back to its in-process store and
notifications go to an in-memory sink that tests can subscribe to.
"""

import os
import tempfile
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

_TEST_DIR = tempfile.mkdtemp(prefix="coworking-tests-")
TEST_DATABASE_URL = os.environ.setdefault(
    "DATABASE_URL", f"sqlite+aiosqlite:///{_TEST_DIR}/test.db"
)
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ["REDIS_ENABLED"] = "false"
os.environ["ADMISSION_STRATEGY"] = "local"
os.environ["NOTIFICATION_BACKEND"] = "memory"

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from app.main import app
from app.db.base import Base
from app.db.session import get_db
from app.core.security import CurrentUser, create_access_token, hash_password
from app.models.user import User
from app.models.room import Room
from app.services.cache_service import memory_cache
from app.services.interfaces.local_admission import LocalAdmission
from app.services.notification_service import InMemoryNotificationSink, Notifier, get_notifier
from app.services.strategy_factory import get_admission

# Every test runs on its own event loop, so connections are never pooled
test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
TestSessionLocal = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


def _slot(hour: int, minute: int = 0, days_ahead: int = 3) -> datetime:
    """A clean wall-clock instant a few days in the future (UTC)."""
    day = (datetime.now(timezone.utc) + timedelta(days=days_ahead)).date()
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc) + timedelta(
        hours=hour, minutes=minute
    )


@pytest.fixture
def slot():
    """Factory for future booking instants: slot(9) is 09:00 UTC three days out."""
    return _slot


def as_current_user(user: User) -> CurrentUser:
    return CurrentUser(id=user.id, username=user.username, role=user.role)


@pytest.fixture
def current_user(test_user: User) -> CurrentUser:
    return as_current_user(test_user)


@pytest.fixture(autouse=True)
def clear_memory_cache():
    memory_cache.clear()
    yield
    memory_cache.clear()


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create tables, yield session, then drop tables for isolation."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def session_factory(db_session: AsyncSession) -> async_sessionmaker:
    """Independent sessions on the same database, one per simulated request."""
    return TestSessionLocal


@pytest.fixture
def admission() -> LocalAdmission:
    return LocalAdmission()


@pytest.fixture
def notification_sink() -> InMemoryNotificationSink:
    return InMemoryNotificationSink()


@pytest_asyncio.fixture(scope="function")
async def client(
    db_session: AsyncSession,
    admission: LocalAdmission,
    notification_sink: InMemoryNotificationSink,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with a fresh DB session per request and injected collaborators."""

    async def override_get_db():
        async with TestSessionLocal() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_admission] = lambda: admission
    app.dependency_overrides[get_notifier] = lambda: Notifier(notification_sink)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _create_user(db: AsyncSession, username: str, email: str, role: str = "user") -> User:
    user = User(
        email=email,
        username=username,
        hashed_password=hash_password("testpassword123"),
        role=role,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "testuser", "test@example.com")


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "otheruser", "other@example.com")


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "adminuser", "admin@example.com", role="admin")


def _headers_for(user: User) -> dict:
    token = create_access_token(data={"sub": str(user.id), "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def auth_headers(test_user: User) -> dict:
    """Authorization headers with Bearer token."""
    return _headers_for(test_user)


@pytest_asyncio.fixture
async def other_headers(other_user: User) -> dict:
    return _headers_for(other_user)


@pytest_asyncio.fixture
async def admin_headers(admin_user: User) -> dict:
    return _headers_for(admin_user)


async def _create_room(db: AsyncSession, name: str, capacity: int, **kwargs) -> Room:
    room = Room(name=name, capacity=capacity, amenities=kwargs.pop("amenities", []), **kwargs)
    db.add(room)
    await db.commit()
    await db.refresh(room)
    return room


@pytest_asyncio.fixture
async def test_room(db_session: AsyncSession) -> Room:
    """A four-person workspace."""
    return await _create_room(
        db_session, "Focus Room", 4, type="workspace", amenities=["whiteboard"], hourly_rate=15
    )


@pytest_asyncio.fixture
async def conference_room(db_session: AsyncSession) -> Room:
    return await _create_room(
        db_session, "Board Room", 12, type="conference", amenities=["projector", "tv"], hourly_rate=60
    )


@pytest_asyncio.fixture
async def inactive_room(db_session: AsyncSession) -> Room:
    return await _create_room(db_session, "Old Loft", 6, is_active=False)
