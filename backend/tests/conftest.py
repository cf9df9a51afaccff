"""Pytest configuration and shared fixtures."""

# Settings are read at import time; point them at test resources first
import os
import tempfile

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOCAL_STORE_BACKEND", "file")
os.environ.setdefault("LOCAL_STORE_DIR", tempfile.mkdtemp(prefix="shiftwise-test-"))

from decimal import Decimal
from typing import AsyncGenerator, Dict, Iterable, Optional
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from shiftwise.core.database import Base, get_db
from shiftwise.main import app
from shiftwise.models.user import User
from shiftwise.services.key_value_store import get_key_value_store
from shiftwise.services.local_storage_service import LocalStorageService

# In-memory SQLite; StaticPool keeps every session on one connection
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign keys for SQLite."""
    if hasattr(dbapi_conn, "execute"):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


class InMemoryKeyValueStore:
    """Dict-backed KeyValueStore for tests."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def multi_remove(self, keys: Iterable[str]) -> None:
        for key in keys:
            self.data.pop(key, None)


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    import shiftwise.models  # noqa: F401

    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(test_engine) -> async_sessionmaker:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def db(db_session: AsyncSession) -> AsyncSession:
    """Alias for db_session to match test function signatures."""
    return db_session


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def local_storage(kv_store: InMemoryKeyValueStore) -> LocalStorageService:
    return LocalStorageService(kv_store)


@pytest_asyncio.fixture
async def cloud_user(db_session: AsyncSession) -> User:
    """An existing cloud user with a zero balance."""
    user = User(id=uuid4(), username="existing_user", balance=Decimal("0.00"))
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
def user_id() -> UUID:
    """An authenticated id with no cloud row yet."""
    return uuid4()


@pytest.fixture(scope="function")
def override_get_db(db_session: AsyncSession):
    """Override the get_db dependency."""

    async def _override_get_db():
        yield db_session

    return _override_get_db


@pytest_asyncio.fixture(scope="function")
async def async_client(override_get_db, kv_store) -> AsyncGenerator[AsyncClient, None]:
    """Async test client with the database and guest store swapped for test doubles."""
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_key_value_store] = lambda: kv_store
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
