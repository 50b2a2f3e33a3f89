"""
Shared test fixtures for the ZenithDocs API test suite.

Async throughout (aiosqlite + AsyncSession + httpx.AsyncClient).
"""

import os
import sys
from typing import AsyncGenerator

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["ENVIRONMENT"] = "development"
os.environ["JWT_ACCESS_SECRET"] = "test-access-secret"
os.environ["JWT_REFRESH_SECRET"] = "test-refresh-secret"
os.environ["API_KEY"] = "test-api-key"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOGIN_CONCEAL_UNKNOWN_EMAIL"] = "false"

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from zenithdocs.api.v1.deps import get_db
from zenithdocs.core.permissions import Role
from zenithdocs.db.base import Base
from zenithdocs.main import app
from zenithdocs.models.user import User
from zenithdocs.services.auth import AuthService

# Separate in-memory engine shared by the app (via dependency override) and the tests.
test_engine = create_async_engine(
    "sqlite+aiosqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def setup_db():
    """Create all tables before usage and drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestingSessionLocal() as session:
        yield session


app.dependency_overrides[get_db] = _override_get_db


@pytest.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
def make_user(db_session: AsyncSession):
    """Factory that registers a user through the real hashing path."""

    async def _make(
        email: str = "alice@example.com",
        password: str = "secret1",
        role: Role = Role.USER,
    ) -> User:
        return await AuthService(db_session).register(email, password, role=role)

    return _make
