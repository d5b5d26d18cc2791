"""
Roomly Backend - Test Configuration (conftest.py)
==================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Settings are read from the environment at import time, so the test
       environment is set up before anything from `roomly` is imported.

Fixture Hierarchy (all function-scoped):
    ├── mock_db_session: AsyncMock session for pure service unit tests
    ├── db_engine: in-memory SQLite (aiosqlite) with foreign keys enabled
    │   └── session_factory: sessions on that engine
    │       └── db_session: one open session
    ├── test_client: HTTPX AsyncClient bound to the app, DB overridden
    ├── served_client: same, but unhandled errors return 500 like a server
    ├── create_user: registers an activated user and returns auth headers
    ├── temp_storage: temporary directory for file operations
    └── sample_image_bytes: tiny JPEG header for upload tests
"""

import os
import tempfile

# Override settings for testing BEFORE any roomly imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="roomly_test_")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["COOKIE_SECURE"] = "false"
os.environ["RESEND_API_KEY"] = ""
os.environ["GITHUB_CLIENT_ID"] = ""
os.environ["GITHUB_CLIENT_SECRET"] = ""
os.environ["GOOGLE_CLIENT_ID"] = ""
os.environ["GOOGLE_CLIENT_SECRET"] = ""
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["RETRY_MIN_WAIT"] = "0"
os.environ["RETRY_MAX_ATTEMPTS"] = "2"

from datetime import timedelta
from typing import AsyncGenerator, Dict
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from roomly.database import Base, get_db_session
from roomly.models.user import User
from roomly.security import SCOPE_AUTHENTICATION, hash_password
from roomly.services.token_service import token_service

DEFAULT_PASSWORD = "pa55word!"


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    AsyncMock standing in for AsyncSession.

    Usage:
        mock_db_session.execute.return_value.first.return_value = None
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.get = AsyncMock()
    session.add = MagicMock()
    session.add_all = MagicMock()
    return session


@pytest_asyncio.fixture
async def db_engine():
    """
    A fresh in-memory database per test.

    StaticPool keeps the single connection alive so every session sees the
    same tables; SQLite only enforces ON DELETE CASCADE with foreign_keys on.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# API Client Fixtures
# ══════════════════════════════════════════════════════════════════════════

async def _app_client(session_factory, raise_app_exceptions: bool) -> AsyncGenerator[AsyncClient, None]:
    from roomly.main import app

    async def override_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_db_session
    transport = ASGITransport(app=app, raise_app_exceptions=raise_app_exceptions)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def test_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTPX AsyncClient talking to the app through ASGITransport.

    get_db_session is overridden to use the per-test engine, keeping the
    same commit/rollback behaviour as the real dependency.
    """
    async for client in _app_client(session_factory, raise_app_exceptions=True):
        yield client


@pytest_asyncio.fixture
async def served_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """
    Like test_client, but unhandled errors come back as the 500 response a
    real server would send instead of being re-raised into the test.
    """
    async for client in _app_client(session_factory, raise_app_exceptions=False):
        yield client


@pytest.fixture
def create_user(session_factory):
    """
    Factory: insert a user directly and open a session for them.

    Returns (user, headers) where headers carry `Authorization: Bearer ...`.

    Usage:
        user, headers = await create_user("host@example.com")
    """

    async def _create(
        email: str = "guest@example.com",
        name: str = "Test User",
        password: str = DEFAULT_PASSWORD,
        activated: bool = True,
    ):
        async with session_factory() as session:
            user = User(
                name=name,
                email=email,
                password_hash=hash_password(password, rounds=4),
                activated=activated,
            )
            session.add(user)
            await session.flush()
            token, _ = await token_service.new_token(
                session, user.id, timedelta(days=1), SCOPE_AUTHENTICATION
            )
            await session.commit()
        headers: Dict[str, str] = {"Authorization": f"Bearer {token}"}
        return user, headers

    return _create


@pytest.fixture
def listing_payload():
    """A valid create-listing body (camelCase, as the web client sends it)."""
    return {
        "title": "Cosy cabin by the lake",
        "description": "Two bedrooms, wood stove and a private jetty.",
        "category": "Lake",
        "bedrooms": 2,
        "bathrooms": 1,
        "guests": 4,
        "location": {
            "flag": "🇳🇴",
            "label": "Norway",
            "lat": 60.47,
            "lng": 8.47,
            "region": "Europe",
            "value": "NO",
        },
        "price": 120,
        "images": ["https://images.example.com/cabin-1.jpg"],
    }


# ══════════════════════════════════════════════════════════════════════════
# File Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def sample_image_bytes():
    """
    Minimal JPEG: Start of Image (FFD8) + JFIF marker + End of Image (FFD9).
    Enough for libmagic to report image/jpeg.
    """
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )
