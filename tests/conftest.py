"""
Pytest configuration and fixtures for the Stockroom API
"""
import os

# Settings are read on first use; configure the test environment before any app import
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-stockroom"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["PASSWORD_BCRYPT_ROUNDS"] = "4"
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_FORMAT"] = "text"
os.environ["LOG_LEVEL"] = "WARNING"

from types import SimpleNamespace
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from stockroom.config import get_settings
from stockroom.core.security import JWTManager, PasswordHasher
from stockroom.db import tables
from stockroom.db.init_db import drop_db, init_db
from stockroom.db.session import enable_sqlite_foreign_keys, get_db
from stockroom.main import app
from stockroom.services.auth import CurrentUser

TEST_DATABASE_URL = "sqlite+aiosqlite://"
TEST_PASSWORD = "correct horse battery staple"

test_engine = create_async_engine(
    TEST_DATABASE_URL,
    poolclass=StaticPool,
    connect_args={"check_same_thread": False},
    echo=False,
)
enable_sqlite_foreign_keys(test_engine)

TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

hasher = PasswordHasher(4)
password_hash = hasher.hash(TEST_PASSWORD)


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh schema and a session for each test."""
    await init_db(test_engine)

    async with TestSessionLocal() as session:
        yield session

    await drop_db(test_engine)
    # Each test runs on its own event loop; never carry the connection over
    await test_engine.dispose()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with every request on its own test session."""

    async def override_get_db():
        async with TestSessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


async def insert_row(session: AsyncSession, table, **values) -> int:
    result = await session.execute(insert(table).values(**values))
    await session.commit()
    return result.inserted_primary_key[0]


@pytest_asyncio.fixture
async def organizations(db_session: AsyncSession) -> SimpleNamespace:
    """Two tenants: ``home`` (the caller's) and ``other``."""
    home = await insert_row(db_session, tables.organization, name="Home Org")
    other = await insert_row(db_session, tables.organization, name="Other Org")
    return SimpleNamespace(home=home, other=other)


async def create_user(session: AsyncSession, organization_id: int, email: str, role_id: int = 2) -> int:
    return await insert_row(
        session,
        tables.user,
        firstName="Test",
        lastName=email.split("@")[0].title(),
        email=email,
        password=password_hash,
        organizationID=organization_id,
        roleID=role_id,
    )


@pytest_asyncio.fixture
async def member(db_session: AsyncSession, organizations) -> CurrentUser:
    user_id = await create_user(db_session, organizations.home, "member@example.com")
    return CurrentUser(user_id=user_id, organization_id=organizations.home, role_id=2)


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession, organizations) -> CurrentUser:
    user_id = await create_user(db_session, organizations.home, "admin@example.com", role_id=1)
    return CurrentUser(user_id=user_id, organization_id=organizations.home, role_id=1)


@pytest_asyncio.fixture
async def outsider(db_session: AsyncSession, organizations) -> CurrentUser:
    user_id = await create_user(db_session, organizations.other, "outsider@example.com")
    return CurrentUser(user_id=user_id, organization_id=organizations.other, role_id=2)


def headers_for(user: CurrentUser) -> dict:
    """Bearer headers carrying a freshly signed access token for ``user``."""
    token = JWTManager(get_settings().auth_settings).create_access_token(
        user.user_id, user.organization_id, user.role_id
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(member: CurrentUser) -> dict:
    return headers_for(member)


@pytest.fixture
def admin_headers(admin: CurrentUser) -> dict:
    return headers_for(admin)


@pytest.fixture
def outsider_headers(outsider: CurrentUser) -> dict:
    return headers_for(outsider)


def fake_request(user: CurrentUser = None, path_params: dict = None, query_params: dict = None):
    """Just enough of a Starlette request for query modifiers."""
    return SimpleNamespace(
        path_params=path_params or {},
        query_params=query_params or {},
        state=SimpleNamespace(user=user),
        method="GET",
        url=SimpleNamespace(path="/test"),
    )
