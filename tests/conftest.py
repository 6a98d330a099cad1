"""Pytest configuration and fixtures."""

import os
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from typing import Any
from unittest.mock import AsyncMock

# Set test environment before importing app
os.environ["ENVIRONMENT"] = "test"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["APP_URL"] = ""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel

from userhub.api.deps import get_email_service
from userhub.config import settings
from userhub.database import get_session
from userhub.main import app
from userhub.models import User
from userhub.services.accounts import AccountService
from userhub.services.auth import create_token
from userhub.services.email import EmailService
from userhub.services.passwords import hash_password_sync

TEST_PASSWORD = "secret1"


class FrozenClock:
    """Controllable clock for expiry tests."""

    def __init__(self, now: datetime | None = None):
        self.now = now or datetime.now(UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
async def test_engine(tmp_path):
    """Create a file-backed SQLite engine per test.

    Each connection is a real, separate SQLite connection, so concurrent
    sessions behave like independent database clients.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
        poolclass=NullPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def email_backend() -> AsyncMock:
    """Email backend that records sends instead of delivering them."""
    backend = AsyncMock()
    backend.send.return_value = True
    return backend


@pytest.fixture
def email(email_backend: AsyncMock) -> EmailService:
    return EmailService(backend=email_backend, app_url="")


@pytest.fixture
def accounts(session: AsyncSession, email: EmailService, clock: FrozenClock) -> AccountService:
    return AccountService(session, settings, email, clock=clock)


async def make_user(
    session: AsyncSession,
    email: str,
    username: str = "tester",
    password: str = TEST_PASSWORD,
    verified: bool = True,
) -> User:
    """Insert a user directly, bypassing registration."""
    user = User(
        email=email,
        username=username,
        password_hash=hash_password_sync(password, rounds=4),
        verified_at=datetime.now(UTC) if verified else None,
    )
    session.add(user)
    await session.commit()
    return user


@pytest.fixture
async def user(session: AsyncSession) -> User:
    """Create a verified test user."""
    return await make_user(session, "test@example.com", username="Test User")


@pytest.fixture
async def other_user(session: AsyncSession) -> User:
    """Create a second verified test user."""
    return await make_user(session, "other@example.com", username="Other User")


@pytest.fixture
def user_token(user: User) -> str:
    """Create a session token for the test user."""
    return create_token(user.id, settings)


@pytest.fixture
def auth_headers(user_token: str) -> dict[str, str]:
    """Create authorization headers for the test user."""
    return {"Authorization": f"Bearer {user_token}"}


@pytest.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession], email: EmailService
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client backed by the per-test database."""

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_email_service] = lambda: email

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# Helper to make authenticated requests
class AuthenticatedClient:
    """Wrapper for AsyncClient with authentication."""

    def __init__(self, client: AsyncClient, headers: dict[str, str]):
        self.client = client
        self.headers = headers

    async def get(self, url: str, **kwargs: Any) -> Any:
        kwargs.setdefault("headers", {}).update(self.headers)
        return await self.client.get(url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> Any:
        kwargs.setdefault("headers", {}).update(self.headers)
        return await self.client.post(url, **kwargs)

    async def put(self, url: str, **kwargs: Any) -> Any:
        kwargs.setdefault("headers", {}).update(self.headers)
        return await self.client.put(url, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> Any:
        kwargs.setdefault("headers", {}).update(self.headers)
        return await self.client.delete(url, **kwargs)


@pytest.fixture
def authenticated_client(client: AsyncClient, auth_headers: dict[str, str]) -> AuthenticatedClient:
    """Create an authenticated test client."""
    return AuthenticatedClient(client, auth_headers)
