"""Session token tests."""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from userhub.config import settings
from userhub.models import User
from userhub.services.auth import AuthError, create_token, decode_token, verify_token


def test_create_and_decode():
    token = create_token("user-1", settings)

    payload = decode_token(token, settings)

    assert payload["sub"] == "user-1"
    assert payload["exp"] - payload["iat"] == settings.jwt_expiration_days * 24 * 60 * 60


def test_decode_invalid_token():
    with pytest.raises(AuthError, match="Invalid token"):
        decode_token("not-a-jwt", settings)


def test_decode_expired_token():
    token = create_token("user-1", settings, now=datetime.now(UTC) - timedelta(days=8))

    with pytest.raises(AuthError):
        decode_token(token, settings)


def test_decode_wrong_secret():
    other = settings.model_copy(update={"session_secret": "x" * 40})
    token = create_token("user-1", other)

    with pytest.raises(AuthError):
        decode_token(token, settings)


@pytest.mark.asyncio
async def test_verify_token_loads_user(session: AsyncSession, user: User):
    found = await verify_token(session, create_token(user.id, settings), settings)
    assert found.id == user.id


@pytest.mark.asyncio
async def test_verify_token_deleted_user(session: AsyncSession):
    with pytest.raises(AuthError, match="User not found"):
        await verify_token(session, create_token("missing", settings), settings)
