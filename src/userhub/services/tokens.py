"""One-time token lifecycle: email verification, password reset, session tokens.

Verification and reset tokens are opaque random strings stored on the user
row. Consuming one is a conditional UPDATE that only matches while the token
is still stored (and, for reset tokens, not yet expired), so when two requests
race on the same token exactly one of them sees a matched row.
"""

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from secrets import token_hex

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from userhub.config import Settings
from userhub.models import User
from userhub.services.auth import create_token
from userhub.services.errors import InvalidToken

logger = logging.getLogger(__name__)

# 40 random bytes, hex encoded to 80 characters
TOKEN_BYTES = 40

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(UTC)


def generate_token() -> str:
    """Generate an unguessable one-time token."""
    return token_hex(TOKEN_BYTES)


class TokenLifecycle:
    """Issues, validates and consumes the one-time tokens bound to a user."""

    def __init__(self, session: AsyncSession, settings: Settings, clock: Clock = utcnow):
        self.session = session
        self.settings = settings
        self.clock = clock

    @property
    def reset_token_ttl(self) -> timedelta:
        return timedelta(hours=self.settings.reset_token_expiration_hours)

    async def issue_verification_token(self, user: User) -> str:
        """Attach a fresh verification token to the user (not committed)."""
        token = generate_token()
        user.verification_token = token
        self.session.add(user)
        return token

    async def consume_verification_token(self, token: str) -> User:
        """Mark the token's owner as verified and clear the token.

        Raises:
            InvalidToken: no user holds this token, or another request consumed it first
        """
        stmt = select(User.id).where(User.verification_token == token)
        result = await self.session.execute(stmt)
        user_id = result.scalar_one_or_none()
        if user_id is None:
            raise InvalidToken("Verification failed")

        now = self.clock()
        await self._compare_and_set(
            update(User)
            .where(User.id == user_id, User.verification_token == token)  # type: ignore[arg-type]
            .values(verification_token=None, verified_at=now, updated_at=now),
            failure=InvalidToken("Verification failed"),
        )
        logger.info(f"Email verified for user {user_id}")
        return await self._reload(user_id)

    async def issue_reset_token(self, user: User) -> tuple[str, datetime]:
        """Attach a fresh reset token to the user, replacing any open one (not committed)."""
        token = generate_token()
        expires_at = self.clock() + self.reset_token_ttl
        user.reset_token = token
        user.reset_token_expires_at = expires_at
        self.session.add(user)
        return token, expires_at

    async def validate_reset_token(self, token: str) -> User:
        """Return the user holding a live reset token without consuming it.

        Raises:
            InvalidToken: unknown or expired token
        """
        stmt = select(User).where(
            User.reset_token == token,
            User.reset_token_expires_at > self.clock(),  # type: ignore[operator]
        )
        result = await self.session.execute(stmt)
        user = result.scalar_one_or_none()
        if not user:
            raise InvalidToken()
        return user

    async def consume_reset_token(self, token: str, new_password_hash: str) -> User:
        """Set a new password hash and close the reset request.

        Raises:
            InvalidToken: unknown or expired token, or another request consumed it first
        """
        now = self.clock()
        stmt = select(User.id).where(
            User.reset_token == token,
            User.reset_token_expires_at > now,  # type: ignore[operator]
        )
        result = await self.session.execute(stmt)
        user_id = result.scalar_one_or_none()
        if user_id is None:
            raise InvalidToken()

        await self._compare_and_set(
            update(User)
            .where(
                User.id == user_id,  # type: ignore[arg-type]
                User.reset_token == token,  # type: ignore[arg-type]
                User.reset_token_expires_at > now,  # type: ignore[operator]
            )
            .values(
                password_hash=new_password_hash,
                password_reset_at=now,
                reset_token=None,
                reset_token_expires_at=None,
                updated_at=now,
            ),
            failure=InvalidToken(),
        )
        logger.info(f"Password reset for user {user_id}")
        return await self._reload(user_id)

    def issue_session_token(self, user_id: str) -> str:
        """Issue a signed, time-limited bearer token for the user."""
        return create_token(user_id, self.settings, now=self.clock())

    async def _compare_and_set(self, stmt, failure: Exception) -> None:
        result = await self.session.execute(
            stmt.execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:  # type: ignore[attr-defined]
            await self.session.rollback()
            raise failure
        await self.session.commit()

    async def _reload(self, user_id: str) -> User:
        user = await self.session.get(User, user_id, populate_existing=True)
        if user is None:
            # Deleted between the update and the reload
            raise InvalidToken()
        return user
