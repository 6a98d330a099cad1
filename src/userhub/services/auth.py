"""Session token (JWT) issuing and verification."""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from userhub.config import Settings
from userhub.models import User


class AuthError(Exception):
    """Authentication error."""

    pass


def create_token(user_id: str, settings: Settings, now: datetime | None = None) -> str:
    """Create a signed session token whose subject is the user id."""
    issued_at = now or datetime.now(UTC)
    payload = {
        "sub": str(user_id),
        "iat": issued_at,
        "exp": issued_at + timedelta(days=settings.jwt_expiration_days),
    }
    return jwt.encode(payload, settings.session_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str, settings: Settings) -> dict:
    """Decode and validate a session token (signature and expiry)."""
    try:
        payload = jwt.decode(
            token,
            settings.session_secret,
            algorithms=[settings.jwt_algorithm],
        )
        return payload
    except JWTError as e:
        raise AuthError(f"Invalid token: {e}") from e


async def verify_token(session: AsyncSession, token: str, settings: Settings) -> User:
    """Verify a session token and return the associated user."""
    payload = decode_token(token, settings)

    user_id = payload.get("sub")
    if not user_id:
        raise AuthError("Invalid token: missing user ID")

    user = await session.get(User, user_id)
    if not user:
        raise AuthError("User not found")

    return user
