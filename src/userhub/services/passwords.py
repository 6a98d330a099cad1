"""Password hashing with bcrypt.

bcrypt is CPU-bound, so both hashing and verification run in a worker thread
to keep the event loop responsive.
"""

import asyncio
import logging

import bcrypt

from userhub.config import settings

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes and newer releases reject longer input
BCRYPT_MAX_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password_sync(password: str, rounds: int | None = None) -> str:
    """Hash a password with a fresh salt."""
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(_encode(password), salt).decode("utf-8")


def verify_password_sync(password: str, password_hash: str) -> bool:
    """Check a password against a stored bcrypt digest."""
    try:
        return bcrypt.checkpw(_encode(password), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed digest in storage
        logger.warning("Stored password hash is not a valid bcrypt digest")
        return False


async def hash_password(password: str, rounds: int | None = None) -> str:
    """Hash a password without blocking the event loop."""
    return await asyncio.to_thread(hash_password_sync, password, rounds)


async def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password without blocking the event loop."""
    return await asyncio.to_thread(verify_password_sync, password, password_hash)
