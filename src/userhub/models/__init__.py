"""SQLModel database models."""

from userhub.models.base import TimestampMixin, generate_nanoid
from userhub.models.user import User, UserRead, UserUpdate

__all__ = [
    "TimestampMixin",
    "User",
    "UserRead",
    "UserUpdate",
    "generate_nanoid",
]
