"""User model."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field as PydanticField, field_validator
from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from userhub.models.base import TimestampMixin, generate_nanoid


class User(TimestampMixin, SQLModel, table=True):
    """User account model.

    ``verification_token`` is only set while the account is unverified, and
    ``reset_token``/``reset_token_expires_at`` only while a password reset is open.
    """

    __tablename__ = "users"

    id: str = Field(default_factory=generate_nanoid, primary_key=True, max_length=21)
    email: str = Field(unique=True, index=True, max_length=255)
    username: str = Field(max_length=255)
    password_hash: str = Field(max_length=255)
    verification_token: str | None = Field(default=None, index=True, max_length=255)
    verified_at: datetime | None = Field(
        default=None,
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
    )
    reset_token: str | None = Field(default=None, index=True, max_length=255)
    reset_token_expires_at: datetime | None = Field(
        default=None,
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
    )
    password_reset_at: datetime | None = Field(
        default=None,
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
    )

    @property
    def is_verified(self) -> bool:
        # A completed password reset proves ownership of the address too
        return self.verified_at is not None or self.password_reset_at is not None


class UserRead(SQLModel):
    """Schema for reading a user. Never carries the password hash."""

    id: str
    email: str
    username: str
    is_verified: bool
    verified_at: datetime | None
    password_reset_at: datetime | None
    created_at: datetime
    updated_at: datetime


class UserUpdate(BaseModel):
    """Partial update of a user; only supplied fields change."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr | None = None
    username: str | None = None
    password: str | None = PydanticField(default=None, min_length=6)

    @field_validator("email", "username", "password", mode="before")
    @classmethod
    def empty_as_missing(cls, value: object) -> object:
        """Treat empty strings as "not supplied"."""
        if value == "":
            return None
        return value

    def changes(self) -> dict[str, str]:
        """Fields that were actually supplied."""
        return {k: v for k, v in self.model_dump(exclude_unset=True).items() if v is not None}
