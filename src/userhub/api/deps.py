"""FastAPI dependencies for dependency injection."""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from userhub.config import Settings, get_settings
from userhub.database import get_session
from userhub.models import User
from userhub.services.accounts import AccountService
from userhub.services.auth import AuthError, verify_token
from userhub.services.email import EmailService, email_service

logger = logging.getLogger(__name__)

# Type alias for database session dependency
SessionDep = Annotated[AsyncSession, Depends(get_session)]
SettingsDep = Annotated[Settings, Depends(get_settings)]

# Security scheme
security = HTTPBearer(auto_error=False)


def get_email_service() -> EmailService:
    """Email service used for account notifications."""
    return email_service


EmailServiceDep = Annotated[EmailService, Depends(get_email_service)]


def get_account_service(
    session: SessionDep,
    settings: SettingsDep,
    email: EmailServiceDep,
) -> AccountService:
    """Build the account service for the current request."""
    return AccountService(session, settings, email)


Accounts = Annotated[AccountService, Depends(get_account_service)]


async def get_current_user(
    session: SessionDep,
    settings: SettingsDep,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> User:
    """Get current authenticated user or raise 401."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return await verify_token(session, credentials.credentials, settings)
    except AuthError as e:
        logger.debug(f"Token verification failed: {e!r}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


# Type aliases for common dependencies
CurrentUser = Annotated[User, Depends(get_current_user)]
