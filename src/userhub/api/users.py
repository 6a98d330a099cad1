"""User account endpoints."""

from typing import Self

from fastapi import APIRouter
from pydantic import BaseModel, EmailStr, Field, model_validator

from userhub.api.deps import Accounts, CurrentUser
from userhub.models import UserRead, UserUpdate
from userhub.schemas import SuccessResponse

router = APIRouter()


class AuthenticateRequest(BaseModel):
    """Request body for authentication."""

    email: str
    password: str


class AuthenticateResponse(BaseModel):
    """Response containing the session token."""

    access_token: str
    token_type: str = "bearer"
    user: UserRead


class RegisterRequest(BaseModel):
    """Request body for registration."""

    email: EmailStr
    username: str = Field(min_length=1)
    password: str = Field(min_length=6)


class TokenRequest(BaseModel):
    """Request body carrying a one-time token."""

    token: str = Field(min_length=1)


class ForgotPasswordRequest(BaseModel):
    """Request body for starting a password reset."""

    email: EmailStr


class ResetPasswordRequest(BaseModel):
    """Request body for completing a password reset."""

    token: str = Field(min_length=1)
    password: str = Field(min_length=6)
    confirm_password: str

    @model_validator(mode="after")
    def passwords_match(self) -> Self:
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


@router.post("/authenticate", response_model=AuthenticateResponse)
async def authenticate(request: AuthenticateRequest, accounts: Accounts):
    """Exchange email and password for a session token."""
    user, token = await accounts.authenticate(request.email, request.password)
    return AuthenticateResponse(access_token=token, user=user)


@router.post("/register", response_model=SuccessResponse)
async def register(request: RegisterRequest, accounts: Accounts):
    """
    Register a new account.

    The response is the same whether or not the address was already registered.
    """
    await accounts.register(request.email, request.username, request.password)
    return SuccessResponse(
        message="Registration successful, please check your email for verification instructions"
    )


@router.post("/verify-email", response_model=SuccessResponse)
async def verify_email(request: TokenRequest, accounts: Accounts):
    """Verify an email address with the token sent at registration."""
    await accounts.verify_email(request.token)
    return SuccessResponse(message="Verification successful, you can now login")


@router.post("/forgot-password", response_model=SuccessResponse)
async def forgot_password(request: ForgotPasswordRequest, accounts: Accounts):
    """
    Start a password reset.

    Always succeeds so the response doesn't reveal which emails have accounts.
    """
    await accounts.forgot_password(request.email)
    return SuccessResponse(message="Please check your email for password reset instructions")


@router.post("/validate-reset-token", response_model=SuccessResponse)
async def validate_reset_token(request: TokenRequest, accounts: Accounts):
    """Check that a reset token is live without using it."""
    await accounts.validate_reset_token(request.token)
    return SuccessResponse(message="Token is valid")


@router.post("/reset-password", response_model=SuccessResponse)
async def reset_password(request: ResetPasswordRequest, accounts: Accounts):
    """Set a new password using a reset token."""
    await accounts.reset_password(request.token, request.password)
    return SuccessResponse(message="Password reset successful, you can now login")


@router.get("", response_model=list[UserRead])
async def list_users(accounts: Accounts, _user: CurrentUser):
    """List all users."""
    return await accounts.get_all()


@router.get("/{user_id}", response_model=UserRead)
async def get_user(user_id: str, accounts: Accounts, _user: CurrentUser):
    """Get a user by ID."""
    return await accounts.get_by_id(user_id)


@router.put("/{user_id}", response_model=UserRead)
async def update_user(user_id: str, params: UserUpdate, accounts: Accounts, _user: CurrentUser):
    """Update a user. Only the supplied fields change."""
    return await accounts.update(user_id, params)


@router.delete("/{user_id}", response_model=SuccessResponse)
async def delete_user(user_id: str, accounts: Accounts, _user: CurrentUser):
    """Delete a user permanently."""
    await accounts.delete(user_id)
    return SuccessResponse(message="User deleted successfully")
