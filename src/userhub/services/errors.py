"""Typed failures raised by the account and token services."""


class AccountError(Exception):
    """Base class for account service failures."""

    status_code: int = 400
    code: str = "ACCOUNT_ERROR"
    default_message: str = "Account operation failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidCredentials(AccountError):
    """Unknown email or wrong password. Never says which."""

    status_code = 401
    code = "INVALID_CREDENTIALS"
    default_message = "Email or password is incorrect"


class InvalidToken(AccountError):
    """Verification or reset token unknown, already used, or expired."""

    status_code = 400
    code = "INVALID_TOKEN"
    default_message = "Invalid token"


class DuplicateEmail(AccountError):
    """Email address already belongs to another user."""

    status_code = 409
    code = "DUPLICATE_EMAIL"
    default_message = "Email is already taken"


class NotFound(AccountError):
    """No user with the requested id."""

    status_code = 404
    code = "NOT_FOUND"
    default_message = "User not found"
