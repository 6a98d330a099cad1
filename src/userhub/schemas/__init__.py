"""Pydantic schemas for API requests/responses."""

from userhub.schemas.common import ErrorResponse, SuccessResponse

__all__ = [
    "ErrorResponse",
    "SuccessResponse",
]
