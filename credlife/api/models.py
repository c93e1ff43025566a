"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

from pydantic import BaseModel, Field


class ChangePasswordRequest(BaseModel):
    """Request model for a password change."""

    old_password: str = Field(..., min_length=1, description="Current password")
    password: str = Field(..., min_length=1, description="New password")


class RequestEmailChangeRequest(BaseModel):
    """
    Request model for an email change.

    Syntax is checked by the domain so the failure maps to the same
    generic message as every other credential error.
    """

    email: str = Field(..., max_length=320, description="New email address")


class MessageResponse(BaseModel):
    """Response model carrying a user-facing message."""

    message: str


class ConfirmEmailChangeResponse(BaseModel):
    """Response model for a confirmed email change."""

    message: str
    email: str
    invalidate_session: bool


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
