"""
API v1 routes.

Defines REST endpoints for account credential settings. Every error
maps to a user-safe message; internal detail stays in the logs.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from credlife.api.dependencies import (
    get_current_account_id,
    get_email_change_service,
    get_password_service,
)
from credlife.api.models import (
    ChangePasswordRequest,
    ConfirmEmailChangeResponse,
    ErrorResponse,
    MessageResponse,
    RequestEmailChangeRequest,
)
from credlife.domain.email_change import EmailChangeService
from credlife.domain.exceptions import (
    AccountNotFound,
    EmailAlreadyInUse,
    EmailNotConfirmed,
    InvalidCredential,
    InvalidEmailFormat,
    InvalidToken,
    NotificationFailure,
    PersistenceFailure,
    RateLimited,
    TokenExpired,
)
from credlife.domain.passwords import PasswordService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["v1"])

# Served at the site root: confirmation emails link to /user/settings/email/{token}
link_router = APIRouter(tags=["links"])

INTERNAL_ERROR = "Something went wrong, please try again later"


@router.post(
    "/user/settings/password",
    response_model=MessageResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid password"},
        403: {"model": ErrorResponse, "description": "Email not confirmed"},
        503: {"model": ErrorResponse, "description": "Storage unavailable"},
    },
    summary="Change password",
)
async def change_password(
    request_data: ChangePasswordRequest,
    account_id: int = Depends(get_current_account_id),
    service: PasswordService = Depends(get_password_service),
) -> MessageResponse:
    """
    Change the password of the logged-in account.

    - **old_password**: current password
    - **password**: new password
    """
    try:
        service.change_password(account_id, request_data.old_password, request_data.password)
    except (AccountNotFound, InvalidCredential):
        # Identical response so account existence is not revealed
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid password",
        ) from None
    except EmailNotConfirmed:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Email has not been confirmed, please click the link in the email we sent you",
        ) from None
    except PersistenceFailure:
        logger.exception("Password change failed for account %s", account_id)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=INTERNAL_ERROR,
        ) from None
    return MessageResponse(message="Password updated")


@router.post(
    "/user/settings/email",
    response_model=MessageResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={
        200: {"model": MessageResponse, "description": "Email unchanged"},
        409: {"model": ErrorResponse, "description": "Email already in use"},
        422: {"model": ErrorResponse, "description": "Invalid email format"},
        429: {"model": ErrorResponse, "description": "Rate limited"},
        503: {"model": ErrorResponse, "description": "Storage or mail unavailable"},
    },
    summary="Request an email change",
    description="Send a confirmation link to the new address. "
    "The email changes only once the link is opened.",
)
async def request_email_change(
    request_data: RequestEmailChangeRequest,
    response: Response,
    account_id: int = Depends(get_current_account_id),
    service: EmailChangeService = Depends(get_email_change_service),
) -> MessageResponse:
    """Request a change of the logged-in account's email."""
    try:
        result = service.request_email_change(account_id, request_data.email)
    except InvalidEmailFormat:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Invalid email format",
        ) from None
    except EmailAlreadyInUse:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already exists, please choose a unique email",
        ) from None
    except RateLimited as e:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="The rate limit for sending emails has been exceeded, "
            f"please try again in {e.remaining_seconds}s",
            headers={"Retry-After": str(e.remaining_seconds)},
        ) from None
    except (AccountNotFound, PersistenceFailure, NotificationFailure):
        logger.exception("Email change request failed for account %s", account_id)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=INTERNAL_ERROR,
        ) from None

    if not result.issued:
        response.status_code = status.HTTP_200_OK
        return MessageResponse(message="Email unchanged")
    return MessageResponse(message=f"Verification link sent to your new email {result.new_email}")


@link_router.get(
    "/user/settings/email/{token}",
    response_model=ConfirmEmailChangeResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid or expired link"},
        409: {"model": ErrorResponse, "description": "Email already in use"},
        503: {"model": ErrorResponse, "description": "Storage unavailable"},
    },
    summary="Confirm an email change",
    description="Target of the confirmation link. On success the caller "
    "must end the current session.",
)
async def confirm_email_change(
    token: str,
    email: str = Query(..., max_length=320),
    service: EmailChangeService = Depends(get_email_change_service),
) -> ConfirmEmailChangeResponse:
    """Swap the account's email to the one carried by the link."""
    try:
        result = service.confirm_email_change(token, email)
    except TokenExpired:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Confirmation link has expired",
        ) from None
    except (InvalidToken, EmailNotConfirmed, InvalidEmailFormat):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Could not update email",
        ) from None
    except EmailAlreadyInUse:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already exists, we could not update your email",
        ) from None
    except (AccountNotFound, PersistenceFailure):
        logger.exception("Email change confirmation failed")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=INTERNAL_ERROR,
        ) from None

    return ConfirmEmailChangeResponse(
        message="Your email has been updated successfully, you can log in with your new email",
        email=result.email,
        invalidate_session=result.invalidate_session,
    )
