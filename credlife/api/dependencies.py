"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from fastapi import Header, HTTPException, Request, status
from psycopg_pool import ConnectionPool

from credlife.adapters.repository.postgres import PostgresAccountRepository
from credlife.domain.email_change import EmailChangeService
from credlife.domain.passwords import PasswordService
from credlife.domain.policy import CredentialPolicy
from credlife.domain.ports import EmailSender


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_repository(request: Request) -> PostgresAccountRepository:
    """Create repository with connection pool from app state."""
    pool = get_pool(request)
    return PostgresAccountRepository(pool)


def get_policy(request: Request) -> CredentialPolicy:
    """Credential policy frozen at startup."""
    return request.app.state.policy


def get_email_sender(request: Request) -> EmailSender:
    """Email sender created at startup (stateless, shared across requests)."""
    return request.app.state.email_sender


def get_password_service(request: Request) -> PasswordService:
    """Create password service with injected repository and policy."""
    return PasswordService(
        repository=get_repository(request),
        policy=get_policy(request),
    )


def get_email_change_service(request: Request) -> EmailChangeService:
    """
    Create email change service with injected dependencies.

    Wires together the repository, email sender and policy for the domain service.
    """
    return EmailChangeService(
        repository=get_repository(request),
        email_sender=get_email_sender(request),
        policy=get_policy(request),
    )


def get_current_account_id(x_account_id: str | None = Header(default=None)) -> int:
    """
    Read the authenticated account id set by the session layer.

    Returns 401 when the header is missing or not an integer.
    """
    if x_account_id is None or not x_account_id.isdigit():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Please login first",
        )
    return int(x_account_id)
