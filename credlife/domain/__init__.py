"""
Domain layer - Pure business logic with zero framework imports.

This package contains the credential lifecycle logic: password changes
and the token-based email change protocol. It defines its own port
interfaces for infrastructure abstraction, ensuring true hexagonal
architecture decoupling.
"""

from .email_change import (
    EmailChangeConfirmation,
    EmailChangeRequest,
    EmailChangeService,
    normalize_email,
)
from .exceptions import (
    AccountNotEligible,
    AccountNotFound,
    CredentialError,
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
from .passwords import PasswordService
from .policy import CredentialPolicy
from .ports import Account, AccountRepository, EmailSender

__all__ = [
    "Account",
    "AccountNotEligible",
    "AccountNotFound",
    "AccountRepository",
    "CredentialError",
    "CredentialPolicy",
    "EmailAlreadyInUse",
    "EmailChangeConfirmation",
    "EmailChangeRequest",
    "EmailChangeService",
    "EmailNotConfirmed",
    "EmailSender",
    "InvalidCredential",
    "InvalidEmailFormat",
    "InvalidToken",
    "NotificationFailure",
    "PasswordService",
    "PersistenceFailure",
    "RateLimited",
    "TokenExpired",
    "normalize_email",
]
