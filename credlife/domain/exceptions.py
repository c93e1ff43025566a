"""
Domain exceptions - Semantic error types for credential changes.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
Every error is terminal for the current call; nothing is retried.
"""

from datetime import timedelta


class CredentialError(Exception):
    """Base class for credential lifecycle errors."""

    pass


class AccountNotFound(CredentialError):
    """No account exists for the given identifier."""

    pass


class EmailNotConfirmed(CredentialError):
    """Account has not completed signup email verification."""

    pass


class AccountNotEligible(EmailNotConfirmed):
    """Email change confirmation attempted for an unconfirmed account."""

    pass


class InvalidCredential(CredentialError):
    """Presented secret does not match the stored hash."""

    pass


class InvalidEmailFormat(CredentialError):
    """Email address is not syntactically well-formed."""

    pass


class EmailAlreadyInUse(CredentialError):
    """Target email address is held by another account."""

    pass


class RateLimited(CredentialError):
    """A token was issued too recently for this account."""

    def __init__(self, remaining: timedelta) -> None:
        self.remaining = remaining
        super().__init__(f"Rate limited, retry in {self.remaining_seconds}s")

    @property
    def remaining_seconds(self) -> int:
        """Remaining wait rounded to whole seconds (never below 1)."""
        return max(1, round(self.remaining.total_seconds()))


class InvalidToken(CredentialError):
    """No account holds the presented confirmation token."""

    pass


class TokenExpired(CredentialError):
    """Confirmation token is older than the confirmation TTL."""

    pass


class PersistenceFailure(CredentialError):
    """Account store failed; the operation was not applied."""

    pass


class NotificationFailure(CredentialError):
    """Confirmation message could not be delivered."""

    pass
