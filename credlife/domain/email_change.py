"""
Email change domain service - Email-Change Coordinator.

Runs the token-based, rate-limited email change protocol. The service
holds no state of its own: the pending token and its issuance time
live on the account record.

Email Change State Machine
==========================

States (derived from the account record at read time):
- NONE: No token issued
- REQUESTED: Token issued, confirmation link sent
- CONFIRMED: Email swapped to the requested address (terminal)
- EXPIRED: Confirmation TTL elapsed (terminal, never cleared)

Transitions:
    NONE -> REQUESTED       (request_email_change)
    REQUESTED -> CONFIRMED  (confirm_email_change within TTL)
    REQUESTED -> EXPIRED    (implicit, by the time check)

Concurrency: the rate-limit check-and-set runs inside
repository.read_then_write() under a row lock, and the store's unique
constraint on email backs up the uniqueness pre-check. The service
itself uses no in-process locks and never retries.
"""

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from email_validator import EmailNotValidError, validate_email

from .exceptions import (
    AccountNotEligible,
    EmailAlreadyInUse,
    InvalidEmailFormat,
    InvalidToken,
    NotificationFailure,
    RateLimited,
    TokenExpired,
)
from .policy import CredentialPolicy
from .ports import Account, AccountRepository, AccountUpdate, EmailSender

TOKEN_BYTES = 30  # token_urlsafe(30) -> 40 characters

CONFIRMATION_BODY = """To update your email on {site} please verify it by clicking this link:

{link}

Best regards,

{site}
"""


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_email(email: str) -> str:
    """
    Strip, lowercase and syntax-check an email address.

    Raises:
        InvalidEmailFormat: If the address is not well-formed
    """
    candidate = email.strip().lower()
    try:
        validate_email(candidate, check_deliverability=False)
    except EmailNotValidError as e:
        raise InvalidEmailFormat(candidate) from e
    return candidate


@dataclass(frozen=True)
class EmailChangeRequest:
    """Outcome of a successful request_email_change() call."""

    account_id: int
    new_email: str
    issued: bool


@dataclass(frozen=True)
class EmailChangeConfirmation:
    """
    Outcome of a successful confirm_email_change() call.

    invalidate_session instructs the session layer to log the user out;
    the email is a login identifier, so the current session is stale.
    """

    account_id: int
    email: str
    changed: bool
    invalidate_session: bool = True


@dataclass
class EmailChangeService:
    """
    Domain service for email address changes.

    Orchestrates request issuance, confirmation-link validation and
    the atomic email swap.
    """

    repository: AccountRepository
    email_sender: EmailSender
    policy: CredentialPolicy = field(default_factory=CredentialPolicy)
    clock: Callable[[], datetime] = utcnow
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def request_email_change(self, account_id: int, new_email: str) -> EmailChangeRequest:
        """
        Issue a confirmation token and mail a link to the new address.

        Requesting the account's current address is a silent no-op:
        no token is issued and nothing is sent.

        Args:
            account_id: Authenticated account id
            new_email: Requested address (will be normalized)

        Returns:
            EmailChangeRequest with issued=False for the no-op case

        Raises:
            InvalidEmailFormat: If new_email is malformed
            EmailAlreadyInUse: If another account holds new_email
            AccountNotFound: If the account does not exist
            RateLimited: If a token was issued within the rate-limit window
            NotificationFailure: If the message could not be sent (token stays valid)
            PersistenceFailure: On storage errors
        """
        normalized_email = normalize_email(new_email)

        holder = self.repository.get_by_email(normalized_email)
        if holder is not None:
            if holder.id == account_id:
                return EmailChangeRequest(account_id, normalized_email, issued=False)
            raise EmailAlreadyInUse(normalized_email)

        token = self._generate_token()

        def issue(account: Account) -> AccountUpdate:
            # Read the clock under the row lock so a late mark_token_issued from
            # a concurrent request cannot push remaining past the window
            now = self.clock()
            remaining = self._rate_limit_remaining(account, now)
            if remaining > timedelta(0):
                raise RateLimited(remaining)
            # token_issued_at is reserved here so a concurrent request sees the gate closed
            return {"pending_confirmation_token": token, "token_issued_at": now}

        try:
            self.repository.read_then_write(account_id, issue)
        except RateLimited as e:
            self.logger.info(
                "Email change rate limited for account %s (%ss left)", account_id, e.remaining_seconds
            )
            raise

        self._send_confirmation(account_id, normalized_email, token)

        self.repository.mark_token_issued(account_id, self.clock())
        self.logger.info("Email change requested for account %s", account_id)
        return EmailChangeRequest(account_id, normalized_email, issued=True)

    def confirm_email_change(self, token: str, new_email: str) -> EmailChangeConfirmation:
        """
        Swap the account's email using a token from a confirmation link.

        Replaying a token for an address the account already holds is
        a successful no-op (changed=False).

        Raises:
            InvalidToken: If no account holds the token
            AccountNotEligible: If the account's signup email is unconfirmed
            TokenExpired: If the token is older than the confirmation TTL
            InvalidEmailFormat: If new_email is malformed
            EmailAlreadyInUse: If another account holds new_email
            PersistenceFailure: On storage errors
        """
        account = self.repository.get_by_token(token) if token else None
        if account is None:
            raise InvalidToken()

        if not account.email_confirmed:
            raise AccountNotEligible(account.id)

        if self._is_expired(account, self.clock()):
            self.logger.info("Expired email change token used for account %s", account.id)
            raise TokenExpired(account.id)

        normalized_email = normalize_email(new_email)

        # State may have changed since the request was issued
        holder = self.repository.get_by_email(normalized_email)
        if holder is not None:
            if holder.id != account.id:
                raise EmailAlreadyInUse(normalized_email)
            return EmailChangeConfirmation(account.id, normalized_email, changed=False)

        if not self.repository.update_email(account.id, normalized_email):
            # Lost the race to another account; the unique constraint decided
            raise EmailAlreadyInUse(normalized_email)

        self.logger.info("Email changed for account %s", account.id)
        return EmailChangeConfirmation(account.id, normalized_email, changed=True)

    def rate_limit_remaining(self, account_id: int) -> timedelta:
        """Time left before a new email change can be requested (zero if none)."""
        account = self.repository.get_by_id(account_id)
        if account is None:
            return timedelta(0)
        return self._rate_limit_remaining(account, self.clock())

    def _send_confirmation(self, account_id: int, new_email: str, token: str) -> None:
        site = self.policy.site_domain
        subject = f"{site}: Verify your email-address"
        body = CONFIRMATION_BODY.format(
            site=site, link=self.policy.confirmation_link(token, new_email)
        )
        try:
            self.email_sender.send_message(new_email, subject, body)
        except NotificationFailure:
            self.logger.error("Confirmation email for account %s not sent", account_id)
            raise
        except Exception as e:
            self.logger.error("Confirmation email for account %s not sent: %s", account_id, e)
            raise NotificationFailure(new_email) from e

    def _rate_limit_remaining(self, account: Account, now: datetime) -> timedelta:
        if account.token_issued_at is None:
            return timedelta(0)
        remaining = account.token_issued_at + self.policy.rate_limit_window - now
        return max(remaining, timedelta(0))

    def _is_expired(self, account: Account, now: datetime) -> bool:
        if account.token_issued_at is None:
            return True
        return now > account.token_issued_at + self.policy.confirmation_ttl

    def _generate_token(self) -> str:
        """Generate a 40-character URL-safe token from the secrets module."""
        return secrets.token_urlsafe(TOKEN_BYTES)
