"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the account record shape and the interfaces (ports)
that the domain requires from infrastructure. Adapters implement these
protocols via structural subtyping.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol


@dataclass(frozen=True)
class Account:
    """Snapshot of one row of the account store."""

    id: int
    email: str
    password_hash: str
    email_confirmed: bool
    pending_confirmation_token: str | None = None
    token_issued_at: datetime | None = None


# Fields a read_then_write callback is allowed to change.
WRITABLE_TOKEN_FIELDS = frozenset({"pending_confirmation_token", "token_issued_at"})

AccountUpdate = Mapping[str, Any]


class AccountRepository(Protocol):
    """Port interface for account persistence."""

    def get_by_id(self, account_id: int) -> Account | None:
        """Return the account with this id, or None."""
        ...

    def get_by_email(self, email: str) -> Account | None:
        """Return the account currently holding this (normalized) email, or None."""
        ...

    def get_by_token(self, token: str) -> Account | None:
        """Return the account whose pending confirmation token equals token, or None."""
        ...

    def read_then_write(
        self, account_id: int, fn: Callable[[Account], AccountUpdate]
    ) -> Account:
        """
        Run a read-modify-write against one account inside a transaction.

        The row is locked for the duration of the call. fn receives the
        current snapshot and returns the token fields to write (keys from
        WRITABLE_TOKEN_FIELDS). If fn raises, nothing is written and the
        exception propagates.

        Raises:
            AccountNotFound: If the account does not exist
            PersistenceFailure: On storage errors

        Returns:
            The account snapshot after the write
        """
        ...

    def update_password_hash(self, account_id: int, password_hash: str) -> bool:
        """Replace the stored hash. Returns False if the account does not exist."""
        ...

    def update_email(self, account_id: int, email: str) -> bool:
        """
        Set the account's email in a single atomic statement.

        Returns:
            True if updated, False if the address is held by another account
            (uniqueness constraint violation)

        Raises:
            AccountNotFound: If the account does not exist
        """
        ...

    def mark_token_issued(self, account_id: int, issued_at: datetime) -> None:
        """Record when the pending token was delivered."""
        ...


class EmailSender(Protocol):
    """Port interface for outbound messages."""

    def send_message(self, to_address: str, subject: str, body: str) -> None:
        """
        Deliver a message.

        Raises:
            NotificationFailure: If the message could not be handed off
        """
        ...
