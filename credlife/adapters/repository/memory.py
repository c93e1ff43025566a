"""
In-memory repository adapter - Implements AccountRepository protocol.

Development and test stand-in for the PostgreSQL adapter. A single
lock plays the role of row locking and the email uniqueness
constraint, so concurrency behavior matches the database adapter.
"""

import threading
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime

from credlife.domain.exceptions import AccountNotFound
from credlife.domain.ports import WRITABLE_TOKEN_FIELDS, Account, AccountUpdate


class InMemoryAccountRepository:
    """
    Implements AccountRepository protocol with a dict of frozen snapshots.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self) -> None:
        self._accounts: dict[int, Account] = {}
        self._lock = threading.Lock()
        self._next_id = 1

    def add(
        self,
        email: str,
        password_hash: str,
        email_confirmed: bool = True,
        account_id: int | None = None,
    ) -> Account:
        """Insert a new account. Raises ValueError if the email is taken."""
        with self._lock:
            if self._holder_of(email) is not None:
                raise ValueError(f"Email already exists: {email}")
            if account_id is None:
                account_id = self._next_id
            self._next_id = max(self._next_id, account_id + 1)
            account = Account(
                id=account_id,
                email=email,
                password_hash=password_hash,
                email_confirmed=email_confirmed,
            )
            self._accounts[account_id] = account
            return account

    def get_by_id(self, account_id: int) -> Account | None:
        with self._lock:
            return self._accounts.get(account_id)

    def get_by_email(self, email: str) -> Account | None:
        with self._lock:
            return self._holder_of(email)

    def get_by_token(self, token: str) -> Account | None:
        with self._lock:
            for account in self._accounts.values():
                if account.pending_confirmation_token == token:
                    return account
            return None

    def read_then_write(
        self, account_id: int, fn: Callable[[Account], AccountUpdate]
    ) -> Account:
        with self._lock:
            account = self._accounts.get(account_id)
            if account is None:
                raise AccountNotFound(account_id)
            changes = dict(fn(account))
            unknown = set(changes) - WRITABLE_TOKEN_FIELDS
            if unknown:
                raise ValueError(f"Fields not writable via read_then_write: {sorted(unknown)}")
            updated = replace(account, **changes)
            self._accounts[account_id] = updated
            return updated

    def update_password_hash(self, account_id: int, password_hash: str) -> bool:
        with self._lock:
            account = self._accounts.get(account_id)
            if account is None:
                return False
            self._accounts[account_id] = replace(account, password_hash=password_hash)
            return True

    def update_email(self, account_id: int, email: str) -> bool:
        with self._lock:
            account = self._accounts.get(account_id)
            if account is None:
                raise AccountNotFound(account_id)
            holder = self._holder_of(email)
            if holder is not None and holder.id != account_id:
                return False
            self._accounts[account_id] = replace(account, email=email)
            return True

    def mark_token_issued(self, account_id: int, issued_at: datetime) -> None:
        with self._lock:
            account = self._accounts.get(account_id)
            if account is not None:
                self._accounts[account_id] = replace(account, token_issued_at=issued_at)

    def _holder_of(self, email: str) -> Account | None:
        for account in self._accounts.values():
            if account.email == email:
                return account
        return None
