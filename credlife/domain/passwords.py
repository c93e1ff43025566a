"""
Password domain service - Credential Verifier.

Verifies a presented secret against the stored bcrypt hash and replaces
the hash on a successful password change. The service is stateless;
every call is a single request/response against the account store.

Timing: bcrypt.checkpw() is constant-time for a given hash and its
cost (~100ms at cost factor 10) dominates response time. When the
account does not exist, verify_password() still runs bcrypt against a
dummy hash so callers cannot detect account existence by timing.
"""

import logging
from dataclasses import dataclass, field

import bcrypt

from .exceptions import AccountNotFound, EmailNotConfirmed, InvalidCredential
from .policy import CredentialPolicy
from .ports import AccountRepository

_DUMMY_BCRYPT_HASH = bcrypt.hashpw(b"dummy_password_for_timing_safety", bcrypt.gensalt(10))


@dataclass
class PasswordService:
    """
    Domain service for password changes.

    Preconditions for change_password(): the account exists and has
    confirmed its signup email. Existing sessions are left alive after
    a password change.
    """

    repository: AccountRepository
    policy: CredentialPolicy = field(default_factory=CredentialPolicy)
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def change_password(self, account_id: int, old_password: str, new_password: str) -> None:
        """
        Replace the account's password after verifying the old one.

        Args:
            account_id: Authenticated account id
            old_password: Current plaintext password
            new_password: Replacement plaintext password

        Raises:
            AccountNotFound: If the account does not exist
            EmailNotConfirmed: If signup email verification is incomplete
            InvalidCredential: If old_password does not match
            PersistenceFailure: On storage errors
        """
        account = self.repository.get_by_id(account_id)
        if account is None:
            self.logger.warning("Password change for unknown account %s", account_id)
            raise AccountNotFound(account_id)

        if not account.email_confirmed:
            raise EmailNotConfirmed(account_id)

        if not self._check(old_password, account.password_hash.encode()):
            self.logger.warning("Password mismatch for account %s", account_id)
            raise InvalidCredential(account_id)

        new_hash = self._hash_password(new_password)
        if not self.repository.update_password_hash(account_id, new_hash):
            self.logger.error("Account %s vanished during password change", account_id)
            raise AccountNotFound(account_id)

        self.logger.info("Password updated for account %s", account_id)

    def verify_password(self, account_id: int, password: str) -> bool:
        """Check a password for an account without revealing whether it exists."""
        account = self.repository.get_by_id(account_id)
        stored_hash = account.password_hash.encode() if account is not None else _DUMMY_BCRYPT_HASH
        valid = self._check(password, stored_hash)
        return account is not None and valid

    def _check(self, password: str, stored_hash: bytes) -> bool:
        try:
            return bcrypt.checkpw(password.encode(), stored_hash)
        except ValueError:
            # Malformed stored hash (e.g. NULL migrated to empty string)
            self.logger.error("Stored password hash is not a valid bcrypt hash")
            return False

    def _hash_password(self, password: str) -> str:
        """Hash password using bcrypt with the configured cost factor (>= 10)."""
        return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=self.policy.bcrypt_cost)).decode()
