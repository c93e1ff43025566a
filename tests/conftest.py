"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A controllable clock
- An in-memory account store seeded with bcrypt-hashed accounts
- Domain services wired to those fakes
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import bcrypt
import pytest

from credlife.adapters.repository.memory import InMemoryAccountRepository
from credlife.domain.email_change import EmailChangeService
from credlife.domain.passwords import PasswordService
from credlife.domain.policy import CredentialPolicy

PASSWORD = "correct horse"

# Hashing once keeps the suite fast; cost 10 is the production floor.
PASSWORD_HASH = bcrypt.hashpw(PASSWORD.encode(), bcrypt.gensalt(10)).decode()


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def policy() -> CredentialPolicy:
    return CredentialPolicy(site_domain="example.org")


@pytest.fixture
def repository() -> InMemoryAccountRepository:
    repo = InMemoryAccountRepository()
    repo.add("a@x.com", PASSWORD_HASH, email_confirmed=True, account_id=1)
    repo.add("other@x.com", PASSWORD_HASH, email_confirmed=True, account_id=2)
    repo.add("new@x.com", PASSWORD_HASH, email_confirmed=False, account_id=3)
    return repo


@pytest.fixture
def sender() -> Mock:
    return Mock()


@pytest.fixture
def email_service(
    repository: InMemoryAccountRepository, sender: Mock, policy: CredentialPolicy, clock: FakeClock
) -> EmailChangeService:
    return EmailChangeService(repository=repository, email_sender=sender, policy=policy, clock=clock)


@pytest.fixture
def password_service(
    repository: InMemoryAccountRepository, policy: CredentialPolicy
) -> PasswordService:
    return PasswordService(repository=repository, policy=policy)


@pytest.fixture
def password() -> str:
    """Plaintext password of every seeded account."""
    return PASSWORD
