"""
Shared fixtures for PostgreSQL integration tests.

Requires PostgreSQL to be running at DATABASE_URL (docker-compose).
Tests in this package are skipped when the database is unreachable.
"""

from collections.abc import Callable, Generator

import bcrypt
import psycopg
import pytest
from psycopg_pool import ConnectionPool

from credlife.adapters.repository.postgres import PostgresAccountRepository, run_migrations
from credlife.config.settings import get_settings

PASSWORD = "correct horse"


@pytest.fixture(scope="session")
def pool() -> Generator[ConnectionPool, None, None]:
    """Create connection pool for integration tests, migrating the schema once."""
    settings = get_settings()
    try:
        psycopg.connect(settings.database_url, connect_timeout=2).close()
    except psycopg.OperationalError as e:
        pytest.skip(f"PostgreSQL not available: {e}")

    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=1,
        max_size=10,
        open=True,
    )
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def pg_repository(pool: ConnectionPool) -> PostgresAccountRepository:
    """Create repository instance for each test."""
    return PostgresAccountRepository(pool)


@pytest.fixture(autouse=True)
def clean_database(pool: ConnectionPool) -> Generator[None, None, None]:
    """Clean accounts table before each test."""
    with pool.connection() as conn:
        conn.execute("DELETE FROM accounts")
        conn.commit()
    yield


@pytest.fixture
def create_account(pool: ConnectionPool) -> Callable[..., int]:
    """Factory inserting an account and returning its id."""

    def _create(email: str, email_confirmed: bool = True) -> int:
        password_hash = bcrypt.hashpw(PASSWORD.encode(), bcrypt.gensalt(10)).decode()
        with pool.connection() as conn:
            row = conn.execute(
                "INSERT INTO accounts (email, password_hash, email_confirmed) "
                "VALUES (%s, %s, %s) RETURNING id",
                (email, password_hash, email_confirmed),
            ).fetchone()
            conn.commit()
        return row[0]

    return _create
