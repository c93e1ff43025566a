"""
PostgreSQL repository adapter - Implements AccountRepository protocol.

This module provides the PostgreSQL implementation of the domain's
repository port using psycopg3 with raw SQL.

Concurrency Design:
-------------------
1. **read_then_write()**: SELECT ... FOR UPDATE locks the account row for
   the whole callback, so two concurrent email change requests for the
   same account serialize on the rate-limit check.

2. **update_email()**: a single UPDATE statement. The UNIQUE constraint on
   accounts.email is the final arbiter when two accounts race for the same
   address; the loser sees UniqueViolation and gets False.

3. **No retries**: any other psycopg error is raised as PersistenceFailure.
"""

import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime
from pathlib import Path

import psycopg
from psycopg import sql
from psycopg.errors import UniqueViolation
from psycopg_pool import ConnectionPool

from credlife.domain.exceptions import AccountNotFound, PersistenceFailure
from credlife.domain.ports import WRITABLE_TOKEN_FIELDS, Account, AccountUpdate

logger = logging.getLogger(__name__)

_COLUMNS = "id, email, password_hash, email_confirmed, pending_confirmation_token, token_issued_at"


def _to_account(row: tuple | None) -> Account | None:
    if row is None:
        return None
    return Account(
        id=row[0],
        email=row[1],
        password_hash=row[2],
        email_confirmed=row[3],
        pending_confirmation_token=row[4],
        token_issued_at=row[5],
    )


class PostgresAccountRepository:
    """
    Implements AccountRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def get_by_id(self, account_id: int) -> Account | None:
        return self._fetch_one(f"SELECT {_COLUMNS} FROM accounts WHERE id = %s", account_id)

    def get_by_email(self, email: str) -> Account | None:
        return self._fetch_one(f"SELECT {_COLUMNS} FROM accounts WHERE email = %s", email)

    def get_by_token(self, token: str) -> Account | None:
        return self._fetch_one(
            f"SELECT {_COLUMNS} FROM accounts WHERE pending_confirmation_token = %s", token
        )

    def read_then_write(
        self, account_id: int, fn: Callable[[Account], AccountUpdate]
    ) -> Account:
        """
        Lock the account row, let fn decide the token fields, write them.

        Exceptions raised by fn roll the transaction back and propagate
        unchanged.
        """
        select_sql = f"SELECT {_COLUMNS} FROM accounts WHERE id = %s FOR UPDATE"

        try:
            with self._pool.connection() as conn, conn.transaction():
                account = _to_account(conn.execute(select_sql, (account_id,)).fetchone())
                if account is None:
                    raise AccountNotFound(account_id)

                changes = dict(fn(account))
                unknown = set(changes) - WRITABLE_TOKEN_FIELDS
                if unknown:
                    raise ValueError(f"Fields not writable via read_then_write: {sorted(unknown)}")

                if changes:
                    update_sql = sql.SQL("UPDATE accounts SET {} WHERE id = %s").format(
                        sql.SQL(", ").join(
                            sql.SQL("{} = %s").format(sql.Identifier(column)) for column in changes
                        )
                    )
                    conn.execute(update_sql, (*changes.values(), account_id))
                return replace(account, **changes)
        except psycopg.Error as e:
            logger.error("read_then_write failed for account %s: %s", account_id, e)
            raise PersistenceFailure(account_id) from e

    def update_password_hash(self, account_id: int, password_hash: str) -> bool:
        return self._execute(
            "UPDATE accounts SET password_hash = %s WHERE id = %s", (password_hash, account_id)
        ) == 1

    def update_email(self, account_id: int, email: str) -> bool:
        """
        Set the email in one statement.

        Returns False when the UNIQUE constraint rejects the address.
        """
        try:
            updated = self._execute(
                "UPDATE accounts SET email = %s WHERE id = %s", (email, account_id)
            )
        except PersistenceFailure as e:
            if isinstance(e.__cause__, UniqueViolation):
                logger.info("Email update for account %s lost uniqueness race", account_id)
                return False
            raise
        if updated == 0:
            raise AccountNotFound(account_id)
        return True

    def mark_token_issued(self, account_id: int, issued_at: datetime) -> None:
        self._execute(
            "UPDATE accounts SET token_issued_at = %s WHERE id = %s", (issued_at, account_id)
        )

    def _fetch_one(self, query: str, param: object) -> Account | None:
        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(query, (param,))
                row = cursor.fetchone()
                conn.commit()
        except psycopg.Error as e:
            logger.error("Account lookup failed: %s", e)
            raise PersistenceFailure() from e
        return _to_account(row)

    def _execute(self, query: str, params: tuple) -> int:
        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(query, params)
                conn.commit()
                return cursor.rowcount
        except psycopg.Error as e:
            logger.error("Account update failed: %s", e)
            raise PersistenceFailure() from e


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Shipped as package data beside this module
    migrations_dir = Path(__file__).parent / "migrations"

    if not migrations_dir.exists():
        logger.warning("Migrations directory not found: %s", migrations_dir)
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info("Running %d migration(s)", len(sql_files))

    for sql_file in sql_files:
        logger.info("Executing migration: %s", sql_file.name)
        try:
            with pool.connection() as conn:
                conn.execute(sql_file.read_text())
            logger.info("Migration complete: %s", sql_file.name)
        except psycopg.Error as e:
            logger.error("Migration failed: %s - %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
