"""
PostgreSQL repository adapter - Implements AccountRepository protocol.

This module provides the PostgreSQL implementation of the domain's
account port using psycopg3 with raw SQL. Rows are read as tuples in
the column order of ``_COLUMNS``.
"""

import logging
import uuid
from collections.abc import Iterable
from pathlib import Path

from psycopg_pool import ConnectionPool

from campusauth.domain.exceptions import EmailAlreadyRegistered
from campusauth.domain.ports import Account, Role

logger = logging.getLogger(__name__)

_COLUMNS = "id, email, username, role, password_hash, created_at"


def _row_to_account(row: tuple) -> Account:
    return Account(
        id=str(row[0]),
        email=row[1],
        username=row[2],
        role=Role(row[3]),
        password_hash=row[4],
        created_at=row[5],
    )


def _parse_id(account_id: str) -> uuid.UUID | None:
    # Malformed ids would otherwise surface as a database error
    try:
        return uuid.UUID(account_id)
    except (TypeError, ValueError):
        return None


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

    def find_by_email(self, email: str) -> Account | None:
        sql = f"SELECT {_COLUMNS} FROM accounts WHERE email = %s"
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (email,))
            row = cursor.fetchone()
        return _row_to_account(row) if row is not None else None

    def find_by_id(self, account_id: str) -> Account | None:
        parsed = _parse_id(account_id)
        if parsed is None:
            return None
        sql = f"SELECT {_COLUMNS} FROM accounts WHERE id = %s"
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (parsed,))
            row = cursor.fetchone()
        return _row_to_account(row) if row is not None else None

    def create_account(
        self, email: str, username: str, role: Role, password_hash: str | None
    ) -> Account:
        """
        Insert a new account.

        Uses INSERT ... ON CONFLICT DO NOTHING so the UNIQUE constraint on
        email decides concurrent registrations; the loser gets no row back.

        Raises:
            EmailAlreadyRegistered: If the email is already taken
        """
        sql = f"""
            INSERT INTO accounts (email, username, role, password_hash)
            VALUES (%s, %s, %s, %s)
            ON CONFLICT (email) DO NOTHING
            RETURNING {_COLUMNS}
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (email, username, role.value, password_hash))
            row = cursor.fetchone()
            conn.commit()

        if row is None:
            raise EmailAlreadyRegistered(email)
        return _row_to_account(row)

    def update_password_hash(self, email: str, password_hash: str) -> bool:
        sql = "UPDATE accounts SET password_hash = %s WHERE email = %s"
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (password_hash, email))
            conn.commit()
            return cursor.rowcount == 1

    def update_role(self, account_id: str, role: Role) -> Account | None:
        parsed = _parse_id(account_id)
        if parsed is None:
            return None
        sql = f"UPDATE accounts SET role = %s WHERE id = %s RETURNING {_COLUMNS}"
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (role.value, parsed))
            row = cursor.fetchone()
            conn.commit()
        return _row_to_account(row) if row is not None else None

    def update_username(self, account_id: str, username: str) -> Account | None:
        parsed = _parse_id(account_id)
        if parsed is None:
            return None
        sql = f"UPDATE accounts SET username = %s WHERE id = %s RETURNING {_COLUMNS}"
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (username, parsed))
            row = cursor.fetchone()
            conn.commit()
        return _row_to_account(row) if row is not None else None

    def delete_account(self, account_id: str) -> bool:
        parsed = _parse_id(account_id)
        if parsed is None:
            return False
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("DELETE FROM accounts WHERE id = %s", (parsed,))
            conn.commit()
            return cursor.rowcount == 1

    def list_by_roles(self, roles: Iterable[Role]) -> list[Account]:
        values = [role.value for role in roles]
        if not values:
            return []
        sql = f"SELECT {_COLUMNS} FROM accounts WHERE role = ANY(%s) ORDER BY created_at, email"
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (values,))
            rows = cursor.fetchall()
        return [_row_to_account(row) for row in rows]


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: campusauth/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
