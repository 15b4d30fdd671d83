"""
PostgreSQL OTP store adapter - Implements OTPStore protocol.

This module provides the PostgreSQL implementation of the domain's
verification code store using psycopg3 with raw SQL, plus the
migration runner shared by every PostgreSQL adapter.

Store semantics:
- replace() deletes every code for the recipient and inserts the new
  one in the same transaction. Two concurrent callers can still both
  insert (no unique constraint), which the verifier tolerates.
- find() matches on (recipient, code), never on recipient alone, so a
  wrong code returns nothing.
- delete() removes a batch of matched records in one statement.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

import psycopg
from psycopg_pool import ConnectionPool

from src.domain.exceptions import DocumentStoreError
from src.domain.models import OTPRecord

logger = logging.getLogger(__name__)


@contextmanager
def store_errors(action: str) -> Iterator[None]:
    """Re-raise psycopg failures as the domain's DocumentStoreError."""
    try:
        yield
    except psycopg.Error as exc:
        logger.error("Database error while trying to %s: %s", action, exc)
        raise DocumentStoreError(f"Failed to {action}") from exc


class PostgresOTPStore:
    """
    Implements OTPStore protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize store with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def replace(
        self, recipient: str, code: str, created_at: datetime, expires_at: datetime
    ) -> None:
        """
        Purge the recipient's codes, then store the new one.

        Args:
            recipient: Normalized email address
            code: 6-digit verification code
            created_at: Issuance time
            expires_at: Nominal expiry (issuance + TTL)
        """
        with store_errors("store verification code"):
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute("DELETE FROM otps WHERE recipient = %s", (recipient,))
                purged = cursor.rowcount
                cursor.execute(
                    """
                    INSERT INTO otps (recipient, code, created_at, expires_at)
                    VALUES (%s, %s, %s, %s)
                    """,
                    (recipient, code, created_at, expires_at),
                )
                conn.commit()

        if purged:
            logger.debug("Purged %d previous code(s) for %s", purged, recipient)

    def find(self, recipient: str, code: str) -> list[OTPRecord]:
        sql = """
            SELECT id, recipient, code, created_at, expires_at
            FROM otps
            WHERE recipient = %s AND code = %s
        """
        with store_errors("look up verification code"):
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, (recipient, code))
                rows = cursor.fetchall()

        return [
            OTPRecord(
                id=str(row[0]),
                recipient=row[1],
                code=row[2],
                created_at=row[3],
                expires_at=row[4],
            )
            for row in rows
        ]

    def delete(self, record_ids: list[str]) -> None:
        if not record_ids:
            return
        with store_errors("delete verification codes"):
            with self._pool.connection() as conn:
                conn.execute(
                    "DELETE FROM otps WHERE id = ANY(%s)",
                    ([int(record_id) for record_id in record_ids],),
                )
                conn.commit()

    def delete_matching(self, recipient: str, code: str) -> None:
        with store_errors("delete verification code"):
            with self._pool.connection() as conn:
                conn.execute(
                    "DELETE FROM otps WHERE recipient = %s AND code = %s",
                    (recipient, code),
                )
                conn.commit()


def run_migrations(pool: ConnectionPool) -> None:
    """
    Apply every migrations/*.sql file in filename order.

    Files must be idempotent (IF NOT EXISTS); they run on each startup
    and at the start of every database test session.
    """
    migrations_dir = Path(__file__).resolve().parents[3] / "migrations"
    sql_files = sorted(migrations_dir.glob("*.sql"))
    if not sql_files:
        logger.warning("No migrations found in %s", migrations_dir)
        return

    for sql_file in sql_files:
        try:
            with pool.connection() as conn:
                conn.execute(sql_file.read_text())
        except psycopg.Error as exc:
            logger.error("Migration %s failed: %s", sql_file.name, exc)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from exc
        logger.info("Applied migration %s", sql_file.name)
