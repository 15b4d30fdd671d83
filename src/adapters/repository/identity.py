"""
PostgreSQL identity provider adapter - Implements IdentityProvider protocol.

Accounts, sessions and password-reset codes live in their own tables,
separate from the user profile documents.

Security Design - Timing Oracle Prevention:
------------------------------------------
sign_in() always runs bcrypt.checkpw(). When the email is unknown it
compares against a pre-computed dummy hash so response time does not
reveal whether an account exists. Session tokens and reset codes come
from the secrets module.
"""

import logging
import secrets
import uuid
from collections.abc import Iterator
from contextlib import contextmanager

import bcrypt
import psycopg
from psycopg.errors import UniqueViolation
from psycopg_pool import ConnectionPool

from src.domain.exceptions import IdentityProviderError, InvalidCredentials

logger = logging.getLogger(__name__)

EMAIL_IN_USE = "email-already-in-use"
PASSWORD_METHOD = "password"

# Hash of a throwaway password, used when the email has no account.
_DUMMY_BCRYPT_HASH = bcrypt.hashpw(b"dummy_password_for_timing_safety", bcrypt.gensalt(10)).decode()


@contextmanager
def provider_errors(action: str) -> Iterator[None]:
    """Re-raise psycopg failures as IdentityProviderError("internal-error")."""
    try:
        yield
    except psycopg.Error as exc:
        logger.error("Identity store error while trying to %s: %s", action, exc)
        raise IdentityProviderError("internal-error", f"Failed to {action}") from exc


class PostgresIdentityProvider:
    """
    Implements IdentityProvider protocol via psycopg3 and bcrypt.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(
        self,
        pool: ConnectionPool,
        bcrypt_cost: int = 10,
        session_ttl_seconds: int = 7 * 24 * 3600,
        reset_ttl_seconds: int = 3600,
    ) -> None:
        self._pool = pool
        self._bcrypt_cost = bcrypt_cost
        self._session_ttl = session_ttl_seconds
        self._reset_ttl = reset_ttl_seconds

    def sign_in_methods(self, email: str) -> list[str]:
        with provider_errors("look up sign-in methods"):
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute("SELECT 1 FROM accounts WHERE email = %s", (email,))
                found = cursor.fetchone() is not None
        return [PASSWORD_METHOD] if found else []

    def create_account(self, email: str, password: str) -> str:
        """
        Create an account with a bcrypt-hashed password.

        The UNIQUE constraint on accounts.email is the final duplicate
        check; a violation surfaces as "email-already-in-use".
        """
        uid = uuid.uuid4().hex
        password_hash = self._hash_password(password)
        try:
            with self._pool.connection() as conn:
                conn.execute(
                    "INSERT INTO accounts (uid, email, password_hash) VALUES (%s, %s, %s)",
                    (uid, email, password_hash),
                )
                conn.commit()
        except UniqueViolation:
            raise IdentityProviderError(EMAIL_IN_USE) from None
        except psycopg.Error as exc:
            logger.error("Failed to create account for %s: %s", email, exc)
            raise IdentityProviderError("internal-error", "Failed to create account") from exc
        return uid

    def sign_in(self, email: str, password: str) -> str:
        with provider_errors("sign in"):
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(
                    "SELECT uid, password_hash FROM accounts WHERE email = %s", (email,)
                )
                row = cursor.fetchone()

        stored_hash = row[1] if row is not None else _DUMMY_BCRYPT_HASH
        # Always run bcrypt, even for unknown emails
        password_valid = bcrypt.checkpw(password.encode(), stored_hash.encode())

        if row is None or not password_valid:
            raise InvalidCredentials()
        return row[0]

    def create_session(self, uid: str) -> str:
        token = secrets.token_urlsafe(32)
        with provider_errors("create session"):
            with self._pool.connection() as conn:
                conn.execute(
                    """
                    INSERT INTO sessions (token, uid, expires_at)
                    VALUES (%s, %s, NOW() + %s * INTERVAL '1 second')
                    """,
                    (token, uid, self._session_ttl),
                )
                conn.commit()
        return token

    def resolve_session(self, token: str) -> str | None:
        with provider_errors("resolve session"):
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(
                    "SELECT uid FROM sessions WHERE token = %s AND expires_at > NOW()",
                    (token,),
                )
                row = cursor.fetchone()
        return row[0] if row is not None else None

    def revoke_session(self, token: str) -> None:
        with provider_errors("revoke session"):
            with self._pool.connection() as conn:
                conn.execute("DELETE FROM sessions WHERE token = %s", (token,))
                conn.commit()

    def create_password_reset(self, email: str) -> str | None:
        code = secrets.token_urlsafe(24)
        with provider_errors("create password reset"):
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute("SELECT uid FROM accounts WHERE email = %s", (email,))
                row = cursor.fetchone()
                if row is None:
                    return None
                cursor.execute(
                    """
                    INSERT INTO password_resets (code, uid, expires_at)
                    VALUES (%s, %s, NOW() + %s * INTERVAL '1 second')
                    """,
                    (code, row[0], self._reset_ttl),
                )
                conn.commit()
        return code

    def confirm_password_reset(self, code: str, new_password: str) -> str:
        """
        Consume a reset code and replace the password.

        Open sessions of the account are revoked along with the code.
        """
        password_hash = self._hash_password(new_password)
        with provider_errors("reset password"):
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(
                    """
                    SELECT r.uid, a.email
                    FROM password_resets r JOIN accounts a ON a.uid = r.uid
                    WHERE r.code = %s AND r.expires_at > NOW()
                    FOR UPDATE
                    """,
                    (code,),
                )
                row = cursor.fetchone()
                if row is None:
                    conn.commit()
                    raise InvalidCredentials()

                uid, email = row
                cursor.execute(
                    "UPDATE accounts SET password_hash = %s WHERE uid = %s",
                    (password_hash, uid),
                )
                cursor.execute("DELETE FROM password_resets WHERE uid = %s", (uid,))
                cursor.execute("DELETE FROM sessions WHERE uid = %s", (uid,))
                conn.commit()
        return email

    def _hash_password(self, password: str) -> str:
        return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=self._bcrypt_cost)).decode()
