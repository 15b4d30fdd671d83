"""
PostgreSQL document adapters - users, programs and donations.

Implements the UserDirectory, ProgramRepository and DonationRepository
protocols. Rows are fetched with psycopg's dict_row factory and mapped
straight onto the domain dataclasses; JSONB columns carry the loosely
structured parts (onboarding answers, program tags).

Column names in dynamic UPDATE statements come only from the per-table
whitelists below and are quoted with psycopg.sql.Identifier.
"""

import logging
import uuid
from typing import Any

from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from psycopg_pool import ConnectionPool

from src.domain.models import (
    Donation,
    DonationStatus,
    Program,
    ProgramStatus,
    Role,
    UserProfile,
)

from .postgres import store_errors

logger = logging.getLogger(__name__)

USER_COLUMNS = frozenset({"name", "email", "role", "avatar", "onboarding_completed", "onboarding", "updated_at"})
PROGRAM_COLUMNS = frozenset(
    {
        "title",
        "description",
        "short_description",
        "category",
        "location",
        "manager",
        "start_date",
        "end_date",
        "target",
        "status",
        "volunteers",
        "is_featured",
        "image_url",
        "tags",
    }
)
DONATION_COLUMNS = frozenset(
    {
        "program_id",
        "donor_id",
        "donor_name",
        "donor_avatar",
        "amount",
        "date",
        "status",
        "payment_method",
        "is_anonymous",
        "note",
    }
)
JSON_COLUMNS = frozenset({"onboarding", "tags"})


def _adapt(column: str, value: Any) -> Any:
    if column in JSON_COLUMNS:
        return Jsonb(value)
    if isinstance(value, (Role, ProgramStatus, DonationStatus)):
        return value.value
    return value


def _assignments(changes: dict[str, Any]) -> tuple[sql.Composed, list[Any]]:
    """Build `col = %s, ...` and its parameters from a filtered change set."""
    columns = list(changes)
    clause = sql.SQL(", ").join(
        sql.SQL("{} = %s").format(sql.Identifier(column)) for column in columns
    )
    return clause, [_adapt(column, changes[column]) for column in columns]


def _insert(table: str, values: dict[str, Any]) -> tuple[sql.Composed, list[Any]]:
    columns = list(values)
    query = sql.SQL("INSERT INTO {} ({}) VALUES ({}) RETURNING *").format(
        sql.Identifier(table),
        sql.SQL(", ").join(sql.Identifier(column) for column in columns),
        sql.SQL(", ").join(sql.Placeholder() for _ in columns),
    )
    return query, [_adapt(column, values[column]) for column in columns]


def _to_user(row: dict[str, Any]) -> UserProfile:
    return UserProfile(**{**row, "role": Role(row["role"])})


def _to_program(row: dict[str, Any]) -> Program:
    return Program(**{**row, "status": ProgramStatus(row["status"])})


def _to_donation(row: dict[str, Any]) -> Donation:
    return Donation(**{**row, "status": DonationStatus(row["status"])})


class PostgresUserDirectory:
    """Implements UserDirectory protocol via psycopg3."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def exists_with_email(self, email: str) -> bool:
        with store_errors("look up user by email"):
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute("SELECT 1 FROM users WHERE email = %s LIMIT 1", (email,))
                return cursor.fetchone() is not None

    def create(self, profile: UserProfile) -> None:
        values = {
            "uid": profile.uid,
            "name": profile.name,
            "email": profile.email,
            "role": profile.role,
            "avatar": profile.avatar,
            "onboarding_completed": profile.onboarding_completed,
            "onboarding": profile.onboarding,
            "created_at": profile.created_at,
        }
        query, params = _insert("users", values)
        with store_errors("create user profile"):
            with self._pool.connection() as conn:
                conn.execute(query, params)
                conn.commit()

    def get(self, uid: str) -> UserProfile | None:
        with store_errors("load user profile"):
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute("SELECT * FROM users WHERE uid = %s", (uid,))
                row = cursor.fetchone()
        return _to_user(row) if row is not None else None

    def update(self, uid: str, changes: dict[str, Any]) -> UserProfile | None:
        changes = {key: value for key, value in changes.items() if key in USER_COLUMNS}
        if not changes:
            return self.get(uid)

        clause, params = _assignments(changes)
        query = sql.SQL("UPDATE users SET {} WHERE uid = %s RETURNING *").format(clause)
        with store_errors("update user profile"):
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(query, [*params, uid])
                row = cursor.fetchone()
                conn.commit()
        return _to_user(row) if row is not None else None

    def list_all(self) -> list[UserProfile]:
        with store_errors("list users"):
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute("SELECT * FROM users ORDER BY created_at DESC")
                return [_to_user(row) for row in cursor.fetchall()]


class PostgresProgramRepository:
    """Implements ProgramRepository protocol via psycopg3."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def list_all(self, status: str | None = None) -> list[Program]:
        with store_errors("list programs"):
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                if status is None:
                    cursor.execute("SELECT * FROM programs ORDER BY created_at DESC")
                else:
                    cursor.execute(
                        "SELECT * FROM programs WHERE status = %s ORDER BY created_at DESC",
                        (status,),
                    )
                return [_to_program(row) for row in cursor.fetchall()]

    def list_featured(self) -> list[Program]:
        with store_errors("list featured programs"):
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(
                    """
                    SELECT * FROM programs
                    WHERE is_featured AND status = %s
                    ORDER BY created_at DESC
                    """,
                    (ProgramStatus.ACTIVE.value,),
                )
                return [_to_program(row) for row in cursor.fetchall()]

    def get(self, program_id: str) -> Program | None:
        with store_errors("load program"):
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute("SELECT * FROM programs WHERE id = %s", (program_id,))
                row = cursor.fetchone()
        return _to_program(row) if row is not None else None

    def create(self, fields: dict[str, Any]) -> Program:
        values = {key: value for key, value in fields.items() if key in PROGRAM_COLUMNS}
        values["id"] = uuid.uuid4().hex
        values["raised"] = 0
        query, params = _insert("programs", values)
        with store_errors("create program"):
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(query, params)
                row = cursor.fetchone()
                conn.commit()
        return _to_program(row)

    def update(self, program_id: str, changes: dict[str, Any]) -> Program | None:
        changes = {key: value for key, value in changes.items() if key in PROGRAM_COLUMNS}
        clause, params = _assignments(changes)
        if changes:
            clause = sql.SQL("{}, updated_at = NOW()").format(clause)
        else:
            clause = sql.SQL("updated_at = NOW()")
        query = sql.SQL("UPDATE programs SET {} WHERE id = %s RETURNING *").format(clause)
        with store_errors("update program"):
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(query, [*params, program_id])
                row = cursor.fetchone()
                conn.commit()
        return _to_program(row) if row is not None else None

    def delete(self, program_id: str) -> bool:
        with store_errors("delete program"):
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute("DELETE FROM programs WHERE id = %s", (program_id,))
                conn.commit()
                return cursor.rowcount == 1

    def adjust_raised(self, program_id: str, delta: float) -> bool:
        with store_errors("update program total"):
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(
                    """
                    UPDATE programs
                    SET raised = GREATEST(0, raised + %s), updated_at = NOW()
                    WHERE id = %s
                    """,
                    (delta, program_id),
                )
                conn.commit()
                return cursor.rowcount == 1


class PostgresDonationRepository:
    """Implements DonationRepository protocol via psycopg3."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def create(self, fields: dict[str, Any]) -> Donation:
        values = {key: value for key, value in fields.items() if key in DONATION_COLUMNS}
        values["id"] = uuid.uuid4().hex
        query, params = _insert("donations", values)
        with store_errors("create donation"):
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(query, params)
                row = cursor.fetchone()
                conn.commit()
        return _to_donation(row)

    def get(self, donation_id: str) -> Donation | None:
        with store_errors("load donation"):
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute("SELECT * FROM donations WHERE id = %s", (donation_id,))
                row = cursor.fetchone()
        return _to_donation(row) if row is not None else None

    def list_all(self) -> list[Donation]:
        return self._list("SELECT * FROM donations ORDER BY created_at DESC", ())

    def list_by_program(self, program_id: str) -> list[Donation]:
        return self._list(
            "SELECT * FROM donations WHERE program_id = %s ORDER BY created_at DESC",
            (program_id,),
        )

    def list_by_donor(self, donor_id: str) -> list[Donation]:
        return self._list(
            "SELECT * FROM donations WHERE donor_id = %s ORDER BY created_at DESC",
            (donor_id,),
        )

    def delete(self, donation_id: str) -> bool:
        with store_errors("delete donation"):
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute("DELETE FROM donations WHERE id = %s", (donation_id,))
                conn.commit()
                return cursor.rowcount == 1

    def _list(self, query: str, params: tuple[Any, ...]) -> list[Donation]:
        with store_errors("list donations"):
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(query, params)
                return [_to_donation(row) for row in cursor.fetchall()]
