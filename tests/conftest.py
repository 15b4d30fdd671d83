"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- In-memory OTP store, recording email sender and a controllable clock
- A PostgreSQL pool for integration and adversarial tests, skipped when
  the database is unreachable
- Table cleanup between database tests
"""

from collections.abc import Generator

import psycopg
import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import run_migrations
from src.config.settings import get_settings
from tests.support import FakeClock, InMemoryOTPStore, RecordingEmailSender

TABLES = ("otps", "sessions", "password_resets", "accounts", "users", "donations", "programs")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def otp_store() -> InMemoryOTPStore:
    return InMemoryOTPStore()


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture(scope="session")
def pool() -> Generator[ConnectionPool, None, None]:
    """
    Connection pool against DATABASE_URL with migrations applied.

    Tests needing it are skipped if PostgreSQL is not reachable.
    """
    settings = get_settings()
    try:
        with psycopg.connect(settings.database_url, connect_timeout=3):
            pass
    except psycopg.OperationalError as exc:
        pytest.skip(f"PostgreSQL not available: {exc}")

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
def clean_database(pool: ConnectionPool) -> Generator[None, None, None]:
    """Empty every table before the test."""
    with pool.connection() as conn:
        conn.execute(f"TRUNCATE {', '.join(TABLES)}")
        conn.commit()
    yield
