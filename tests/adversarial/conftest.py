"""
Shared fixtures for adversarial tests.

Every adversarial test runs against PostgreSQL (see the `pool` fixture
in tests/conftest.py) on freshly emptied tables.
"""

from collections.abc import Generator

import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository.documents import PostgresUserDirectory
from src.adapters.repository.identity import PostgresIdentityProvider
from src.adapters.repository.postgres import PostgresOTPStore
from src.domain.otp import OTPIssuer, OTPVerifier
from src.domain.registration import RegistrationService
from tests.support import RecordingEmailSender


@pytest.fixture(autouse=True)
def _empty_tables(clean_database: None) -> Generator[None, None, None]:
    yield


@pytest.fixture
def store(pool: ConnectionPool) -> PostgresOTPStore:
    return PostgresOTPStore(pool)


@pytest.fixture
def sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def issuer(store: PostgresOTPStore, sender: RecordingEmailSender) -> OTPIssuer:
    return OTPIssuer(store=store, email_sender=sender, settle_seconds=0)


@pytest.fixture
def verifier(store: PostgresOTPStore) -> OTPVerifier:
    return OTPVerifier(store=store)


@pytest.fixture
def provider(pool: ConnectionPool) -> PostgresIdentityProvider:
    return PostgresIdentityProvider(pool, bcrypt_cost=4)


@pytest.fixture
def registration(
    pool: ConnectionPool,
    provider: PostgresIdentityProvider,
    issuer: OTPIssuer,
    verifier: OTPVerifier,
) -> RegistrationService:
    return RegistrationService(
        identity_provider=provider,
        users=PostgresUserDirectory(pool),
        issuer=issuer,
        verifier=verifier,
    )
