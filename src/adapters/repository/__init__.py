"""Repository adapters - Database implementations."""

from .documents import PostgresDonationRepository, PostgresProgramRepository, PostgresUserDirectory
from .identity import PostgresIdentityProvider
from .postgres import PostgresOTPStore, run_migrations

__all__ = [
    "PostgresDonationRepository",
    "PostgresIdentityProvider",
    "PostgresOTPStore",
    "PostgresProgramRepository",
    "PostgresUserDirectory",
    "run_migrations",
]
