"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Protocol

from .models import Donation, OTPRecord, Program, UserProfile


class DuplicateCheck(Enum):
    """
    Outcome of a duplicate-email lookup against one source.

    CHECK_UNAVAILABLE means the source could not answer; the caller
    decides whether that blocks the operation.
    """

    DUPLICATE = "duplicate"
    NOT_DUPLICATE = "not_duplicate"
    CHECK_UNAVAILABLE = "check_unavailable"


class OTPStore(Protocol):
    """Port interface for verification code persistence."""

    def replace(
        self, recipient: str, code: str, created_at: datetime, expires_at: datetime
    ) -> None:
        """
        Delete every record for the recipient, then insert the new one.

        The two steps are not required to be atomic; concurrent callers
        may leave more than one record behind.
        """
        ...

    def find(self, recipient: str, code: str) -> list[OTPRecord]:
        """Return all records matching both recipient and code exactly."""
        ...

    def delete(self, record_ids: list[str]) -> None:
        """Delete records by id. Unknown ids are ignored."""
        ...

    def delete_matching(self, recipient: str, code: str) -> None:
        """Delete all records matching recipient and code."""
        ...


class EmailSender(Protocol):
    """Port interface for email delivery. Failures raise EmailDeliveryError."""

    def send_verification_code(self, email: str, code: str) -> None:
        ...

    def send_password_reset(self, email: str, link: str) -> None:
        ...


class IdentityProvider(Protocol):
    """
    Port interface for the identity provider.

    Owns credentials and sessions. Errors carrying a provider code are
    raised as IdentityProviderError.
    """

    def sign_in_methods(self, email: str) -> list[str]:
        """Return the sign-in methods bound to the address (empty if none)."""
        ...

    def create_account(self, email: str, password: str) -> str:
        """
        Create an account and return its uid.

        Raises:
            IdentityProviderError: code "email-already-in-use" on duplicates
        """
        ...

    def sign_in(self, email: str, password: str) -> str:
        """Return the uid for valid credentials, raise InvalidCredentials otherwise."""
        ...

    def create_session(self, uid: str) -> str:
        """Open a session and return its bearer token."""
        ...

    def resolve_session(self, token: str) -> str | None:
        """Return the uid owning a live session token, or None."""
        ...

    def revoke_session(self, token: str) -> None:
        ...

    def create_password_reset(self, email: str) -> str | None:
        """Return a single-use reset code, or None when no account exists."""
        ...

    def confirm_password_reset(self, code: str, new_password: str) -> str:
        """Set the new password and return the account email."""
        ...


class UserDirectory(Protocol):
    """Port interface for user profile documents."""

    def exists_with_email(self, email: str) -> bool:
        """Raises DocumentStoreError when the query cannot run."""
        ...

    def create(self, profile: UserProfile) -> None:
        ...

    def get(self, uid: str) -> UserProfile | None:
        ...

    def update(self, uid: str, changes: dict[str, Any]) -> UserProfile | None:
        ...

    def list_all(self) -> list[UserProfile]:
        ...


class ProgramRepository(Protocol):
    """Port interface for program documents."""

    def list_all(self, status: str | None = None) -> list[Program]:
        """Newest first, optionally filtered by status."""
        ...

    def list_featured(self) -> list[Program]:
        """Featured and active programs, newest first."""
        ...

    def get(self, program_id: str) -> Program | None:
        ...

    def create(self, fields: dict[str, Any]) -> Program:
        ...

    def update(self, program_id: str, changes: dict[str, Any]) -> Program | None:
        ...

    def delete(self, program_id: str) -> bool:
        ...

    def adjust_raised(self, program_id: str, delta: float) -> bool:
        """Add delta to the raised total, never going below zero."""
        ...


class DonationRepository(Protocol):
    """Port interface for donation documents."""

    def create(self, fields: dict[str, Any]) -> Donation:
        ...

    def get(self, donation_id: str) -> Donation | None:
        ...

    def list_all(self) -> list[Donation]:
        ...

    def list_by_program(self, program_id: str) -> list[Donation]:
        ...

    def list_by_donor(self, donor_id: str) -> list[Donation]:
        ...

    def delete(self, donation_id: str) -> bool:
        ...


class ImageHost(Protocol):
    """Port interface for the image hosting API. Failures raise ImageHostError."""

    def upload(self, filename: str, content: bytes, content_type: str) -> str:
        """Upload an image and return its public URL."""
        ...

    def delete(self, image_url: str) -> None:
        ...
