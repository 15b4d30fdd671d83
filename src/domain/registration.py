"""
Registration domain service - Email verification and account creation.

Registration is a sequence of independent round trips, each of which
re-checks that the email is still free:

    check_email()  ->  request_otp()  ->  verify_otp()  ->  register()

Duplicate detection consults two sources that must stay in sync:

1. Identity provider: sign-in methods bound to the address. A provider
   error with code "email-already-in-use" counts as a duplicate.
2. User directory: profile documents with the same email.

Each lookup yields a DuplicateCheck. CHECK_UNAVAILABLE is treated as
NOT_DUPLICATE (fail open); the final account creation still rejects a
duplicate that slipped through, which closes the time-of-check gap.
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from urllib.parse import urlencode

from .exceptions import (
    DocumentStoreError,
    EmailAlreadyExists,
    IdentityProviderError,
    InvalidOTP,
    OTPDeliveryFailed,
    RegistrationFailed,
    ValidationFailed,
)
from .models import Role, UserProfile
from .otp import OTPIssuer, OTPVerifier, normalize_recipient, utcnow
from .ports import DuplicateCheck, IdentityProvider, UserDirectory

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
EMAIL_IN_USE = "email-already-in-use"
MIN_PASSWORD_LENGTH = 6


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email))


@dataclass
class RegistrationService:
    """
    Domain service for user registration.

    Orchestrates duplicate checks, OTP issuance/verification and the
    creation of the identity-provider account plus its user profile.
    """

    identity_provider: IdentityProvider
    users: UserDirectory
    issuer: OTPIssuer
    verifier: OTPVerifier
    avatar_base_url: str = "https://ui-avatars.com/api/"
    clock: Callable[[], datetime] = field(default=utcnow)

    def check_email(self, email: str) -> str:
        """
        Confirm an address is well-formed and not yet registered.

        Returns:
            Normalized email address

        Raises:
            ValidationFailed: Missing or malformed email
            EmailAlreadyExists: Address found in either source
        """
        normalized = self._validate_email(email)
        self._ensure_available(normalized)
        logger.info("Email %s is available for registration", normalized)
        return normalized

    def request_otp(self, email: str) -> str:
        """
        Send a verification code to an unregistered address.

        Raises:
            ValidationFailed, EmailAlreadyExists: as check_email
            OTPDeliveryFailed: Code could not be stored or sent
        """
        normalized = self.check_email(email)
        result = self.issuer.issue(normalized)
        if not result.success:
            raise OTPDeliveryFailed(normalized)
        return normalized

    def verify_otp(self, email: str, otp: str) -> str:
        """
        Check the user-entered code.

        Only the identity provider is re-checked here; the code is consumed
        whether or not it matches.

        Raises:
            ValidationFailed: Missing email or code
            EmailAlreadyExists: Address registered since the code was sent
            InvalidOTP: Wrong, stale or already used code
        """
        if not email or not email.strip() or not otp or not otp.strip():
            raise ValidationFailed("Email and OTP are required")

        normalized = normalize_recipient(email)
        if self._check_identity_provider(normalized) is DuplicateCheck.DUPLICATE:
            raise EmailAlreadyExists(normalized)

        if not self.verifier.verify(normalized, otp):
            raise InvalidOTP(normalized)
        return normalized

    def register(self, name: str, email: str, password: str, role: str) -> str:
        """
        Create the account and its user profile.

        Returns:
            uid of the new account

        Raises:
            ValidationFailed: Missing fields, bad email, bad role, short password
            EmailAlreadyExists: Duplicate found by any check or at creation
            RegistrationFailed: Any other creation failure
        """
        if not all(value and value.strip() for value in (name, email, password, role)):
            raise ValidationFailed("All fields are required")

        normalized = self._validate_email(email)
        try:
            user_role = Role(role.strip().lower())
        except ValueError:
            raise ValidationFailed(f"Invalid role: {role}") from None
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationFailed(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )

        self._ensure_available(normalized)

        try:
            uid = self.identity_provider.create_account(normalized, password)
        except IdentityProviderError as exc:
            if exc.code == EMAIL_IN_USE:
                raise EmailAlreadyExists(normalized) from None
            logger.error("Identity provider rejected account for %s: %s", normalized, exc)
            raise RegistrationFailed(normalized) from exc

        display_name = name.strip()
        profile = UserProfile(
            uid=uid,
            name=display_name,
            email=normalized,
            role=user_role,
            avatar=self.avatar_url(display_name),
            created_at=self.clock(),
            onboarding_completed=False,
        )
        try:
            self.users.create(profile)
        except DocumentStoreError as exc:
            logger.error("Failed to store profile for %s (uid %s): %s", normalized, uid, exc)
            raise RegistrationFailed(normalized) from exc

        logger.info("Registered %s as %s (uid %s)", normalized, user_role.value, uid)
        return uid

    def avatar_url(self, name: str) -> str:
        """Generated avatar image URL for a display name."""
        return f"{self.avatar_base_url}?{urlencode({'name': name})}"

    def _validate_email(self, email: str | None) -> str:
        if not email or not email.strip():
            raise ValidationFailed("Email is required")
        normalized = normalize_recipient(email)
        if not is_valid_email(normalized):
            raise ValidationFailed("Invalid email format")
        return normalized

    def _ensure_available(self, email: str) -> None:
        if self._check_identity_provider(email) is DuplicateCheck.DUPLICATE:
            raise EmailAlreadyExists(email)
        if self._check_user_directory(email) is DuplicateCheck.DUPLICATE:
            raise EmailAlreadyExists(email)

    def _check_identity_provider(self, email: str) -> DuplicateCheck:
        try:
            methods = self.identity_provider.sign_in_methods(email)
        except IdentityProviderError as exc:
            if exc.code == EMAIL_IN_USE:
                return DuplicateCheck.DUPLICATE
            logger.warning("Identity provider check unavailable for %s: %s", email, exc)
            return DuplicateCheck.CHECK_UNAVAILABLE

        if methods:
            logger.info("Email %s already has sign-in methods %s", email, methods)
            return DuplicateCheck.DUPLICATE
        return DuplicateCheck.NOT_DUPLICATE

    def _check_user_directory(self, email: str) -> DuplicateCheck:
        try:
            exists = self.users.exists_with_email(email)
        except DocumentStoreError as exc:
            logger.warning("User directory check unavailable for %s: %s", email, exc)
            return DuplicateCheck.CHECK_UNAVAILABLE

        if exists:
            logger.info("Email %s already has a user profile", email)
            return DuplicateCheck.DUPLICATE
        return DuplicateCheck.NOT_DUPLICATE
