"""
Domain exceptions - Semantic error types for the donation tracker.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
Adapter-facing errors (identity provider, document store, email
transport, image host) live here too so the domain can catch them
without importing any adapter.
"""


class DonorHubError(Exception):
    """Base class for donation tracker domain errors."""

    pass


class ValidationFailed(DonorHubError):
    """Missing or malformed input."""

    pass


class EmailAlreadyExists(DonorHubError):
    """Email is already bound to an account."""

    pass


class InvalidOTP(DonorHubError):
    """Submitted code is wrong, stale, or already consumed."""

    pass


class OTPDeliveryFailed(DonorHubError):
    """Verification code could not be stored or sent."""

    pass


class RegistrationFailed(DonorHubError):
    """Account creation failed for a reason other than a duplicate email."""

    pass


class AuthenticationRequired(DonorHubError):
    """No authenticated session for an operation that needs one."""

    pass


class InvalidCredentials(DonorHubError):
    """Email/password pair or reset code rejected."""

    pass


class PermissionDenied(DonorHubError):
    """Authenticated user lacks the role required for the operation."""

    pass


class NotFound(DonorHubError):
    """Referenced document does not exist."""

    pass


class IdentityProviderError(DonorHubError):
    """
    Error reported by the identity provider.

    Carries a provider error code (e.g. "email-already-in-use") so callers
    can branch on it without string matching on the message.
    """

    def __init__(self, code: str, message: str | None = None) -> None:
        super().__init__(message or code)
        self.code = code


class DocumentStoreError(DonorHubError):
    """Document store query or write failed."""

    pass


class EmailDeliveryError(DonorHubError):
    """Email transport rejected or failed to submit a message."""

    pass


class ImageHostError(DonorHubError):
    """Image hosting API rejected an upload or delete."""

    pass
