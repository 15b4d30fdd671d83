"""
Domain layer - Pure business logic with zero framework imports.

This package contains the core business logic of the donation tracker:
OTP email verification, the registration workflow, session state and
the navigation guard, plus the program/donation services. It defines
its own port interfaces for infrastructure abstraction.
"""

from .accounts import AccountService, require_role
from .exceptions import (
    DonorHubError,
    EmailAlreadyExists,
    InvalidOTP,
    RegistrationFailed,
    ValidationFailed,
)
from .guard import RouteDecision, decide
from .models import Role
from .otp import OTPIssuer, OTPVerifier
from .ports import DuplicateCheck, EmailSender, IdentityProvider, OTPStore, UserDirectory
from .programs import DonationService, ProgramService
from .registration import RegistrationService
from .session import Session, SessionState

__all__ = [
    "AccountService",
    "DonationService",
    "DonorHubError",
    "DuplicateCheck",
    "EmailAlreadyExists",
    "EmailSender",
    "IdentityProvider",
    "InvalidOTP",
    "OTPIssuer",
    "OTPStore",
    "OTPVerifier",
    "ProgramService",
    "RegistrationFailed",
    "RegistrationService",
    "Role",
    "RouteDecision",
    "Session",
    "SessionState",
    "UserDirectory",
    "ValidationFailed",
    "decide",
    "require_role",
]
