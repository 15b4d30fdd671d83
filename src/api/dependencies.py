"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from collections.abc import Callable
from datetime import timedelta
from functools import lru_cache

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from psycopg_pool import ConnectionPool

from src.adapters.images.hosting import HttpImageHost
from src.adapters.repository.documents import (
    PostgresDonationRepository,
    PostgresProgramRepository,
    PostgresUserDirectory,
)
from src.adapters.repository.identity import PostgresIdentityProvider
from src.adapters.repository.postgres import PostgresOTPStore
from src.adapters.smtp.console import ConsoleEmailSender
from src.adapters.smtp.mailer import SMTPEmailSender
from src.config.settings import Settings, get_settings
from src.domain.accounts import AccountService, require_role
from src.domain.models import Role, UserProfile
from src.domain.otp import OTPIssuer, OTPVerifier
from src.domain.ports import EmailSender, IdentityProvider, ImageHost, OTPStore, UserDirectory
from src.domain.programs import DonationService, ProgramService
from src.domain.registration import RegistrationService
from src.domain.session import Session


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


@lru_cache
def get_email_sender() -> EmailSender:
    """Console or SMTP sender depending on settings (singleton)."""
    settings = get_settings()
    if settings.email_backend == "smtp":
        if not settings.smtp_host:
            raise RuntimeError("EMAIL_BACKEND=smtp requires SMTP_HOST")
        return SMTPEmailSender(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            sender=settings.smtp_sender,
            timeout=settings.smtp_timeout_seconds,
            code_ttl_minutes=settings.otp_ttl_seconds // 60,
        )
    return ConsoleEmailSender()


@lru_cache
def get_image_host() -> ImageHost:
    """HTTP image host client (singleton, closed on shutdown)."""
    settings = get_settings()
    return HttpImageHost(
        upload_url=settings.image_upload_url,
        delete_url=settings.image_delete_url,
        timeout=settings.http_timeout_seconds,
    )


def get_otp_store(pool: ConnectionPool = Depends(get_pool)) -> OTPStore:
    return PostgresOTPStore(pool)


def get_identity_provider(
    pool: ConnectionPool = Depends(get_pool),
    settings: Settings = Depends(get_settings),
) -> IdentityProvider:
    return PostgresIdentityProvider(
        pool,
        bcrypt_cost=settings.bcrypt_cost,
        session_ttl_seconds=settings.session_ttl_seconds,
        reset_ttl_seconds=settings.password_reset_ttl_seconds,
    )


def get_user_directory(pool: ConnectionPool = Depends(get_pool)) -> UserDirectory:
    return PostgresUserDirectory(pool)


def get_registration_service(
    settings: Settings = Depends(get_settings),
    otp_store: OTPStore = Depends(get_otp_store),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
    users: UserDirectory = Depends(get_user_directory),
    email_sender: EmailSender = Depends(get_email_sender),
) -> RegistrationService:
    """
    Create registration service with injected dependencies.

    Wires the OTP store and email sender into issuer/verifier and hands
    them to the domain service together with both duplicate-check sources.
    """
    issuer = OTPIssuer(
        store=otp_store,
        email_sender=email_sender,
        ttl=timedelta(seconds=settings.otp_ttl_seconds),
        settle_seconds=settings.otp_settle_seconds,
    )
    verifier = OTPVerifier(store=otp_store, grace=timedelta(seconds=settings.otp_grace_seconds))
    return RegistrationService(
        identity_provider=identity_provider,
        users=users,
        issuer=issuer,
        verifier=verifier,
        avatar_base_url=settings.avatar_base_url,
    )


def get_account_service(
    settings: Settings = Depends(get_settings),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
    users: UserDirectory = Depends(get_user_directory),
    email_sender: EmailSender = Depends(get_email_sender),
) -> AccountService:
    return AccountService(
        identity_provider=identity_provider,
        users=users,
        email_sender=email_sender,
        password_reset_url=settings.password_reset_url,
    )


def get_program_service(
    pool: ConnectionPool = Depends(get_pool),
    settings: Settings = Depends(get_settings),
    images: ImageHost = Depends(get_image_host),
) -> ProgramService:
    return ProgramService(
        programs=PostgresProgramRepository(pool),
        images=images,
        max_image_bytes=settings.image_max_bytes,
    )


def get_donation_service(
    pool: ConnectionPool = Depends(get_pool),
    users: UserDirectory = Depends(get_user_directory),
) -> DonationService:
    return DonationService(
        programs=PostgresProgramRepository(pool),
        donations=PostgresDonationRepository(pool),
        users=users,
    )


# Bearer session tokens; missing header means an anonymous session
http_bearer = HTTPBearer(auto_error=False)


def get_session(
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
    accounts: AccountService = Depends(get_account_service),
) -> Session:
    """Resolve the caller's session from the Authorization header."""
    token = credentials.credentials if credentials is not None else None
    return accounts.resolve_session(token)


def require_roles(*roles: Role) -> Callable[..., UserProfile]:
    """
    Build a dependency returning the caller's profile.

    With no roles, any authenticated user with a profile passes.
    """

    def dependency(session: Session = Depends(get_session)) -> UserProfile:
        return require_role(session, *roles)

    return dependency
