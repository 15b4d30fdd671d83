"""
Account domain service - Sessions, profile upkeep and password reset.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from urllib.parse import urlencode

from .exceptions import (
    AuthenticationRequired,
    EmailDeliveryError,
    PermissionDenied,
    ValidationFailed,
)
from .models import Role, UserProfile
from .otp import normalize_recipient, utcnow
from .ports import EmailSender, IdentityProvider, UserDirectory
from .registration import MIN_PASSWORD_LENGTH
from .session import Session

logger = logging.getLogger(__name__)

# Profile fields a user may change directly
EDITABLE_PROFILE_FIELDS = frozenset({"name", "avatar"})


def require_role(session: Session, *roles: Role) -> UserProfile:
    """
    Return the session's profile if it holds one of the given roles.

    Raises:
        AuthenticationRequired: Session is not authenticated or has no profile
        PermissionDenied: Profile role is not among `roles`
    """
    if not session.is_authenticated or session.user is None:
        raise AuthenticationRequired()
    if roles and session.user.role not in roles:
        raise PermissionDenied(session.user.role.value)
    return session.user


@dataclass
class AccountService:
    """Login/logout, session resolution and profile operations."""

    identity_provider: IdentityProvider
    users: UserDirectory
    email_sender: EmailSender
    password_reset_url: str
    clock: Callable[[], datetime] = field(default=utcnow)

    def login(self, email: str, password: str) -> Session:
        """
        Sign in and open a session.

        Raises:
            InvalidCredentials: Unknown email or wrong password
        """
        normalized = normalize_recipient(email)
        uid = self.identity_provider.sign_in(normalized, password)
        token = self.identity_provider.create_session(uid)

        session = Session()
        session.resolve(uid, self.users.get(uid), token)
        logger.info("Signed in %s (uid %s)", normalized, uid)
        return session

    def resolve_session(self, token: str | None) -> Session:
        """Build the session for a bearer token (unauthenticated if absent or dead)."""
        session = Session()
        uid = self.identity_provider.resolve_session(token) if token else None
        if uid is None:
            session.resolve(None)
            return session

        user = self.users.get(uid)
        if user is None:
            logger.warning("Session for uid %s has no user profile", uid)
        session.resolve(uid, user, token)
        return session

    def logout(self, session: Session) -> None:
        if session.token is not None:
            self.identity_provider.revoke_session(session.token)
        session.clear()

    def complete_onboarding(self, session: Session, preferences: dict[str, Any]) -> UserProfile:
        """Store onboarding answers and mark onboarding as completed."""
        user = require_role(session)
        updated = self.users.update(
            user.uid,
            {
                "onboarding": preferences,
                "onboarding_completed": True,
                "updated_at": self.clock(),
            },
        )
        if updated is None:
            raise AuthenticationRequired()
        session.update_user(updated)
        return updated

    def update_profile(self, session: Session, changes: dict[str, Any]) -> UserProfile:
        user = require_role(session)
        allowed = {key: value for key, value in changes.items() if key in EDITABLE_PROFILE_FIELDS}
        allowed["updated_at"] = self.clock()
        updated = self.users.update(user.uid, allowed)
        if updated is None:
            raise AuthenticationRequired()
        session.update_user(updated)
        return updated

    def list_users(self, session: Session) -> list[UserProfile]:
        """All user profiles, newest first. Admin only."""
        require_role(session, Role.ADMIN)
        return self.users.list_all()

    def forgot_password(self, email: str) -> None:
        """
        Email a password-reset link if the address has an account.

        Unknown addresses and delivery failures are both swallowed, so the
        outcome is the same for every address.
        """
        normalized = normalize_recipient(email)
        code = self.identity_provider.create_password_reset(normalized)
        if code is None:
            logger.info("Password reset requested for unknown email %s", normalized)
            return

        link = f"{self.password_reset_url}?{urlencode({'oobCode': code})}"
        try:
            self.email_sender.send_password_reset(normalized, link)
        except EmailDeliveryError:
            logger.exception("Failed to send password reset email to %s", normalized)
            return
        logger.info("Password reset email sent to %s", normalized)

    def reset_password(self, code: str, new_password: str) -> str:
        """
        Consume a reset code and set the new password.

        Raises:
            ValidationFailed: New password too short
            InvalidCredentials: Unknown, used or expired code
        """
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationFailed(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )
        email = self.identity_provider.confirm_password_reset(code.strip(), new_password)
        logger.info("Password reset completed for %s", email)
        return email
