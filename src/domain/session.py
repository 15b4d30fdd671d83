"""
Session state - Explicitly owned authentication state.

A Session starts unauthenticated and loading. It leaves the loading
state once resolved and returns to the unauthenticated state on
clear() (logout). An authenticated session may lack a profile when the
identity-provider account has no matching user document.
"""

from dataclasses import dataclass
from typing import Protocol

from .models import Role, UserProfile


@dataclass(frozen=True)
class SessionState:
    """Snapshot consumed by the navigation guard."""

    is_authenticated: bool
    is_loading: bool
    user: UserProfile | None = None

    @property
    def role(self) -> Role | None:
        return self.user.role if self.user is not None else None


class SessionProvider(Protocol):
    """Anything able to report the current session state."""

    def current(self) -> SessionState:
        ...


class Session:
    """Mutable holder for one caller's session."""

    def __init__(self) -> None:
        self.uid: str | None = None
        self.token: str | None = None
        self.user: UserProfile | None = None
        self._loading = True

    @property
    def is_authenticated(self) -> bool:
        return self.uid is not None

    def begin_loading(self) -> None:
        self._loading = True

    def resolve(
        self, uid: str | None, user: UserProfile | None = None, token: str | None = None
    ) -> None:
        """Finish loading. A None uid leaves the session unauthenticated."""
        self.uid = uid
        self.user = user if uid is not None else None
        self.token = token if uid is not None else None
        self._loading = False

    def update_user(self, user: UserProfile) -> None:
        """Replace the cached profile of an authenticated session."""
        if self.is_authenticated:
            self.user = user

    def clear(self) -> None:
        self.uid = None
        self.token = None
        self.user = None
        self._loading = False

    def current(self) -> SessionState:
        return SessionState(
            is_authenticated=self.is_authenticated,
            is_loading=self._loading,
            user=self.user,
        )
