"""
Navigation guard - Route authorization policy.

decide() is a pure function of (session state, path). It does not
navigate; the hosting layer performs the redirect it returns.

Evaluation order (first match wins once loading has finished):

1. Authenticated with an unfinished onboarding, outside /onboarding, on
   a protected path or on "/" (the dashboard) -> /onboarding
2. Not authenticated on a protected path     -> /login
3. Authenticated on a public path other than "/" and /programs/public*
                                             -> /
4. Role gating for authenticated users       -> / on violation

Children render whenever the caller is authenticated or the path is
public. A redirect with nothing rendered is the expected blank frame
while navigation happens.
"""

from dataclasses import dataclass
from enum import Enum

from .models import Role
from .session import SessionState

HOME = "/"
LOGIN = "/login"
ONBOARDING = "/onboarding"

PUBLIC_PATHS = frozenset({"/", "/login", "/register", "/forgot-password", "/admin-signup"})
PUBLIC_PREFIXES = ("/programs/public", "/reset-password")
PUBLIC_PROGRAMS_PREFIX = "/programs/public"

# Route prefix -> roles allowed on it
ROLE_RULES: tuple[tuple[tuple[str, ...], frozenset[Role]], ...] = (
    (("/users", "/finance", "/admin"), frozenset({Role.ADMIN})),
    (("/my-donations", "/impact"), frozenset({Role.DONOR, Role.ADMIN})),
    (("/volunteer-dashboard",), frozenset({Role.VOLUNTEER, Role.ADMIN})),
)


class Outcome(str, Enum):
    WAIT = "wait"  # session still loading
    ALLOW = "allow"
    REDIRECT = "redirect"


@dataclass(frozen=True)
class RouteDecision:
    outcome: Outcome
    render_children: bool
    redirect_to: str | None = None

    @classmethod
    def wait(cls) -> "RouteDecision":
        return cls(Outcome.WAIT, render_children=False)

    @classmethod
    def allow(cls) -> "RouteDecision":
        return cls(Outcome.ALLOW, render_children=True)

    @classmethod
    def redirect(cls, target: str, render_children: bool) -> "RouteDecision":
        return cls(Outcome.REDIRECT, render_children=render_children, redirect_to=target)


def is_public_path(path: str) -> bool:
    return path in PUBLIC_PATHS or path.startswith(PUBLIC_PREFIXES)


def required_roles(path: str) -> frozenset[Role] | None:
    """Roles allowed on a path, or None if the path is not role gated."""
    for prefixes, roles in ROLE_RULES:
        if path.startswith(prefixes):
            return roles
    return None


def decide(state: SessionState, path: str) -> RouteDecision:
    """Evaluate the navigation policy for a path."""
    if state.is_loading:
        return RouteDecision.wait()

    public = is_public_path(path)
    render = state.is_authenticated or public
    user = state.user

    if (
        state.is_authenticated
        and user is not None
        and not user.onboarding_completed
        and not path.startswith(ONBOARDING)
        and (not public or path == HOME)
    ):
        return RouteDecision.redirect(ONBOARDING, render)

    if not state.is_authenticated and not public:
        return RouteDecision.redirect(LOGIN, render)

    if (
        state.is_authenticated
        and public
        and not path.startswith(PUBLIC_PROGRAMS_PREFIX)
        and path != HOME
    ):
        return RouteDecision.redirect(HOME, render)

    if state.is_authenticated and user is not None:
        roles = required_roles(path)
        if roles is not None and user.role not in roles:
            return RouteDecision.redirect(HOME, render)

    return RouteDecision.allow()
