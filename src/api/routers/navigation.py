"""
Navigation route - Exposes the route guard decision for a path.
"""

from fastapi import APIRouter, Depends, Query

from src.api.dependencies import get_session
from src.api.models import NavigationResponse
from src.domain.guard import decide
from src.domain.session import Session

router = APIRouter(tags=["navigation"])


@router.get(
    "/navigation",
    response_model=NavigationResponse,
    response_model_exclude_none=True,
    summary="Decide whether a client route may render",
)
def navigation(
    path: str = Query(..., min_length=1, description="Client route, e.g. /users"),
    session: Session = Depends(get_session),
) -> NavigationResponse:
    """
    Evaluate the route guard for the caller's session.

    A redirect with renderChildren false is the normal blank frame shown
    while the client navigates away.
    """
    decision = decide(session.current(), path)
    return NavigationResponse(
        success=True,
        message=decision.outcome.value,
        path=path,
        outcome=decision.outcome.value,
        render_children=decision.render_children,
        redirect_to=decision.redirect_to,
    )
