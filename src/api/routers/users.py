"""
User directory routes.
"""

from fastapi import APIRouter, Depends

from src.api.dependencies import get_account_service, get_session
from src.api.models import UserListResponse, UserOut
from src.domain.accounts import AccountService
from src.domain.session import Session

router = APIRouter(tags=["users"])


@router.get(
    "/users",
    response_model=UserListResponse,
    response_model_exclude_none=True,
    summary="List all users (admin)",
)
def list_users(
    session: Session = Depends(get_session),
    accounts: AccountService = Depends(get_account_service),
) -> UserListResponse:
    users = accounts.list_users(session)
    return UserListResponse(
        success=True,
        message=f"{len(users)} users",
        users=[UserOut.model_validate(user) for user in users],
    )
