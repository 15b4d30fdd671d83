"""
Auth routes - Registration, sessions and account upkeep.

Registration is a sequence of independent calls the client drives:

    POST /api/auth/check-email  ->  POST /api/auth/send-otp
        ->  POST /api/auth/verify-otp  ->  POST /api/auth/register
"""

from fastapi import APIRouter, Depends

from src.api.dependencies import (
    get_account_service,
    get_registration_service,
    get_session,
)
from src.api.models import (
    ApiResponse,
    EmailRequest,
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    OnboardingRequest,
    ProfileResponse,
    ProfileUpdateRequest,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    ResetPasswordResponse,
    SessionResponse,
    UserOut,
    VerifyOTPRequest,
)
from src.domain.accounts import AccountService
from src.domain.exceptions import InvalidCredentials, ValidationFailed
from src.domain.registration import RegistrationService
from src.domain.session import Session

router = APIRouter(prefix="/auth", tags=["auth"])

_FAILURES = {
    400: {"model": ApiResponse, "description": "Missing or invalid input, duplicate email, bad code"},
    500: {"model": ApiResponse, "description": "Collaborator failure"},
}


@router.post(
    "/check-email",
    response_model=ApiResponse,
    response_model_exclude_none=True,
    responses=_FAILURES,
    summary="Check that an email can be registered",
)
def check_email(
    request_data: EmailRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> ApiResponse:
    service.check_email(request_data.email)
    return ApiResponse(success=True, message="Email is available")


@router.post(
    "/send-otp",
    response_model=ApiResponse,
    response_model_exclude_none=True,
    responses=_FAILURES,
    summary="Email a verification code",
)
def send_otp(
    request_data: EmailRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> ApiResponse:
    """Issue a fresh 6-digit code, replacing any earlier one for the address."""
    service.request_otp(request_data.email)
    return ApiResponse(success=True, message="Verification code sent")


@router.post(
    "/verify-otp",
    response_model=ApiResponse,
    response_model_exclude_none=True,
    responses=_FAILURES,
    summary="Verify an emailed code",
)
def verify_otp(
    request_data: VerifyOTPRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> ApiResponse:
    """
    Verify the code for an email.

    The code is consumed whether or not it matches; a rejected code
    answers 400 with errorCode "invalid-otp".
    """
    service.verify_otp(request_data.email, request_data.otp)
    return ApiResponse(success=True, message="Email verified successfully")


@router.post(
    "/register",
    response_model=RegisterResponse,
    response_model_exclude_none=True,
    responses=_FAILURES,
    summary="Create an account and its user profile",
)
def register(
    request_data: RegisterRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> RegisterResponse:
    uid = service.register(
        request_data.name,
        request_data.email,
        request_data.password,
        request_data.role,
    )
    return RegisterResponse(success=True, message="User registered successfully", uid=uid)


@router.post(
    "/login",
    response_model=LoginResponse,
    response_model_exclude_none=True,
    responses={401: {"model": ApiResponse, "description": "Invalid credentials"}},
    summary="Sign in with email and password",
)
def login(
    request_data: LoginRequest,
    accounts: AccountService = Depends(get_account_service),
) -> LoginResponse:
    session = accounts.login(request_data.email, request_data.password)
    user = UserOut.model_validate(session.user) if session.user is not None else None
    return LoginResponse(
        success=True,
        message="Signed in",
        token=session.token,
        user=user,
    )


@router.post(
    "/logout",
    response_model=ApiResponse,
    response_model_exclude_none=True,
    summary="Revoke the current session",
)
def logout(
    session: Session = Depends(get_session),
    accounts: AccountService = Depends(get_account_service),
) -> ApiResponse:
    accounts.logout(session)
    return ApiResponse(success=True, message="Signed out")


@router.get(
    "/session",
    response_model=SessionResponse,
    response_model_exclude_none=True,
    summary="Current session state",
)
def current_session(session: Session = Depends(get_session)) -> SessionResponse:
    state = session.current()
    return SessionResponse(
        success=True,
        message="Authenticated" if state.is_authenticated else "Not authenticated",
        is_authenticated=state.is_authenticated,
        is_loading=state.is_loading,
        user=UserOut.model_validate(state.user) if state.user is not None else None,
    )


@router.post(
    "/onboarding",
    response_model=ProfileResponse,
    response_model_exclude_none=True,
    responses={401: {"model": ApiResponse, "description": "Not signed in"}},
    summary="Save onboarding answers",
)
def complete_onboarding(
    request_data: OnboardingRequest,
    session: Session = Depends(get_session),
    accounts: AccountService = Depends(get_account_service),
) -> ProfileResponse:
    preferences = request_data.model_dump(by_alias=True)
    user = accounts.complete_onboarding(session, preferences)
    return ProfileResponse(
        success=True,
        message="Onboarding completed",
        user=UserOut.model_validate(user),
    )


@router.patch(
    "/profile",
    response_model=ProfileResponse,
    response_model_exclude_none=True,
    responses={401: {"model": ApiResponse, "description": "Not signed in"}},
    summary="Update name or avatar",
)
def update_profile(
    request_data: ProfileUpdateRequest,
    session: Session = Depends(get_session),
    accounts: AccountService = Depends(get_account_service),
) -> ProfileResponse:
    changes = request_data.model_dump(exclude_unset=True, exclude_none=True)
    user = accounts.update_profile(session, changes)
    return ProfileResponse(
        success=True,
        message="Profile updated",
        user=UserOut.model_validate(user),
    )


@router.post(
    "/forgot-password",
    response_model=ApiResponse,
    response_model_exclude_none=True,
    summary="Email a password reset link",
)
def forgot_password(
    request_data: ForgotPasswordRequest,
    accounts: AccountService = Depends(get_account_service),
) -> ApiResponse:
    """
    Request a password reset link.

    The answer is the same whether or not the address has an account.
    """
    accounts.forgot_password(request_data.email)
    return ApiResponse(
        success=True,
        message="If an account exists for this email, a reset link has been sent",
    )


@router.post(
    "/reset-password",
    response_model=ResetPasswordResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ApiResponse, "description": "Invalid or expired code"}},
    summary="Set a new password with a reset code",
)
def reset_password(
    request_data: ResetPasswordRequest,
    accounts: AccountService = Depends(get_account_service),
) -> ResetPasswordResponse:
    try:
        email = accounts.reset_password(request_data.code, request_data.new_password)
    except InvalidCredentials:
        raise ValidationFailed("Invalid or expired reset code") from None
    return ResetPasswordResponse(success=True, message="Password has been reset", email=email)
