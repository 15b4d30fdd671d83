"""
Exception handlers - Map domain errors onto the JSON response envelope.

Every failure body has the shape {"success": false, "message": ...};
"errorCode" is added only for duplicate emails and rejected OTPs so the
client can branch without string matching.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.domain.exceptions import (
    AuthenticationRequired,
    DonorHubError,
    EmailAlreadyExists,
    ImageHostError,
    InvalidCredentials,
    InvalidOTP,
    NotFound,
    OTPDeliveryFailed,
    PermissionDenied,
    RegistrationFailed,
    ValidationFailed,
)

logger = logging.getLogger(__name__)

EMAIL_EXISTS_CODE = "email-already-exists"
INVALID_OTP_CODE = "invalid-otp"

EMAIL_EXISTS_MESSAGE = "Email is already registered. Please login instead."
INVALID_OTP_MESSAGE = "Invalid or expired verification code. Please request a new code."


def error_response(
    status_code: int,
    message: str,
    error_code: str | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body: dict[str, object] = {"success": False, "message": message}
    if error_code is not None:
        body["errorCode"] = error_code
    return JSONResponse(status_code=status_code, content=body, headers=headers)


def _domain_error_response(exc: DonorHubError) -> JSONResponse:
    if isinstance(exc, ValidationFailed):
        return error_response(status.HTTP_400_BAD_REQUEST, str(exc))
    if isinstance(exc, EmailAlreadyExists):
        return error_response(status.HTTP_400_BAD_REQUEST, EMAIL_EXISTS_MESSAGE, EMAIL_EXISTS_CODE)
    if isinstance(exc, InvalidOTP):
        return error_response(status.HTTP_400_BAD_REQUEST, INVALID_OTP_MESSAGE, INVALID_OTP_CODE)
    if isinstance(exc, AuthenticationRequired):
        return error_response(
            status.HTTP_401_UNAUTHORIZED,
            "Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if isinstance(exc, InvalidCredentials):
        return error_response(
            status.HTTP_401_UNAUTHORIZED,
            "Invalid login credentials. Please check your email and password.",
        )
    if isinstance(exc, PermissionDenied):
        return error_response(
            status.HTTP_403_FORBIDDEN, "You do not have permission to access this resource"
        )
    if isinstance(exc, NotFound):
        return error_response(status.HTTP_404_NOT_FOUND, str(exc))
    if isinstance(exc, OTPDeliveryFailed):
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to send verification code"
        )
    if isinstance(exc, RegistrationFailed):
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to register user")
    if isinstance(exc, ImageHostError):
        return error_response(status.HTTP_502_BAD_GATEWAY, str(exc))

    # Collaborator failures nobody degraded
    logger.error("Unhandled collaborator failure: %r", exc)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


async def domain_error_handler(request: Request, exc: DonorHubError) -> JSONResponse:
    return _domain_error_response(exc)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request body/query validation failures answer 400, not FastAPI's 422."""
    fields = sorted(
        {
            str(error["loc"][-1])
            for error in exc.errors()
            if error.get("loc") and error["loc"][0] in ("body", "query", "path")
        }
    )
    if fields:
        message = f"Missing or invalid fields: {', '.join(fields)}"
    else:
        message = "Invalid request"
    return error_response(status.HTTP_400_BAD_REQUEST, message)


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unexpected error handling %s %s", request.method, request.url.path)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DonorHubError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
