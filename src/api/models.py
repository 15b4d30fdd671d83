"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
JSON bodies use camelCase keys (errorCode, newPassword, imageUrl, ...);
Python attributes stay snake_case.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from src.domain.models import DonationStatus, ProgramStatus, Role


class ApiModel(BaseModel):
    """Base model: camelCase aliases, construction from domain dataclasses."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ApiResponse(ApiModel):
    """Envelope shared by every auth endpoint. errorCode only on named failures."""

    success: bool
    message: str
    error_code: str | None = None


# Registration
# Missing fields default to "" so the service reports them itself


class EmailRequest(ApiModel):
    """Request model for check-email and send-otp."""

    email: str = ""


class VerifyOTPRequest(ApiModel):
    email: str = ""
    otp: str = ""


class RegisterRequest(ApiModel):
    """Request model for account registration."""

    name: str = ""
    email: str = ""
    password: str = ""
    role: str = Field(default="", description="admin, donor or volunteer")


class RegisterResponse(ApiResponse):
    uid: str


# Sessions and profiles


class LoginRequest(ApiModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserOut(ApiModel):
    uid: str
    name: str
    email: str
    role: Role
    avatar: str
    onboarding_completed: bool
    created_at: datetime


class LoginResponse(ApiResponse):
    token: str
    user: UserOut | None = None


class SessionResponse(ApiResponse):
    is_authenticated: bool
    is_loading: bool
    user: UserOut | None = None


class ProfileResponse(ApiResponse):
    user: UserOut


class OnboardingRequest(ApiModel):
    interests: list[str] = Field(default_factory=list)
    preferred_communication: str | None = None
    how_heard: str | None = None


class ProfileUpdateRequest(ApiModel):
    name: str | None = Field(default=None, min_length=1)
    avatar: str | None = None


class ForgotPasswordRequest(ApiModel):
    email: EmailStr


class ResetPasswordRequest(ApiModel):
    code: str = Field(..., min_length=1)
    new_password: str


class ResetPasswordResponse(ApiResponse):
    email: str


# Navigation


class NavigationResponse(ApiResponse):
    path: str
    outcome: str
    render_children: bool
    redirect_to: str | None = None


# Programs, donations, images


class ProgramCreateRequest(ApiModel):
    title: str = Field(..., min_length=1)
    description: str = ""
    short_description: str = ""
    category: str = ""
    location: str = ""
    manager: str = ""
    start_date: str = ""
    end_date: str = ""
    target: float = Field(default=0, ge=0)
    status: Literal["active", "draft", "completed"] = "draft"
    volunteers: int = Field(default=0, ge=0)
    is_featured: bool = False
    image_url: str = ""
    tags: list[str] = Field(default_factory=list)


class ProgramUpdateRequest(ApiModel):
    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    short_description: str | None = None
    category: str | None = None
    location: str | None = None
    manager: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    target: float | None = Field(default=None, ge=0)
    status: Literal["active", "draft", "completed"] | None = None
    volunteers: int | None = Field(default=None, ge=0)
    is_featured: bool | None = None
    image_url: str | None = None
    tags: list[str] | None = None


class ProgramOut(ApiModel):
    id: str
    title: str
    description: str
    short_description: str
    category: str
    location: str
    manager: str
    start_date: str
    end_date: str
    target: float
    raised: float
    status: ProgramStatus
    volunteers: int
    is_featured: bool
    image_url: str
    tags: list[str]
    created_at: datetime
    updated_at: datetime


class DonationCreateRequest(ApiModel):
    program_id: str = Field(..., min_length=1)
    amount: float = Field(..., gt=0)
    date: str = ""
    payment_method: str = ""
    is_anonymous: bool = False
    note: str = ""
    status: Literal["pending", "completed", "failed"] = "completed"


class DonationOut(ApiModel):
    id: str
    program_id: str
    donor_id: str
    donor_name: str
    donor_avatar: str | None
    amount: float
    date: str
    status: DonationStatus
    payment_method: str
    is_anonymous: bool
    note: str
    created_at: datetime


class ImageUploadResponse(ApiResponse):
    image_url: str


class ProgramResponse(ApiResponse):
    program: ProgramOut


class ProgramListResponse(ApiResponse):
    programs: list[ProgramOut]


class DonationResponse(ApiResponse):
    donation: DonationOut


class DonationListResponse(ApiResponse):
    donations: list[DonationOut]


class UserListResponse(ApiResponse):
    users: list[UserOut]
