"""
Domain records - Plain dataclasses exchanged between services and ports.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    """User roles. The str mixin keeps JSON serialization trivial."""

    ADMIN = "admin"
    DONOR = "donor"
    VOLUNTEER = "volunteer"


class ProgramStatus(str, Enum):
    ACTIVE = "active"
    DRAFT = "draft"
    COMPLETED = "completed"


class DonationStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class OTPRecord:
    """A stored verification code. `id` is assigned by the store."""

    id: str
    recipient: str
    code: str
    created_at: datetime
    expires_at: datetime


@dataclass
class UserProfile:
    """User document kept next to the identity-provider account."""

    uid: str
    name: str
    email: str
    role: Role
    avatar: str
    created_at: datetime
    onboarding_completed: bool = False
    onboarding: dict = field(default_factory=dict)
    updated_at: datetime | None = None


@dataclass
class Program:
    id: str
    title: str
    description: str
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
    created_at: datetime
    updated_at: datetime
    image_url: str = ""
    tags: list[str] = field(default_factory=list)
    short_description: str = ""


@dataclass
class Donation:
    id: str
    program_id: str
    donor_id: str
    donor_name: str
    amount: float
    date: str
    status: DonationStatus
    payment_method: str
    is_anonymous: bool
    created_at: datetime
    donor_avatar: str | None = None
    note: str = ""
