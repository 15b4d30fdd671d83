"""
Test doubles and factories shared across the suite.
"""

from datetime import datetime, timedelta, timezone
from itertools import count

from src.domain.exceptions import DocumentStoreError, EmailDeliveryError
from src.domain.models import (
    Donation,
    DonationStatus,
    OTPRecord,
    Program,
    ProgramStatus,
    Role,
    UserProfile,
)

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class InMemoryOTPStore:
    """OTPStore fake keyed by a monotonically increasing id."""

    def __init__(self) -> None:
        self.records: dict[str, OTPRecord] = {}
        self._ids = count(1)
        self.fail_replace = False
        self.fail_delete_matching = False

    def replace(self, recipient: str, code: str, created_at: datetime, expires_at: datetime) -> None:
        if self.fail_replace:
            raise DocumentStoreError("store down")
        for record_id in [r.id for r in self.records.values() if r.recipient == recipient]:
            del self.records[record_id]
        self.add(recipient, code, created_at, expires_at)

    def add(self, recipient: str, code: str, created_at: datetime, expires_at: datetime) -> OTPRecord:
        """Insert without purging, as a concurrent issuer could."""
        record = OTPRecord(str(next(self._ids)), recipient, code, created_at, expires_at)
        self.records[record.id] = record
        return record

    def find(self, recipient: str, code: str) -> list[OTPRecord]:
        return [r for r in self.records.values() if r.recipient == recipient and r.code == code]

    def delete(self, record_ids: list[str]) -> None:
        for record_id in record_ids:
            self.records.pop(record_id, None)

    def delete_matching(self, recipient: str, code: str) -> None:
        if self.fail_delete_matching:
            raise DocumentStoreError("store down")
        self.delete([r.id for r in self.find(recipient, code)])

    def for_recipient(self, recipient: str) -> list[OTPRecord]:
        return [r for r in self.records.values() if r.recipient == recipient]


class RecordingEmailSender:
    """EmailSender fake remembering what was sent; can be told to fail."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.codes: list[tuple[str, str]] = []
        self.reset_links: list[tuple[str, str]] = []

    def send_verification_code(self, email: str, code: str) -> None:
        if self.fail:
            raise EmailDeliveryError("smtp down")
        self.codes.append((email, code))

    def send_password_reset(self, email: str, link: str) -> None:
        if self.fail:
            raise EmailDeliveryError("smtp down")
        self.reset_links.append((email, link))


def make_profile(
    uid: str = "uid-1",
    role: Role = Role.DONOR,
    onboarding_completed: bool = True,
    name: str = "Ada Lovelace",
    email: str = "ada@example.com",
) -> UserProfile:
    return UserProfile(
        uid=uid,
        name=name,
        email=email,
        role=role,
        avatar="https://ui-avatars.com/api/?name=Ada+Lovelace",
        created_at=T0,
        onboarding_completed=onboarding_completed,
    )


def make_program(**overrides) -> Program:
    fields = dict(
        id="p1",
        title="Clean Water",
        description="Wells for villages",
        category="water",
        location="Kenya",
        manager="Grace",
        start_date="2024-01-01",
        end_date="2024-12-31",
        target=10000.0,
        raised=0.0,
        status=ProgramStatus.ACTIVE,
        volunteers=3,
        is_featured=False,
        created_at=T0,
        updated_at=T0,
    )
    fields.update(overrides)
    return Program(**fields)


def make_donation(**overrides) -> Donation:
    fields = dict(
        id="d1",
        program_id="p1",
        donor_id="uid-1",
        donor_name="Ada Lovelace",
        amount=50.0,
        date="2024-05-01",
        status=DonationStatus.COMPLETED,
        payment_method="card",
        is_anonymous=False,
        created_at=T0,
    )
    fields.update(overrides)
    return Donation(**fields)
