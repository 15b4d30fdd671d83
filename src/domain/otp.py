"""
OTP lifecycle - Issue and verify short-lived email verification codes.

Record lifecycle
================

- issue():  purge every record for the recipient, insert a fresh one
            (expires_at = now + TTL), then email the code. A failed send
            deletes the record that was just created.
- verify(): look up records matching (recipient, code) exactly, classify
            each against a single `now`, delete all of them, and accept if
            any was valid or expired within the grace window.

Classification (for a matched record):

    expires_at > now                     -> VALID
    now - grace < expires_at <= now      -> GRACE_EXPIRED (accepted)
    expires_at <= now - grace            -> STALE (rejected)

The grace window means the nominal TTL is not a hard boundary: a code is
accepted for up to TTL + grace after issuance.
"""

import logging
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum

from .exceptions import DocumentStoreError, EmailDeliveryError
from .models import OTPRecord
from .ports import EmailSender, OTPStore

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(minutes=15)
DEFAULT_GRACE = timedelta(minutes=5)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_recipient(recipient: str) -> str:
    """Strip whitespace and lowercase an email address."""
    return recipient.strip().lower()


def generate_code() -> str:
    """Six-digit code drawn uniformly from [100000, 999999]."""
    return str(100000 + secrets.randbelow(900000))


class CodeState(Enum):
    VALID = "valid"
    GRACE_EXPIRED = "grace_expired"
    STALE = "stale"


def classify(record: OTPRecord, now: datetime, grace: timedelta = DEFAULT_GRACE) -> CodeState:
    """Classify a matched record against the given instant."""
    if record.expires_at > now:
        return CodeState.VALID
    if record.expires_at > now - grace:
        return CodeState.GRACE_EXPIRED
    return CodeState.STALE


@dataclass(frozen=True)
class IssueResult:
    success: bool


@dataclass
class OTPIssuer:
    """
    Generates, stores and emails verification codes.

    `settle_seconds` is a pause between persisting and sending so a
    lagging store has caught up before the user can submit the code.
    """

    store: OTPStore
    email_sender: EmailSender
    ttl: timedelta = DEFAULT_TTL
    settle_seconds: float = 1.0
    clock: Callable[[], datetime] = field(default=utcnow)
    sleep: Callable[[float], None] = field(default=time.sleep)

    def issue(self, recipient: str) -> IssueResult:
        """
        Issue a fresh code to the recipient.

        Returns:
            IssueResult(success=True) if the code was stored and sent.
            On send failure the stored record is removed again and
            success is False.
        """
        recipient = normalize_recipient(recipient)
        code = generate_code()
        created_at = self.clock()

        try:
            self.store.replace(recipient, code, created_at, created_at + self.ttl)
        except DocumentStoreError:
            logger.exception("Failed to store verification code for %s", recipient)
            return IssueResult(success=False)

        logger.info(
            "Verification code issued for %s (expires in %d minutes)",
            recipient,
            self.ttl.total_seconds() // 60,
        )

        if self.settle_seconds > 0:
            self.sleep(self.settle_seconds)

        try:
            self.email_sender.send_verification_code(recipient, code)
        except EmailDeliveryError:
            logger.exception("Failed to send verification code to %s", recipient)
            self._rollback(recipient, code)
            return IssueResult(success=False)

        return IssueResult(success=True)

    def _rollback(self, recipient: str, code: str) -> None:
        try:
            self.store.delete_matching(recipient, code)
        except DocumentStoreError:
            logger.exception("Failed to remove unsent verification code for %s", recipient)


@dataclass
class OTPVerifier:
    """Validates submitted codes. Every matched record is consumed."""

    store: OTPStore
    grace: timedelta = DEFAULT_GRACE
    clock: Callable[[], datetime] = field(default=utcnow)

    def verify(self, recipient: str, code: str) -> bool:
        """
        Check a submitted code for the recipient.

        Args:
            recipient: Email address (normalized here)
            code: Code entered by the user (whitespace stripped)

        Returns:
            True if any matching record was valid or inside the grace
            window, False otherwise (including no match at all).
        """
        recipient = normalize_recipient(recipient)
        code = code.strip()

        records = self.store.find(recipient, code)
        if not records:
            logger.info("No verification code on record for %s", recipient)
            return False

        now = self.clock()
        states = [classify(record, now, self.grace) for record in records]

        # Single-use: matched records go regardless of outcome
        self.store.delete([record.id for record in records])

        if CodeState.VALID in states:
            logger.info("Verification code accepted for %s", recipient)
            return True
        if CodeState.GRACE_EXPIRED in states:
            logger.info("Recently expired verification code accepted for %s", recipient)
            return True

        logger.info("Stale verification code rejected for %s", recipient)
        return False
