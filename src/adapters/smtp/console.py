"""
Console email sender - EmailSender for development and tests.

Nothing is delivered: codes and reset links go to the log, where a
developer (or a test reading caplog) can pick them up.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    """Logs outgoing mail instead of sending it. Never raises."""

    def send_verification_code(self, email: str, code: str) -> None:
        logger.info("[VERIFICATION] Email: %s Code: %s", email, code)

    def send_password_reset(self, email: str, link: str) -> None:
        logger.info("[PASSWORD RESET] Email: %s Link: %s", email, link)
