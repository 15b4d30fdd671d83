"""
Unit tests for the email sender adapters.

Tests verify:
- ConsoleEmailSender logs codes and reset links in the expected format
- SMTPEmailSender builds HTML messages and maps transport failures
  to EmailDeliveryError
"""

import logging
import smtplib
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock, patch

import pytest

from src.adapters.smtp.console import ConsoleEmailSender
from src.adapters.smtp.mailer import SMTPEmailSender
from src.domain.exceptions import EmailDeliveryError
from src.domain.ports import EmailSender


def accepts_email_sender(sender: EmailSender) -> EmailSender:
    return sender


class TestConsoleEmailSender:
    def test_structural_subtyping(self) -> None:
        """Satisfies EmailSender without inheriting from it."""
        assert ConsoleEmailSender.__bases__ == (object,)
        accepts_email_sender(ConsoleEmailSender())

    def test_verification_code_format(self, caplog: pytest.LogCaptureFixture) -> None:
        sender = ConsoleEmailSender()

        with caplog.at_level(logging.INFO):
            sender.send_verification_code("user@example.com", "567890")

        assert len(caplog.records) == 1
        assert caplog.records[0].levelno == logging.INFO
        assert caplog.records[0].message == "[VERIFICATION] Email: user@example.com Code: 567890"

    def test_password_reset_format(self, caplog: pytest.LogCaptureFixture) -> None:
        sender = ConsoleEmailSender()

        with caplog.at_level(logging.INFO):
            sender.send_password_reset("user@example.com", "https://app/reset?oobCode=x")

        assert "[PASSWORD RESET]" in caplog.text
        assert "Link: https://app/reset?oobCode=x" in caplog.text

    def test_concurrent_logging_is_complete(self, caplog: pytest.LogCaptureFixture) -> None:
        sender = ConsoleEmailSender()

        with caplog.at_level(logging.INFO), ThreadPoolExecutor(max_workers=5) as executor:
            futures = [
                executor.submit(sender.send_verification_code, f"user{i}@example.com", f"{100000 + i}")
                for i in range(10)
            ]
            for f in futures:
                f.result()

        assert len(caplog.records) == 10
        for record in caplog.records:
            assert record.message.startswith("[VERIFICATION] Email: user")


@pytest.fixture
def smtp_sender() -> SMTPEmailSender:
    return SMTPEmailSender(
        host="smtp.example.com",
        port=587,
        username="mailer",
        password="secret",
        sender="Donor Hub <no-reply@example.com>",
        timeout=5.0,
        code_ttl_minutes=15,
    )


class TestSMTPEmailSender:
    def test_structural_subtyping(self, smtp_sender: SMTPEmailSender) -> None:
        assert SMTPEmailSender.__bases__ == (object,)
        accepts_email_sender(smtp_sender)

    def test_build_message_headers(self, smtp_sender: SMTPEmailSender) -> None:
        message = smtp_sender.build_message("user@example.com", "Hello", "<p>hi</p>")

        assert message["From"] == "Donor Hub <no-reply@example.com>"
        assert message["To"] == "user@example.com"
        assert message["Subject"] == "Hello"

    def test_sends_code_over_starttls(self, smtp_sender: SMTPEmailSender) -> None:
        with patch("src.adapters.smtp.mailer.smtplib.SMTP") as smtp_class:
            server = MagicMock()
            smtp_class.return_value.__enter__.return_value = server

            smtp_sender.send_verification_code("user@example.com", "123456")

        smtp_class.assert_called_once_with("smtp.example.com", 587, timeout=5.0)
        server.starttls.assert_called_once_with()
        server.login.assert_called_once_with("mailer", "secret")
        message = server.send_message.call_args[0][0]
        assert message["To"] == "user@example.com"
        html = message.get_payload()[0].get_payload()
        assert "123456" in html
        assert "15 minutes" in html

    def test_skips_login_without_credentials(self) -> None:
        sender = SMTPEmailSender("smtp.example.com", 25, None, None, "a@example.com")

        with patch("src.adapters.smtp.mailer.smtplib.SMTP") as smtp_class:
            server = MagicMock()
            smtp_class.return_value.__enter__.return_value = server

            sender.send_password_reset("user@example.com", "https://app/reset?oobCode=x")

        server.login.assert_not_called()
        server.send_message.assert_called_once()

    @pytest.mark.parametrize(
        "error",
        [smtplib.SMTPAuthenticationError(535, b"bad auth"), ConnectionRefusedError("refused")],
    )
    def test_transport_failure_raises_delivery_error(
        self, smtp_sender: SMTPEmailSender, error: Exception
    ) -> None:
        with patch("src.adapters.smtp.mailer.smtplib.SMTP", side_effect=error):
            with pytest.raises(EmailDeliveryError):
                smtp_sender.send_verification_code("user@example.com", "123456")
