"""
SMTP email sender adapter - Implements EmailSender protocol.

Submits HTML messages over SMTP with STARTTLS. Any SMTP or socket
failure is re-raised as EmailDeliveryError so the OTP issuer can roll
back the stored code.
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from src.domain.exceptions import EmailDeliveryError

logger = logging.getLogger(__name__)

VERIFICATION_SUBJECT = "Your verification code for Donor Hub"
RESET_SUBJECT = "Reset your Donor Hub password"

VERIFICATION_TEMPLATE = """
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #0891b2;">Your Verification Code</h2>
  <p>Please use the following code to verify your email address:</p>
  <div style="background-color: #f3f4f6; padding: 16px; border-radius: 4px; text-align: center; font-size: 24px; font-weight: bold; letter-spacing: 5px;">
    {code}
  </div>
  <p style="margin-top: 16px;">This code will expire in {minutes} minutes.</p>
  <p style="color: #6b7280; font-size: 14px; margin-top: 32px;">
    If you didn't request this code, you can safely ignore this email.
  </p>
</div>
"""

RESET_TEMPLATE = """
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #0891b2;">Reset your password</h2>
  <p>Follow this link to choose a new password:</p>
  <p><a href="{link}">{link}</a></p>
  <p style="color: #6b7280; font-size: 14px; margin-top: 32px;">
    If you didn't ask to reset your password, you can ignore this email.
  </p>
</div>
"""


class SMTPEmailSender:
    """
    Implements EmailSender protocol via smtplib.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(
        self,
        host: str,
        port: int,
        username: str | None,
        password: str | None,
        sender: str,
        timeout: float = 20.0,
        code_ttl_minutes: int = 15,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.timeout = timeout
        self.code_ttl_minutes = code_ttl_minutes

    def send_verification_code(self, email: str, code: str) -> None:
        body = VERIFICATION_TEMPLATE.format(code=code, minutes=self.code_ttl_minutes)
        self._send(email, VERIFICATION_SUBJECT, body)

    def send_password_reset(self, email: str, link: str) -> None:
        self._send(email, RESET_SUBJECT, RESET_TEMPLATE.format(link=link))

    def build_message(self, email: str, subject: str, html: str) -> MIMEMultipart:
        message = MIMEMultipart()
        message["From"] = self.sender
        message["To"] = email
        message["Subject"] = subject
        message.attach(MIMEText(html, "html"))
        return message

    def _send(self, email: str, subject: str, html: str) -> None:
        message = self.build_message(email, subject, html)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                server.ehlo()
                server.starttls()
                server.ehlo()
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise EmailDeliveryError(f"SMTP delivery to {email} failed: {exc}") from exc
        logger.info("Email '%s' sent to %s", subject, email)
