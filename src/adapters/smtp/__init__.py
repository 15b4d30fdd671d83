"""Email adapters - Console and SMTP implementations of EmailSender."""

from .console import ConsoleEmailSender
from .mailer import SMTPEmailSender

__all__ = ["ConsoleEmailSender", "SMTPEmailSender"]
