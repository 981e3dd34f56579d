"""Outbound mail."""

from taskflow.mail.processor import MailProcessor
from taskflow.mail.service import MailService
from taskflow.mail.transport import HttpMailTransport, LoggingMailTransport, MailTransport

__all__ = [
    "HttpMailTransport",
    "LoggingMailTransport",
    "MailProcessor",
    "MailService",
    "MailTransport",
]
