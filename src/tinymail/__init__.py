"""
tinymail
========

Compose MIME email messages and send them over SMTP, with STARTTLS and
PLAIN or LOGIN authentication.
"""

from .api import send, send_sync
from .email import flatten_message
from .errors import (
    AttachmentError,
    MailerException,
    SMTPAuthenticationError,
    SMTPConnectError,
    SMTPConnectResponseError,
    SMTPConnectTimeoutError,
    SMTPDataError,
    SMTPException,
    SMTPHeloError,
    SMTPNoAuthMethodError,
    SMTPNotSupported,
    SMTPReadTimeoutError,
    SMTPRecipientRefused,
    SMTPResponseException,
    SMTPSenderRefused,
    SMTPServerDisconnected,
    SMTPTLSError,
    SMTPTimeoutError,
    SMTPUnexpectedChallengeError,
    TemplateError,
    ValidationError,
)
from .mailer import Mailer, MailerConfig
from .message import Message
from .response import SMTPResponse
from .smtp import SMTP
from .typing import SMTPStatus


__title__ = "tinymail"
__version__ = "1.0.0"
__license__ = "MIT"
__all__ = (
    "send",
    "send_sync",
    "flatten_message",
    "Mailer",
    "MailerConfig",
    "Message",
    "SMTP",
    "SMTPResponse",
    "SMTPStatus",
    "AttachmentError",
    "MailerException",
    "SMTPAuthenticationError",
    "SMTPConnectError",
    "SMTPConnectResponseError",
    "SMTPConnectTimeoutError",
    "SMTPDataError",
    "SMTPException",
    "SMTPHeloError",
    "SMTPNoAuthMethodError",
    "SMTPNotSupported",
    "SMTPReadTimeoutError",
    "SMTPRecipientRefused",
    "SMTPResponseException",
    "SMTPSenderRefused",
    "SMTPServerDisconnected",
    "SMTPTLSError",
    "SMTPTimeoutError",
    "SMTPUnexpectedChallengeError",
    "TemplateError",
    "ValidationError",
)
