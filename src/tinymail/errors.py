from asyncio import TimeoutError


__all__ = (
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


class MailerException(Exception):
    """
    Base class for all tinymail exceptions.
    """

    def __init__(self, message: str, /) -> None:
        self.message = message
        self.args = (message,)


class ValidationError(MailerException, ValueError):
    """
    A required mailer option is missing or invalid.
    """


class AttachmentError(MailerException, OSError):
    """
    An attachment file could not be read.
    """

    def __init__(self, message: str, path: str, /) -> None:
        self.message = message
        self.path = path
        self.filename = path
        self.args = (message, path)

    def __str__(self) -> str:
        return self.message


class TemplateError(MailerException):
    """
    A message template could not be loaded, parsed or rendered.
    """


class SMTPException(MailerException):
    """
    Base class for all SMTP exceptions.
    """


class SMTPServerDisconnected(SMTPException, ConnectionError):
    """
    The connection was lost unexpectedly, or a command was run that requires
    a connection.
    """


class SMTPConnectError(SMTPException, ConnectionError):
    """
    An error occurred while connecting to the SMTP server.
    """


class SMTPTimeoutError(SMTPException, TimeoutError):
    """
    A timeout occurred while performing a network operation.
    """


class SMTPConnectTimeoutError(SMTPTimeoutError, SMTPConnectError):
    """
    A timeout occurred while connecting to the SMTP server.
    """


class SMTPReadTimeoutError(SMTPTimeoutError):
    """
    A timeout occurred while waiting for a response from the SMTP server.
    """


class SMTPNotSupported(SMTPException):
    """
    A command or argument sent to the SMTP server is not supported.
    """


class SMTPTLSError(SMTPException):
    """
    The STARTTLS upgrade was refused by the server, or the TLS handshake failed.
    """


class SMTPNoAuthMethodError(SMTPException):
    """
    The server did not advertise the AUTH extension.
    """


class SMTPUnexpectedChallengeError(SMTPException):
    """
    The server sent a LOGIN auth prompt other than "Username:" or "Password:".
    """

    def __init__(self, message: str, challenge: bytes, /) -> None:
        self.message = message
        self.challenge = challenge
        self.args = (message, challenge)


class SMTPResponseException(SMTPException):
    """
    Base class for all server responses with error codes.
    """

    def __init__(self, code: int, message: str, /) -> None:
        self.code = code
        self.message = message
        self.args = (code, message)


class SMTPConnectResponseError(SMTPResponseException, SMTPConnectError):
    """
    The SMTP server returned an invalid response code after connecting.
    """


class SMTPHeloError(SMTPResponseException):
    """
    Server refused HELO or EHLO.
    """


class SMTPDataError(SMTPResponseException):
    """
    Server refused DATA content.
    """


class SMTPAuthenticationError(SMTPResponseException):
    """
    Server refused our AUTH request; may be caused by invalid credentials.
    """


class SMTPSenderRefused(SMTPResponseException):
    """
    SMTP server refused the message sender.
    """

    def __init__(self, code: int, message: str, sender: str, /) -> None:
        self.code = code
        self.message = message
        self.sender = sender
        self.args = (code, message, sender)


class SMTPRecipientRefused(SMTPResponseException):
    """
    SMTP server refused a message recipient.
    """

    def __init__(self, code: int, message: str, recipient: str, /) -> None:
        self.code = code
        self.message = message
        self.recipient = recipient
        self.args = (code, message, recipient)
