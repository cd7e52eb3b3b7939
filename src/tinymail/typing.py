import enum
from collections.abc import Mapping, Sequence
from typing import Optional, Protocol, Union

from .response import SMTPResponse


__all__ = (
    "PRIORITY_NON_URGENT",
    "PRIORITY_NORMAL",
    "PRIORITY_URGENT",
    "MessageSource",
    "SMTPStatus",
    "Transport",
)


PRIORITY_URGENT = "urgent"
PRIORITY_NORMAL = "normal"
PRIORITY_NON_URGENT = "non-urgent"


@enum.unique
class SMTPStatus(enum.IntEnum):
    """
    Defines SMTP statuses for code readability.

    See also: http://www.greenend.org.uk/rjk/tech/smtpreplies.html
    """

    invalid_response = -1
    ready = 220
    closing = 221
    auth_successful = 235
    completed = 250
    will_forward = 251
    auth_continue = 334
    start_input = 354
    domain_unavailable = 421
    tls_not_available = 454
    unrecognized_command = 500
    unrecognized_parameters = 501
    command_not_implemented = 502
    bad_command_sequence = 503
    auth_failed = 535
    mailbox_does_not_exist = 550
    transaction_failed = 554


class MessageSource(Protocol):
    """
    Anything that can provide an envelope, a body and attachments for
    serialization.
    """

    @property
    def from_addr(self) -> str: ...

    @property
    def to(self) -> Sequence[str]: ...

    @property
    def cc(self) -> Sequence[str]: ...

    @property
    def bcc(self) -> Sequence[str]: ...

    @property
    def subject(self) -> str: ...

    @property
    def body(self) -> str: ...

    @property
    def priority(self) -> str: ...

    @property
    def attachments(self) -> Mapping[str, bytes]: ...


class Transport(Protocol):
    """
    The SMTP session operations a :class:`~tinymail.mailer.Mailer` drives.
    """

    @property
    def server_auth_methods(self) -> list[str]: ...

    async def connect(self) -> SMTPResponse: ...

    async def ehlo(self) -> SMTPResponse: ...

    async def starttls(self, *, server_hostname: Optional[str] = None) -> SMTPResponse:
        ...

    def supports_extension(self, extension: str, /) -> bool: ...

    async def auth_plain(
        self, username: Union[str, bytes], password: Union[str, bytes], /
    ) -> SMTPResponse: ...

    async def auth_login(
        self, username: Union[str, bytes], password: Union[str, bytes], /
    ) -> SMTPResponse: ...

    async def mail(self, sender: str, /) -> SMTPResponse: ...

    async def rcpt(self, recipient: str, /) -> SMTPResponse: ...

    async def data(self, message: bytes, /) -> SMTPResponse: ...

    async def quit(self) -> SMTPResponse: ...

    def close(self) -> None: ...
