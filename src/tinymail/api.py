"""
Main public API.
"""

import asyncio
from typing import Any, Optional

from .mailer import Mailer, MailerConfig
from .message import Message


__all__ = ("send", "send_sync")


async def send(
    message: Message, /, *, boundary: Optional[str] = None, **kwargs: Any
) -> None:
    """
    Send an email message. On await, connects to the SMTP server using the details
    provided, sends the message, then disconnects.

    :param message: The :class:`~tinymail.message.Message` to send.
    :keyword boundary: Fixed multipart boundary. Random if not given.
    :keyword user: Username to login as after connect; also the envelope sender.
    :keyword password: Password for login after connect.
    :keyword host: Server name (or IP) to connect to.
    :keyword port: Server port. Defaults to ``587``.
    :keyword tls: If True, upgrade the connection with STARTTLS before login.

    Any other keywords are passed to :class:`~tinymail.mailer.MailerConfig`.

    :raises ValidationError: required arguments missing
    """
    mailer = Mailer(MailerConfig(**kwargs)).set_message(message)
    if boundary:
        mailer.set_boundary(boundary)

    await mailer.send_async()


def send_sync(
    message: Message, /, *, boundary: Optional[str] = None, **kwargs: Any
) -> None:
    """
    Synchronous version of :func:`.send`. This function starts an event loop
    to connect, send the message, and disconnect.
    """
    asyncio.run(send(message, boundary=boundary, **kwargs))
