"""
Mailer configuration and the send sequence.
"""

import asyncio
import logging
import ssl
from collections.abc import Callable
from typing import Optional

from .auth import AUTH_LOGIN, AUTH_PLAIN, select_auth_method
from .email import flatten_message
from .errors import SMTPNotSupported, ValidationError
from .message import Message
from .smtp import DEFAULT_TIMEOUT, SMTP
from .typing import Transport


__all__ = ("DEFAULT_SMTP_PORT", "Mailer", "MailerConfig")

DEFAULT_SMTP_PORT = 587

logger = logging.getLogger(__name__)


class MailerConfig:
    """
    Connection and credential options for a :class:`Mailer`.

    :keyword user: Username for authentication; also the envelope sender.
    :keyword password: Password for authentication.
    :keyword host: Server name (or IP) to connect to.
    :keyword port: Server port. Defaults to ``587`` if ``None`` or ``0``.
    :keyword tls: If True, STARTTLS is required before authenticating.
        Otherwise the connection is upgraded only if the server offers it.
    :keyword timeout: Default timeout value for network operations, in seconds.
        defaults to 60.
    :keyword local_hostname: The hostname of the client, sent with EHLO.
    :keyword tls_context: An existing :py:class:`ssl.SSLContext`, for TLS.
    :keyword validate_certs: Determines if server certificates are
        validated. defaults to ``True``.
    :keyword cert_bundle: Path to certificate bundle, for TLS verification.
    :keyword source_address: Takes a 2-tuple (host, port) for the socket to bind
        to as its source address before connecting.

    :raises ValidationError: a required option is empty, or hostnames contain
        newlines
    """

    def __init__(
        self,
        *,
        user: str,
        password: str,
        host: str,
        port: Optional[int] = None,
        tls: bool = False,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        local_hostname: Optional[str] = None,
        tls_context: Optional[ssl.SSLContext] = None,
        validate_certs: bool = True,
        cert_bundle: Optional[str] = None,
        source_address: Optional[tuple[str, int]] = None,
    ) -> None:
        self.user = user
        self.password = password
        self.host = host
        self.port = port or DEFAULT_SMTP_PORT
        self.tls = tls
        self.timeout = timeout
        self.local_hostname = local_hostname
        self.tls_context = tls_context
        self.validate_certs = validate_certs
        self.cert_bundle = cert_bundle
        self.source_address = source_address

        self._validate_config()

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(user={self.user!r}, host={self.host!r}, "
            f"port={self.port!r}, tls={self.tls!r})"
        )

    def _validate_config(self) -> None:
        for name in ("user", "password", "host"):
            if not getattr(self, name):
                raise ValidationError(f"{name} is required")

        for name, value in (
            ("host", self.host),
            ("local_hostname", self.local_hostname),
        ):
            if value is not None and ("\r" in value or "\n" in value):
                raise ValidationError(
                    f"The {name} param contains prohibited newline characters"
                )

    @property
    def address(self) -> str:
        """
        The server address, as ``host:port``.
        """
        return f"{self.host}:{self.port}"


def _create_smtp_client(config: MailerConfig) -> SMTP:
    return SMTP(
        hostname=config.host,
        port=config.port,
        local_hostname=config.local_hostname,
        source_address=config.source_address,
        timeout=config.timeout,
        validate_certs=config.validate_certs,
        cert_bundle=config.cert_bundle,
        tls_context=config.tls_context,
    )


class Mailer:
    """
    Sends one :class:`~tinymail.message.Message` per call to :meth:`send`.

        >>> config = MailerConfig(user="me@example.com", password="secret",
        ...                       host="smtp.example.com", tls=True)
        >>> message = Message.from_string("Hello")
        >>> message.set_to("you@example.com")
        >>> Mailer(config).set_message(message).send()

    Each send opens a new connection, and closes it again whether or not the
    send succeeded.
    """

    def __init__(
        self,
        config: MailerConfig,
        /,
        *,
        transport_factory: Optional[Callable[[MailerConfig], Transport]] = None,
    ) -> None:
        self._config = config
        self._message: Optional[Message] = None
        self._boundary = ""
        self.auth_method: Optional[str] = None
        self.transport_factory = transport_factory or _create_smtp_client

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._config!r})"

    @property
    def config(self) -> MailerConfig:
        return self._config

    @property
    def message(self) -> Optional[Message]:
        return self._message

    def set_message(self, message: Message, /) -> "Mailer":
        self._message = message
        return self

    @property
    def boundary(self) -> str:
        return self._boundary

    def set_boundary(self, boundary: str, /) -> "Mailer":
        """
        Use a fixed multipart boundary. An empty string means a random
        boundary is generated for every send.
        """
        self._boundary = boundary
        return self

    def send(self) -> None:
        """
        Synchronous version of :meth:`.send_async`. This method starts
        an event loop to connect, send the message, and disconnect.
        """
        asyncio.run(self.send_async())

    async def send_async(self) -> None:
        """
        Serialize the message, then connect, authenticate and submit it.

        Only ``To`` addresses are used as envelope recipients; the sender is
        the configured user.

        :raises ValueError: no message is set, or it has no ``To`` address
        :raises SMTPException: on any connection, TLS, authentication or
            server error
        """
        message = self._message
        if message is None:
            raise ValueError("No message set")
        if not message.to:
            raise ValueError("Message has no recipients")

        flat_message = flatten_message(message, boundary=self._boundary or None)

        transport = self.transport_factory(self._config)
        try:
            await transport.connect()
            logger.debug("Connected to %s", self._config.address)

            if self._config.tls:
                await transport.starttls(server_hostname=self._config.host)
                self.auth_method = select_auth_method(
                    transport.supports_extension("auth"),
                    transport.server_auth_methods,
                )
            else:
                await transport.ehlo()
                if transport.supports_extension("starttls"):
                    await transport.starttls(server_hostname=self._config.host)
                if not transport.supports_extension("auth"):
                    raise SMTPNotSupported(
                        "SMTP AUTH extension not supported by server."
                    )
                self.auth_method = AUTH_PLAIN

            logger.debug("Authenticating with %s", self.auth_method)
            if self.auth_method == AUTH_LOGIN:
                await transport.auth_login(self._config.user, self._config.password)
            else:
                await transport.auth_plain(self._config.user, self._config.password)

            await transport.mail(self._config.user)
            for recipient in message.to:
                logger.debug("Adding recipient %s", recipient)
                await transport.rcpt(recipient)

            await transport.data(flat_message)
            await transport.quit()
            logger.debug("Message sent to %s", self._config.address)
        finally:
            transport.close()
