"""
SMTP client class.

Implements the SMTP, ESMTP & Auth commands needed to submit one message.
"""

import asyncio
import logging
import socket
import ssl
from types import TracebackType
from typing import Optional, Union

from .auth import auth_login_answer, auth_plain_encode
from .errors import (
    SMTPAuthenticationError,
    SMTPConnectError,
    SMTPConnectResponseError,
    SMTPConnectTimeoutError,
    SMTPHeloError,
    SMTPRecipientRefused,
    SMTPResponseException,
    SMTPSenderRefused,
    SMTPServerDisconnected,
    SMTPTLSError,
    SMTPTimeoutError,
    SMTPUnexpectedChallengeError,
)
from .esmtp import parse_esmtp_extensions
from .protocol import SMTPProtocol
from .response import SMTPResponse
from .typing import SMTPStatus


__all__ = ("SMTP", "DEFAULT_TIMEOUT")

DEFAULT_TIMEOUT = 60

logger = logging.getLogger(__name__)


def quote_address(address: str) -> str:
    """
    Wrap an address in angle brackets for MAIL and RCPT commands.
    """
    address = address.strip()
    if address.startswith("<") and address.endswith(">"):
        return address

    return f"<{address}>"


class SMTP:
    """
    SMTP client for a single connection.

    Basic usage:

        >>> smtp = tinymail.SMTP(hostname="127.0.0.1", port=1025)
        >>> async def connect_and_send():
        ...     async with smtp:
        ...         await smtp.mail("root@localhost")
        ...         await smtp.rcpt("somebody@localhost")
        ...         return await smtp.data(b"Subject: Hi\\n\\nHello")
        >>> asyncio.run(connect_and_send())
        (250, OK)

    The client never upgrades to TLS or authenticates on its own; call
    :meth:`starttls` and :meth:`auth_plain` or :meth:`auth_login` as needed.
    """

    def __init__(
        self,
        *,
        hostname: str,
        port: int,
        local_hostname: Optional[str] = None,
        source_address: Optional[tuple[str, int]] = None,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        validate_certs: bool = True,
        cert_bundle: Optional[str] = None,
        tls_context: Optional[ssl.SSLContext] = None,
    ) -> None:
        """
        :keyword hostname:  Server name (or IP) to connect to.
        :keyword port: Server port.
        :keyword local_hostname: The hostname of the client.  If specified, used as the
            FQDN of the local host in the HELO/EHLO command. Otherwise, the result of
            :func:`socket.getfqdn`.
        :keyword source_address: Takes a 2-tuple (host, port) for the socket to bind to
            as its source address before connecting.
        :keyword timeout: Default timeout value for network operations, in seconds.
            defaults to 60. ``None`` waits forever.
        :keyword validate_certs: Determines if server certificates are
            validated on STARTTLS. defaults to ``True``.
        :keyword cert_bundle: Path to certificate bundle, for TLS verification.
        :keyword tls_context: An existing :py:class:`ssl.SSLContext`, for TLS.
            Takes precedence over ``validate_certs`` and ``cert_bundle``.

        :raises ValueError: hostname contains newlines
        """
        self.protocol: Optional[SMTPProtocol] = None

        self.hostname = hostname
        self.port = port
        self.local_hostname = local_hostname
        self.source_address = source_address
        self.timeout = timeout
        self.validate_certs = validate_certs
        self.cert_bundle = cert_bundle
        self.tls_context = tls_context

        self.last_helo_response: Optional[SMTPResponse] = None
        self._last_ehlo_response: Optional[SMTPResponse] = None
        self.esmtp_extensions: dict[str, str] = {}
        self.supports_esmtp = False
        self.server_auth_methods: list[str] = []

        self._validate_config()

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(hostname={self.hostname!r}, "
            f"port={self.port!r})"
        )

    async def __aenter__(self) -> "SMTP":
        if not self.is_connected:
            await self.connect()

        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        if exc is not None:
            self.close()
            return

        try:
            await self.quit()
        finally:
            self.close()

    def _validate_config(self) -> None:
        for name, value in (
            ("hostname", self.hostname),
            ("local_hostname", self.local_hostname),
        ):
            if value is not None and ("\r" in value or "\n" in value):
                raise ValueError(
                    f"The {name} param contains prohibited newline characters"
                )

    @property
    def is_connected(self) -> bool:
        """
        Check if our transport is still connected.
        """
        return bool(self.protocol is not None and self.protocol.is_connected)

    @property
    def last_ehlo_response(self) -> Union[SMTPResponse, None]:
        return self._last_ehlo_response

    @last_ehlo_response.setter
    def last_ehlo_response(self, response: SMTPResponse) -> None:
        """
        When setting the last EHLO response, parse the message for supported
        extensions and auth methods.
        """
        extensions, auth_methods = parse_esmtp_extensions(response.message)
        self._last_ehlo_response = response
        self.esmtp_extensions = extensions
        self.server_auth_methods = auth_methods
        self.supports_esmtp = True

    @property
    def is_ehlo_or_helo_needed(self) -> bool:
        """
        Check if we've already received a response to an EHLO or HELO command.
        """
        return self.last_ehlo_response is None and self.last_helo_response is None

    def supports_extension(self, extension: str, /) -> bool:
        """
        Tests if the server supports the ESMTP service extension given.
        """
        return extension.lower() in self.esmtp_extensions

    async def _get_default_local_hostname(self) -> str:
        return await asyncio.to_thread(socket.getfqdn)

    async def connect(self) -> SMTPResponse:
        """
        Open the connection and read the server greeting.

        :raises SMTPConnectError: the connection failed, or the server did not
            greet us with a 220 response
        :raises SMTPConnectTimeoutError: the connection or greeting timed out
        """
        if self.local_hostname is None:
            self.local_hostname = await self._get_default_local_hostname()

        self.protocol = await SMTPProtocol.open(
            self.hostname,
            self.port,
            timeout=self.timeout,
            local_addr=self.source_address,
        )
        logger.debug("Connected to %s on port %s", self.hostname, self.port)

        try:
            response = await self.protocol.read_response(timeout=self.timeout)
        except SMTPServerDisconnected as exc:
            self.close()
            raise SMTPConnectError(
                f"Error connecting to {self.hostname} on port {self.port}: {exc}"
            ) from exc
        except SMTPTimeoutError as exc:
            self.close()
            raise SMTPConnectTimeoutError(
                "Timed out waiting for server ready message"
            ) from exc

        if response.code != SMTPStatus.ready:
            self.close()
            raise SMTPConnectResponseError(response.code, response.message)

        return response

    async def execute_command(self, *args: bytes) -> SMTPResponse:
        """
        Check that we're connected, then pass the command to the protocol.

        :raises SMTPServerDisconnected: connection lost
        """
        if self.protocol is None:
            raise SMTPServerDisconnected("Server not connected")

        try:
            response = await self.protocol.execute_command(*args, timeout=self.timeout)
        except SMTPServerDisconnected:
            self.close()
            raise

        # If the server is unavailable, be nice and close the connection
        if response.code == SMTPStatus.domain_unavailable:
            self.close()

        return response

    def _get_tls_context(self) -> ssl.SSLContext:
        """
        Build an SSLContext object from the options we've been given.
        """
        if self.tls_context is not None:
            return self.tls_context

        # SERVER_AUTH is what we want for a client side socket
        context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH)
        context.check_hostname = bool(self.validate_certs)
        if self.validate_certs:
            context.verify_mode = ssl.CERT_REQUIRED
        else:
            context.verify_mode = ssl.CERT_NONE

        if self.cert_bundle is not None:
            context.load_verify_locations(cafile=self.cert_bundle)

        return context

    def close(self) -> None:
        """
        Closes the connection. Safe to call more than once.
        """
        if self.protocol is not None:
            self.protocol.close()

        self.protocol = None

        self._reset_server_state()

    def _reset_server_state(self) -> None:
        """
        Clear stored information about the server.
        """
        self.last_helo_response = None
        self._last_ehlo_response = None
        self.esmtp_extensions = {}
        self.supports_esmtp = False
        self.server_auth_methods = []

    # Base SMTP commands #

    async def helo(self) -> SMTPResponse:
        """
        Send the SMTP HELO command.

        :raises SMTPHeloError: on unexpected server response code
        """
        if self.local_hostname is None:
            self.local_hostname = await self._get_default_local_hostname()

        response = self.last_helo_response = await self.execute_command(
            b"HELO", self.local_hostname.encode("ascii")
        )

        if response.code != SMTPStatus.completed:
            raise SMTPHeloError(response.code, response.message)

        return response

    async def ehlo(self) -> SMTPResponse:
        """
        Send the SMTP EHLO command, and record the extensions the server
        advertises.

        :raises SMTPHeloError: on unexpected server response code
        """
        if self.local_hostname is None:
            self.local_hostname = await self._get_default_local_hostname()

        response = await self.execute_command(
            b"EHLO", self.local_hostname.encode("ascii")
        )

        if response.code != SMTPStatus.completed:
            raise SMTPHeloError(response.code, response.message)

        self.last_ehlo_response = response

        return response

    async def _ehlo_or_helo_if_needed(self) -> None:
        """
        Call self.ehlo() and/or self.helo() if needed.

        If there has been no previous EHLO or HELO command this session, this
        method tries ESMTP EHLO first.
        """
        if self.is_ehlo_or_helo_needed:
            try:
                await self.ehlo()
            except SMTPHeloError as exc:
                if self.is_connected:
                    await self.helo()
                else:
                    raise exc

    async def starttls(self, *, server_hostname: Optional[str] = None) -> SMTPResponse:
        """
        Puts the connection to the SMTP server into TLS mode.

        If there has been no previous EHLO or HELO command this session, this
        method tries ESMTP EHLO first. After the upgrade, any knowledge
        obtained from the server is discarded and EHLO is sent again.

        :raises SMTPTLSError: server does not support STARTTLS, refused it, or
            the TLS handshake failed
        :raises SMTPServerDisconnected: connection lost
        """
        if self.protocol is None:
            raise SMTPServerDisconnected("Server not connected")

        await self._ehlo_or_helo_if_needed()

        if not self.supports_extension("starttls"):
            raise SMTPTLSError("SMTP STARTTLS extension not supported by server.")

        if server_hostname is None:
            server_hostname = self.hostname

        try:
            tls_context = self._get_tls_context()
        except (OSError, ssl.SSLError) as exc:
            raise SMTPTLSError(f"Invalid TLS configuration: {exc}") from exc

        try:
            response = await self.protocol.start_tls(
                tls_context, server_hostname=server_hostname, timeout=self.timeout
            )
        except SMTPServerDisconnected:
            self.close()
            raise
        logger.debug("STARTTLS negotiated with %s", server_hostname)

        # RFC 3207 part 4.2:
        # The client MUST discard any knowledge obtained from the server, such
        # as the list of SMTP service extensions, which was not obtained from
        # the TLS negotiation itself.
        self._reset_server_state()
        await self._ehlo_or_helo_if_needed()

        return response

    # Auth commands

    async def auth_plain(
        self,
        username: Union[str, bytes],
        password: Union[str, bytes],
        /,
    ) -> SMTPResponse:
        """
        PLAIN auth encodes the username and password in one Base64 encoded
        string. No verification message is required.

        Example::

            220-esmtp.example.com
            AUTH PLAIN dGVzdAB0ZXN0AHRlc3RwYXNz
            235 ok, go ahead (#2.0.0)

        :raises SMTPAuthenticationError: on unexpected server response code
        """
        await self._ehlo_or_helo_if_needed()

        encoded = auth_plain_encode(username, password)
        response = await self.execute_command(b"AUTH", b"PLAIN", encoded)

        if response.code != SMTPStatus.auth_successful:
            raise SMTPAuthenticationError(response.code, response.message)

        return response

    async def auth_login(
        self,
        username: Union[str, bytes],
        password: Union[str, bytes],
        /,
    ) -> SMTPResponse:
        """
        LOGIN auth answers the server's ``Username:`` and ``Password:``
        prompts in turn, each Base64 encoded.

        Example::

            250 AUTH LOGIN
            auth login
            334 VXNlcm5hbWU6
            dGVzdA==
            334 UGFzc3dvcmQ6
            dGVzdHBhc3M=
            235 ok, go ahead (#2.0.0)

        Any other prompt cancels the exchange.

        :raises SMTPUnexpectedChallengeError: on an unrecognized prompt
        :raises SMTPAuthenticationError: on unexpected server response code
        """
        await self._ehlo_or_helo_if_needed()

        response = await self.execute_command(b"AUTH", b"LOGIN")
        while response.code == SMTPStatus.auth_continue:
            try:
                answer = auth_login_answer(response.message, username, password)
            except SMTPUnexpectedChallengeError:
                await self.execute_command(b"*")
                raise

            response = await self.execute_command(answer)

        if response.code != SMTPStatus.auth_successful:
            raise SMTPAuthenticationError(response.code, response.message)

        return response

    # Mail transaction commands #

    async def mail(self, sender: str, /) -> SMTPResponse:
        """
        Send an SMTP MAIL command, which specifies the message sender and
        begins a new mail transfer session ("envelope").

        :raises SMTPSenderRefused: on unexpected server response code
        """
        await self._ehlo_or_helo_if_needed()

        response = await self.execute_command(
            b"MAIL", b"FROM:" + quote_address(sender).encode("utf-8")
        )

        if response.code != SMTPStatus.completed:
            raise SMTPSenderRefused(response.code, response.message, sender)

        return response

    async def rcpt(self, recipient: str, /) -> SMTPResponse:
        """
        Send an SMTP RCPT command, which specifies a single recipient for
        the message. This command is sent once per recipient and must be
        preceded by 'MAIL'.

        :raises SMTPRecipientRefused: on unexpected server response code
        """
        await self._ehlo_or_helo_if_needed()

        response = await self.execute_command(
            b"RCPT", b"TO:" + quote_address(recipient).encode("utf-8")
        )

        if response.code not in (SMTPStatus.completed, SMTPStatus.will_forward):
            raise SMTPRecipientRefused(response.code, response.message, recipient)

        return response

    async def data(self, message: Union[str, bytes], /) -> SMTPResponse:
        """
        Send an SMTP DATA command, followed by the message given.
        This method transfers the actual email content to the server.

        :raises SMTPDataError: on unexpected server response code
        :raises SMTPServerDisconnected: connection lost
        """
        if self.protocol is None:
            raise SMTPServerDisconnected("Server not connected")

        await self._ehlo_or_helo_if_needed()

        if isinstance(message, str):
            message = message.encode("utf-8")

        try:
            return await self.protocol.execute_data_command(
                message, timeout=self.timeout
            )
        except SMTPServerDisconnected:
            self.close()
            raise

    async def quit(self) -> SMTPResponse:
        """
        Send the SMTP QUIT command, which closes the connection.
        Also closes the connection from our side after a response is received.

        :raises SMTPResponseException: on unexpected server response code
        """
        response = await self.execute_command(b"QUIT")
        self.close()

        if response.code != SMTPStatus.closing:
            raise SMTPResponseException(response.code, response.message)

        return response
