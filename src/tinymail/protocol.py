"""
Lower level IO handling for an SMTP connection, on top of asyncio streams.
"""

import asyncio
import re
import ssl
from typing import Any, Optional

from .errors import (
    SMTPConnectError,
    SMTPConnectTimeoutError,
    SMTPDataError,
    SMTPReadTimeoutError,
    SMTPResponseException,
    SMTPServerDisconnected,
    SMTPTLSError,
)
from .response import SMTPResponse
from .typing import SMTPStatus


__all__ = ("SMTPProtocol", "format_data_message", "read_response_from_buffer")


MAX_LINE_LENGTH = 8192
LINE_ENDINGS_REGEX = re.compile(rb"(?:\r\n|\n|\r(?!\n))")
PERIOD_REGEX = re.compile(rb"(?m)^\.")


def format_data_message(message: bytes) -> bytes:
    """
    Normalize line endings to CRLF, quote lines beginning with a period and
    append the end of data marker.
    """
    message = LINE_ENDINGS_REGEX.sub(b"\r\n", message)
    message = PERIOD_REGEX.sub(b"..", message)
    if not message.endswith(b"\r\n"):
        message += b"\r\n"
    message += b".\r\n"

    return message


def read_response_from_buffer(data: bytearray) -> Optional[SMTPResponse]:
    """Parse the actual SMTP response (if any) from the data buffer"""
    code = -1
    message = bytearray()
    offset = 0
    message_complete = False

    while True:
        line_end_index = data.find(b"\n", offset)
        if line_end_index == -1:
            break

        line = bytes(data[offset : line_end_index + 1])

        if len(line) > MAX_LINE_LENGTH:
            raise SMTPResponseException(
                SMTPStatus.unrecognized_command, "Response too long"
            )

        try:
            code = int(line[:3])
        except ValueError:
            error_text = line.decode("utf-8", errors="ignore")
            raise SMTPResponseException(
                SMTPStatus.invalid_response.value,
                f"Malformed SMTP response line: {error_text}",
            ) from None

        offset += len(line)
        if len(message):
            message.extend(b"\n")
        message.extend(line[4:].strip(b" \t\r\n"))
        if line[3:4] != b"-":
            message_complete = True
            break

    if message_complete:
        response = SMTPResponse(code, bytes(message).decode("utf-8", "surrogateescape"))
        del data[:offset]
        return response

    return None


class SMTPProtocol:
    """
    One SMTP connection: writes commands and reads (possibly multi-line)
    responses, one command at a time.
    """

    def __init__(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        self._reader = reader
        self._writer: Optional[asyncio.StreamWriter] = writer
        self._buffer = bytearray()
        self._command_lock = asyncio.Lock()

    @classmethod
    async def open(
        cls,
        hostname: str,
        port: int,
        *,
        timeout: Optional[float] = None,
        local_addr: Optional[tuple[str, int]] = None,
    ) -> "SMTPProtocol":
        """
        Open a TCP connection to ``hostname:port``.

        :raises SMTPConnectTimeoutError: the connection timed out
        :raises SMTPConnectError: the connection failed
        """
        connect_coro = asyncio.open_connection(
            host=hostname, port=port, limit=MAX_LINE_LENGTH, local_addr=local_addr
        )
        try:
            reader, writer = await asyncio.wait_for(connect_coro, timeout=timeout)
        except (TimeoutError, asyncio.TimeoutError) as exc:
            raise SMTPConnectTimeoutError(
                f"Timed out connecting to {hostname} on port {port}"
            ) from exc
        except OSError as exc:
            raise SMTPConnectError(
                f"Error connecting to {hostname} on port {port}: {exc}"
            ) from exc

        return cls(reader, writer)

    @property
    def is_connected(self) -> bool:
        """
        Check if our transport is still connected.
        """
        return self._writer is not None and not self._writer.is_closing()

    @property
    def is_tls(self) -> bool:
        return self.get_transport_info("sslcontext") is not None

    def get_transport_info(self, key: str) -> Any:
        if self._writer is None:
            return None
        return self._writer.get_extra_info(key)

    def close(self) -> None:
        if self._writer is not None and not self._writer.is_closing():
            self._writer.close()
        self._writer = None

    async def read_response(self, timeout: Optional[float] = None) -> SMTPResponse:
        """
        Get a status response from the server.

        This method must be awaited once per command sent; if multiple commands
        are written to the transport without awaiting, response data will be lost.

        Returns an :class:`.response.SMTPResponse` namedtuple consisting of:
          - server response code (e.g. 250, or such, if all goes well)
          - server response string (multiline responses are converted to a
            single, multiline string).

        :raises SMTPReadTimeoutError: no complete response within ``timeout``
        :raises SMTPServerDisconnected: the server closed the connection
        """
        try:
            return await asyncio.wait_for(self._read_response(), timeout=timeout)
        except (TimeoutError, asyncio.TimeoutError) as exc:
            raise SMTPReadTimeoutError(
                "Timed out waiting for server response"
            ) from exc

    async def _read_response(self) -> SMTPResponse:
        while True:
            response = read_response_from_buffer(self._buffer)
            if response is not None:
                return response

            if not self.is_connected:
                raise SMTPServerDisconnected("Server not connected")

            try:
                data = await self._reader.readuntil(b"\n")
            except asyncio.IncompleteReadError as exc:
                self._buffer.extend(exc.partial)
                response = read_response_from_buffer(self._buffer)
                if response is not None:
                    return response
                raise SMTPServerDisconnected("Server disconnected") from exc
            except asyncio.LimitOverrunError as exc:
                raise SMTPResponseException(
                    SMTPStatus.unrecognized_command, "Response too long"
                ) from exc
            except ConnectionError as exc:
                raise SMTPServerDisconnected("Connection lost") from exc

            self._buffer.extend(data)

    async def write(self, data: bytes) -> None:
        if self._writer is None or self._writer.is_closing():
            raise SMTPServerDisconnected("Connection lost")

        try:
            self._writer.write(data)
            await self._writer.drain()
        except ConnectionError as exc:
            raise SMTPServerDisconnected("Connection lost") from exc

    async def execute_command(
        self, *args: bytes, timeout: Optional[float] = None
    ) -> SMTPResponse:
        """
        Sends an SMTP command along with any args to the server, and returns
        a response.
        """
        command = b" ".join(args) + b"\r\n"

        async with self._command_lock:
            await self.write(command)
            response = await self.read_response(timeout=timeout)

        return response

    async def execute_data_command(
        self, message: bytes, timeout: Optional[float] = None
    ) -> SMTPResponse:
        """
        Sends an SMTP DATA command to the server, followed by encoded message content.

        Automatically quotes lines beginning with a period per RFC821.
        Lone \\\\r and \\\\n characters are converted to \\\\r\\\\n
        characters.

        :raises SMTPDataError: the server refused the command or the content
        """
        formatted_message = format_data_message(message)

        async with self._command_lock:
            await self.write(b"DATA\r\n")

            start_response = await self.read_response(timeout=timeout)
            if start_response.code != SMTPStatus.start_input:
                raise SMTPDataError(start_response.code, start_response.message)

            await self.write(formatted_message)

            response = await self.read_response(timeout=timeout)
            if response.code != SMTPStatus.completed:
                raise SMTPDataError(response.code, response.message)

        return response

    async def start_tls(
        self,
        tls_context: ssl.SSLContext,
        server_hostname: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> SMTPResponse:
        """
        Send STARTTLS and upgrade the connection to TLS.

        :raises SMTPTLSError: the server refused the command, or the handshake
            failed
        """
        if self._writer is None or self._writer.is_closing():
            raise SMTPServerDisconnected("Connection lost")
        if self.is_tls:
            raise SMTPTLSError("Connection already using TLS")

        async with self._command_lock:
            await self.write(b"STARTTLS\r\n")
            response = await self.read_response(timeout=timeout)
            if response.code != SMTPStatus.ready:
                raise SMTPTLSError(
                    f"STARTTLS refused by server: {response.code} {response.message}"
                )

            try:
                await self._writer.start_tls(
                    tls_context,
                    server_hostname=server_hostname,
                    ssl_handshake_timeout=timeout,
                )
            except (TimeoutError, asyncio.TimeoutError) as exc:
                raise SMTPTLSError("Timed out while upgrading transport") from exc
            except ssl.SSLError as exc:
                raise SMTPTLSError(f"TLS handshake failed: {exc}") from exc
            except ConnectionError as exc:
                raise SMTPTLSError(
                    "Connection reset while upgrading transport"
                ) from exc

        return response
