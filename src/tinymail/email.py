"""
Message serialization.

Renders a :class:`~tinymail.typing.MessageSource` into the bytes sent in the
SMTP DATA phase. Header order is fixed:

    MIME-Version, From, To, Subject, [Cc], [Bcc], [Priority], Content-Type

Messages with attachments are ``multipart/mixed``; the body is the first part
and every attachment is base64 encoded. Lines are separated by ``\\n``; the
protocol layer converts them to CRLF.
"""

import base64
import io
import secrets
from typing import Optional

from .sniff import detect_content_type
from .typing import MessageSource


__all__ = (
    "MAX_LINE_LENGTH",
    "chunk_lines",
    "chunk_string",
    "flatten_message",
    "make_boundary",
)


# RFC 5322 2.1.1 Line Length Limits, in octets excluding the CRLF
MAX_LINE_LENGTH = 998
BOUNDARY_BYTES = 30


def chunk_string(value: str, /) -> str:
    """
    Split ``value`` into newline separated chunks of at most 998 octets once
    UTF-8 encoded. Characters are never split across chunks.
    """
    if value.isascii():
        chunks = [
            value[index : index + MAX_LINE_LENGTH]
            for index in range(0, len(value), MAX_LINE_LENGTH)
        ]
        return "\n".join(chunks)

    chunks = []
    start = 0
    size = 0
    for index, char in enumerate(value):
        char_size = len(char.encode("utf-8"))
        if size + char_size > MAX_LINE_LENGTH:
            chunks.append(value[start:index])
            start = index
            size = 0
        size += char_size
    chunks.append(value[start:])

    return "\n".join(chunks)


def chunk_lines(value: str, /) -> str:
    """
    Split ``value`` line by line, chunking each line with :func:`chunk_string`.

    Trailing carriage returns are removed from lines, and a final newline does
    not produce an empty last line.
    """
    lines = value.split("\n")
    if lines[-1] == "":
        lines.pop()

    return "\n".join(chunk_string(line.removesuffix("\r")) for line in lines)


def make_boundary() -> str:
    """
    Return a random multipart boundary (60 hexadecimal characters).
    """
    return secrets.token_hex(BOUNDARY_BYTES)


def _choose_boundary(parts: list[str]) -> str:
    boundary = make_boundary()
    while any(boundary in part for part in parts):
        boundary = make_boundary()

    return boundary


def flatten_message(
    message: MessageSource, /, *, boundary: Optional[str] = None
) -> bytes:
    """
    Serialize ``message``, using ``boundary`` for multipart messages.

    If no boundary is given, a random one that occurs in neither the body nor
    the encoded attachments is generated.
    """
    attachments = [
        (filename, content, base64.b64encode(content).decode("ascii"))
        for filename, content in message.attachments.items()
    ]
    with_attachments = len(attachments) > 0

    with io.StringIO() as buffer:
        buffer.write("MIME-Version: 1.0\n")
        buffer.write(f"From: {message.from_addr}\n")
        buffer.write(f"To: {','.join(message.to)}\n")
        buffer.write(f"Subject: {message.subject}\n")
        if message.cc:
            buffer.write(f"Cc: {','.join(message.cc)}\n")
        if message.bcc:
            buffer.write(f"Bcc: {','.join(message.bcc)}\n")
        if message.priority:
            buffer.write(f"Priority: {message.priority}\n")

        if with_attachments:
            if not boundary:
                boundary = _choose_boundary(
                    [message.body, *(encoded for _, _, encoded in attachments)]
                )
            buffer.write(f"Content-Type: multipart/mixed;\n boundary={boundary}\n\n")
            buffer.write(f"--{boundary}\n")

        body_type = detect_content_type(message.body.encode("utf-8"))
        buffer.write(f"Content-Type: {body_type}\n\n")
        buffer.write(chunk_lines(message.body))

        if with_attachments:
            for filename, content, encoded in attachments:
                buffer.write(f"\n--{boundary}\n")
                buffer.write(f"Content-Type: {detect_content_type(content)}\n")
                buffer.write("Content-Transfer-Encoding: base64\n")
                buffer.write(
                    f"Content-Disposition: attachment; filename={filename}\n\n"
                )
                buffer.write(chunk_string(encoded))
                buffer.write(f"\n--{boundary}")

            buffer.write("--")

        flat_message = buffer.getvalue()

    return flat_message.encode("utf-8")
