"""
Content type detection for message bodies and attachments.

Implements the subset of the WHATWG MIME Sniffing Standard
(https://mimesniff.spec.whatwg.org/) that web servers commonly use to label
untyped content. At most the first 512 bytes are considered.
"""

import re
import struct
from typing import Callable, Optional


__all__ = ("SNIFF_LENGTH", "detect_content_type")


SNIFF_LENGTH = 512
DEFAULT_CONTENT_TYPE = "application/octet-stream"
TEXT_UTF8 = "text/plain; charset=utf-8"
HTML_UTF8 = "text/html; charset=utf-8"

WHITESPACE = b"\t\n\x0c\r "
TAG_TERMINATING = b" >"
BINARY_BYTES_REGEX = re.compile(rb"[\x00-\x08\x0b\x0e-\x1a\x1c-\x1f]")

Matcher = Callable[[bytes, int], Optional[str]]

HTML_TAGS = (
    b"<!DOCTYPE HTML",
    b"<HTML",
    b"<HEAD",
    b"<SCRIPT",
    b"<IFRAME",
    b"<H1",
    b"<DIV",
    b"<FONT",
    b"<TABLE",
    b"<A",
    b"<STYLE",
    b"<TITLE",
    b"<B",
    b"<BODY",
    b"<BR",
    b"<P",
    b"<!--",
)


def _html(tag: bytes) -> Matcher:
    def match(data: bytes, first_non_ws: int) -> Optional[str]:
        data = data[first_non_ws:]
        if len(data) < len(tag) + 1:
            return None
        # Letters in the tag match case insensitively
        if data[: len(tag)].upper() != tag:
            return None
        if data[len(tag)] not in TAG_TERMINATING:
            return None
        return HTML_UTF8

    return match


def _exact(signature: bytes, content_type: str) -> Matcher:
    def match(data: bytes, first_non_ws: int) -> Optional[str]:
        return content_type if data.startswith(signature) else None

    return match


def _masked(
    pattern: bytes, mask: bytes, content_type: str, skip_ws: bool = False
) -> Matcher:
    def match(data: bytes, first_non_ws: int) -> Optional[str]:
        if skip_ws:
            data = data[first_non_ws:]
        if len(data) < len(pattern):
            return None
        for index, expected in enumerate(pattern):
            if data[index] & mask[index] != expected:
                return None
        return content_type

    return match


def _riff(form: bytes, content_type: str) -> Matcher:
    # RIFF????<form>, where ???? is the chunk size
    pattern = b"RIFF\x00\x00\x00\x00" + form
    mask = b"\xff\xff\xff\xff\x00\x00\x00\x00" + b"\xff" * len(form)
    return _masked(pattern, mask, content_type)


def _mp4(data: bytes, first_non_ws: int) -> Optional[str]:
    if len(data) < 12:
        return None
    (box_size,) = struct.unpack(">I", data[:4])
    if len(data) < box_size or box_size % 4 != 0:
        return None
    if data[4:8] != b"ftyp":
        return None
    for start in range(8, box_size, 4):
        if start == 12:
            # Minor version number
            continue
        if data[start : start + 3] == b"mp4":
            return "video/mp4"
    return None


def _text(data: bytes, first_non_ws: int) -> Optional[str]:
    if BINARY_BYTES_REGEX.search(data, first_non_ws):
        return None
    return TEXT_UTF8


SIGNATURES: tuple[Matcher, ...] = (
    *(_html(tag) for tag in HTML_TAGS),
    _masked(b"<?xml", b"\xff" * 5, "text/xml; charset=utf-8", skip_ws=True),
    _exact(b"%PDF-", "application/pdf"),
    _exact(b"%!PS-Adobe-", "application/postscript"),
    # Byte order marks
    _masked(
        b"\xfe\xff\x00\x00", b"\xff\xff\x00\x00", "text/plain; charset=utf-16be"
    ),
    _masked(
        b"\xff\xfe\x00\x00", b"\xff\xff\x00\x00", "text/plain; charset=utf-16le"
    ),
    _masked(b"\xef\xbb\xbf\x00", b"\xff\xff\xff\x00", TEXT_UTF8),
    # Images
    _exact(b"\x00\x00\x01\x00", "image/x-icon"),
    _exact(b"\x00\x00\x02\x00", "image/x-icon"),
    _exact(b"BM", "image/bmp"),
    _exact(b"GIF87a", "image/gif"),
    _exact(b"GIF89a", "image/gif"),
    _riff(b"WEBPVP", "image/webp"),
    _exact(b"\x89PNG\x0d\x0a\x1a\x0a", "image/png"),
    _exact(b"\xff\xd8\xff", "image/jpeg"),
    # Audio and video
    _masked(
        b"FORM\x00\x00\x00\x00AIFF",
        b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff",
        "audio/aiff",
    ),
    _exact(b"ID3", "audio/mpeg"),
    _exact(b"OggS\x00", "application/ogg"),
    _exact(b"MThd\x00\x00\x00\x06", "audio/midi"),
    _riff(b"AVI ", "video/avi"),
    _riff(b"WAVE", "audio/wave"),
    _mp4,
    _exact(b"\x1a\x45\xdf\xa3", "video/webm"),
    # Fonts
    _exact(b"\x00\x01\x00\x00", "font/ttf"),
    _exact(b"OTTO", "font/otf"),
    _exact(b"ttcf", "font/collection"),
    _exact(b"wOFF", "font/woff"),
    _exact(b"wOF2", "font/woff2"),
    # Archives
    _exact(b"\x1f\x8b\x08", "application/x-gzip"),
    _exact(b"PK\x03\x04", "application/zip"),
    _exact(b"Rar!\x1a\x07\x00", "application/x-rar-compressed"),
    _exact(b"Rar!\x1a\x07\x01\x00", "application/x-rar-compressed"),
    _exact(b"\x00asm", "application/wasm"),
    _text,
)


def detect_content_type(data: bytes, /) -> str:
    """
    Return the MIME type of ``data``, e.g. ``text/plain; charset=utf-8`` for
    plain text. Always returns a valid type, falling back to
    ``application/octet-stream``.
    """
    data = bytes(data[:SNIFF_LENGTH])

    first_non_ws = 0
    while first_non_ws < len(data) and data[first_non_ws] in WHITESPACE:
        first_non_ws += 1

    for matcher in SIGNATURES:
        content_type = matcher(data, first_non_ws)
        if content_type is not None:
            return content_type

    return DEFAULT_CONTENT_TYPE
