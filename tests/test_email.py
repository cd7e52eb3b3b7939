"""
Tests for message serialization.
"""

import base64
import re
from pathlib import Path

from hypothesis import given
from hypothesis.strategies import binary, text

from tinymail import Message, flatten_message
from tinymail.email import (
    MAX_LINE_LENGTH,
    chunk_lines,
    chunk_string,
    make_boundary,
)


FIXED_BOUNDARY = "7b7f6c9583aae2870247062aac5ca1bc1610b22b627ae2c5366bb1394ed0"


def make_test_message(subject: str) -> Message:
    message = Message.from_string("this is a test")
    message.set_from("test@tinymail.test")
    message.set_to("test.to@tinymail.test")
    message.set_subject(subject)
    message.set_cc("test.cc@tinymail.test")
    message.set_bcc("test.bcc@tinymail.test")

    return message


def test_flatten_message_single_part() -> None:
    message = make_test_message("TestWriteMessage")

    assert flatten_message(message) == (
        b"MIME-Version: 1.0\n"
        b"From: test@tinymail.test\n"
        b"To: test.to@tinymail.test\n"
        b"Subject: TestWriteMessage\n"
        b"Cc: test.cc@tinymail.test\n"
        b"Bcc: test.bcc@tinymail.test\n"
        b"Content-Type: text/plain; charset=utf-8\n"
        b"\n"
        b"this is a test"
    )


def test_flatten_message_urgent() -> None:
    message = make_test_message("TestWriteMessageUrgent")
    message.set_urgent_priority()

    assert flatten_message(message) == (
        b"MIME-Version: 1.0\n"
        b"From: test@tinymail.test\n"
        b"To: test.to@tinymail.test\n"
        b"Subject: TestWriteMessageUrgent\n"
        b"Cc: test.cc@tinymail.test\n"
        b"Bcc: test.bcc@tinymail.test\n"
        b"Priority: urgent\n"
        b"Content-Type: text/plain; charset=utf-8\n"
        b"\n"
        b"this is a test"
    )


def test_flatten_message_attachment(tmp_path: Path) -> None:
    attachment = tmp_path / "TestWriteMessageAttach"
    attachment.write_bytes(bytes(512))

    message = make_test_message("TestWriteMessageAttach")
    message.attach(attachment)

    expected = (
        "MIME-Version: 1.0\n"
        "From: test@tinymail.test\n"
        "To: test.to@tinymail.test\n"
        "Subject: TestWriteMessageAttach\n"
        "Cc: test.cc@tinymail.test\n"
        "Bcc: test.bcc@tinymail.test\n"
        "Content-Type: multipart/mixed;\n"
        f" boundary={FIXED_BOUNDARY}\n"
        "\n"
        f"--{FIXED_BOUNDARY}\n"
        "Content-Type: text/plain; charset=utf-8\n"
        "\n"
        "this is a test\n"
        f"--{FIXED_BOUNDARY}\n"
        "Content-Type: application/octet-stream\n"
        "Content-Transfer-Encoding: base64\n"
        "Content-Disposition: attachment; filename=TestWriteMessageAttach\n"
        "\n"
        f"{'A' * 683}=\n"
        f"--{FIXED_BOUNDARY}--"
    )

    assert flatten_message(message, boundary=FIXED_BOUNDARY) == expected.encode()


def test_flatten_message_minimal_has_no_boundary() -> None:
    message = Message.from_string("hello")
    message.set_from("a@x.com")
    message.set_to("b@x.com")
    message.set_subject("Hi")

    flat = flatten_message(message)

    assert flat == (
        b"MIME-Version: 1.0\n"
        b"From: a@x.com\n"
        b"To: b@x.com\n"
        b"Subject: Hi\n"
        b"Content-Type: text/plain; charset=utf-8\n"
        b"\n"
        b"hello"
    )
    assert b"boundary" not in flat
    assert b"Cc:" not in flat
    assert b"Priority:" not in flat


def test_flatten_message_attachment_decodes(tmp_path: Path) -> None:
    attachment = tmp_path / "report.bin"
    attachment.write_bytes(bytes(512))
    message = Message.from_string("hello")
    message.set_to("b@x.com")
    message.attach(attachment)

    flat = flatten_message(message, boundary="BOUND1").decode()

    assert "Content-Disposition: attachment; filename=report.bin\n\n" in flat
    assert flat.endswith("\n--BOUND1--")
    encoded = flat.split("filename=report.bin\n\n")[1].split("\n--BOUND1")[0]
    assert base64.b64decode(encoded.replace("\n", "")) == bytes(512)


def test_flatten_message_multiple_recipients_joined() -> None:
    message = Message.from_string("")
    message.set_to("a@x.com", "b@x.com")
    message.set_cc("c@x.com", "d@x.com")

    flat = flatten_message(message)

    assert b"To: a@x.com,b@x.com\n" in flat
    assert b"Cc: c@x.com,d@x.com\n" in flat


def test_flatten_message_attachments_in_insertion_order(tmp_path: Path) -> None:
    for name in ("zeta.txt", "alpha.txt", "mid.txt"):
        (tmp_path / name).write_text(name)
    message = Message.from_string("body")
    message.attach(tmp_path / "zeta.txt", tmp_path / "alpha.txt", tmp_path / "mid.txt")

    flat = flatten_message(message, boundary="B").decode()

    filenames = re.findall(r"filename=(\S+)", flat)
    assert filenames == ["zeta.txt", "alpha.txt", "mid.txt"]
    assert flat.endswith("\n--B--")


def test_flatten_message_empty_body() -> None:
    message = Message.from_string("")
    message.set_from("a@x.com")
    message.set_to("b@x.com")
    message.set_subject("Empty")

    flat = flatten_message(message)

    assert flat.endswith(b"Subject: Empty\nContent-Type: text/plain; charset=utf-8\n\n")


def test_flatten_message_several_attachments(tmp_path: Path) -> None:
    (tmp_path / "one.txt").write_text("one")
    (tmp_path / "two.txt").write_text("two")
    message = Message.from_string("body")
    message.set_from("a@x.com")
    message.set_to("b@x.com")
    message.set_subject("Files")
    message.attach(tmp_path / "one.txt", tmp_path / "two.txt")

    flat = flatten_message(message, boundary="B").decode()

    assert flat == (
        "MIME-Version: 1.0\n"
        "From: a@x.com\n"
        "To: b@x.com\n"
        "Subject: Files\n"
        "Content-Type: multipart/mixed;\n"
        " boundary=B\n"
        "\n"
        "--B\n"
        "Content-Type: text/plain; charset=utf-8\n"
        "\n"
        "body\n"
        "--B\n"
        "Content-Type: text/plain; charset=utf-8\n"
        "Content-Transfer-Encoding: base64\n"
        "Content-Disposition: attachment; filename=one.txt\n"
        "\n"
        "b25l\n"
        "--B\n"
        "--B\n"
        "Content-Type: text/plain; charset=utf-8\n"
        "Content-Transfer-Encoding: base64\n"
        "Content-Disposition: attachment; filename=two.txt\n"
        "\n"
        "dHdv\n"
        "--B\n"
        "--B--"
    )
    lines = flat.split("\n")
    assert lines.count("--B") == 5
    assert lines.count("--B--") == 1


def test_flatten_message_large_attachment_is_folded(tmp_path: Path) -> None:
    content = bytes(range(256)) * 20
    (tmp_path / "large.bin").write_bytes(content)
    message = Message.from_string("body")
    message.set_to("b@x.com")
    message.attach(tmp_path / "large.bin")

    flat = flatten_message(message, boundary="BOUND1").decode()

    lines = flat.split("\n")
    assert all(len(line) <= MAX_LINE_LENGTH for line in lines)
    encoded = flat.split("filename=large.bin\n\n")[1].split("\n--BOUND1")[0]
    assert [len(line) for line in encoded.split("\n")] == [998] * 6 + [840]
    assert base64.b64decode(encoded.replace("\n", "")) == content


def test_flatten_message_non_ascii_body_line_is_folded_by_octets() -> None:
    message = Message.from_string("\u00e9" * 1000)

    body = flatten_message(message).split(b"\n\n", 1)[1]

    assert [len(line) for line in body.split(b"\n")] == [998, 998, 4]
    assert body.replace(b"\n", b"").decode("utf-8") == "\u00e9" * 1000


def test_flatten_message_html_body() -> None:
    message = Message.from_string("<html><body>Hi</body></html>")

    assert b"Content-Type: text/html; charset=utf-8\n\n" in flatten_message(message)


def test_flatten_message_generated_boundary(tmp_path: Path) -> None:
    (tmp_path / "a.txt").write_text("text")
    message = Message.from_string("body")
    message.attach(tmp_path / "a.txt")

    flat = flatten_message(message).decode()

    match = re.search(r"boundary=([0-9a-f]{60})\n", flat)
    assert match is not None
    assert flat.endswith(f"\n--{match.group(1)}--")


def test_flatten_message_long_body_line_is_folded() -> None:
    message = Message.from_string("x" * 2500)

    body = flatten_message(message).decode().split("\n\n", 1)[1]

    assert body.split("\n") == ["x" * 998, "x" * 998, "x" * 504]


def test_flatten_message_crlf_body_normalized() -> None:
    message = Message.from_string("one\r\ntwo\r\n")

    body = flatten_message(message).decode().split("\n\n", 1)[1]

    assert body == "one\ntwo"


def test_make_boundary() -> None:
    boundary = make_boundary()

    assert re.fullmatch(r"[0-9a-f]{60}", boundary)
    assert boundary != make_boundary()


def test_chunk_string_examples() -> None:
    assert chunk_string("") == ""
    assert chunk_string("a" * 998) == "a" * 998
    assert chunk_string("a" * 999) == "a" * 998 + "\na"


def test_chunk_string_counts_octets() -> None:
    assert chunk_string("\u00e9" * 999) == "\n".join(
        ["\u00e9" * 499, "\u00e9" * 499, "\u00e9"]
    )
    assert chunk_string("a" + "\u20ac" * 333) == "a" + "\u20ac" * 332 + "\n\u20ac"


def test_chunk_lines_examples() -> None:
    assert chunk_lines("") == ""
    assert chunk_lines("a\n") == "a"
    assert chunk_lines("a\r\nb") == "a\nb"
    assert chunk_lines("a\n\nb") == "a\n\nb"


@given(text())
def test_chunk_string_line_length(value: str) -> None:
    chunked = chunk_string(value)

    assert all(
        len(chunk.encode("utf-8")) <= MAX_LINE_LENGTH for chunk in chunked.split("\n")
    )


@given(text(alphabet="ab\u00e9\u20ac"))
def test_chunk_string_roundtrip(value: str) -> None:
    assert chunk_string(value).replace("\n", "") == value


@given(text())
def test_chunk_lines_line_length(value: str) -> None:
    lines = chunk_lines(value).split("\n")

    assert all(len(line.encode("utf-8")) <= MAX_LINE_LENGTH for line in lines)


@given(binary())
def test_attachment_base64_roundtrip(content: bytes) -> None:
    encoded = chunk_string(base64.b64encode(content).decode("ascii"))

    assert base64.b64decode(encoded.replace("\n", "")) == content
