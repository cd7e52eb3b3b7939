"""
The outbound message.
"""

import os
from typing import Any, Union

from .errors import AttachmentError
from .templates import render_template_files, render_template_string
from .typing import PRIORITY_NON_URGENT, PRIORITY_NORMAL, PRIORITY_URGENT


__all__ = ("Message",)


class Message:
    """
    A single outbound email: envelope fields, a body and attachments.

    The body is fixed when the message is created, using one of the
    constructors:

        >>> message = Message.from_string("Hello")
        >>> message.set_from("sender@example.com")
        >>> message.set_to("one@example.com", "two@example.com")
        >>> message.set_subject("Greetings")
        >>> message.to
        ['one@example.com', 'two@example.com']

    Recipient setters replace the previous value rather than appending to it.
    """

    def __init__(self, body: str = "") -> None:
        self._from_addr = ""
        self._to: list[str] = []
        self._cc: list[str] = []
        self._bcc: list[str] = []
        self._subject = ""
        self._body = body
        self._priority = ""
        self._attachments: dict[str, bytes] = {}

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(from_addr={self._from_addr!r}, "
            f"to={self._to!r}, subject={self._subject!r})"
        )

    @classmethod
    def from_string(cls, text: str, /) -> "Message":
        """
        Create a message with ``text`` as its body.
        """
        return cls(body=text)

    @classmethod
    def from_template_string(
        cls, data: Any, template: str, /
    ) -> "Message":
        """
        Create a message with the rendered ``template`` as its body.

        :raises TemplateError: on syntax or render errors
        """
        return cls(body=render_template_string(data, template))

    @classmethod
    def from_template_file(
        cls, data: Any, *paths: Union[str, os.PathLike[str]]
    ) -> "Message":
        """
        Create a message with the rendered template file as its body.

        The first path is rendered; any further paths can be included from it
        by file name.

        :raises TemplateError: a file could not be read, or on syntax or render
            errors
        """
        return cls(body=render_template_files(data, *paths))

    # Envelope #

    def set_from(self, from_addr: str, /) -> None:
        self._from_addr = from_addr

    @property
    def from_addr(self) -> str:
        return self._from_addr

    def set_to(self, *to: str) -> None:
        self._to = list(to)

    @property
    def to(self) -> list[str]:
        return list(self._to)

    def set_cc(self, *cc: str) -> None:
        self._cc = list(cc)

    @property
    def cc(self) -> list[str]:
        return list(self._cc)

    def set_bcc(self, *bcc: str) -> None:
        self._bcc = list(bcc)

    @property
    def bcc(self) -> list[str]:
        return list(self._bcc)

    def set_subject(self, subject: str, /) -> None:
        self._subject = subject

    @property
    def subject(self) -> str:
        return self._subject

    @property
    def body(self) -> str:
        return self._body

    # Priority #

    def set_urgent_priority(self) -> None:
        self._priority = PRIORITY_URGENT

    def set_normal_priority(self) -> None:
        self._priority = PRIORITY_NORMAL

    def set_non_urgent_priority(self) -> None:
        self._priority = PRIORITY_NON_URGENT

    @property
    def priority(self) -> str:
        """
        One of ``"urgent"``, ``"normal"`` or ``"non-urgent"``, or an empty
        string if no priority was set.
        """
        return self._priority

    # Attachments #

    def attach(self, *paths: Union[str, os.PathLike[str]]) -> None:
        """
        Read each file and store it as an attachment, keyed by its file name.

        Attaching a second file with the same name replaces the first. Files
        are read in order; if one cannot be read, the files before it remain
        attached.

        :raises AttachmentError: a file could not be read
        """
        for path in paths:
            try:
                with open(path, "rb") as attachment_file:
                    content = attachment_file.read()
            except OSError as exc:
                raise AttachmentError(
                    f"Error reading attachment {os.fspath(path)!r}: {exc}",
                    os.fspath(path),
                ) from exc

            self._attachments[os.path.basename(path)] = content

    @property
    def attachments(self) -> dict[str, bytes]:
        """
        Attachment contents by file name, in the order they were attached.
        """
        return dict(self._attachments)
