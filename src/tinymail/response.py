"""
SMTPResponse class, a simple namedtuple of (code, message).
"""

from typing import NamedTuple


__all__ = ("SMTPResponse",)


class SMTPResponse(NamedTuple):
    """
    NamedTuple of server response code and server response message.

    ``code`` and ``message`` can be accessed via attributes or indexes:

        >>> response = SMTPResponse(250, "OK")
        >>> response.message
        'OK'
        >>> response[0]
        250
        >>> response.code
        250

    """

    code: int
    message: str

    def __repr__(self) -> str:
        return f"({self.code}, {self.message})"

    def __str__(self) -> str:
        return f"{self.code} {self.message}"
