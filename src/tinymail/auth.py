"""
Authentication related methods.
"""

import base64
import binascii
from collections.abc import Iterable
from typing import Union

from .errors import SMTPNoAuthMethodError, SMTPUnexpectedChallengeError


__all__ = (
    "AUTH_LOGIN",
    "AUTH_PLAIN",
    "auth_login_answer",
    "auth_plain_encode",
    "select_auth_method",
)


AUTH_PLAIN = "PLAIN"
AUTH_LOGIN = "LOGIN"

LOGIN_USERNAME_PROMPT = b"Username:"
LOGIN_PASSWORD_PROMPT = b"Password:"


def _ensure_bytes(value: Union[str, bytes]) -> bytes:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)

    return value.encode("utf-8")


def auth_plain_encode(
    username: Union[str, bytes],
    password: Union[str, bytes],
    /,
) -> bytes:
    """
    PLAIN auth base64 encodes the username and password together.
    """
    username_bytes = _ensure_bytes(username)
    password_bytes = _ensure_bytes(password)

    username_and_password = b"\0" + username_bytes + b"\0" + password_bytes
    encoded = base64.b64encode(username_and_password)

    return encoded


def auth_login_answer(
    challenge: Union[str, bytes],
    username: Union[str, bytes],
    password: Union[str, bytes],
    /,
) -> bytes:
    """
    Answer one base64 encoded LOGIN auth prompt.

    The server asks for ``Username:`` and then ``Password:``; these are the
    only prompts recognized. Returns the base64 encoded answer.

    :raises SMTPUnexpectedChallengeError: on any other prompt
    """
    try:
        prompt = base64.b64decode(_ensure_bytes(challenge), validate=True)
    except binascii.Error:
        raise SMTPUnexpectedChallengeError(
            f"Invalid LOGIN challenge: {challenge!r}", _ensure_bytes(challenge)
        ) from None

    if prompt == LOGIN_USERNAME_PROMPT:
        answer = _ensure_bytes(username)
    elif prompt == LOGIN_PASSWORD_PROMPT:
        answer = _ensure_bytes(password)
    else:
        raise SMTPUnexpectedChallengeError(
            f"Unexpected LOGIN challenge: {prompt!r}", prompt
        )

    return base64.b64encode(answer)


def select_auth_method(
    has_auth_extension: bool, server_auth_methods: Iterable[str], /
) -> str:
    """
    Pick the auth mechanism for a STARTTLS session.

    PLAIN is the default. LOGIN is used only when the server advertises LOGIN
    but not PLAIN.

    :raises SMTPNoAuthMethodError: the server does not advertise AUTH
    """
    if not has_auth_extension:
        raise SMTPNoAuthMethodError("No authentication method found")

    methods = {method.lower() for method in server_auth_methods}
    if "login" in methods and "plain" not in methods:
        return AUTH_LOGIN

    return AUTH_PLAIN
