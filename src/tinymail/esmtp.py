"""
ESMTP utils
"""

import re


__all__ = ("parse_esmtp_extensions",)


OLDSTYLE_AUTH_REGEX = re.compile(r"auth=(?P<auth>.*)", flags=re.I)
EXTENSIONS_REGEX = re.compile(r"(?P<ext>[A-Za-z0-9][A-Za-z0-9\-]*) ?")


def parse_esmtp_extensions(message: str) -> tuple[dict[str, str], list[str]]:
    """
    Parse an EHLO response from the server into a dict of {extension: params}
    and a list of auth method names.

    A typical response from a submission server:

         250-smtp.example.com at your service
         250-SIZE 35882577
         250-8BITMIME
         250-STARTTLS
         250-AUTH LOGIN PLAIN XOAUTH2
         250-ENHANCEDSTATUSCODES
         250 SMTPUTF8

    Auth method names are lower cased, in the order advertised.
    """
    esmtp_extensions: dict[str, str] = {}
    auth_types: list[str] = []

    response_lines = message.split("\n")

    # The first line is the server greeting
    for line in response_lines[1:]:
        # Some servers only advertise auth methods the old way (AUTH=PLAIN)
        auth_match = OLDSTYLE_AUTH_REGEX.match(line)
        if auth_match is not None:
            auth_type = auth_match.group("auth")
            auth_types.append(auth_type.lower().strip())

        # RFC 1869 requires a space between ehlo keyword and parameters.
        extensions = EXTENSIONS_REGEX.match(line)
        if extensions is not None:
            extension = extensions.group("ext").lower()
            params = extensions.string[extensions.end("ext") :].strip()
            esmtp_extensions[extension] = params

            if extension == "auth":
                auth_types.extend([param.strip().lower() for param in params.split()])

    return esmtp_extensions, auth_types
