"""Message composition and DATA-phase encoding.

``compose`` builds the exact message the server stores: a ``From``, an
advisory ``To`` and a ``Subject`` header, a blank line, then the body.
Envelope recipients come from ``Mail.recipients``, never from the ``To``
header.

``encode_for_data`` is applied by the session while streaming and is the
only place the payload is altered on its way to the socket.
"""

import re

from smtp_client.core.models.mail import Mail

CRLF = "\r\n"
bCRLF = b"\r\n"
END_OF_DATA = b"." + bCRLF

RECIPIENT_SEPARATOR = ";"

_LINE_ENDINGS = re.compile(rb"\r\n|\r|\n")
_LEADING_DOT = re.compile(rb"(?m)^\.")


def compose(mail: Mail) -> bytes:
    """Return the wire-format message for ``mail`` as UTF-8 bytes."""
    message = f"From: {mail.sender}{CRLF}"
    if mail.recipients:
        message += f"To: {RECIPIENT_SEPARATOR.join(mail.recipients)}{CRLF}"

    message += f"Subject: {mail.subject}{CRLF}"
    message += CRLF + mail.body

    return message.encode("utf-8")


def encode_for_data(payload: bytes) -> bytes:
    """Normalise line endings, dot-stuff, and append the end-of-data marker."""
    data = _LINE_ENDINGS.sub(bCRLF, payload)
    data = _LEADING_DOT.sub(b"..", data)

    if not data.endswith(bCRLF):
        data += bCRLF

    return data + END_OF_DATA
