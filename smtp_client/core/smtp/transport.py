"""Transport setup: how the encrypted channel to the SMTP server is established.

Two variants of one capability, chosen once per session by ``channel_for``:

- ``DirectTLSChannel``: TLS handshake at connect time (implicit TLS, port 465)
- ``StartTLSChannel``: plaintext connect, then STARTTLS on the same socket

Both verify the server certificate and hostname against ``endpoint.host``.
"""

import smtplib
import socket
import ssl
from abc import ABC, abstractmethod
from typing import Optional, Union

from smtp_client.core.models.mail import ServerEndpoint, SessionConfig
from smtp_client.utils.errors import (
    NetworkTimeoutError,
    ProtocolError,
    StartTLSError,
    TLSHandshakeError,
    TransportError,
)
from smtp_client.utils.logging import get_logger

from .constants import SessionSteps

logger = get_logger(__name__)


def decode_reply(reply: Union[bytes, str, None]) -> str:
    """Decode a raw server reply for display, keeping its text as-is."""
    if reply is None:
        return ""
    if isinstance(reply, bytes):
        return reply.decode("utf-8", errors="replace")
    return str(reply)


def wrap_transport_error(step: str, error: BaseException) -> TransportError:
    """Map a socket/TLS level exception onto the transport error taxonomy."""
    details = {"step": step, "error": str(error)}
    message = f"{step}: {error}"

    if isinstance(error, ssl.SSLError):
        return TLSHandshakeError(message, details=details)

    if isinstance(error, socket.timeout):
        return NetworkTimeoutError(message, details=details)

    return TransportError(message, details=details)


class SecureChannel(ABC):
    """Opens the SMTP connection and makes sure it ends up encrypted."""

    mode = "unknown"

    def __init__(
        self,
        endpoint: ServerEndpoint,
        timeout: float,
        context: Optional[ssl.SSLContext] = None,
        debug: bool = False,
    ):
        self.endpoint = endpoint
        self.timeout = timeout
        self.context = context or ssl.create_default_context()
        self.debug = debug
        self.encrypted = False

    @abstractmethod
    def _connect(self) -> smtplib.SMTP:
        """Create a connected smtplib client of the right flavour."""

    def open(self) -> smtplib.SMTP:
        """Connect to the server and read its greeting.

        Raises:
            TransportError: DNS failure, refused connection, lost connection
            NetworkTimeoutError: Connect or greeting timed out
            TLSHandshakeError: Implicit TLS handshake or verification failed
            ProtocolError: Greeting was not 220
        """
        step = SessionSteps.CONNECT

        logger.info(
            "Connecting to SMTP server",
            extra={"server": self.endpoint.address, "tls_mode": self.mode},
        )

        try:
            client = self._connect()

        except smtplib.SMTPConnectError as e:
            raise ProtocolError(
                step=step, code=e.smtp_code, reply=decode_reply(e.smtp_error)
            ) from e

        except (smtplib.SMTPException, OSError) as e:
            raise wrap_transport_error(step, e) from e

        if self.debug:
            client.set_debuglevel(1)

        self._on_connected()
        return client

    def _on_connected(self) -> None:
        pass

    @abstractmethod
    def secure(self, client: smtplib.SMTP) -> None:
        """Ensure the channel is encrypted before credentials are sent."""


class DirectTLSChannel(SecureChannel):
    """Implicit TLS: the socket is wrapped before the greeting is read."""

    mode = "implicit"

    def _connect(self) -> smtplib.SMTP:
        return smtplib.SMTP_SSL(
            self.endpoint.host,
            self.endpoint.port_number,
            timeout=self.timeout,
            context=self.context,
        )

    def _on_connected(self) -> None:
        self.encrypted = True

    def secure(self, client: smtplib.SMTP) -> None:
        logger.debug("Channel already encrypted, skipping STARTTLS")


class StartTLSChannel(SecureChannel):
    """Plaintext connect followed by a STARTTLS upgrade on the same socket."""

    mode = "starttls"

    def _connect(self) -> smtplib.SMTP:
        return smtplib.SMTP(
            self.endpoint.host, self.endpoint.port_number, timeout=self.timeout
        )

    def secure(self, client: smtplib.SMTP) -> None:
        """Issue STARTTLS and re-handshake.

        A refused or failed upgrade is fatal: the session never continues
        over plaintext.

        Raises:
            StartTLSError: STARTTLS not advertised or refused
            TLSHandshakeError: Handshake or certificate verification failed
            TransportError: Connection lost
        """
        step = SessionSteps.SECURE

        try:
            client.ehlo_or_helo_if_needed()
            if not client.has_extn("starttls"):
                raise StartTLSError(
                    step=step, reply="STARTTLS extension not supported by server"
                )

            client.starttls(context=self.context)
            client.ehlo()

        except StartTLSError:
            raise

        except smtplib.SMTPResponseException as e:
            raise StartTLSError(
                step=step, code=e.smtp_code, reply=decode_reply(e.smtp_error)
            ) from e

        except smtplib.SMTPNotSupportedError as e:
            raise StartTLSError(step=step, reply=str(e)) from e

        except (smtplib.SMTPException, OSError) as e:
            raise wrap_transport_error(step, e) from e

        self.encrypted = True
        logger.debug("STARTTLS negotiated", extra={"server": self.endpoint.address})


def channel_for(
    config: SessionConfig,
    context: Optional[ssl.SSLContext] = None,
    debug: bool = False,
) -> SecureChannel:
    """Select the channel variant for ``config.use_direct_tls``."""
    channel_cls = DirectTLSChannel if config.use_direct_tls else StartTLSChannel
    return channel_cls(config.endpoint, config.timeout, context=context, debug=debug)
