"""SMTP session state machine.

One session sends one message over one connection. Steps run in a fixed
order and each must receive its positive reply before the next command is
sent:

    DISCONNECTED -> CONNECTED -> SECURE -> AUTHENTICATED -> SENDER_DECLARED
        -> RECIPIENTS_DECLARED -> DATA_STREAMING -> COMPLETED

Any failure moves the session to FAILED, closes the connection and raises.
Credentials are only ever sent once the channel is encrypted.
"""

import base64
import smtplib
from contextlib import contextmanager
from enum import Enum
from typing import Iterator, List, Optional

from smtp_client.core.composer import compose, encode_for_data
from smtp_client.core.models.mail import Credentials, Mail, SessionConfig
from smtp_client.utils.errors import (
    AuthenticationRejectedError,
    DataRefusedError,
    MessageRejectedError,
    PayloadWriteError,
    ProtocolError,
    RecipientRejectedError,
    SenderRejectedError,
    SessionStateError,
    SMTPClientError,
)
from smtp_client.utils.logging import get_logger

from .constants import SessionSteps, SMTPResponse
from .transport import SecureChannel, channel_for, decode_reply, wrap_transport_error


def plain_token(credentials: Credentials) -> str:
    """Base64 AUTH PLAIN initial response; username and password are sent as UTF-8."""
    message = b"\0".join(
        [b"", credentials.username.encode("utf-8"), credentials.password.encode("utf-8")]
    )
    return base64.b64encode(message).decode("ascii")


class SessionState(Enum):
    """Protocol states of an SMTP session, in the order they are entered."""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    SECURE = "secure"
    AUTHENTICATED = "authenticated"
    SENDER_DECLARED = "sender_declared"
    RECIPIENTS_DECLARED = "recipients_declared"
    DATA_STREAMING = "data_streaming"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.COMPLETED, SessionState.FAILED)


class SMTPSession:
    """Drives a single send over a single exclusively-owned connection."""

    def __init__(
        self,
        config: SessionConfig,
        channel: Optional[SecureChannel] = None,
        debug: bool = False,
    ):
        """Initialise session.

        Args:
            config: Resolved endpoint, credentials and TLS mode
            channel: Channel strategy; selected from ``config`` when omitted
            debug: Print the SMTP protocol trace to stderr
        """
        self.config = config
        self.channel = channel or channel_for(config, debug=debug)
        self.state = SessionState.DISCONNECTED
        self.history: List[SessionState] = [SessionState.DISCONNECTED]
        self.error: Optional[SMTPClientError] = None
        self._client: Optional[smtplib.SMTP] = None
        self.log = get_logger(__name__, server=config.endpoint.address)

    ## Orchestration

    def send(self, mail: Mail) -> None:
        """Run every step for ``mail``; the connection is closed on return.

        Raises:
            TransportError: Connection, TLS or I/O failure
            ProtocolError: Negative server reply at any step
        """
        mail = self._resolve(mail)

        try:
            self.connect()
            self.secure()
            self.authenticate()
            self.declare_sender(mail)
            self.declare_recipients(mail)
            self.transfer(mail)
            self.finish()
        finally:
            self.close()

    ## Steps

    def connect(self) -> None:
        with self._step(SessionSteps.CONNECT, SessionState.DISCONNECTED):
            self._client = self.channel.open()
        self._enter(SessionState.CONNECTED)

    def secure(self) -> None:
        with self._step(SessionSteps.SECURE, SessionState.CONNECTED):
            self.channel.secure(self._client)
        self._enter(SessionState.SECURE)

    def authenticate(self) -> None:
        """Authenticate with AUTH PLAIN over the encrypted channel."""
        step = SessionSteps.AUTHENTICATE
        credentials = self.config.credentials

        with self._step(step, SessionState.SECURE):
            if not self.channel.encrypted:
                raise SessionStateError(
                    step=step,
                    reply="refusing to send credentials over an unencrypted channel",
                )

            client = self._client
            client.ehlo_or_helo_if_needed()
            if not client.has_extn("auth"):
                raise AuthenticationRejectedError(
                    step=step, reply="AUTH extension not supported by server"
                )

            code, reply = client.docmd("AUTH", f"PLAIN {plain_token(credentials)}")
            if code != SMTPResponse.AUTH_SUCCESSFUL:
                raise AuthenticationRejectedError(
                    step=step, code=code, reply=decode_reply(reply)
                )

        self._enter(SessionState.AUTHENTICATED)

    def declare_sender(self, mail: Mail) -> None:
        step = SessionSteps.DECLARE_SENDER
        sender = self._resolve(mail).sender

        with self._step(step, SessionState.AUTHENTICATED):
            code, reply = self._client.mail(sender)
            if code != SMTPResponse.OK:
                raise SenderRejectedError(
                    step=step,
                    code=code,
                    reply=decode_reply(reply),
                    details={"sender": sender},
                )

        self._enter(SessionState.SENDER_DECLARED)

    def declare_recipients(self, mail: Mail) -> None:
        """Issue RCPT TO for every recipient in order; the first rejection aborts."""
        step = SessionSteps.DECLARE_RECIPIENTS

        with self._step(step, SessionState.SENDER_DECLARED):
            for recipient in mail.recipients:
                code, reply = self._client.rcpt(recipient)
                if code not in SMTPResponse.RECIPIENT_ACCEPTED:
                    raise RecipientRejectedError(
                        recipient, step=step, code=code, reply=decode_reply(reply)
                    )
                self.log.debug("Recipient accepted", extra={"recipient": recipient})

        self._enter(SessionState.RECIPIENTS_DECLARED)

    def transfer(self, mail: Mail) -> None:
        """Enter the DATA phase and stream ``compose(mail)``."""
        with self._step(SessionSteps.BEGIN_DATA, SessionState.RECIPIENTS_DECLARED):
            code, reply = self._client.docmd("data")
            if code != SMTPResponse.START_MAIL:
                raise DataRefusedError(
                    step=SessionSteps.BEGIN_DATA, code=code, reply=decode_reply(reply)
                )

        self._enter(SessionState.DATA_STREAMING)

        step = SessionSteps.TRANSFER
        with self._step(step, SessionState.DATA_STREAMING):
            payload = compose(self._resolve(mail))
            try:
                self._client.send(encode_for_data(payload))
            except (smtplib.SMTPServerDisconnected, OSError) as e:
                raise PayloadWriteError(
                    f"{step}: {e}", details={"step": step, "bytes": len(payload)}
                ) from e

            code, reply = self._client.getreply()
            if code != SMTPResponse.OK:
                raise MessageRejectedError(
                    step=step, code=code, reply=decode_reply(reply)
                )

        self.log.info(
            "Message accepted by server",
            extra={"reply": decode_reply(reply)},
        )

    def finish(self) -> None:
        """Send QUIT and mark the session completed.

        The message has already been accepted at this point, so a failed
        QUIT is only logged.
        """
        if self.state is not SessionState.DATA_STREAMING:
            self._misuse(SessionSteps.FINISH, SessionState.DATA_STREAMING)

        try:
            self._client.quit()
        except (smtplib.SMTPException, OSError) as e:
            self.log.warning(f"QUIT failed after message was accepted: {e}")

        self._enter(SessionState.COMPLETED)
        self._release()

    ## Connection cleanup

    def close(self) -> None:
        """Release the connection. Safe to call more than once."""
        if self._client is None:
            return

        if not self.state.is_terminal:
            self._quit_quietly()
        self._release()

    def _quit_quietly(self) -> None:
        try:
            self._client.quit()
        except (smtplib.SMTPException, OSError) as e:
            self.log.debug(f"Best-effort QUIT failed: {e}")

    def _release(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return

        try:
            client.close()
        except OSError as e:
            self.log.debug(f"Error closing SMTP connection: {e}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    ## State handling

    def _resolve(self, mail: Mail) -> Mail:
        return mail.with_default_sender(self.config.credentials.username)

    def _enter(self, state: SessionState) -> None:
        self.state = state
        self.history.append(state)
        self.log.debug(
            "SMTP session state changed",
            extra={"state": state.value},
        )

    def _misuse(self, step: str, required: SessionState) -> None:
        error = SessionStateError(
            step=step,
            reply=f"expected state {required.value}, session is {self.state.value}",
        )
        self._fail(error)
        raise error

    def _fail(self, error: SMTPClientError) -> None:
        if self.state.is_terminal:
            return

        self.error = error
        self.log.error(
            f"SMTP session failed: {error.message}",
            extra=dict(error.details),
        )
        self._enter(SessionState.FAILED)
        self._quit_quietly_and_release()

    def _quit_quietly_and_release(self) -> None:
        if self._client is not None:
            self._quit_quietly()
        self._release()

    @contextmanager
    def _step(self, step: str, required: SessionState) -> Iterator[None]:
        """Guard a protocol step: check ordering and translate failures."""
        if self.state is not required:
            self._misuse(step, required)

        try:
            yield

        except SMTPClientError as e:
            self._fail(e)
            raise

        except smtplib.SMTPResponseException as e:
            error = ProtocolError(
                step=step, code=e.smtp_code, reply=decode_reply(e.smtp_error)
            )
            self._fail(error)
            raise error from e

        except (smtplib.SMTPException, OSError) as e:
            error = wrap_transport_error(step, e)
            self._fail(error)
            raise error from e

        except UnicodeEncodeError as e:
            error = ProtocolError(
                step=step, reply=f"cannot encode command argument as ASCII ({e.reason})"
            )
            self._fail(error)
            raise error from e
