"""Mail and session configuration value objects"""

from dataclasses import dataclass, field, replace
from typing import Iterable, Tuple

from smtp_client.core.smtp.constants import Timeouts
from smtp_client.utils.errors import InvalidConfigError, MissingRequiredFieldError


@dataclass(frozen=True)
class Mail:
    """A single plain-text message and its envelope recipients.

    ``sender`` may be left empty; the session resolves it to the
    authenticated username before MAIL FROM is issued.
    """

    sender: str
    recipients: Tuple[str, ...]
    subject: str
    body: str

    def __post_init__(self):
        object.__setattr__(self, "recipients", tuple(self.recipients))

        if not self.recipients or not self.subject or not self.body:
            raise MissingRequiredFieldError(
                "At least one recipient is required and subject/body can't be empty",
                details={
                    "recipients": len(self.recipients),
                    "subject": bool(self.subject),
                    "body": bool(self.body),
                },
            )

        if any(not recipient for recipient in self.recipients):
            raise MissingRequiredFieldError("Recipient addresses can't be empty")

    @classmethod
    def create(
        cls, sender: str, recipients: Iterable[str], subject: str, body: str
    ) -> "Mail":
        return cls(sender or "", tuple(recipients), subject, body)

    def with_default_sender(self, username: str) -> "Mail":
        """Return this mail with the sender filled in from ``username`` if empty."""
        if self.sender:
            return self
        return replace(self, sender=username)


@dataclass(frozen=True)
class ServerEndpoint:
    """SMTP server host and port."""

    host: str
    port: str

    def __post_init__(self):
        object.__setattr__(self, "port", str(self.port).strip())

        if not self.host or not self.port:
            raise MissingRequiredFieldError(
                "SMTP server host, port and username required"
            )

        is_decimal = self.port.isascii() and self.port.isdigit()
        if not is_decimal or not 0 < int(self.port) < 65536:
            raise InvalidConfigError(
                f"Invalid SMTP port: {self.port!r}", details={"port": self.port}
            )

    @property
    def address(self) -> str:
        """Connection target in ``host:port`` form"""
        return f"{self.host}:{self.port}"

    @property
    def port_number(self) -> int:
        return int(self.port)


@dataclass(frozen=True)
class Credentials:
    """AUTH credentials. The password is never part of ``repr``."""

    username: str
    password: str = field(default="", repr=False)

    def __post_init__(self):
        if not self.username:
            raise MissingRequiredFieldError(
                "SMTP server host, port and username required"
            )


@dataclass(frozen=True)
class SessionConfig:
    """Fully resolved settings for one SMTP session."""

    endpoint: ServerEndpoint
    credentials: Credentials
    use_direct_tls: bool = False
    timeout: float = Timeouts.DEFAULT

    def __post_init__(self):
        if self.timeout <= 0:
            raise InvalidConfigError(
                f"Timeout must be positive, got {self.timeout}",
                details={"timeout": self.timeout},
            )
