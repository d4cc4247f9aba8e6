"""Layered configuration: CLI flag > environment (.env) > default.

The loader is the only place that reads the process environment. It hands
the core a fully resolved ``SessionConfig`` and ``Mail``.
"""

import os
from typing import Any, Dict, List, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from smtp_client.core.models.mail import (
    Credentials,
    Mail,
    ServerEndpoint,
    SessionConfig,
)
from smtp_client.core.smtp.constants import SMTPPorts, Timeouts

from .errors import InvalidConfigError, MissingRequiredFieldError
from .logging import get_logger

logger = get_logger(__name__)

ENV_VARS: Dict[str, str] = {
    "host": "SMTP_HOST",
    "port": "SMTP_PORT",
    "username": "SMTP_USERNAME",
    "password": "SMTP_PASSWORD",
    "ssl": "SMTP_SSL",
    "recipients": "SMTP_RECIPIENTS",
    "sender": "SMTP_SENDER",
    "subject": "SMTP_SUBJECT",
    "body": "SMTP_BODY",
    "timeout": "SMTP_TIMEOUT",
    "log_level": "SMTP_LOG_LEVEL",
    "log_dir": "SMTP_LOG_DIR",
}


class ClientSettings(BaseModel):
    """Pydantic model for every setting the CLI can resolve."""

    host: str = ""
    port: str = SMTPPorts.SUBMISSION
    username: str = ""
    password: str = Field(default="", repr=False)
    ssl: bool = False
    recipients: List[str] = Field(default_factory=list)
    sender: str = ""
    subject: str = ""
    body: str = ""
    timeout: float = Timeouts.DEFAULT
    log_level: str = "WARNING"
    log_dir: Optional[str] = None

    @field_validator("port", mode="before")
    @classmethod
    def _port_as_string(cls, value: Any) -> str:
        return str(value).strip()

    @field_validator("recipients", mode="before")
    @classmethod
    def _split_recipients(cls, value: Any) -> List[str]:
        """Accept a comma-separated string or a list of (comma-separated) strings."""
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]

        recipients = []
        for item in value:
            recipients.extend(part.strip() for part in str(item).split(","))

        return [recipient for recipient in recipients if recipient]

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level {value!r}")
        return level

    def to_session_config(self) -> SessionConfig:
        """Build the session configuration.

        Raises:
            MissingRequiredFieldError: host, port or username missing
            InvalidConfigError: port or timeout out of range
        """
        missing = [
            name for name in ("host", "port", "username") if not getattr(self, name)
        ]
        if missing:
            raise MissingRequiredFieldError(
                "SMTP server host, port and username required",
                details={"missing": missing},
            )

        return SessionConfig(
            endpoint=ServerEndpoint(self.host, self.port),
            credentials=Credentials(self.username, self.password),
            use_direct_tls=self.ssl,
            timeout=self.timeout,
        )

    def to_mail(self) -> Mail:
        """Build the message; an unset sender falls back to the username.

        Raises:
            MissingRequiredFieldError: no recipients, or empty subject/body
        """
        mail = Mail.create(self.sender, self.recipients, self.subject, self.body)
        return mail.with_default_sender(self.username)


def read_environment(environ: Mapping[str, str]) -> Dict[str, str]:
    """Collect non-empty settings from environment variables."""
    values = {}
    for name, variable in ENV_VARS.items():
        value = environ.get(variable)
        if value:
            values[name] = value
    return values


def load_settings(
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
    use_dotenv: bool = True,
) -> ClientSettings:
    """Resolve settings with precedence flag > environment > default.

    Args:
        overrides: Explicit values (CLI flags); ``None`` and empty lists mean unset
        environ: Environment mapping; defaults to ``os.environ``
        use_dotenv: Load a ``.env`` file first (never overrides real variables)

    Raises:
        InvalidConfigError: A value fails validation
    """
    if environ is None:
        if use_dotenv:
            load_dotenv(override=False)
        environ = os.environ

    values: Dict[str, Any] = read_environment(environ)

    for name, value in (overrides or {}).items():
        if name not in ClientSettings.model_fields:
            continue
        if value is None or value == []:
            continue
        values[name] = value

    try:
        settings = ClientSettings(**values)

    except ValidationError as e:
        logger.error(f"Failed to validate settings: {e}")
        fields = sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]})
        raise InvalidConfigError(
            f"Invalid value for {', '.join(fields) or 'settings'}: "
            + "; ".join(err["msg"] for err in e.errors()),
            details={"fields": fields},
        ) from e

    logger.debug(
        "Settings resolved",
        extra={
            "server": f"{settings.host}:{settings.port}",
            "ssl": settings.ssl,
            "sources": sorted(values),
        },
    )
    return settings
