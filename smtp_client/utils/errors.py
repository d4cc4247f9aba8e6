"""Centralized error handling module."""

from enum import Enum
from functools import wraps
from typing import Any, Dict, Optional

from smtp_client.utils.logging import get_logger

_logger = None


def _get_logger():
    """Get logger with lazy initialisation."""
    global _logger
    if _logger is None:
        _logger = get_logger(__name__)
    return _logger


## Error Categories


class ErrorCategory(Enum):
    """Categories of errors for better handling."""

    CONFIGURATION = "configuration"
    TRANSPORT = "transport"
    PROTOCOL = "protocol"
    UNKNOWN = "unknown"


## Custom Exceptions


class SMTPClientError(Exception):
    """Base exception for all smtp-client errors."""

    category = ErrorCategory.UNKNOWN
    user_message = "An error occurred"

    def __init__(
        self, message: str | None = None, details: Dict[str, Any] | None = None
    ):
        """Initialise SMTPClientError with optional message and details."""
        self.message = message or self.user_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error details to a dictionary."""
        return {
            "error_type": self.__class__.__name__,
            "category": self.category.value,
            "message": self.message,
            "details": self.details,
        }


## Configuration Errors


class ConfigurationError(SMTPClientError):
    """Base exception for configuration-related errors.

    Always raised before any network activity takes place.
    """

    category = ErrorCategory.CONFIGURATION
    user_message = "A configuration error occurred"


class MissingRequiredFieldError(ConfigurationError):
    """Exception for missing required fields."""

    user_message = "A required field is missing"


class InvalidConfigError(ConfigurationError):
    """Exception for invalid configuration settings."""

    user_message = "Invalid configuration settings"


## Transport Errors


class TransportError(SMTPClientError):
    """Base exception for connection-level failures (DNS, refused, lost)."""

    category = ErrorCategory.TRANSPORT
    user_message = "Failed to connect to SMTP server"


class NetworkTimeoutError(TransportError):
    """Exception for network timeout errors."""

    user_message = "The connection timed out"


class TLSHandshakeError(TransportError):
    """Exception for TLS handshake and certificate verification failures."""

    user_message = "TLS handshake with SMTP server failed"


class PayloadWriteError(TransportError):
    """Exception for I/O failures while streaming the message payload."""

    user_message = "Failed to write message data"


## Protocol Errors


class ProtocolError(SMTPClientError):
    """Server returned a negative or unexpected reply to a session step."""

    category = ErrorCategory.PROTOCOL
    user_message = "SMTP server rejected the request"

    def __init__(
        self,
        message: str | None = None,
        details: Dict[str, Any] | None = None,
        *,
        step: Optional[str] = None,
        code: Optional[int] = None,
        reply: Optional[str] = None,
    ):
        details = dict(details or {})
        if step is not None:
            details.setdefault("step", step)
        if code is not None:
            details.setdefault("code", code)
        if reply is not None:
            details.setdefault("reply", reply)

        self.step = details.get("step")
        self.code = details.get("code")
        self.reply = details.get("reply")

        if message is None and self.step:
            message = f"{self.step}: {self._describe()}"

        super().__init__(message, details)

    def _describe(self) -> str:
        parts = [str(part) for part in (self.code, self.reply) if part]
        return " ".join(parts) or self.user_message


class StartTLSError(ProtocolError):
    """STARTTLS not offered or refused by the server."""

    user_message = "Server refused to start TLS"


class AuthenticationRejectedError(ProtocolError):
    """Server rejected the credentials or does not offer AUTH."""

    user_message = "Authentication failed"


class SenderRejectedError(ProtocolError):
    """Server rejected MAIL FROM."""

    user_message = "Sender address rejected"


class RecipientRejectedError(ProtocolError):
    """Server rejected one RCPT TO. The offending address is kept in ``recipient``."""

    user_message = "Recipient address rejected"

    def __init__(self, recipient: str, **kwargs):
        self.recipient = recipient
        details = dict(kwargs.pop("details", None) or {})
        details["recipient"] = recipient
        step = kwargs.pop("step", "declare recipients")
        super().__init__(details=details, step=step, **kwargs)

    def _describe(self) -> str:
        return f"recipient {self.recipient} rejected: {super()._describe()}"


class DataRefusedError(ProtocolError):
    """Server refused to enter the DATA phase."""

    user_message = "Server refused message data"


class MessageRejectedError(ProtocolError):
    """Server did not accept the message after the end-of-data marker."""

    user_message = "Server rejected the message"


class SessionStateError(ProtocolError):
    """A session step was invoked out of order."""

    user_message = "SMTP session step invoked out of order"


## Error Handler


class ErrorHandler:
    """Centralized error handling and logging."""

    @staticmethod
    def handle(
        error: Exception, context: str = "", log_traceback: bool = False
    ) -> Dict[str, Any]:
        """Handle errors with logging and return a serialisable description."""
        if isinstance(error, SMTPClientError):
            _get_logger().error(f"{context}: {error.message}", extra=error.details)
            if log_traceback:
                _get_logger().exception(error)
            return error.to_dict()
        else:
            _get_logger().error(f"{context}: {str(error)}")
            if log_traceback:
                _get_logger().exception(error)
            return {
                "error_type": "UnknownError",
                "category": ErrorCategory.UNKNOWN.value,
                "message": str(error),
                "details": {"context": context},
            }

    @staticmethod
    def wrap(func):
        """Decorator turning unexpected exceptions into SMTPClientError."""

        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)

            except SMTPClientError:
                raise

            except Exception as e:
                _get_logger().exception(f"Unexpected error in {func.__name__}")
                raise SMTPClientError(
                    message=f"Unexpected error: {str(e)}",
                    details={"function": func.__name__},
                ) from e

        return wrapper


## Utility Functions


def format_error_message(error: Exception) -> str:
    """Format an error message for display."""
    if isinstance(error, SMTPClientError):
        return error.message
    else:
        return f"Unexpected error: {error}"
