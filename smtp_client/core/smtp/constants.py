"""SMTP constants and configuration values."""


class SMTPResponse:
    """Standard SMTP response codes."""

    # 2xx Success
    AUTH_SUCCESSFUL = 235  # Authentication successful
    OK = 250  # Requested mail action okay, completed
    USER_NOT_LOCAL = 251  # User not local; will forward

    # 3xx Intermediate
    START_MAIL = 354  # Start mail input; end with <CRLF>.<CRLF>

    RECIPIENT_ACCEPTED = (OK, USER_NOT_LOCAL)


class Timeouts:
    """Timeout values for SMTP operations (in seconds)."""

    DEFAULT = 30.0  # Connect and per-command socket timeout


class SMTPPorts:
    """Standard SMTP port numbers."""

    SUBMISSION = "587"  # STARTTLS (recommended)


class SessionSteps:
    """Step names used in error messages and log context."""

    CONNECT = "connect"
    SECURE = "start TLS"
    AUTHENTICATE = "authenticate"
    DECLARE_SENDER = "declare sender"
    DECLARE_RECIPIENTS = "declare recipients"
    BEGIN_DATA = "begin data"
    TRANSFER = "transfer data"
    FINISH = "quit"
