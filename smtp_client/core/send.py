"""Email send service - runs one SMTP session for one message."""

import time
from dataclasses import dataclass
from typing import Optional

from smtp_client.core.models.mail import Mail, SessionConfig
from smtp_client.core.smtp.session import SMTPSession
from smtp_client.core.smtp.transport import SecureChannel
from smtp_client.utils.errors import ErrorHandler, SMTPClientError
from smtp_client.utils.logging import get_logger, log_call

logger = get_logger(__name__)


@dataclass
class SendStats:
    """Statistics for a send operation."""

    recipients: int = 0
    duration: float = 0.0
    success: bool = False


@log_call
@ErrorHandler.wrap
def send_mail(
    config: SessionConfig,
    mail: Mail,
    *,
    channel: Optional[SecureChannel] = None,
    debug: bool = False,
) -> SendStats:
    """Send ``mail`` using ``config``. No retries: the first error propagates.

    Args:
        config: Resolved session configuration
        mail: Message to send; an empty sender falls back to the username
        channel: Optional channel override (tests)
        debug: Print the SMTP protocol trace

    Returns:
        SendStats for the successful send

    Raises:
        SMTPClientError: Any transport or protocol failure; unexpected
            exceptions are wrapped as SMTPClientError
    """
    stats = SendStats(recipients=len(mail.recipients))
    start_time = time.monotonic()

    logger.info(
        "Sending email",
        extra={
            "server": config.endpoint.address,
            "recipients": stats.recipients,
            "subject": mail.subject[:50],
        },
    )

    session = SMTPSession(config, channel=channel, debug=debug)

    try:
        session.send(mail)

    except SMTPClientError as e:
        logger.error(
            "Failed to send email",
            extra={
                "server": config.endpoint.address,
                "duration": round(time.monotonic() - start_time, 2),
                "error": e.message,
            },
        )
        raise

    stats.duration = time.monotonic() - start_time
    stats.success = True

    logger.info(
        "Email sent successfully",
        extra={
            "server": config.endpoint.address,
            "recipients": stats.recipients,
            "duration": round(stats.duration, 2),
        },
    )

    return stats
