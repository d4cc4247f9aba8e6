"""Main CLI entry point."""

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from smtp_client.core.send import send_mail
from smtp_client.utils.config import load_settings
from smtp_client.utils.console import (
    get_error_console,
    print_error,
    print_status,
    print_success,
)
from smtp_client.utils.errors import (
    ConfigurationError,
    ErrorHandler,
    SMTPClientError,
    format_error_message,
)
from smtp_client.utils.logging import get_logger, init_logging

from .cli_parser import setup_argument_parser

logger = get_logger(__name__)

# Parsed arguments that are not settings
_NON_SETTINGS = {"debug"}


def _args_to_dict(args) -> Dict[str, Any]:
    """Convert argparse Namespace to a dictionary of explicitly given settings."""
    return {
        key: value
        for key, value in vars(args).items()
        if key not in _NON_SETTINGS and value is not None
    }


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 = sent, 1 = error, 130 = interrupted)
    """
    parser = setup_argument_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(_args_to_dict(args))
        init_logging(
            settings.log_level,
            Path(settings.log_dir).expanduser() if settings.log_dir else None,
        )
        config = settings.to_session_config()
        mail = settings.to_mail()

    except ConfigurationError as e:
        logger.debug(f"Configuration error: {e.message}", extra=e.details)
        parser.print_usage(sys.stderr)
        print_error(format_error_message(e))
        return 1

    mode = "SSL/TLS" if config.use_direct_tls else "STARTTLS"
    print_status(f'Using {mode} on port "{config.endpoint.port}"')

    try:
        send_mail(config, mail, debug=args.debug)

    except SMTPClientError as e:
        print_error(format_error_message(e))
        return 1

    except KeyboardInterrupt:
        get_error_console().print("\nInterrupted by user", style="yellow", soft_wrap=True)
        return 130  # Standard SIGINT exit code

    except Exception as e:
        ErrorHandler.handle(e, "Fatal error", log_traceback=True)
        print_error(format_error_message(e))
        return 1

    print_success("Mail sent successfully")
    return 0


if __name__ == "__main__":
    sys.exit(main())
