"""Argument parser configuration for the smtp-client CLI"""

import argparse

from smtp_client import __version__
from smtp_client.utils.config import ENV_VARS
from smtp_client.utils.paths import LOGS_DIR


def _env_help(text: str, name: str) -> str:
    return f"{text} (env: {ENV_VARS[name]})"


## Argument Adding Utilities

def add_server_arguments(parser: argparse.ArgumentParser) -> None:
    """Add server and authentication arguments to the parser."""

    server_group = parser.add_argument_group("server", "SMTP server and credentials")

    server_group.add_argument(
        "-H", "--host",
        metavar="HOSTNAME",
        help=_env_help("HOSTNAME for the SMTP server", "host")
    )
    server_group.add_argument(
        "-p", "--port",
        metavar="PORT",
        help=_env_help("PORT for the SMTP server (default: 587)", "port")
    )
    server_group.add_argument(
        "-u", "--user",
        dest="username",
        metavar="USERNAME",
        help=_env_help("USERNAME for authentication", "username")
    )
    server_group.add_argument(
        "--password",
        metavar="PASSWORD",
        help=_env_help("PASSWORD for authentication", "password")
    )
    server_group.add_argument(
        "--ssl",
        action="store_true",
        default=None,
        help=_env_help("use SSL/TLS (default: STARTTLS)", "ssl")
    )
    server_group.add_argument(
        "--timeout",
        type=float,
        metavar="SECONDS",
        help=_env_help("connect and command timeout (default: 30)", "timeout")
    )

def add_message_arguments(parser: argparse.ArgumentParser) -> None:
    """Add message content arguments to the parser."""

    message_group = parser.add_argument_group("message", "Message to send")

    message_group.add_argument(
        "-t", "--recipients",
        action="append",
        metavar="LIST",
        help=_env_help("LIST of recipients, repeatable or comma-separated", "recipients")
    )
    message_group.add_argument(
        "-f", "--sender",
        metavar="EMAIL",
        help=_env_help("EMAIL address of sender (default: USERNAME)", "sender")
    )
    message_group.add_argument(
        "-s", "--subject",
        metavar="SUBJECT",
        help=_env_help("SUBJECT for email message", "subject")
    )
    message_group.add_argument(
        "-b", "--body",
        metavar="BODY",
        help=_env_help("BODY for email message", "body")
    )

def add_output_arguments(parser: argparse.ArgumentParser) -> None:
    """Add logging and diagnostics arguments to the parser."""

    output_group = parser.add_argument_group("output", "Logging and diagnostics")

    output_group.add_argument(
        "--debug",
        action="store_true",
        help="Print the SMTP protocol trace to stderr"
    )
    output_group.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help=_env_help("Console log level (default: WARNING)", "log_level")
    )
    output_group.add_argument(
        "--log-dir",
        nargs="?",
        const=str(LOGS_DIR),
        metavar="DIR",
        help=_env_help(f"Write JSON logs to DIR (default DIR: {LOGS_DIR})", "log_dir")
    )


## Parser Setup

def setup_argument_parser() -> argparse.ArgumentParser:
    """Setup and return the argument parser."""

    parser = argparse.ArgumentParser(
        prog="smtp-client",
        description="Send test messages through SMTP",
        epilog=(
            "Examples:\n"
            "  %(prog)s -H smtp.example.com -u alice --password secret \\\n"
            "      -t bob@example.com -s Hi -b Hello\n"
            "  %(prog)s -H smtp.example.com -p 465 --ssl -u alice -t a@x.org,b@x.org -s Hi -b Hello\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    add_server_arguments(parser)
    add_message_arguments(parser)
    add_output_arguments(parser)

    return parser
