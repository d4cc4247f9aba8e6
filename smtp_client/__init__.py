"""Command-line SMTP client: compose one message and send it over STARTTLS or implicit TLS."""

__version__ = "0.1.0"
