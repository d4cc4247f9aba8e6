"""SMTP protocol implementation.

- constants: reply codes, ports, timeouts and step names
- transport: DirectTLSChannel / StartTLSChannel connection setup
- session: SMTPSession state machine driving one send

Most callers should use ``smtp_client.core.send.send_mail``.
"""
