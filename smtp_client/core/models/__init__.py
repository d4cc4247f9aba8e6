"""Domain models."""

from .mail import Credentials, Mail, ServerEndpoint, SessionConfig

__all__ = ["Credentials", "Mail", "ServerEndpoint", "SessionConfig"]
