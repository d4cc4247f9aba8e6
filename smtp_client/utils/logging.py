"""Logging utility for the smtp-client application"""

import json
import logging
import re
from datetime import datetime, timezone
from functools import wraps
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, MutableMapping, Optional

from rich.logging import RichHandler

from .console import get_error_console
from .paths import LOG_FILE_NAME

ROOT_LOGGER_NAME = "smtp_client"

# Attributes every LogRecord carries; only caller-supplied extras are masked.
_RECORD_ATTRS = set(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime"}


## Custom JSON Formatter


class JSONFormatter(logging.Formatter):
    """Custom JSON formatter for log records."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
        }

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS
        }
        if extra:
            log_entry["context"] = extra

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class ContextAdapter(logging.LoggerAdapter):
    """Logger adapter to add contextual information."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        if "extra" not in kwargs:
            kwargs["extra"] = {}

        kwargs["extra"].update(self.extra)
        return msg, kwargs


## Log Masking


class SensitiveDataMasker:
    """Utility to mask sensitive data in log messages."""

    PATTERNS = {
        "password": re.compile(
            r'(password["\']?\s*[:=]\s*["\']?)([^"\'}\s,]+)', re.IGNORECASE
        ),
        "secret": re.compile(
            r'(secret["\']?\s*[:=]\s*["\']?)([^"\'}\s,]+)', re.IGNORECASE
        ),
        "authorization": re.compile(
            r'(authorization["\']?\s*[:=]\s*["\']?)([^"\'}\s,]+)', re.IGNORECASE
        ),
        "auth_plain": re.compile(r"(AUTH PLAIN\s+)(\S+)", re.IGNORECASE),
    }

    SENSITIVE_FIELDS = {
        "password",
        "passwd",
        "pwd",
        "secret",
        "authorization",
        "credential",
        "credentials",
    }

    MASK_STRATEGIES = {
        "full": lambda x: "[REDACTED]",
        "partial": lambda x: x[:2] + "*" * (len(x) - 4) + x[-2:]
        if len(x) > 6
        else "[REDACTED]",
    }

    def __init__(self, strategy: str = "full"):
        """Initialize masker with specified strategy."""

        self.strategy = strategy
        self.mask_func = self.MASK_STRATEGIES[strategy]

    def mask_string(self, text: str) -> str:
        """Mask sensitive data in a string message."""

        if not text:
            return text

        masked = text
        for pattern in self.PATTERNS.values():
            masked = pattern.sub(
                lambda m: m.group(1) + self.mask_func(m.group(2)), masked
            )

        return masked

    def mask_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Mask sensitive data in a dictionary."""

        masked = {}

        for key, value in data.items():
            if str(key).lower() in self.SENSITIVE_FIELDS:
                masked[key] = self.mask_func(str(value))
            elif isinstance(value, dict):
                masked[key] = self.mask_dict(value)
            elif isinstance(value, str):
                masked[key] = self.mask_string(value)
            else:
                masked[key] = value

        return masked


class SensitiveDataFilter(logging.Filter):
    """Logging filter to mask sensitive data in log records."""

    def __init__(self, strategy: str = "full"):
        """Initialize filter with specified masking strategy."""

        super().__init__()
        self.masker = SensitiveDataMasker(strategy)

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter log record to mask sensitive data."""

        if isinstance(record.msg, str):
            record.msg = self.masker.mask_string(record.msg)

        for key, value in list(record.__dict__.items()):
            if key in _RECORD_ATTRS:
                continue
            if key.lower() in self.masker.SENSITIVE_FIELDS:
                setattr(record, key, self.masker.mask_func(str(value)))
            elif isinstance(value, str):
                setattr(record, key, self.masker.mask_string(value))
            elif isinstance(value, dict):
                setattr(record, key, self.masker.mask_dict(value))

        return True


## Main Log Manager


class LogManager:
    """Manages logging configuration and provides logger instances."""

    def __init__(self, log_level: str = "WARNING", log_dir: Optional[Path] = None):
        self.log_level = self._parse_level(log_level)
        self.log_dir = log_dir
        self.root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        self.root_logger.setLevel(logging.DEBUG)
        self.root_logger.propagate = False
        self._setup_handlers()

    @staticmethod
    def _parse_level(level: str) -> int:
        try:
            return getattr(logging, level.upper())
        except AttributeError as e:
            raise ValueError(f"Invalid logging level: {level}") from e

    def _setup_handlers(self) -> None:
        """Setup console and optional file handlers with sensitive data filtering."""

        from .errors import InvalidConfigError

        sensitive_filter = SensitiveDataFilter(strategy="full")

        for handler in list(self.root_logger.handlers):
            self.root_logger.removeHandler(handler)
            handler.close()

        console_handler = RichHandler(
            console=get_error_console(),
            show_time=True,
            show_path=False,
            markup=False,
            rich_tracebacks=True,
        )
        console_handler.setLevel(self.log_level)
        console_handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
        console_handler.addFilter(sensitive_filter)
        self.root_logger.addHandler(console_handler)

        if self.log_dir is None:
            return

        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                self.log_dir / LOG_FILE_NAME,
                maxBytes=5_242_880,
                backupCount=5,
                encoding="utf-8",
            )

        except OSError as e:
            raise InvalidConfigError(
                f"Failed to create log file in {self.log_dir}: {str(e)}"
            ) from e

        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(JSONFormatter())
        file_handler.addFilter(sensitive_filter)
        self.root_logger.addHandler(file_handler)

    def get_logger(
        self, name: Optional[str] = None, **context
    ) -> logging.Logger | ContextAdapter:
        """Get a logger with optional context."""

        if name and name != ROOT_LOGGER_NAME and not name.startswith(
            f"{ROOT_LOGGER_NAME}."
        ):
            name = f"{ROOT_LOGGER_NAME}.{name}"

        logger = logging.getLogger(name or ROOT_LOGGER_NAME)

        if context:
            return ContextAdapter(logger, context)

        return logger

    def set_level(self, level: str):
        """Set console logging level at runtime"""

        self.log_level = self._parse_level(level)

        for handler in self.root_logger.handlers:
            if isinstance(handler, RichHandler):
                handler.setLevel(self.log_level)


## Decorators for Logging


def log_call(func):
    """Decorator to log function calls and their duration at debug level."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        logger = logging.getLogger(ROOT_LOGGER_NAME)
        func_name = f"{func.__module__}.{func.__qualname__}"
        logger.debug(f"-> Entering {func_name}")
        start_time = datetime.now()

        try:
            result = func(*args, **kwargs)
            duration = (datetime.now() - start_time).total_seconds()
            logger.debug(f"<- Exiting {func_name} (Duration: {duration:.3f}s)")
            return result

        except Exception as e:
            duration = (datetime.now() - start_time).total_seconds()
            logger.debug(f"<- Error in {func_name} after {duration:.3f}s: {e}")
            raise

    return wrapper


## Module-level LogManager Instance and Helper Functions

_log_manager: Optional[LogManager] = None


def init_logging(
    log_level: str = "WARNING", log_dir: Optional[Path] = None
) -> LogManager:
    """Initialize (or reconfigure) the logging system and return the LogManager."""

    global _log_manager

    if _log_manager is None or _log_manager.log_dir != log_dir:
        _log_manager = LogManager(log_level, log_dir)
    else:
        _log_manager.set_level(log_level)

    return _log_manager


def get_logger(
    name: Optional[str] = None, **context
) -> logging.Logger | ContextAdapter:
    """Get a logger instance with optional context."""

    global _log_manager
    if _log_manager is None:
        _log_manager = init_logging()

    return _log_manager.get_logger(name, **context)
