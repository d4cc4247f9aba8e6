"""Centralized path definitions for the smtp-client application."""

from pathlib import Path

# Base application directory
APP_DIR = Path.home() / ".smtp-client"

# Subdirectories
LOGS_DIR = APP_DIR / "logs"

# Specific files
LOG_FILE_NAME = "smtp-client.log"
