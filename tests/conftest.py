"""
Shared test fixtures and configuration for pytest
"""
from unittest.mock import patch

import pytest

from smtp_client.utils.config import ENV_VARS
from smtp_client.utils.console import reset_console

from .test_helpers import ConfigTestHelper, MailTestHelper, SMTPTestHelper


@pytest.fixture
def session_config():
    """STARTTLS session configuration on the submission port"""
    return ConfigTestHelper.create_session_config()


@pytest.fixture
def ssl_session_config():
    """Implicit TLS session configuration"""
    return ConfigTestHelper.create_session_config(port='465', use_direct_tls=True)


@pytest.fixture
def mail():
    """Message with no explicit sender and a single recipient"""
    return MailTestHelper.create_mail()


@pytest.fixture
def mock_smtp():
    """Mock smtplib client accepting every command"""
    return SMTPTestHelper.create_mock_smtp()


@pytest.fixture
def patched_smtp(mock_smtp):
    """Patch smtplib.SMTP so that connecting returns mock_smtp"""
    with patch('smtp_client.core.smtp.transport.smtplib.SMTP', return_value=mock_smtp) as factory:
        yield factory


@pytest.fixture
def patched_smtp_ssl(mock_smtp):
    """Patch smtplib.SMTP_SSL so that connecting returns mock_smtp"""
    with patch('smtp_client.core.smtp.transport.smtplib.SMTP_SSL', return_value=mock_smtp) as factory:
        yield factory


@pytest.fixture(autouse=True)
def clear_env_vars(monkeypatch):
    """Clear SMTP_* environment variables before each test"""
    for var in ENV_VARS.values():
        monkeypatch.delenv(var, raising=False)


@pytest.fixture(autouse=True)
def no_dotenv():
    """Never read a developer's .env file during tests"""
    with patch('smtp_client.utils.config.load_dotenv') as mock_load:
        yield mock_load


@pytest.fixture(autouse=True)
def fresh_console():
    """Recreate rich consoles so output goes to the captured streams"""
    reset_console()
    yield
    reset_console()
