"""
Tests for layered configuration loading

Tests cover:
- Precedence: flag > environment > default
- Comma-separated recipient lists
- Boolean and numeric parsing from the environment
- Validation errors mapped onto ConfigurationError
- Building SessionConfig and Mail
"""
import pytest

from smtp_client.utils.config import ClientSettings, load_settings, read_environment
from smtp_client.utils.errors import (
    ConfigurationError,
    InvalidConfigError,
    MissingRequiredFieldError,
)

from .test_helpers import ConfigTestHelper


class TestLoadSettings:
    """Tests for load_settings()"""

    def test_defaults(self):
        """Test the defaults with nothing configured"""
        settings = load_settings(environ={})

        assert settings.host == ''
        assert settings.port == '587'
        assert settings.ssl is False
        assert settings.recipients == []
        assert settings.timeout == 30.0
        assert settings.log_level == 'WARNING'

    def test_environment_values(self):
        """Test that SMTP_* variables are read"""
        settings = load_settings(environ=ConfigTestHelper.create_environment())

        assert settings.host == 'env.example.com'
        assert settings.port == '2525'
        assert settings.username == 'env-user'
        assert settings.password == 'env-pass'
        assert settings.recipients == ['one@example.com', 'two@example.com']

    def test_flags_override_environment(self):
        """Test that explicit values win over the environment"""
        settings = load_settings(
            {'host': 'flag.example.com', 'port': '465'},
            environ=ConfigTestHelper.create_environment(),
        )

        assert settings.host == 'flag.example.com'
        assert settings.port == '465'
        assert settings.username == 'env-user'

    def test_unset_flags_do_not_override(self):
        """Test that None and empty lists leave the environment value in place"""
        settings = load_settings(
            {'host': None, 'recipients': []},
            environ=ConfigTestHelper.create_environment(),
        )

        assert settings.host == 'env.example.com'
        assert settings.recipients == ['one@example.com', 'two@example.com']

    def test_unknown_overrides_ignored(self):
        """Test that keys without a matching setting are dropped"""
        settings = load_settings({'debug': True}, environ={})

        assert not hasattr(settings, 'debug')

    def test_empty_environment_value_is_unset(self):
        """Test that an empty variable falls back to the default"""
        settings = load_settings(environ={'SMTP_PORT': ''})

        assert settings.port == '587'

    @pytest.mark.parametrize('value,expected', [
        ('true', True),
        ('1', True),
        ('yes', True),
        ('false', False),
        ('0', False),
    ])
    def test_ssl_from_environment(self, value, expected):
        """Test boolean parsing of SMTP_SSL"""
        assert load_settings(environ={'SMTP_SSL': value}).ssl is expected

    def test_recipient_flags_split_and_merge(self):
        """Test repeated and comma-separated recipient flags"""
        settings = load_settings(
            {'recipients': ['a@example.com, b@example.com', 'c@example.com']},
            environ={},
        )

        assert settings.recipients == ['a@example.com', 'b@example.com', 'c@example.com']

    def test_invalid_timeout(self):
        """Test that a non-numeric timeout is a configuration error"""
        with pytest.raises(InvalidConfigError) as exc_info:
            load_settings(environ={'SMTP_TIMEOUT': 'soon'})

        assert exc_info.value.details['fields'] == ['timeout']
        assert 'timeout' in exc_info.value.message

    def test_invalid_log_level(self):
        """Test that unknown log levels are rejected"""
        with pytest.raises(InvalidConfigError):
            load_settings(environ={'SMTP_LOG_LEVEL': 'chatty'})

    def test_log_level_normalised(self):
        """Test that log levels are upper-cased"""
        assert load_settings(environ={'SMTP_LOG_LEVEL': 'debug'}).log_level == 'DEBUG'

    def test_dotenv_loaded_without_override(self, no_dotenv):
        """Test that .env is loaded only when reading the process environment"""
        load_settings()
        no_dotenv.assert_called_once_with(override=False)

        no_dotenv.reset_mock()
        load_settings(environ={})
        no_dotenv.assert_not_called()

    def test_process_environment(self, monkeypatch):
        """Test that os.environ is used when no mapping is given"""
        monkeypatch.setenv('SMTP_HOST', 'process.example.com')

        assert load_settings().host == 'process.example.com'


class TestReadEnvironment:
    """Tests for read_environment()"""

    def test_only_known_variables(self):
        """Test that unrelated variables are ignored"""
        values = read_environment({'SMTP_HOST': 'h', 'HOME': '/root', 'SMTP_BODY': ''})

        assert values == {'host': 'h'}


class TestClientSettings:
    """Tests for building session objects from settings"""

    def test_session_config(self):
        """Test that settings become a SessionConfig"""
        settings = ClientSettings(host='smtp.example.com', port='465', username='alice',
                                  password='secret', ssl=True, timeout=10)

        config = settings.to_session_config()

        assert config.endpoint.address == 'smtp.example.com:465'
        assert config.credentials.username == 'alice'
        assert config.use_direct_tls is True
        assert config.timeout == 10.0

    @pytest.mark.parametrize('missing', ['host', 'username'])
    def test_missing_server_fields(self, missing):
        """Test that host and username are required"""
        values = {'host': 'smtp.example.com', 'username': 'alice'}
        values[missing] = ''

        with pytest.raises(MissingRequiredFieldError) as exc_info:
            ClientSettings(**values).to_session_config()

        assert exc_info.value.message == 'SMTP server host, port and username required'
        assert exc_info.value.details['missing'] == [missing]

    def test_invalid_port(self):
        """Test that an out-of-range port is rejected when building the config"""
        settings = ClientSettings(host='smtp.example.com', port='70000', username='alice')

        with pytest.raises(InvalidConfigError):
            settings.to_session_config()

    def test_mail_sender_falls_back_to_username(self):
        """Test that the sender defaults to the username"""
        settings = ClientSettings(username='alice', recipients=['bob@example.com'],
                                  subject='Hi', body='Hello')

        assert settings.to_mail().sender == 'alice'

    def test_mail_explicit_sender(self):
        """Test that an explicit sender is kept"""
        settings = ClientSettings(username='alice', sender='noreply@example.com',
                                  recipients=['bob@example.com'], subject='Hi', body='Hello')

        assert settings.to_mail().sender == 'noreply@example.com'

    def test_mail_without_recipients(self):
        """Test that zero recipients is a configuration error"""
        settings = ClientSettings(username='alice', subject='Hi', body='Hello')

        with pytest.raises(ConfigurationError):
            settings.to_mail()

    def test_password_hidden_from_repr(self):
        """Test that the password is excluded from the settings repr"""
        settings = ClientSettings(username='alice', password='hunter2')

        assert 'hunter2' not in repr(settings)
