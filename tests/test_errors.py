"""
Tests for the error hierarchy and error handling utilities

Tests cover:
- Error categories and to_dict()
- Protocol error messages built from step, code and reply
- ErrorHandler.handle() and ErrorHandler.wrap()
- format_error_message()
"""
import pytest

from smtp_client.utils.errors import (
    AuthenticationRejectedError,
    ConfigurationError,
    ErrorCategory,
    ErrorHandler,
    MissingRequiredFieldError,
    NetworkTimeoutError,
    ProtocolError,
    RecipientRejectedError,
    SMTPClientError,
    TransportError,
    format_error_message,
)


class TestErrorHierarchy:
    """Tests for the exception classes"""

    def test_categories(self):
        """Test that each family reports its category"""
        assert MissingRequiredFieldError().category is ErrorCategory.CONFIGURATION
        assert NetworkTimeoutError().category is ErrorCategory.TRANSPORT
        assert AuthenticationRejectedError().category is ErrorCategory.PROTOCOL

    def test_families_are_distinct(self):
        """Test that configuration, transport and protocol errors don't overlap"""
        assert not issubclass(ConfigurationError, (TransportError, ProtocolError))
        assert not issubclass(TransportError, ProtocolError)

    def test_default_message(self):
        """Test that the class message is used when none is given"""
        assert NetworkTimeoutError().message == 'The connection timed out'

    def test_to_dict(self):
        """Test serialisation of an error"""
        error = MissingRequiredFieldError('host required', details={'missing': ['host']})

        assert error.to_dict() == {
            'error_type': 'MissingRequiredFieldError',
            'category': 'configuration',
            'message': 'host required',
            'details': {'missing': ['host']},
        }


class TestProtocolError:
    """Tests for ProtocolError messages"""

    def test_message_from_step_code_and_reply(self):
        """Test that the server reply is included verbatim"""
        error = AuthenticationRejectedError(
            step='authenticate', code=535, reply='5.7.8 Authentication credentials invalid'
        )

        assert str(error) == 'authenticate: 535 5.7.8 Authentication credentials invalid'
        assert error.details == {
            'step': 'authenticate',
            'code': 535,
            'reply': '5.7.8 Authentication credentials invalid',
        }

    def test_explicit_message_wins(self):
        """Test that a given message is not rewritten"""
        error = ProtocolError('custom', step='declare sender', code=550)

        assert error.message == 'custom'
        assert error.code == 550

    def test_step_without_reply(self):
        """Test the fallback text when the server gave no reply"""
        assert ProtocolError(step='connect').message == 'connect: SMTP server rejected the request'

    def test_recipient_rejected(self):
        """Test that the rejected address is part of the message"""
        error = RecipientRejectedError('bob@example.com', code=550, reply='5.1.1 User unknown')

        assert error.recipient == 'bob@example.com'
        assert error.step == 'declare recipients'
        assert error.message == 'declare recipients: recipient bob@example.com rejected: 550 5.1.1 User unknown'
        assert error.details['recipient'] == 'bob@example.com'


class TestErrorHandler:
    """Tests for ErrorHandler"""

    def test_handle_client_error(self):
        """Test that client errors are described by to_dict()"""
        error = TransportError('connect: refused')

        result = ErrorHandler.handle(error, 'send')

        assert result == error.to_dict()

    def test_handle_unknown_error(self):
        """Test that foreign exceptions are described as unknown"""
        result = ErrorHandler.handle(ValueError('bad'), 'send')

        assert result['error_type'] == 'UnknownError'
        assert result['category'] == 'unknown'
        assert result['details'] == {'context': 'send'}

    def test_wrap_passes_client_errors(self):
        """Test that SMTPClientError subclasses pass through unchanged"""
        @ErrorHandler.wrap
        def fail():
            raise NetworkTimeoutError()

        with pytest.raises(NetworkTimeoutError):
            fail()

    def test_wrap_converts_unexpected_errors(self):
        """Test that other exceptions become SMTPClientError"""
        @ErrorHandler.wrap
        def fail():
            raise KeyError('x')

        with pytest.raises(SMTPClientError) as exc_info:
            fail()

        assert exc_info.value.details == {'function': 'fail'}
        assert isinstance(exc_info.value.__cause__, KeyError)


class TestFormatErrorMessage:
    """Tests for format_error_message()"""

    def test_client_error(self):
        assert format_error_message(TransportError('connect: refused')) == 'connect: refused'

    def test_other_error(self):
        assert format_error_message(RuntimeError('boom')) == 'Unexpected error: boom'
