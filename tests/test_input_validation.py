"""
Tests for registration/login input validation and error mapping.

Covers: per-rule error messages, trimming and normalization, the login
presence check, and translation of store failures into user text.
"""

from buenavista.errors import BuenaVistaError, DuplicateKeyError, FieldValidationError
from buenavista.validation import (
    EMAIL_TAKEN,
    GENERIC_FAILURE,
    LOGIN_INCOMPLETE,
    USERNAME_TAKEN,
    is_email,
    map_register_error,
    validate_login,
    validate_register,
)

SPECIAL_CHARS_MSG = (
    'Username can only contain letters, numbers, and underscores '
    '(no spaces or special characters).'
)


class TestUsernameValidation:
    """Tests for username rules."""

    def test_valid_input_passes(self):
        result = validate_register('user_123', 'user@example.com', 'password123')
        assert result.valid is True
        assert result.errors == []

    def test_short_username_reports_only_length(self):
        """'ab' is too short but has no special characters."""
        result = validate_register('ab', 'user@example.com', 'password123')
        assert result.valid is False
        assert 'Username must be at least 5 characters.' in result.errors
        assert SPECIAL_CHARS_MSG not in result.errors

    def test_short_username_with_special_chars_reports_both(self):
        result = validate_register('a b!', 'user@example.com', 'password123')
        assert 'Username must be at least 5 characters.' in result.errors
        assert SPECIAL_CHARS_MSG in result.errors

    def test_long_username_rejected(self):
        result = validate_register('u' * 31, 'user@example.com', 'password123')
        assert 'Username must be at most 30 characters.' in result.errors

    def test_boundary_lengths_accepted(self):
        assert validate_register('u' * 5, 'user@example.com', 'password123').valid
        assert validate_register('u' * 30, 'user@example.com', 'password123').valid

    def test_missing_username(self):
        result = validate_register(None, 'user@example.com', 'password123')
        assert result.errors == ['Username is required.']


class TestEmailValidation:
    """Tests for email rules."""

    def test_missing_email(self):
        result = validate_register('user_123', '', 'password123')
        assert result.errors == ['Email is required.']

    def test_invalid_email(self):
        result = validate_register('user_123', 'not-an-email', 'password123')
        assert result.errors == ['Please enter a valid email address.']

    def test_email_is_lowercased(self):
        result = validate_register('user_123', '  User@Example.COM ', 'password123')
        assert result.email == 'user@example.com'

    def test_is_email(self):
        assert is_email('someone@example.com')
        assert not is_email('someone@')
        assert not is_email('@example.com')


class TestPasswordValidation:
    """Tests for password rules."""

    def test_short_password(self):
        result = validate_register('user_123', 'user@example.com', 'short')
        assert result.errors == ['Password must be at least 8 characters.']

    def test_long_password(self):
        result = validate_register('user_123', 'user@example.com', 'p' * 129)
        assert result.errors == ['Password must be at most 128 characters.']

    def test_missing_password(self):
        result = validate_register('user_123', 'user@example.com', None)
        assert result.errors == ['Password is required.']


class TestNormalization:
    """Trimmed fields equal the input without surrounding whitespace."""

    def test_fields_are_trimmed(self):
        result = validate_register('  user_123 ', ' user@example.com ', ' password123  ')
        assert result.valid is True
        assert result.username == 'user_123'
        assert result.email == 'user@example.com'
        assert result.password == 'password123'

    def test_every_violation_reported(self):
        result = validate_register('ab', 'nope', 'short')
        assert result.valid is False
        assert len(result.errors) == 3


class TestLoginValidation:
    """The login check only asks for both fields."""

    def test_both_present(self):
        assert validate_login('user_123', 'whatever').valid is True

    def test_missing_password(self):
        result = validate_login('user_123', '')
        assert result.valid is False
        assert result.message == LOGIN_INCOMPLETE

    def test_whitespace_only_username(self):
        assert validate_login('   ', 'password123').message == LOGIN_INCOMPLETE


class TestMapRegisterError:
    """Store failures become user-facing messages."""

    def test_duplicate_username(self):
        assert map_register_error(DuplicateKeyError({'username': 1})) == USERNAME_TAKEN

    def test_duplicate_email(self):
        assert map_register_error(DuplicateKeyError({'email': 1})) == EMAIL_TAKEN

    def test_field_validation_prefers_username(self):
        err = FieldValidationError({'email': 'Bad email.', 'username': 'Bad username.'})
        assert map_register_error(err) == 'Bad username.'

    def test_field_validation_falls_back_to_email(self):
        assert map_register_error(FieldValidationError({'email': 'Bad email.'})) == 'Bad email.'

    def test_field_validation_without_known_fields(self):
        assert map_register_error(FieldValidationError({}, 'Nope.')) == 'Nope.'

    def test_user_exists_message(self):
        err = BuenaVistaError('UserExistsError: A user with the given username is already registered')
        assert map_register_error(err) == USERNAME_TAKEN

    def test_other_error_passes_message_through(self):
        assert map_register_error(ValueError('boom')) == 'boom'

    def test_empty_error_gets_generic_message(self):
        assert map_register_error(ValueError()) == GENERIC_FAILURE
