"""
Registration and login input validation.

Pure functions: they never raise on bad input and never touch the
database. Results carry the normalized values so a caller can
re-populate a form.

- Username: 5–30 chars, letters, numbers, underscores only.
- Email: required, valid format.
- Password: 8–128 chars.
"""

import re
from dataclasses import dataclass
from typing import List, Optional

from email_validator import EmailNotValidError, validate_email

from buenavista.errors import DuplicateKeyError, FieldValidationError

USERNAME_MIN = 5
USERNAME_MAX = 30
PASSWORD_MIN = 8
PASSWORD_MAX = 128
USERNAME_PATTERN = re.compile(r'^[A-Za-z0-9_]+$')

USERNAME_TAKEN = 'That username is already taken. Please choose another.'
EMAIL_TAKEN = 'That email is already registered. Sign in or use a different email.'
GENERIC_FAILURE = 'Something went wrong. Please try again.'
LOGIN_INCOMPLETE = 'Please enter your username or email and password.'


@dataclass
class RegisterResult:
    valid: bool
    errors: List[str]
    username: str
    email: str
    password: str


@dataclass
class LoginResult:
    valid: bool
    message: Optional[str] = None


def is_email(value: str) -> bool:
    """Format check only; no DNS lookups."""
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def _username_errors(username: str) -> List[str]:
    if not username:
        return ['Username is required.']
    errors = []
    if len(username) < USERNAME_MIN:
        errors.append(f'Username must be at least {USERNAME_MIN} characters.')
    if len(username) > USERNAME_MAX:
        errors.append(f'Username must be at most {USERNAME_MAX} characters.')
    if not USERNAME_PATTERN.match(username):
        errors.append(
            'Username can only contain letters, numbers, and underscores '
            '(no spaces or special characters).'
        )
    return errors


def _email_errors(email: str) -> List[str]:
    if not email:
        return ['Email is required.']
    if not is_email(email):
        return ['Please enter a valid email address.']
    return []


def _password_errors(password: str) -> List[str]:
    if not password:
        return ['Password is required.']
    errors = []
    if len(password) < PASSWORD_MIN:
        errors.append(f'Password must be at least {PASSWORD_MIN} characters.')
    if len(password) > PASSWORD_MAX:
        errors.append(f'Password must be at most {PASSWORD_MAX} characters.')
    return errors


def validate_register(username: Optional[str], email: Optional[str],
                      password: Optional[str]) -> RegisterResult:
    """
    Validate registration input.

    Every violated rule contributes its own message, so a username that is
    both too short and contains special characters reports both.
    """
    username = (username or '').strip()
    email = (email or '').strip().lower()
    password = (password or '').strip()

    errors = _username_errors(username) + _email_errors(email) + _password_errors(password)

    return RegisterResult(
        valid=not errors,
        errors=errors,
        username=username,
        email=email,
        password=password,
    )


def validate_login(username_or_email: Optional[str], password: Optional[str]) -> LoginResult:
    """Both fields required; one generic message that names neither."""
    if not (username_or_email or '').strip() or not (password or '').strip():
        return LoginResult(valid=False, message=LOGIN_INCOMPLETE)
    return LoginResult(valid=True)


def map_register_error(err: Exception) -> str:
    """Translate a registration failure into user-facing text."""
    if isinstance(err, DuplicateKeyError):
        return EMAIL_TAKEN if err.key_pattern.get('email') else USERNAME_TAKEN

    if isinstance(err, FieldValidationError):
        return err.errors.get('username') or err.errors.get('email') or err.message

    message = getattr(err, 'message', None) or str(err)
    if 'UserExistsError' in message:
        return USERNAME_TAKEN
    return message or GENERIC_FAILURE
