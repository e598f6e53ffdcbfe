"""
Timing-safe credential verification and auth audit helpers.

bcrypt always runs, against a dummy hash when the account does not
exist, so response time does not reveal which usernames are registered.
"""

import logging
from typing import Optional

from flask import g, request

from buenavista.extensions import bcrypt
from buenavista.logging_config import audit_log, sanitize_log_value

DUMMY_HASH: Optional[str] = None


def init_dummy_hash(app) -> None:
    """
    Hash a throwaway password with the configured cost factor.

    Called from the app factory inside an app context so bcrypt sees
    BCRYPT_LOG_ROUNDS.
    """
    global DUMMY_HASH
    DUMMY_HASH = bcrypt.generate_password_hash('dummy_password_for_timing').decode('utf-8')


def verify_credentials(username_or_email: str, password: str) -> Optional[dict]:
    """
    Return the user when the password matches, else None.

    The caller MUST NOT reveal why verification failed.
    """
    from buenavista.auth.models import get_user_by_username_or_email  # Deferred import avoids circular dependency

    user = get_user_by_username_or_email(username_or_email)

    if user is not None:
        if bcrypt.check_password_hash(user['password_hash'], password):
            return user
        return None

    bcrypt.check_password_hash(DUMMY_HASH, password)
    return None


def get_request_context() -> dict:
    """ip, user agent and request id for audit records."""
    return {
        'ip': request.remote_addr or 'unknown',
        'user_agent': sanitize_log_value(
            request.headers.get('User-Agent', 'unknown'),
            max_length=200,
        ),
        'request_id': g.get('request_id', 'unknown'),
    }


def log_register(user: dict) -> None:
    audit_log(
        event='register',
        message=f"New account {sanitize_log_value(user['username'])}",
        user_id=user['id'],
        username=user['username'],
        **get_request_context(),
    )


def log_register_failed(username: str, reason: str) -> None:
    audit_log(
        event='register_failed',
        message=f'Registration failed for {sanitize_log_value(username)}: {reason}',
        level=logging.WARNING,
        username=username,
        reason=reason,
        **get_request_context(),
    )


def log_login_success(user: dict) -> None:
    audit_log(
        event='login_success',
        message=f"Successful login for {sanitize_log_value(user['username'])}",
        user_id=user['id'],
        username=user['username'],
        **get_request_context(),
    )


def log_login_failed(username_or_email: str, reason: str = 'invalid_credentials') -> None:
    audit_log(
        event='login_failed',
        message=f'Failed login for {sanitize_log_value(username_or_email)}: {reason}',
        level=logging.WARNING,
        username=username_or_email,
        reason=reason,
        **get_request_context(),
    )


def log_logout(username: str) -> None:
    audit_log(
        event='logout',
        message=f'Logout for {sanitize_log_value(username)}',
        username=username,
        **get_request_context(),
    )


def log_csrf_failure() -> None:
    audit_log(
        event='csrf_failure',
        message='CSRF token validation failed',
        level=logging.WARNING,
        **get_request_context(),
    )
