"""
User store.

Usernames and emails are unique; a duplicate raises ``DuplicateKeyError``
naming the colliding field so registration can show the right message.
"""

import re
import sqlite3
from typing import Optional

from buenavista.db import get_db, new_id, utcnow
from buenavista.errors import DuplicateKeyError, FieldValidationError
from buenavista.extensions import bcrypt
from buenavista.validation import USERNAME_MAX, USERNAME_MIN, USERNAME_PATTERN

_UNIQUE_FAILURE = re.compile(r'UNIQUE constraint failed: users\.(\w+)')

_USER_COLUMNS = 'id, username, email, password_hash, created_at'


def _row_to_user(row: Optional[sqlite3.Row]) -> Optional[dict]:
    return dict(row) if row is not None else None


def _check_username(username: str) -> None:
    """Last line of defence; registration validates before calling us."""
    if not username:
        raise FieldValidationError({'username': 'Username is required.'})
    if not USERNAME_MIN <= len(username) <= USERNAME_MAX or not USERNAME_PATTERN.match(username):
        raise FieldValidationError({
            'username': 'Username can only contain letters, numbers, and underscores.',
        })


def create_user(username: str, email: Optional[str], password: str) -> dict:
    """
    Insert a user with a bcrypt-hashed password.

    Raises:
        FieldValidationError: the username breaks the stored-field rules.
        DuplicateKeyError: the username or email is taken.
    """
    _check_username(username)
    user = {
        'id': new_id(),
        'username': username,
        'email': email or None,
        'password_hash': bcrypt.generate_password_hash(password).decode('utf-8'),
        'created_at': utcnow(),
    }

    db = get_db()
    try:
        db.execute(
            f'INSERT INTO users ({_USER_COLUMNS}) VALUES (?, ?, ?, ?, ?)',
            (user['id'], user['username'], user['email'], user['password_hash'], user['created_at']),
        )
        db.commit()
    except sqlite3.IntegrityError as exc:
        db.rollback()
        match = _UNIQUE_FAILURE.search(str(exc))
        if match:
            raise DuplicateKeyError({match.group(1): 1}) from exc
        raise

    return user


def get_user_by_id(user_id: str) -> Optional[dict]:
    cursor = get_db().execute(
        f'SELECT {_USER_COLUMNS} FROM users WHERE id = ?',
        (user_id,),
    )
    return _row_to_user(cursor.fetchone())


def get_user_by_username_or_email(username_or_email: str) -> Optional[dict]:
    """Match the username exactly, or the email case-insensitively."""
    value = username_or_email.strip()
    cursor = get_db().execute(
        f'SELECT {_USER_COLUMNS} FROM users WHERE username = ? OR email = ? LIMIT 1',
        (value, value.lower()),
    )
    return _row_to_user(cursor.fetchone())


def delete_user(user_id: str) -> None:
    """Administrative removal. Posts and comments keep their author snapshot."""
    db = get_db()
    db.execute('DELETE FROM users WHERE id = ?', (user_id,))
    db.commit()
