"""
SQLite storage: connection per request and schema.

Uses parameterized queries exclusively (? placeholders).

The schema mirrors the document layout of the application:

- ``users``
- ``locations`` with the author snapshot embedded as columns and a
  ``likes`` counter; ``location_likes`` holds the liker set and
  ``location_comments`` the ordered comment reference list.
- ``comments`` with the author snapshot embedded as columns.

No foreign keys: a deleted comment may still be referenced by its
location, and readers skip such references.
"""

import os
import sqlite3
import uuid
from datetime import datetime, timezone

from flask import current_app, g

SCHEMA = '''
    CREATE TABLE IF NOT EXISTS users (
        id            TEXT PRIMARY KEY,
        username      TEXT UNIQUE NOT NULL,
        email         TEXT UNIQUE,
        password_hash TEXT NOT NULL,
        created_at    TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS locations (
        id              TEXT PRIMARY KEY,
        name            TEXT NOT NULL DEFAULT '',
        image           TEXT NOT NULL DEFAULT '',
        description     TEXT NOT NULL DEFAULT '',
        author_id       TEXT,
        author_username TEXT,
        likes           INTEGER NOT NULL DEFAULT 0 CHECK (likes >= 0),
        created_at      TEXT NOT NULL,
        updated_at      TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS location_likes (
        location_id TEXT NOT NULL,
        user_id     TEXT NOT NULL,
        PRIMARY KEY (location_id, user_id)
    );

    CREATE TABLE IF NOT EXISTS comments (
        id              TEXT PRIMARY KEY,
        text            TEXT NOT NULL DEFAULT '',
        author_id       TEXT,
        author_username TEXT,
        created_at      TEXT NOT NULL,
        updated_at      TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS location_comments (
        location_id TEXT NOT NULL,
        comment_id  TEXT NOT NULL,
        position    INTEGER NOT NULL,
        PRIMARY KEY (location_id, position)
    );
'''


def new_id() -> str:
    """Random 32-char hex identifier."""
    return uuid.uuid4().hex


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def database_path(app) -> str:
    return os.path.join(app.instance_path, app.config['DATABASE_NAME'])


def get_db() -> sqlite3.Connection:
    """
    Get a database connection for the current request.

    Connections live on Flask's g object and are closed by close_db
    at app-context teardown.
    """
    if 'db' not in g:
        g.db = sqlite3.connect(database_path(current_app), check_same_thread=False)
        g.db.row_factory = sqlite3.Row
        g.db.execute('PRAGMA journal_mode=WAL')
    return g.db


def close_db(exception=None) -> None:
    """Close the database connection at the end of the request."""
    db = g.pop('db', None)
    if db is not None:
        db.close()


def init_db(app) -> None:
    """
    Create tables.

    CREATE TABLE IF NOT EXISTS makes this safe on every startup.
    """
    conn = sqlite3.connect(database_path(app), check_same_thread=False)
    try:
        conn.executescript(SCHEMA)
        conn.commit()
    finally:
        conn.close()
