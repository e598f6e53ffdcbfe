"""
Location store and the like toggle.

A location embeds a snapshot of its author (id + username at creation
time); renaming or deleting the user does not touch it. ``likes`` always
equals the size of the liker set. Every mutation here is a read followed
by a write with no version check, so two simultaneous toggles by the same
user can lose one update.
"""

import sqlite3
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, NamedTuple, Optional, Tuple

from buenavista.db import get_db, new_id, utcnow
from buenavista.errors import NotFound

EDITABLE_FIELDS = ('name', 'image', 'description')


class AuthorSnapshot(NamedTuple):
    """Author identity copied onto a post or comment when it is created."""

    id: str
    username: str

    @classmethod
    def from_row(cls, row) -> Optional['AuthorSnapshot']:
        if row['author_id'] is None:
            return None
        return cls(row['author_id'], row['author_username'] or '')

    @classmethod
    def of(cls, user: dict) -> 'AuthorSnapshot':
        return cls(user['id'], user['username'])


@dataclass
class Location:
    id: str
    name: str
    image: str
    description: str
    author: Optional[AuthorSnapshot]
    likes: int
    liked_by: FrozenSet[str]
    comment_ids: List[str]
    created_at: str
    updated_at: str

    def is_liked_by(self, user_id: Optional[str]) -> bool:
        return user_id is not None and user_id in self.liked_by


class LikeResult(NamedTuple):
    likes: int
    liked: bool


def apply_like_toggle(liked_by: FrozenSet[str], likes: int,
                      user_id: str) -> Tuple[FrozenSet[str], int, bool]:
    """
    Toggle ``user_id`` in ``liked_by`` and adjust the counter.

    Returns the new set, the new count and whether the user now likes the
    location. The count never drops below zero, even when it was already
    out of step with the set.
    """
    likes = likes or 0
    if user_id in liked_by:
        return liked_by - {user_id}, max(0, likes - 1), False
    return liked_by | {user_id}, likes + 1, True


def _liked_by(db: sqlite3.Connection, location_id: str) -> FrozenSet[str]:
    rows = db.execute(
        'SELECT user_id FROM location_likes WHERE location_id = ?',
        (location_id,),
    )
    return frozenset(row['user_id'] for row in rows)


def _comment_ids(db: sqlite3.Connection, location_id: str) -> List[str]:
    rows = db.execute(
        'SELECT comment_id FROM location_comments WHERE location_id = ? ORDER BY position',
        (location_id,),
    )
    return [row['comment_id'] for row in rows]


def _from_row(db: sqlite3.Connection, row: sqlite3.Row) -> Location:
    return Location(
        id=row['id'],
        name=row['name'],
        image=row['image'],
        description=row['description'],
        author=AuthorSnapshot.from_row(row),
        likes=row['likes'],
        liked_by=_liked_by(db, row['id']),
        comment_ids=_comment_ids(db, row['id']),
        created_at=row['created_at'],
        updated_at=row['updated_at'],
    )


def create_location(name: str, image: str, description: str, author: AuthorSnapshot) -> Location:
    db = get_db()
    now = utcnow()
    location_id = new_id()
    db.execute(
        '''INSERT INTO locations
           (id, name, image, description, author_id, author_username, likes, created_at, updated_at)
           VALUES (?, ?, ?, ?, ?, ?, 0, ?, ?)''',
        (location_id, name or '', image or '', description or '', author.id, author.username, now, now),
    )
    db.commit()
    return get_location(location_id)


def get_location(location_id: str) -> Optional[Location]:
    db = get_db()
    row = db.execute('SELECT * FROM locations WHERE id = ?', (location_id,)).fetchone()
    return _from_row(db, row) if row is not None else None


def list_locations() -> List[Location]:
    """Newest first."""
    db = get_db()
    rows = db.execute('SELECT * FROM locations ORDER BY created_at DESC').fetchall()
    return [_from_row(db, row) for row in rows]


def like_counts() -> Dict[str, int]:
    rows = get_db().execute('SELECT id, likes FROM locations')
    return {row['id']: row['likes'] or 0 for row in rows}


def update_location(location_id: str, **fields) -> None:
    """Write the whitelisted ``EDITABLE_FIELDS`` and bump ``updated_at``."""
    changes = {key: value for key, value in fields.items() if key in EDITABLE_FIELDS}
    assignments = ', '.join(f'{key} = ?' for key in changes)
    params = list(changes.values()) + [utcnow(), location_id]
    db = get_db()
    db.execute(
        f'UPDATE locations SET {assignments + ", " if assignments else ""}updated_at = ? WHERE id = ?',
        params,
    )
    db.commit()


def delete_location(location_id: str) -> None:
    """
    Remove the location with its liker set and comment reference list.

    The comments themselves are left in place.
    """
    db = get_db()
    db.execute('DELETE FROM location_likes WHERE location_id = ?', (location_id,))
    db.execute('DELETE FROM location_comments WHERE location_id = ?', (location_id,))
    db.execute('DELETE FROM locations WHERE id = ?', (location_id,))
    db.commit()


def append_comment(location_id: str, comment_id: str) -> None:
    """Add ``comment_id`` to the end of the location's reference list."""
    db = get_db()
    db.execute(
        '''INSERT INTO location_comments (location_id, comment_id, position)
           VALUES (?, ?, (SELECT COALESCE(MAX(position), -1) + 1
                          FROM location_comments WHERE location_id = ?))''',
        (location_id, comment_id, location_id),
    )
    db.commit()


def toggle_like(location_id: str, user_id: str) -> LikeResult:
    """
    Like or unlike ``location_id`` for ``user_id``.

    Raises:
        NotFound: no such location.
    """
    location = get_location(location_id)
    if location is None:
        raise NotFound('Location')

    _, likes, liked = apply_like_toggle(location.liked_by, location.likes, user_id)

    db = get_db()
    if liked:
        db.execute(
            'INSERT OR IGNORE INTO location_likes (location_id, user_id) VALUES (?, ?)',
            (location_id, user_id),
        )
    else:
        db.execute(
            'DELETE FROM location_likes WHERE location_id = ? AND user_id = ?',
            (location_id, user_id),
        )
    db.execute('UPDATE locations SET likes = ? WHERE id = ?', (likes, location_id))
    db.commit()

    return LikeResult(likes=likes, liked=liked)
