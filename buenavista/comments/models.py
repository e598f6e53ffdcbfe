"""
Comment store.

Comments embed an author snapshot like locations do. The parent location
keeps an append-only list of comment ids; deleting a comment does not
edit that list, so ``comments_for`` skips ids that no longer resolve.
"""

from dataclasses import dataclass
from typing import List, Optional

from buenavista.db import get_db, new_id, utcnow
from buenavista.locations.models import AuthorSnapshot, Location, append_comment


@dataclass
class Comment:
    id: str
    text: str
    author: Optional[AuthorSnapshot]
    created_at: str
    updated_at: str

    @classmethod
    def from_row(cls, row) -> 'Comment':
        return cls(
            id=row['id'],
            text=row['text'],
            author=AuthorSnapshot.from_row(row),
            created_at=row['created_at'],
            updated_at=row['updated_at'],
        )


def create_comment(location: Location, text: str, author: AuthorSnapshot) -> Comment:
    """Store the comment and append it to ``location``'s reference list."""
    db = get_db()
    now = utcnow()
    comment_id = new_id()
    db.execute(
        '''INSERT INTO comments (id, text, author_id, author_username, created_at, updated_at)
           VALUES (?, ?, ?, ?, ?, ?)''',
        (comment_id, text or '', author.id, author.username, now, now),
    )
    db.commit()
    append_comment(location.id, comment_id)
    return get_comment(comment_id)


def get_comment(comment_id: str) -> Optional[Comment]:
    row = get_db().execute('SELECT * FROM comments WHERE id = ?', (comment_id,)).fetchone()
    return Comment.from_row(row) if row is not None else None


def comments_for(location: Location) -> List[Comment]:
    """Resolve the location's comment references in order."""
    if not location.comment_ids:
        return []
    placeholders = ', '.join('?' for _ in location.comment_ids)
    rows = get_db().execute(
        f'SELECT * FROM comments WHERE id IN ({placeholders})',
        location.comment_ids,
    )
    by_id = {row['id']: Comment.from_row(row) for row in rows}
    return [by_id[comment_id] for comment_id in location.comment_ids if comment_id in by_id]


def update_comment(comment_id: str, text: str) -> None:
    db = get_db()
    db.execute(
        'UPDATE comments SET text = ?, updated_at = ? WHERE id = ?',
        (text or '', utcnow(), comment_id),
    )
    db.commit()


def delete_comment(comment_id: str) -> None:
    """Remove the comment; the parent's reference is left dangling."""
    db = get_db()
    db.execute('DELETE FROM comments WHERE id = ?', (comment_id,))
    db.commit()
