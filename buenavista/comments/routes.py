"""
Comment routes, nested under ``/locations/<location_id>/comments``.
"""

from flask import g, redirect, render_template, url_for

from buenavista.auth.models import get_user_by_id
from buenavista.comments import comments_bp
from buenavista.comments.forms import CommentForm
from buenavista.comments.models import create_comment, delete_comment, update_comment
from buenavista.context import with_context
from buenavista.errors import NotFound
from buenavista.locations.models import AuthorSnapshot, get_location
from buenavista.logging_config import audit_log
from buenavista.mailer import send_comment_notification_email
from buenavista.ownership import comment_owner_required, login_required


def _location_or_redirect(ctx, location_id):
    """The location, or ``(None, response)`` after flashing a not-found message."""
    location = get_location(location_id)
    if location is None:
        ctx.flash(NotFound('Location').message, 'error')
        return None, redirect(url_for('locations.index'))
    return location, None


def _notify_author(location, comment, commenter: dict) -> None:
    """Email the post's author unless they wrote the comment themselves."""
    if location.author is None or location.author.id == commenter['id']:
        return
    # Snapshot holds no email; look the author up as they are now.
    author = get_user_by_id(location.author.id)
    if author is None or not author.get('email'):
        return
    send_comment_notification_email(
        author['email'],
        author['username'],
        location.name,
        location.id,
        commenter['username'],
        comment.text,
    )


@comments_bp.route('', methods=['GET'])
def index(location_id):
    return redirect(url_for('locations.show', location_id=location_id))


@comments_bp.route('/new', methods=['GET'])
@with_context
@login_required
def new(ctx, location_id):
    location, response = _location_or_redirect(ctx, location_id)
    if location is None:
        return response
    return render_template('comments/new.html', location=location, form=CommentForm())


@comments_bp.route('', methods=['POST'])
@with_context
@login_required
def create(ctx, location_id):
    location, response = _location_or_redirect(ctx, location_id)
    if location is None:
        return response

    form = CommentForm()
    if not form.validate_on_submit():
        ctx.flash(form.first_error(), 'error')
        return redirect(url_for('comments.new', location_id=location_id))

    comment = create_comment(location, form.text.data.strip(), AuthorSnapshot.of(ctx.user))
    audit_log(
        event='comment_created',
        message=f'Comment {comment.id} added to location {location_id}',
        user_id=ctx.user_id,
        location_id=location_id,
        comment_id=comment.id,
        request_id=g.get('request_id', 'unknown'),
    )
    ctx.flash('Comment added successfully!', 'success')

    _notify_author(location, comment, ctx.user)

    return redirect(url_for('locations.show', location_id=location_id))


@comments_bp.route('/<comment_id>/edit', methods=['GET'])
@with_context
@comment_owner_required
def edit(ctx, location_id, comment_id, comment):
    location, response = _location_or_redirect(ctx, location_id)
    if location is None:
        return response
    return render_template('comments/edit.html', location=location, comment=comment,
                           form=CommentForm(obj=comment))


@comments_bp.route('/<comment_id>', methods=['PUT'])
@with_context
@comment_owner_required
def update(ctx, location_id, comment_id, comment):
    form = CommentForm()
    if not form.validate_on_submit():
        ctx.flash(form.first_error(), 'error')
        return redirect(url_for('comments.edit', location_id=location_id, comment_id=comment_id))

    update_comment(comment_id, form.text.data.strip())
    ctx.flash('Comment updated successfully!', 'success')
    return redirect(url_for('locations.show', location_id=location_id))


@comments_bp.route('/<comment_id>', methods=['DELETE'])
@with_context
@comment_owner_required
def destroy(ctx, location_id, comment_id, comment):
    delete_comment(comment_id)
    ctx.flash('Comment deleted successfully!', 'success')
    return redirect(url_for('locations.show', location_id=location_id))
