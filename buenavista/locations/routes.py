"""
Location routes.

HTML pages flash and redirect; the like toggle answers JSON or redirects
depending on the caller's Accept header; image upload and link
extraction are JSON-only endpoints used by the new/edit forms.
"""

import logging
import os
import sqlite3

from flask import current_app, g, jsonify, make_response, redirect, render_template, request, url_for

from buenavista.comments import models as comment_models
from buenavista.context import with_context
from buenavista.errors import BuenaVistaError, NotFound, Unauthenticated
from buenavista.extensions import limiter
from buenavista.imagehost import upload_location_image
from buenavista.link_image import extract_image_from_link
from buenavista.locations import locations_bp
from buenavista.locations.forms import LocationForm
from buenavista.locations.models import (
    AuthorSnapshot,
    create_location,
    delete_location,
    get_location,
    like_counts,
    list_locations,
    toggle_like,
    update_location,
)
from buenavista.logging_config import audit_log
from buenavista.mailer import send_location_created_email
from buenavista.ownership import location_owner_required, login_required

logger = logging.getLogger(__name__)

MSG_NO_FILE = 'No file uploaded. Choose an image file.'
MSG_BAD_TYPE = 'Only images are allowed (JPEG, PNG, GIF, WebP). Videos and other files are not allowed.'
MSG_TOO_LARGE = 'Image is too large. Maximum size is 5 MB.'


def _json_error(err: BuenaVistaError):
    return jsonify(error=err.message), err.status


def _file_size(stream) -> int:
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


@locations_bp.route('', methods=['GET'])
@with_context
def index(ctx):
    response = make_response(render_template(
        'locations/index.html',
        locations=list_locations(),
        user_id=ctx.user_id,
        logged_out=request.args.get('logged_out') == '1',
    ))
    response.headers['Cache-Control'] = 'private, no-store'
    return response


@locations_bp.route('/api/likes', methods=['GET'])
def api_likes():
    """Like counts keyed by location id."""
    try:
        counts = like_counts()
    except sqlite3.Error:
        logger.exception('Could not load like counts', extra={'event': 'likes_load_failed'})
        response = jsonify(error='Could not load like counts')
        response.status_code = 500
    else:
        response = jsonify(counts)
    response.headers['Cache-Control'] = 'no-store'
    return response


@locations_bp.route('/new', methods=['GET'])
@with_context
@login_required
def new(ctx):
    return render_template('locations/new.html', form=LocationForm())


@locations_bp.route('', methods=['POST'])
@with_context
@login_required
def create(ctx):
    form = LocationForm()
    if not form.validate_on_submit():
        ctx.flash(form.first_error(), 'error')
        return redirect(url_for('locations.new'))

    location = create_location(
        form.name.data.strip(),
        form.image.data.strip(),
        (form.description.data or '').strip(),
        AuthorSnapshot.of(ctx.user),
    )
    audit_log(
        event='location_created',
        message=f'Location {location.id} created',
        user_id=ctx.user_id,
        location_id=location.id,
        request_id=g.get('request_id', 'unknown'),
    )
    ctx.flash('Location created successfully!', 'success')

    send_location_created_email(ctx.user.get('email'), ctx.user['username'], location.name, location.id)

    return redirect(url_for('locations.index'))


@locations_bp.route('/<location_id>', methods=['GET'])
@with_context
def show(ctx, location_id):
    location = get_location(location_id)
    if location is None:
        ctx.flash(NotFound('Location').message, 'error')
        return redirect(url_for('locations.index'))
    return render_template(
        'locations/show.html',
        location=location,
        comments=comment_models.comments_for(location),
        user_id=ctx.user_id,
    )


@locations_bp.route('/<location_id>/edit', methods=['GET'])
@with_context
@location_owner_required
def edit(ctx, location_id, location):
    return render_template('locations/edit.html', location=location, form=LocationForm(obj=location))


@locations_bp.route('/<location_id>', methods=['PUT'])
@with_context
@location_owner_required
def update(ctx, location_id, location):
    form = LocationForm()
    if not form.validate_on_submit():
        ctx.flash(form.first_error(), 'error')
        return redirect(url_for('locations.edit', location_id=location_id))

    update_location(
        location_id,
        name=form.name.data.strip(),
        image=form.image.data.strip(),
        description=(form.description.data or '').strip(),
    )
    ctx.flash('Location updated successfully!', 'success')
    return redirect(url_for('locations.show', location_id=location_id))


@locations_bp.route('/<location_id>', methods=['DELETE'])
@with_context
@location_owner_required
def destroy(ctx, location_id, location):
    delete_location(location_id)
    audit_log(
        event='location_deleted',
        message=f'Location {location_id} deleted',
        user_id=ctx.user_id,
        location_id=location_id,
        request_id=g.get('request_id', 'unknown'),
    )
    ctx.flash('Location deleted successfully!', 'success')
    return redirect(url_for('locations.index'))


@locations_bp.route('/<location_id>/like', methods=['POST'])
@with_context
def like(ctx, location_id):
    """
    Toggle the caller's like.

    JSON callers get ``{likes, liked}``; form posts are redirected back to
    the location page.
    """
    if not ctx.is_authenticated:
        err = Unauthenticated()
        if ctx.wants_json:
            return _json_error(err)
        ctx.flash(err.message, 'error')
        return redirect(url_for('auth.login'))

    try:
        result = toggle_like(location_id, ctx.user_id)
    except NotFound as err:
        if not ctx.wants_json:
            ctx.flash(err.message, 'error')
        return ctx.respond({'error': err.message}, url_for('locations.index'), status=404)
    except sqlite3.Error:
        logger.exception('Like toggle failed for %s', location_id,
                         extra={'event': 'like_failed', 'location_id': location_id})
        if not ctx.wants_json:
            ctx.flash('Could not update likes', 'error')
        return ctx.respond({'error': 'Could not update likes'},
                           url_for('locations.show', location_id=location_id), status=500)

    audit_log(
        event='like_toggled',
        message=f"Location {location_id} {'liked' if result.liked else 'unliked'}",
        user_id=ctx.user_id,
        location_id=location_id,
        request_id=g.get('request_id', 'unknown'),
    )
    return ctx.respond(result._asdict(), url_for('locations.show', location_id=location_id))


@locations_bp.route('/upload-image', methods=['POST'])
@with_context
def upload_image(ctx):
    if not ctx.is_authenticated:
        return _json_error(Unauthenticated())

    file = request.files.get('image')
    if file is None or not file.filename:
        return jsonify(error=MSG_NO_FILE), 400
    if file.mimetype not in current_app.config['ALLOWED_IMAGE_MIMETYPES']:
        return jsonify(error=MSG_BAD_TYPE), 400
    if _file_size(file.stream) > current_app.config['MAX_IMAGE_SIZE']:
        return jsonify(error=MSG_TOO_LARGE), 400

    try:
        url = upload_location_image(file.stream, file.filename)
    except BuenaVistaError as err:
        logger.error('Image upload failed: %s', err.message,
                     extra={'event': 'image_upload_failed', 'user_id': ctx.user_id})
        return _json_error(err)

    return jsonify(url=url)


@locations_bp.route('/extract-image-from-link', methods=['POST'])
@limiter.limit(
    lambda: current_app.config.get('EXTRACT_IMAGE_RATE_LIMIT_IP', '30/minute'),
    error_message='Too many link lookups. Please wait a moment and try again.',
)
@with_context
def extract_image(ctx):
    if not ctx.is_authenticated:
        return _json_error(Unauthenticated())

    payload = request.get_json(silent=True) or {}
    url = payload.get('url') if isinstance(payload, dict) else None
    if url is None:
        url = request.form.get('url')

    try:
        image_url = extract_image_from_link(url, timeout=current_app.config.get('LINK_FETCH_TIMEOUT', 10))
    except BuenaVistaError as err:
        return jsonify(error=err.message), 400

    return jsonify(imageUrl=image_url)
