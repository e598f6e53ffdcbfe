"""
Authorization gates for mutating routes.

``authorize_owner`` is the decision: it raises ``Unauthenticated``,
``NotFound`` or ``Forbidden``, or returns the entity. The decorators wrap
it for views that already take a :class:`RequestContext`: on denial they
flash the reason, write an audit record, and redirect (to the login page
for ``Unauthenticated``, back to the previous page otherwise).

Ownership is decided on the author snapshot stored with the entity, by
exact id equality.
"""

import logging
from functools import wraps
from typing import Callable, Optional, TypeVar

from flask import g, redirect, request, url_for

from buenavista.context import RequestContext, redirect_back
from buenavista.errors import BuenaVistaError, Forbidden, NotFound, Unauthenticated
from buenavista.logging_config import audit_log

T = TypeVar('T')


def authorize_owner(ctx: RequestContext, entity_id: str,
                    fetch: Callable[[str], Optional[T]], entity_name: str) -> T:
    """
    Return the entity if the current user owns it.

    Raises:
        Unauthenticated: nobody is logged in.
        NotFound: ``fetch`` returned nothing.
        Forbidden: the entity's author snapshot names someone else.
    """
    if not ctx.is_authenticated:
        raise Unauthenticated()

    entity = fetch(entity_id)
    if entity is None:
        raise NotFound(entity_name)

    if entity.author is None or entity.author.id != ctx.user_id:
        raise Forbidden()

    return entity


def deny(ctx: RequestContext, err: BuenaVistaError, fallback: str):
    """Flash ``err`` and send the user where the denial policy says."""
    ctx.flash(err.message, 'error')
    audit_log(
        event='access_denied',
        message=f'{type(err).__name__} on {request.method} {request.path}',
        level=logging.WARNING,
        user_id=ctx.user_id,
        reason=type(err).__name__,
        ip=request.remote_addr or 'unknown',
        request_id=g.get('request_id', 'unknown'),
    )
    if isinstance(err, Unauthenticated):
        return redirect(url_for('auth.login'))
    return redirect_back(fallback)


def login_required(view):
    """
    Require a logged-in user.

    The view must take the request context as its first argument
    (apply :func:`buenavista.context.with_context` outside this one).
    """
    @wraps(view)
    def decorated_function(ctx, *args, **kwargs):
        if not ctx.is_authenticated:
            return deny(ctx, Unauthenticated(), url_for('auth.login'))
        return view(ctx, *args, **kwargs)
    return decorated_function


def owner_required(fetch: Callable[[str], Optional[T]], entity_name: str,
                   id_arg: str, inject_as: str):
    """
    Build a decorator that lets only the entity's author through.

    The entity is looked up from the ``id_arg`` URL argument and passed to
    the view as ``inject_as``.
    """
    def decorator(view):
        @wraps(view)
        def decorated_function(ctx, *args, **kwargs):
            try:
                entity = authorize_owner(ctx, kwargs[id_arg], fetch, entity_name)
            except (Unauthenticated, NotFound, Forbidden) as err:
                return deny(ctx, err, url_for('locations.index'))
            kwargs[inject_as] = entity
            return view(ctx, *args, **kwargs)
        return decorated_function
    return decorator


def location_owner_required(view):
    from buenavista.locations.models import get_location  # Deferred import avoids circular dependency

    return owner_required(get_location, 'Location', 'location_id', 'location')(view)


def comment_owner_required(view):
    from buenavista.comments.models import get_comment  # Deferred import avoids circular dependency

    return owner_required(get_comment, 'Comment', 'comment_id', 'comment')(view)
