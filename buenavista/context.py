"""
Per-request context.

Handlers receive a :class:`RequestContext` as their first argument. It
carries the current user, the response mode negotiated once from the
``Accept`` header, and the flash messages the handler produced. The
messages are moved into the session when the handler returns.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from functools import wraps
from typing import List, Optional, Tuple
from urllib.parse import parse_qs, urlparse

from flask import flash, g, jsonify, redirect, request, session

_OVERRIDABLE_METHODS = frozenset({'PUT', 'PATCH', 'DELETE'})


class ResponseMode(Enum):
    """How a dual-mode endpoint answers: JSON body or redirect."""

    JSON = 'json'
    REDIRECT = 'redirect'

    @classmethod
    def negotiate(cls, accept_mimetypes) -> 'ResponseMode':
        # text/html listed first: a bare */* (plain form posts) keeps redirects.
        best = accept_mimetypes.best_match(['text/html', 'application/json'])
        return cls.JSON if best == 'application/json' else cls.REDIRECT


@dataclass
class RequestContext:
    user: Optional[dict]
    mode: ResponseMode
    flashes: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def user_id(self) -> Optional[str]:
        return self.user['id'] if self.user else None

    @property
    def wants_json(self) -> bool:
        return self.mode is ResponseMode.JSON

    def flash(self, message: str, category: str = 'error') -> None:
        self.flashes.append((message, category))

    def commit(self) -> None:
        """Move accumulated messages into the session."""
        for message, category in self.flashes:
            flash(message, category)
        self.flashes.clear()

    def respond(self, payload: dict, redirect_to: str, status: int = 200):
        """
        Answer in the negotiated mode.

        JSON callers get ``payload`` with ``status``; everyone else is
        redirected to ``redirect_to``.
        """
        if self.wants_json:
            return jsonify(payload), status
        return redirect(redirect_to)


def load_current_user() -> Optional[dict]:
    """The logged-in user, loaded once per request and cached on g."""
    if 'current_user' not in g:
        from buenavista.auth.models import get_user_by_id  # Deferred import avoids circular dependency

        user_id = session.get('user_id')
        g.current_user = get_user_by_id(user_id) if user_id else None
    return g.current_user


def build_context() -> RequestContext:
    return RequestContext(
        user=load_current_user(),
        mode=ResponseMode.negotiate(request.accept_mimetypes),
    )


def with_context(view):
    """Build the request context, pass it to the view, commit its flashes."""
    @wraps(view)
    def decorated_function(*args, **kwargs):
        ctx = build_context()
        try:
            return view(ctx, *args, **kwargs)
        finally:
            ctx.commit()
    return decorated_function


def redirect_back(fallback: str):
    """
    Redirect to the referring page when it is on this host, else ``fallback``.

    Off-site referrers are ignored so the redirect can't be used to bounce
    users elsewhere.
    """
    referrer = request.referrer
    if referrer:
        parsed = urlparse(referrer)
        if parsed.netloc == request.host and parsed.scheme in ('http', 'https'):
            return redirect(referrer)
    return redirect(fallback)


def set_request_id() -> None:
    """Short per-request id for log correlation."""
    g.request_id = str(uuid.uuid4())[:8]


class MethodOverrideMiddleware:
    """
    Let HTML forms reach PUT/PATCH/DELETE routes.

    A POST to ``/path?_method=DELETE`` is routed as ``DELETE /path``. The
    rewrite happens in WSGI, before Flask matches the URL.
    """

    def __init__(self, app):
        self.app = app

    def __call__(self, environ, start_response):
        if environ.get('REQUEST_METHOD', '').upper() == 'POST':
            args = parse_qs(environ.get('QUERY_STRING', ''))
            method = (args.get('_method') or [''])[0].upper()
            if method in _OVERRIDABLE_METHODS:
                environ['REQUEST_METHOD'] = method
        return self.app(environ, start_response)
