"""
Flask extension instances: created here, initialized in the app factory.

Kept apart from __init__.py so blueprints can import them without
circular imports.
"""

from flask_bcrypt import Bcrypt
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_mail import Mail
from flask_session import Session
from flask_wtf.csrf import CSRFProtect

# Password hashing: bcrypt with configurable rounds (see config.py).
bcrypt = Bcrypt()

# CSRF protection: validates tokens on all POST/PUT/DELETE requests.
csrf = CSRFProtect()

# Server-side session management: the cookie holds only an opaque ID.
sess = Session()

# Rate limiting: per-IP by default, per-account on the login endpoint.
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri='memory://',
)

# Transactional email (onboarding, post-created, comment-received).
mail = Mail()
