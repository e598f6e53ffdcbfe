"""
Authentication blueprint: landing page, register, login, logout.
"""

from flask import Blueprint

auth_bp = Blueprint('auth', __name__)

# Import routes to register them with the blueprint.
# This import must be at the bottom to avoid circular imports.
from buenavista.auth import routes  # noqa: E402, F401
