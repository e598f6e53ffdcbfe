"""
Comments blueprint: nested under a location.
"""

from flask import Blueprint

comments_bp = Blueprint('comments', __name__, url_prefix='/locations/<location_id>/comments')

from buenavista.comments import routes  # noqa: E402, F401
