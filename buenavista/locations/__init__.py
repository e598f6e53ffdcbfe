"""
Locations blueprint: listing, CRUD, likes, image upload and link extraction.
"""

from flask import Blueprint

locations_bp = Blueprint('locations', __name__, url_prefix='/locations')

from buenavista.locations import routes  # noqa: E402, F401
