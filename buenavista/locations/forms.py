"""
WTForms definitions for location create/edit.

Only these fields are ever written to a location.
"""

from wtforms import StringField, TextAreaField
from wtforms.validators import DataRequired, Length, Optional, Regexp

from buenavista.forms import BaseForm


class LocationForm(BaseForm):
    """Name, image URL and description of a location."""

    name = StringField(
        'Name',
        validators=[
            DataRequired(message='Name is required.'),
            Length(max=120, message='Name must be at most 120 characters.'),
        ],
        render_kw={'placeholder': 'e.g., Mirador de San Nicolás', 'autocomplete': 'off'},
    )

    image = StringField(
        'Image URL',
        validators=[
            DataRequired(message='Image is required. Upload one or paste a link.'),
            Regexp(r'^https?://', message='Image URL must start with http:// or https://'),
            Length(max=2048, message='Image URL is too long.'),
        ],
        render_kw={'placeholder': 'https://...'},
    )

    description = TextAreaField(
        'Description',
        validators=[
            Optional(),
            Length(max=5000, message='Description must be at most 5000 characters.'),
        ],
    )
