"""WTForms definition for comments."""

from wtforms import TextAreaField
from wtforms.validators import DataRequired, Length

from buenavista.forms import BaseForm


class CommentForm(BaseForm):
    text = TextAreaField(
        'Comment',
        validators=[
            DataRequired(message='Comment text is required.'),
            Length(max=2000, message='Comment must be at most 2000 characters.'),
        ],
    )
