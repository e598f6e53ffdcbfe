"""Shared form base."""

from flask_wtf import FlaskForm


class BaseForm(FlaskForm):

    def first_error(self) -> str:
        """The first validation message, for a flash."""
        for errors in self.errors.values():
            if errors:
                return errors[0]
        return 'Please check the form and try again.'
