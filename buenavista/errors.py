"""
Error taxonomy.

Handlers catch these at the request boundary and turn them into a flash
message plus redirect, or a JSON body, depending on the response mode.
"""

from typing import Dict, Mapping, Optional


class BuenaVistaError(Exception):
    """Base class. ``message`` is safe to show to the user."""

    status = 500
    default_message = 'Something went wrong. Please try again.'

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BadInput(BuenaVistaError):
    status = 400
    default_message = 'The request was missing or had malformed fields.'


class Unauthenticated(BuenaVistaError):
    status = 401
    default_message = 'You need to be logged in to do that'


class Forbidden(BuenaVistaError):
    status = 403
    default_message = "You don't have permission to do that"


class NotFound(BuenaVistaError):
    status = 404

    def __init__(self, entity: str = 'Page', message: Optional[str] = None):
        self.entity = entity
        super().__init__(message or f'{entity} not found')


class UpstreamFailure(BuenaVistaError):
    """A third-party service (email, image host, remote page) failed."""

    status = 502
    default_message = 'An external service failed. Please try again.'


# --- Link image extraction ---

class FetchFailed(UpstreamFailure):
    status = 400
    default_message = 'Could not fetch the page. Try a direct image URL instead.'


class LinkTimeout(UpstreamFailure):
    status = 400
    default_message = 'Request timed out. Try a different link.'


class NoImageFound(BadInput):
    default_message = 'No image found on this page. Try pasting a direct image URL instead.'


# --- Persistence failure shapes (mapped by validation.map_register_error) ---

class DuplicateKeyError(BuenaVistaError):
    """A uniqueness constraint was violated; ``key_pattern`` names the field."""

    status = 409

    def __init__(self, key_pattern: Mapping[str, int], message: Optional[str] = None):
        self.key_pattern = dict(key_pattern)
        field = next(iter(self.key_pattern), 'key')
        super().__init__(message or f'Duplicate value for {field}')


class FieldValidationError(BuenaVistaError):
    """One or more fields were rejected by the store."""

    status = 400

    def __init__(self, errors: Dict[str, str], message: Optional[str] = None):
        self.errors = dict(errors)
        super().__init__(message or 'Validation failed.')
