"""
Image hosting on Cloudinary.

Uploads land in the ``locations`` folder. ``display_image_url`` rewrites
hosted URLs to a resized, re-compressed rendition for pages.
"""

import logging
import re
import time
from typing import Optional
from urllib.parse import quote

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import AuthorizationRequired, NotAllowed
from cloudinary.exceptions import Error as CloudinaryError
from flask import current_app

from buenavista.errors import UpstreamFailure

logger = logging.getLogger(__name__)

_UNSAFE_NAME_CHARS = re.compile(r'[^a-zA-Z0-9._-]')

SIZES = {
    'show': 'w_640,q_90',
    'thumb': 'w_400,q_85',
}


class ImageHostAuthError(UpstreamFailure):
    status = 403
    default_message = (
        'Image host authentication failed. Check CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY '
        'and CLOUDINARY_API_SECRET have no extra spaces or newlines and match your dashboard.'
    )


class ImageUploadFailed(UpstreamFailure):
    status = 500
    default_message = 'Image upload failed. Try again or use an image URL instead.'


def clean_credential(value: Optional[str]) -> str:
    """Strip whitespace anywhere and surrounding quotes (stray characters from .env files)."""
    if not isinstance(value, str):
        return ''
    return re.sub(r'\s+', '', value).strip('"\'')


def _configure() -> None:
    cloud_name = clean_credential(current_app.config.get('CLOUDINARY_CLOUD_NAME'))
    api_key = clean_credential(current_app.config.get('CLOUDINARY_API_KEY'))
    api_secret = clean_credential(current_app.config.get('CLOUDINARY_API_SECRET'))
    if not (cloud_name and api_key and api_secret):
        logger.error(
            'Image uploads are not configured: CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY '
            'and CLOUDINARY_API_SECRET are required.',
            extra={'event': 'upload_failed', 'reason': 'missing_credentials'},
        )
        raise ImageUploadFailed()
    cloudinary.config(
        cloud_name=cloud_name,
        api_key=api_key,
        api_secret=api_secret,
        secure=True,
    )


def unique_public_id(filename: Optional[str]) -> str:
    """``<epoch-ms>-<sanitized stem>``; the host adds the extension back."""
    stem = (filename or 'image').rsplit('.', 1)[0] or 'image'
    return f'{int(time.time() * 1000)}-{_UNSAFE_NAME_CHARS.sub("_", stem)}'


def upload_location_image(file, filename: Optional[str]) -> str:
    """
    Upload ``file`` and return its public https URL.

    Raises:
        ImageHostAuthError: the host rejected the credentials.
        ImageUploadFailed: credentials missing, or any other host failure.
    """
    _configure()
    try:
        result = cloudinary.uploader.upload(
            file,
            folder=current_app.config['CLOUDINARY_UPLOAD_FOLDER'],
            public_id=unique_public_id(filename),
            resource_type='image',
        )
    except (AuthorizationRequired, NotAllowed) as exc:
        logger.error('Image host rejected credentials: %s', exc, extra={'event': 'upload_failed'})
        raise ImageHostAuthError() from exc
    except CloudinaryError as exc:
        logger.error('Image upload error: %s', exc, extra={'event': 'upload_failed'})
        raise ImageUploadFailed() from exc
    return result['secure_url']


def display_image_url(url: Optional[str], size: str = 'show') -> Optional[str]:
    """
    URL to show on a page.

    Images we host get a resize/quality transformation. With
    IMAGE_USE_FETCH_PROXY on, external http(s) images at ``show`` size are
    served through the host's fetch proxy. Anything else passes through.
    """
    if not url or not isinstance(url, str):
        return url
    url = url.strip()
    cloud_name = clean_credential(current_app.config.get('CLOUDINARY_CLOUD_NAME'))
    if not cloud_name:
        return url

    transformation = SIZES.get(size, SIZES['show'])
    upload_prefix = f'https://res.cloudinary.com/{cloud_name}/image/upload/'
    if url.startswith(upload_prefix):
        return f'{upload_prefix}{transformation}/{url[len(upload_prefix):]}'

    if (size == 'show'
            and url.startswith(('http://', 'https://'))
            and current_app.config.get('IMAGE_USE_FETCH_PROXY')):
        return (f'https://res.cloudinary.com/{cloud_name}/image/fetch/'
                f'{transformation}/{quote(url, safe="")}')
    return url
