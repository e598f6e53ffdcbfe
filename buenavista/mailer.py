"""
Transactional email dispatch (Flask-Mail).

Sends are fire-and-forget: the request that triggers one never waits for
it and never sees its failure. With ``MAIL_ASYNC`` on, messages go out on
a small background pool inside a fresh app context; otherwise inline.
Either way provider errors are logged and swallowed.

A missing ``MAIL_PASSWORD`` or an empty recipient turns a send into a
logged no-op.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional

from flask import current_app
from flask_mail import Message

from buenavista import email_templates
from buenavista.extensions import mail

logger = logging.getLogger(__name__)

_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix='mailer')


def _deliver(app, message: Message, kind: str) -> None:
    with app.app_context():
        try:
            mail.send(message)
        except Exception:
            logger.exception(
                '%s email to %s failed', kind, ', '.join(message.recipients),
                extra={'event': 'email_failed', 'reason': kind},
            )
            return
    logger.info(
        '%s email sent to %s', kind, ', '.join(message.recipients),
        extra={'event': 'email_sent', 'reason': kind},
    )


def _log_unexpected(future: Future) -> None:
    exc = future.exception()
    if exc is not None:
        logger.error('Email task crashed: %s', exc, extra={'event': 'email_failed'})


def _dispatch(message: Message, kind: str) -> Optional[Future]:
    app = current_app._get_current_object()
    if not app.config.get('MAIL_ASYNC', True):
        _deliver(app, message, kind)
        return None
    future = _executor.submit(_deliver, app, message, kind)
    future.add_done_callback(_log_unexpected)
    return future


def _can_send(to: Optional[str], kind: str) -> bool:
    if not current_app.config.get('MAIL_PASSWORD'):
        logger.warning('MAIL_PASSWORD not set; skipping %s email.', kind,
                       extra={'event': 'email_skipped', 'reason': 'no_credentials'})
        return False
    if not to:
        logger.warning('No recipient address; skipping %s email.', kind,
                       extra={'event': 'email_skipped', 'reason': 'no_recipient'})
        return False
    return True


def send_onboarding_email(to: Optional[str], username: str,
                          app_url: Optional[str] = None) -> Optional[Future]:
    if not _can_send(to, 'onboarding'):
        return None
    name = username or 'Explorer'
    base_url = app_url or current_app.config['APP_URL']
    message = Message(
        subject=f'Hola, {name}! Welcome to BuenaVista',
        sender=current_app.config['MAIL_WELCOME_SENDER'],
        recipients=[to],
        html=email_templates.onboarding_html(name, base_url),
        body=email_templates.onboarding_text(name, base_url),
    )
    return _dispatch(message, 'onboarding')


def send_location_created_email(to: Optional[str], username: str, location_name: str,
                                location_id: str) -> Optional[Future]:
    if not _can_send(to, 'location-created'):
        return None
    view_url = f"{current_app.config['APP_URL']}/locations/{location_id}"
    name = username or 'Explorer'
    message = Message(
        subject=f'Your post "{(location_name or "New location")[:50]}" is live — BuenaVista',
        sender=current_app.config['MAIL_DEFAULT_SENDER'],
        recipients=[to],
        html=email_templates.location_created_html(name, location_name, view_url),
        body=email_templates.location_created_text(name, location_name, view_url),
    )
    return _dispatch(message, 'location-created')


def send_comment_notification_email(to: Optional[str], recipient_username: str, location_name: str,
                                    location_id: str, commenter_username: str,
                                    comment_text: str) -> Optional[Future]:
    if not _can_send(to, 'comment-notification'):
        return None
    view_url = f"{current_app.config['APP_URL']}/locations/{location_id}"
    message = Message(
        subject=f'{commenter_username or "Someone"} commented on your post — BuenaVista',
        sender=current_app.config['MAIL_DEFAULT_SENDER'],
        recipients=[to],
        html=email_templates.comment_notification_html(
            recipient_username, location_name, commenter_username, comment_text, view_url,
        ),
        body=email_templates.comment_notification_text(
            recipient_username, location_name, commenter_username, comment_text, view_url,
        ),
    )
    return _dispatch(message, 'comment-notification')
