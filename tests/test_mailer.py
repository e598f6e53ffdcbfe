"""
Tests for email rendering and dispatch.

Messages are observed with Flask-Mail's record_messages; nothing is
delivered (MAIL_SUPPRESS_SEND in TestConfig).
"""

import logging
from unittest.mock import patch

from buenavista import email_templates
from buenavista.extensions import mail
from buenavista.mailer import (
    send_comment_notification_email,
    send_location_created_email,
    send_onboarding_email,
)


class TestTemplates:
    """Bodies are pure functions of their arguments."""

    def test_onboarding_html(self):
        html = email_templates.onboarding_html('maria_g', 'https://buenavista.test/')
        assert 'maria_g' in html
        assert 'https://buenavista.test/locations' in html

    def test_onboarding_default_name(self):
        assert 'Hola, Explorer!' in email_templates.onboarding_text('', 'https://buenavista.test')

    def test_html_escapes_user_values(self):
        html = email_templates.location_created_html(
            '<script>x</script>', '<b>Spot</b>', 'https://buenavista.test/locations/1',
        )
        assert '<script>' not in html
        assert '&lt;script&gt;' in html
        assert '&lt;b&gt;Spot&lt;/b&gt;' in html

    def test_comment_newlines_become_breaks(self):
        html = email_templates.comment_notification_html(
            'ana', 'Cliffs', 'luis', 'one\n<two>', 'https://buenavista.test/locations/1',
        )
        assert 'one<br>&lt;two&gt;' in html

    def test_comment_text_body_truncated(self):
        text = email_templates.comment_notification_text(
            'ana', 'Cliffs', 'luis', 'x' * 150, 'https://buenavista.test/locations/1',
        )
        assert '"' + 'x' * 100 + '..."' in text
        assert 'x' * 101 not in text

    def test_defaults(self):
        text = email_templates.comment_notification_text('', '', '', '', 'https://u')
        assert text.startswith('There, Someone commented on your post "your post"')


class TestDispatch:
    """Sending through Flask-Mail."""

    def test_onboarding(self, app):
        with app.test_request_context(), mail.record_messages() as outbox:
            send_onboarding_email('maria@example.com', 'maria_g')
        assert len(outbox) == 1
        assert outbox[0].subject == 'Hola, maria_g! Welcome to BuenaVista'
        assert outbox[0].sender == app.config['MAIL_WELCOME_SENDER']
        assert outbox[0].html and outbox[0].body

    def test_location_created_subject_truncated(self, app):
        with app.test_request_context(), mail.record_messages() as outbox:
            send_location_created_email('maria@example.com', 'maria_g', 'N' * 80, 'abc123')
        message = outbox[0]
        assert message.subject == f'Your post "{"N" * 50}" is live — BuenaVista'
        assert message.sender == app.config['MAIL_DEFAULT_SENDER']
        assert 'https://buenavista.test/locations/abc123' in message.body

    def test_comment_notification(self, app):
        with app.test_request_context(), mail.record_messages() as outbox:
            send_comment_notification_email('ana@example.com', 'ana', 'Cliffs', 'abc123', 'luis', 'Wow')
        assert outbox[0].subject == 'luis commented on your post — BuenaVista'
        assert outbox[0].recipients == ['ana@example.com']

    def test_missing_credentials_is_noop(self, app, caplog):
        app.config['MAIL_PASSWORD'] = None
        with app.test_request_context(), mail.record_messages() as outbox:
            with caplog.at_level(logging.WARNING, logger='buenavista.mailer'):
                assert send_onboarding_email('maria@example.com', 'maria_g') is None
        assert outbox == []
        assert any('MAIL_PASSWORD' in r.getMessage() for r in caplog.records)

    def test_missing_recipient_is_noop(self, app):
        with app.test_request_context(), mail.record_messages() as outbox:
            send_comment_notification_email(None, 'ana', 'Cliffs', 'abc123', 'luis', 'Wow')
        assert outbox == []

    def test_provider_error_is_swallowed(self, app, caplog):
        with app.test_request_context():
            with patch.object(mail, 'send', side_effect=ConnectionRefusedError('smtp down')):
                with caplog.at_level(logging.ERROR, logger='buenavista.mailer'):
                    send_onboarding_email('maria@example.com', 'maria_g')
        assert any(getattr(r, 'event', None) == 'email_failed' for r in caplog.records)

    def test_async_send_returns_future(self, app):
        app.config['MAIL_ASYNC'] = True
        with app.test_request_context(), mail.record_messages() as outbox:
            future = send_onboarding_email('maria@example.com', 'maria_g')
            future.result(timeout=5)
        assert len(outbox) == 1

    def test_registration_survives_mail_failure(self, client):
        with patch.object(mail, 'send', side_effect=ConnectionRefusedError('smtp down')):
            response = client.post('/register', data={
                'username': 'resilient',
                'email': 'resilient@example.com',
                'password': 'password123',
            })
        assert response.status_code == 302
        assert response.headers['Location'].endswith('/locations')
