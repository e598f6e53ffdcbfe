"""
Tests for structured logging.
"""

import json
import logging

from buenavista.logging_config import JSONFormatter, audit_log, sanitize_log_value


class TestSanitize:

    def test_control_characters_removed(self):
        assert sanitize_log_value('bob\r\nFAKE ENTRY\x00') == 'bobFAKE ENTRY'

    def test_truncated(self):
        assert len(sanitize_log_value('x' * 1000)) == 256


class TestJSONFormatter:

    def test_context_fields_included(self):
        record = logging.LogRecord('buenavista.audit', logging.INFO, __file__, 1, 'liked', None, None)
        record.event = 'like_toggled'
        record.location_id = 'abc'
        record.user_id = 'u1'

        entry = json.loads(JSONFormatter().format(record))

        assert entry['event'] == 'like_toggled'
        assert entry['location_id'] == 'abc'
        assert entry['user_id'] == 'u1'
        assert entry['level'] == 'INFO'
        assert 'password' not in entry

    def test_default_event(self):
        record = logging.LogRecord('buenavista', logging.WARNING, __file__, 1, 'plain', None, None)
        assert json.loads(JSONFormatter().format(record))['event'] == 'log'


class TestAuditEvents:

    def test_audit_log(self, caplog):
        with caplog.at_level(logging.INFO, logger='buenavista.audit'):
            audit_log('location_created', 'Location x created', location_id='x')
        record = caplog.records[-1]
        assert record.event == 'location_created'
        assert record.location_id == 'x'

    def test_login_events(self, caplog, client, user):
        with caplog.at_level(logging.INFO, logger='buenavista.audit'):
            client.post('/login', data={'usernameOrEmail': user['username'], 'password': 'nope-nope'})
            client.post('/login', data={'usernameOrEmail': user['username'], 'password': 'password123'})
        events = [getattr(r, 'event', None) for r in caplog.records]
        assert 'login_failed' in events
        assert 'login_success' in events

    def test_password_never_logged(self, caplog, client, user):
        with caplog.at_level(logging.DEBUG, logger='buenavista'):
            client.post('/login', data={'usernameOrEmail': user['username'], 'password': 'Sup3rSecretValue'})
        assert 'Sup3rSecretValue' not in caplog.text
