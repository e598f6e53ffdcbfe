"""
Structured JSON logging and audit events.

Application modules log through ``logging.getLogger(__name__)``; every
``buenavista.*`` logger propagates to the ``buenavista`` logger configured
here. Security and domain events go through :func:`audit_log`.

NEVER logs: passwords, session tokens, or full request bodies.
"""

import json
import logging
import re
import time
from typing import Any, Dict

# Control characters that could enable log injection attacks.
_LOG_INJECTION_PATTERN = re.compile(r'[\x00-\x1f\x7f]')

_CONTEXT_FIELDS = (
    'ip',
    'user_id',
    'username',
    'email',
    'location_id',
    'comment_id',
    'url',
    'user_agent',
    'request_id',
    'reason',
)


def sanitize_log_value(value: str, max_length: int = 256) -> str:
    """
    Sanitize a string for safe inclusion in log output.

    Removes control characters and truncates to ``max_length``.
    """
    cleaned = _LOG_INJECTION_PATTERN.sub('', str(value))
    return cleaned[:max_length]


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            'timestamp': time.strftime('%Y-%m-%dT%H:%M:%S%z', time.gmtime(record.created)),
            'level': record.levelname,
            'logger': record.name,
            'event': getattr(record, 'event', 'log'),
            'message': sanitize_log_value(record.getMessage(), max_length=2048),
        }

        for field in _CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = sanitize_log_value(str(value))

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry)


def setup_logging(app) -> logging.Logger:
    """
    Configure the ``buenavista`` logger.

    Safe to call once per app instance; handlers are only attached the
    first time (tests build many apps in one process).
    """
    logger = logging.getLogger('buenavista')
    logger.setLevel(logging.DEBUG if app.debug else logging.INFO)

    if logger.handlers:
        return logger

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(JSONFormatter())
    logger.addHandler(console_handler)

    return logger


def audit_log(event: str, message: str, level: int = logging.INFO, **context) -> None:
    """
    Log an audit event.

    Args:
        event: Event type (e.g., 'login_success', 'like_toggled')
        message: Human-readable description
        level: Logging level, INFO unless the event is a denial or failure
        **context: Additional context (ip, user_id, location_id, request_id, ...)
    """
    logger = logging.getLogger('buenavista.audit')
    extra = {'event': event}
    extra.update(context)
    logger.log(level, message, extra=extra)
