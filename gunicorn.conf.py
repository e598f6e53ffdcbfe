"""
Gunicorn configuration for production deployment.

Usage:
    gunicorn -c gunicorn.conf.py wsgi:app

Notes:
- Workers are pre-forked; each has its own mail thread pool
- The timeout leaves room for a 10s link-preview fetch plus an upload
- Access log format excludes request bodies and cookies
- Worker recycling (max_requests) mitigates memory leak risks
"""

import multiprocessing
import os

# --- Bind ---
bind = os.environ.get('GUNICORN_BIND', '0.0.0.0:8000')

# --- Workers ---
# 2 * CPU cores + 1, capped; requests are short apart from link fetches.
workers = min(multiprocessing.cpu_count() * 2 + 1, int(os.environ.get('WEB_CONCURRENCY', '4')))
worker_class = 'sync'

# --- Timeouts ---
# Link extraction waits up to 10s on the remote page; image uploads
# stream up to 5 MB on to the image host.
timeout = 45
graceful_timeout = 10
keepalive = 2

# --- Worker Recycling ---
max_requests = 1000
max_requests_jitter = 50

# --- Request limits ---
# Bodies are capped by Flask's MAX_CONTENT_LENGTH (6 MB); these cap the
# request line and headers.
limit_request_line = 8190
limit_request_fields = 50
limit_request_field_size = 8190

# --- Server Identity ---
server_software = ''

# --- Logging ---
accesslog = '-'
errorlog = '-'
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" %(L)s'
loglevel = os.environ.get('LOG_LEVEL', 'info')

proc_name = 'buenavista'

# --- Forwarded Headers ---
# Only trust X-Forwarded-* from the reverse proxy.
forwarded_allow_ips = os.environ.get('FORWARDED_ALLOW_IPS', '127.0.0.1')
