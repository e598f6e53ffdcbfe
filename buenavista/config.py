"""
Application configuration: one class per environment.

Every threshold carries a short note on where the number comes from.
Secrets and provider credentials are read from the environment.
"""

import os
import secrets
from datetime import timedelta


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class BaseConfig:
    """Shared configuration for all environments."""

    # --- Flask Core ---
    SECRET_KEY = os.environ.get('SECRET_KEY') or secrets.token_hex(32)

    # Image uploads are capped at 5MB by the upload route; leave room for
    # the multipart envelope and the other form fields.
    MAX_CONTENT_LENGTH = 6 * 1024 * 1024  # 6MB

    # Public base URL used in email links.
    APP_URL = os.environ.get('APP_URL', 'https://buenavista.in').rstrip('/')

    # --- Session Configuration (flask-session) ---
    SESSION_TYPE = 'filesystem'
    SESSION_PERMANENT = True
    # Sessions live for 14 days, matching the session cookie max age.
    PERMANENT_SESSION_LIFETIME = timedelta(days=14)
    SESSION_KEY_PREFIX = 'session:'

    # --- Session Cookie Flags ---
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    SESSION_COOKIE_NAME = 'session'

    # --- bcrypt ---
    # 12 rounds ≈ 250ms per hash.
    BCRYPT_LOG_ROUNDS = 12
    # Passwords may be up to 128 chars; bcrypt only reads 72 bytes.
    # Pre-hash with SHA-256 so the whole password counts.
    BCRYPT_HANDLE_LONG_PASSWORDS = True

    # --- Rate Limiting (flask-limiter) ---
    RATELIMIT_ENABLED = True
    RATELIMIT_STORAGE_URI = 'memory://'
    RATELIMIT_HEADERS_ENABLED = True
    RATELIMIT_DEFAULT = '200/hour'

    LOGIN_RATE_LIMIT_IP = '10/minute'
    LOGIN_RATE_LIMIT_ACCOUNT = '5/minute'
    REGISTER_RATE_LIMIT_IP = '10/minute'
    # Every extraction costs an outbound fetch of up to 10s.
    EXTRACT_IMAGE_RATE_LIMIT_IP = '30/minute'

    # --- Link Image Extraction ---
    LINK_FETCH_TIMEOUT = 10  # seconds

    # --- Image Uploads ---
    MAX_IMAGE_SIZE = 5 * 1024 * 1024  # 5MB
    ALLOWED_IMAGE_MIMETYPES = ('image/jpeg', 'image/png', 'image/gif', 'image/webp')

    # --- Image Hosting (cloudinary) ---
    CLOUDINARY_CLOUD_NAME = os.environ.get('CLOUDINARY_CLOUD_NAME', '').strip()
    CLOUDINARY_API_KEY = os.environ.get('CLOUDINARY_API_KEY', '').strip()
    CLOUDINARY_API_SECRET = os.environ.get('CLOUDINARY_API_SECRET', '').strip()
    CLOUDINARY_UPLOAD_FOLDER = 'locations'
    # Route external image URLs through the host's fetch proxy for resizing.
    IMAGE_USE_FETCH_PROXY = _env_flag('IMAGE_USE_FETCH_PROXY')

    # --- Email (flask-mail) ---
    MAIL_SERVER = os.environ.get('MAIL_SERVER', 'smtp.resend.com')
    MAIL_PORT = int(os.environ.get('MAIL_PORT', '587'))
    MAIL_USE_TLS = _env_flag('MAIL_USE_TLS', default=True)
    MAIL_USERNAME = os.environ.get('MAIL_USERNAME', 'resend')
    MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD')
    MAIL_DEFAULT_SENDER = os.environ.get('MAIL_DEFAULT_SENDER', 'BuenaVista <info@buenavista.in>')
    MAIL_WELCOME_SENDER = os.environ.get('MAIL_WELCOME_SENDER', 'BuenaVista <welcome@buenavista.in>')
    # Send on a background thread so email never delays the response.
    MAIL_ASYNC = True

    # --- Database ---
    DATABASE_NAME = 'buenavista.db'


class ProductionConfig(BaseConfig):
    """Production environment: all security controls enforced."""

    DEBUG = False
    TESTING = False

    # Never fall back to a random key in production: it would
    # invalidate every session on restart.
    SECRET_KEY = os.environ.get('SECRET_KEY')

    SESSION_COOKIE_SECURE = _env_flag('USE_HTTPS', default=True)
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    # Number of reverse proxies in front of the app (X-Forwarded-For hops).
    PROXY_COUNT = int(os.environ.get('PROXY_COUNT', '1'))

    @classmethod
    def init_app(cls, app):
        """Validate required configuration at startup."""
        if not cls.SECRET_KEY:
            raise RuntimeError(
                'SECRET_KEY environment variable is required in production. '
                'Generate one with: python -c "import secrets; print(secrets.token_hex(32))"'
            )


class DevelopmentConfig(BaseConfig):
    """Development environment: relaxed cookie settings for HTTP."""

    DEBUG = True
    SESSION_COOKIE_SECURE = False


class TestConfig(BaseConfig):
    """Test environment: fast bcrypt, CSRF/rate-limiting off by default."""

    TESTING = True
    SESSION_COOKIE_SECURE = False
    # 4 rounds for fast test execution (~4ms vs ~250ms per hash).
    BCRYPT_LOG_ROUNDS = 4
    RATELIMIT_ENABLED = False
    WTF_CSRF_ENABLED = False
    DATABASE_NAME = 'test.db'
    APP_URL = 'https://buenavista.test'

    # Mail is recorded, never delivered, and sent inline so tests can see it.
    MAIL_SUPPRESS_SEND = True
    MAIL_PASSWORD = 'test-mail-password'
    MAIL_ASYNC = False

    CLOUDINARY_CLOUD_NAME = 'demo-cloud'
    CLOUDINARY_API_KEY = 'test-key'
    CLOUDINARY_API_SECRET = 'test-secret'
    IMAGE_USE_FETCH_PROXY = False


class RateLimitTestConfig(TestConfig):
    """Test config with rate limiting enabled."""

    RATELIMIT_ENABLED = True


class CSRFTestConfig(TestConfig):
    """Test config with CSRF protection enabled."""

    WTF_CSRF_ENABLED = True
