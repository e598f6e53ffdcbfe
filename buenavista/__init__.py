"""
Flask application factory.

Creates and configures the BuenaVista app: extensions, security headers,
logging, template helpers, blueprints and error handlers. Tests build an
app per test with their own config class and instance folder.

Extension initialization order:
1. bcrypt: needed for the dummy hash used by timing-safe login
2. csrf: registers before_request hook for CSRF validation
3. session: server-side session management
4. limiter: enforcement toggled by RATELIMIT_ENABLED
5. mail: outbound notifications
"""

import os
from datetime import datetime

from flask import Flask, jsonify, render_template, request

from buenavista.config import DevelopmentConfig


def _format_date(value, fmt='%b %d, %Y'):
    """Jinja filter: ISO timestamp string -> 'Jan 05, 2025'."""
    if not value:
        return ''
    try:
        return datetime.fromisoformat(value).strftime(fmt)
    except (TypeError, ValueError):
        return value


def create_app(config_class=None, instance_path=None):
    """
    Create and configure the Flask application.

    Args:
        config_class: Configuration class to use. Defaults to DevelopmentConfig.
        instance_path: Folder for the SQLite database and session files.
                       Tests pass a temporary directory.

    Returns:
        Configured Flask application instance.
    """
    if config_class is None:
        config_class = DevelopmentConfig

    app = Flask(
        __name__,
        static_folder='static',
        static_url_path='/static',
        instance_path=instance_path,
    )
    app.config.from_object(config_class)
    if hasattr(config_class, 'init_app'):
        config_class.init_app(app)

    os.makedirs(app.instance_path, exist_ok=True)

    session_dir = os.path.join(app.instance_path, 'flask_sessions')
    os.makedirs(session_dir, exist_ok=True)
    app.config['SESSION_FILE_DIR'] = session_dir

    # HTML forms send PUT/DELETE as POST ?_method=...
    from buenavista.context import MethodOverrideMiddleware
    app.wsgi_app = MethodOverrideMiddleware(app.wsgi_app)

    if app.config.get('PROXY_COUNT'):
        from werkzeug.middleware.proxy_fix import ProxyFix
        count = app.config['PROXY_COUNT']
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=count, x_proto=count, x_host=count)

    # --- Initialize Extensions ---

    from buenavista.extensions import bcrypt, csrf, limiter, mail, sess

    bcrypt.init_app(app)
    csrf.init_app(app)
    sess.init_app(app)
    limiter.init_app(app)
    # Decorators stay registered; enforcement is skipped when disabled.
    limiter.enabled = app.config.get('RATELIMIT_ENABLED', True)
    mail.init_app(app)

    # --- Security Headers ---
    from buenavista.headers import init_security_headers
    init_security_headers(app)

    # --- Logging ---
    from buenavista.logging_config import setup_logging
    setup_logging(app)

    # --- Initialize Dummy Hash for Timing-Safe Verification ---
    from buenavista.auth.security import init_dummy_hash
    with app.app_context():
        init_dummy_hash(app)

    # --- Template helpers ---
    from buenavista.imagehost import display_image_url
    app.jinja_env.globals['display_image_url'] = display_image_url
    app.jinja_env.filters['date'] = _format_date

    # --- Register Blueprints ---
    from buenavista.auth import auth_bp
    from buenavista.comments import comments_bp
    from buenavista.locations import locations_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(locations_bp)
    app.register_blueprint(comments_bp)

    # --- CSRF Error Handler ---
    from flask_wtf.csrf import CSRFError

    from buenavista.auth.security import log_csrf_failure

    @app.errorhandler(CSRFError)
    def handle_csrf_error(e):
        """Expired or missing token: ask the user to try again."""
        log_csrf_failure()
        if request.accept_mimetypes.best == 'application/json' or request.is_json:
            return jsonify(error='Your form session has expired. Please reload the page.'), 400
        from flask import flash, redirect, url_for
        flash('Your form session has expired. Please try again.', 'warning')
        return redirect(url_for('auth.login'))

    # --- HTTP Error Handlers ---

    @app.errorhandler(429)
    def handle_rate_limit(e):
        """Rate limit exceeded: user-friendly page, not a raw error."""
        if request.path == '/locations/extract-image-from-link':
            return jsonify(error=e.description), 429
        return render_template('errors/429.html', message=e.description), 429

    @app.errorhandler(404)
    def handle_not_found(e):
        return render_template('errors/404.html'), 404

    @app.errorhandler(500)
    def handle_server_error(e):
        """Internal server error: no stack traces or internal details."""
        return render_template('errors/500.html'), 500

    @app.errorhandler(413)
    def handle_request_too_large(e):
        """Request body exceeds MAX_CONTENT_LENGTH."""
        if request.path == '/locations/upload-image':
            return jsonify(error='Image is too large. Maximum size is 5 MB.'), 413
        return render_template('errors/413.html'), 413

    # --- Database Initialization ---
    from buenavista.db import close_db, init_db

    app.teardown_appcontext(close_db)

    with app.app_context():
        init_db(app)

    return app
