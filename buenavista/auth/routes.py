"""
Authentication routes: landing, register, login, logout.

Login request flow:
1. Rate limiter (flask-limiter decorator): per IP, then per account
2. CSRF validation (flask-wtf before_request hook)
3. Field presence check (one generic message)
4. Timing-safe credential verification
5. Session regeneration, audit log, redirect
"""

from datetime import datetime, timezone

from flask import current_app, redirect, render_template, request, session, url_for

from buenavista.auth import auth_bp
from buenavista.auth.models import create_user
from buenavista.auth.security import (
    log_login_failed,
    log_login_success,
    log_logout,
    log_register,
    log_register_failed,
    verify_credentials,
)
from buenavista.context import load_current_user, set_request_id, with_context
from buenavista.errors import DuplicateKeyError, FieldValidationError
from buenavista.extensions import limiter
from buenavista.mailer import send_onboarding_email
from buenavista.validation import map_register_error, validate_login, validate_register


def start_session(user: dict) -> None:
    """
    Log ``user`` in on a fresh session.

    Clearing first drops anything planted before authentication
    (session fixation).
    """
    session.clear()
    session['user_id'] = user['id']
    session['username'] = user['username']
    session['login_time'] = datetime.now(timezone.utc).isoformat()
    session.permanent = True


auth_bp.before_app_request(set_request_id)


@auth_bp.app_context_processor
def inject_current_user() -> dict:
    return {'current_user': load_current_user()}


@auth_bp.route('/')
def landing():
    return render_template('landing.html')


@auth_bp.route('/register', methods=['GET', 'POST'])
@limiter.limit(
    lambda: current_app.config.get('REGISTER_RATE_LIMIT_IP', '10/minute'),
    methods=['POST'],
    error_message='Too many sign-up attempts. Please wait a moment and try again.',
)
@with_context
def register(ctx):
    if request.method == 'GET':
        if ctx.is_authenticated:
            return redirect(url_for('locations.index'))
        return render_template('register.html')

    result = validate_register(
        request.form.get('username'),
        request.form.get('email'),
        request.form.get('password'),
    )

    if not result.valid:
        log_register_failed(result.username, reason='validation')
        ctx.flash(' '.join(result.errors), 'error')
        return redirect(url_for('auth.register'))

    try:
        user = create_user(result.username, result.email, result.password)
    except (DuplicateKeyError, FieldValidationError) as err:
        log_register_failed(result.username, reason=type(err).__name__)
        ctx.flash(map_register_error(err), 'error')
        return redirect(url_for('auth.register'))

    start_session(user)
    log_register(user)
    ctx.flash(f"Welcome to BuenaVista, {user['username']}!", 'success')

    send_onboarding_email(user['email'], user['username'])

    return redirect(url_for('locations.index'))


@auth_bp.route('/login', methods=['GET', 'POST'])
@limiter.limit(
    lambda: current_app.config.get('LOGIN_RATE_LIMIT_IP', '10/minute'),
    methods=['POST'],
    error_message='Too many login attempts. Please wait a moment and try again.',
)
@limiter.limit(
    lambda: current_app.config.get('LOGIN_RATE_LIMIT_ACCOUNT', '5/minute'),
    key_func=lambda: request.form.get('usernameOrEmail', '').strip().lower() or request.remote_addr,
    methods=['POST'],
    error_message='Too many login attempts for this account. Please wait a moment.',
)
@with_context
def login(ctx):
    if request.method == 'GET':
        if ctx.is_authenticated:
            return redirect(url_for('locations.index'))
        return render_template('login.html')

    username_or_email = request.form.get('usernameOrEmail', '')
    password = request.form.get('password', '')

    result = validate_login(username_or_email, password)
    if not result.valid:
        ctx.flash(result.message, 'error')
        return redirect(url_for('auth.login'))

    user = verify_credentials(username_or_email.strip(), password)
    if user is None:
        log_login_failed(username_or_email.strip())
        # Never say which of the two fields was wrong.
        ctx.flash('Invalid username or password', 'error')
        return redirect(url_for('auth.login'))

    start_session(user)
    log_login_success(user)
    ctx.flash(f"Welcome back, {user['username']}!", 'success')
    return redirect(url_for('locations.index'))


@auth_bp.route('/logout', methods=['GET'])
def logout():
    """Destroy the session, then show the listing with a logged-out notice."""
    username = session.get('username', 'anonymous')
    session.clear()
    log_logout(username)
    return redirect(url_for('locations.index', logged_out=1))
