"""
Security response headers.

Applied via @app.after_request to every response, with a per-request
nonce for inline scripts and styles.
"""

import secrets

from flask import Flask, g, request


def generate_csp_nonce() -> str:
    """256 bits, base64url-encoded, new for every request."""
    return secrets.token_urlsafe(32)


def init_security_headers(app: Flask) -> None:
    """Register security header hooks on the Flask app."""

    @app.before_request
    def set_csp_nonce() -> None:
        g.csp_nonce = generate_csp_nonce()

    @app.context_processor
    def inject_csp_nonce() -> dict:
        return {'csp_nonce': g.get('csp_nonce', '')}

    @app.after_request
    def set_security_headers(response):
        nonce = g.get('csp_nonce', '')

        # Location images are arbitrary https URLs pasted by users or
        # served by the image host, so img-src allows any https origin.
        # Scripts may only talk back to us (like toggles, uploads).
        csp_directives = [
            "default-src 'self'",
            f"script-src 'nonce-{nonce}'",
            f"style-src 'self' 'nonce-{nonce}'",
            "img-src 'self' https: data:",
            "connect-src 'self'",
            "frame-ancestors 'none'",
            "form-action 'self'",
            "base-uri 'self'",
            "object-src 'none'",
        ]
        response.headers['Content-Security-Policy'] = '; '.join(csp_directives)
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'DENY'

        if not app.debug and not app.testing:
            response.headers['Strict-Transport-Security'] = (
                'max-age=31536000; includeSubDomains'
            )

        response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
        response.headers['Permissions-Policy'] = (
            'camera=(), microphone=(), geolocation=(), payment=()'
        )
        response.headers['Cross-Origin-Opener-Policy'] = 'same-origin'
        response.headers['X-Permitted-Cross-Domain-Policies'] = 'none'

        # Pages are per-user (flash messages, like state); routes that set
        # their own Cache-Control keep it.
        if not request.path.startswith('/static/') and 'Cache-Control' not in response.headers:
            response.headers['Cache-Control'] = 'no-store, no-cache, must-revalidate, max-age=0'
            response.headers['Pragma'] = 'no-cache'

        response.headers.pop('Server', None)
        response.headers.pop('X-Powered-By', None)

        return response
