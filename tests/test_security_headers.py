"""
Tests for HTTP security response headers.

Every response, HTML or JSON, carries the headers set in headers.py.
"""

import re


class TestContentSecurityPolicy:
    """Tests for CSP header."""

    def test_csp_present_on_response(self, client):
        response = client.get('/locations')
        assert 'Content-Security-Policy' in response.headers

    def test_csp_contains_nonce(self, client):
        response = client.get('/login')
        csp = response.headers['Content-Security-Policy']
        assert "script-src 'nonce-" in csp
        assert "style-src 'self' 'nonce-" in csp

    def test_nonce_matches_inline_script(self, client, location):
        """Inline scripts carry the nonce from the header."""
        response = client.get('/locations')
        nonce = re.search(r"'nonce-([^']+)'", response.headers['Content-Security-Policy']).group(1)
        assert f'<script nonce="{nonce}">'.encode() in response.data

    def test_csp_nonce_changes_per_request(self, client):
        """Each request must get a unique CSP nonce."""
        csp1 = client.get('/login').headers['Content-Security-Policy']
        csp2 = client.get('/login').headers['Content-Security-Policy']

        nonces1 = re.findall(r"'nonce-([^']+)'", csp1)
        nonces2 = re.findall(r"'nonce-([^']+)'", csp2)

        assert nonces1, 'No nonce found in first response CSP'
        assert nonces2, 'No nonce found in second response CSP'
        assert nonces1[0] != nonces2[0], 'Nonces must be unique per request'

    def test_images_from_any_https_origin(self, client):
        csp = client.get('/locations').headers['Content-Security-Policy']
        assert "img-src 'self' https: data:" in csp

    def test_scripts_only_call_back_to_us(self, client):
        csp = client.get('/locations').headers['Content-Security-Policy']
        assert "connect-src 'self'" in csp

    def test_csp_frame_ancestors_none(self, client):
        csp = client.get('/login').headers['Content-Security-Policy']
        assert "frame-ancestors 'none'" in csp

    def test_csp_form_action_self(self, client):
        csp = client.get('/login').headers['Content-Security-Policy']
        assert "form-action 'self'" in csp

    def test_csp_object_src_none(self, client):
        csp = client.get('/login').headers['Content-Security-Policy']
        assert "object-src 'none'" in csp


class TestOtherSecurityHeaders:
    """Tests for non-CSP security headers."""

    def test_x_frame_options_deny(self, client):
        assert client.get('/login').headers.get('X-Frame-Options') == 'DENY'

    def test_x_content_type_options_nosniff(self, client):
        assert client.get('/login').headers.get('X-Content-Type-Options') == 'nosniff'

    def test_headers_on_json_responses(self, client):
        response = client.get('/locations/api/likes')
        assert response.headers.get('X-Content-Type-Options') == 'nosniff'
        assert 'Content-Security-Policy' in response.headers

    def test_referrer_policy(self, client):
        response = client.get('/login')
        assert response.headers.get('Referrer-Policy') == 'strict-origin-when-cross-origin'

    def test_permissions_policy(self, client):
        pp = client.get('/login').headers.get('Permissions-Policy', '')
        assert 'camera=()' in pp
        assert 'geolocation=()' in pp

    def test_cross_origin_opener_policy(self, client):
        assert client.get('/login').headers.get('Cross-Origin-Opener-Policy') == 'same-origin'

    def test_no_hsts_in_testing(self, client):
        assert 'Strict-Transport-Security' not in client.get('/login').headers

    def test_cache_control_no_store(self, client):
        cc = client.get('/login').headers.get('Cache-Control', '')
        assert 'no-store' in cc

    def test_route_cache_control_kept(self, client):
        """Routes that pick their own Cache-Control keep it."""
        assert client.get('/locations').headers['Cache-Control'] == 'private, no-store'

    def test_server_header_stripped(self, client):
        assert 'Server' not in client.get('/login').headers

    def test_x_permitted_cross_domain_policies(self, client):
        assert client.get('/login').headers.get('X-Permitted-Cross-Domain-Policies') == 'none'
