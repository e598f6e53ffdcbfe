"""
Tests for the ownership gate.

Covers: authorize_owner decisions, and the redirect/flash policy applied
to location and comment routes for anonymous users, non-owners and
missing entities.
"""

import pytest
from conftest import login

from buenavista.comments.models import create_comment, get_comment
from buenavista.context import RequestContext, ResponseMode
from buenavista.errors import Forbidden, NotFound, Unauthenticated
from buenavista.locations.models import AuthorSnapshot, get_location
from buenavista.ownership import authorize_owner


class Entity:
    def __init__(self, author):
        self.author = author


def ctx_for(user):
    return RequestContext(user=user, mode=ResponseMode.REDIRECT)


class TestAuthorizeOwner:
    """Tests for the decision function."""

    def test_owner_gets_entity(self):
        entity = Entity(AuthorSnapshot('u1', 'owner_one'))
        assert authorize_owner(ctx_for({'id': 'u1'}), 'x', lambda _: entity, 'Location') is entity

    def test_anonymous_denied(self):
        with pytest.raises(Unauthenticated):
            authorize_owner(ctx_for(None), 'x', lambda _: Entity(None), 'Location')

    def test_missing_entity(self):
        with pytest.raises(NotFound, match='Comment not found'):
            authorize_owner(ctx_for({'id': 'u1'}), 'x', lambda _: None, 'Comment')

    def test_other_user_denied(self):
        entity = Entity(AuthorSnapshot('u1', 'owner_one'))
        with pytest.raises(Forbidden):
            authorize_owner(ctx_for({'id': 'u2'}), 'x', lambda _: entity, 'Location')

    def test_same_username_different_id_denied(self):
        """Ownership is by id; a reused username is not enough."""
        entity = Entity(AuthorSnapshot('u1', 'owner_one'))
        with pytest.raises(Forbidden):
            authorize_owner(ctx_for({'id': 'u9', 'username': 'owner_one'}), 'x', lambda _: entity, 'Location')

    def test_entity_without_author_denied(self):
        with pytest.raises(Forbidden):
            authorize_owner(ctx_for({'id': 'u1'}), 'x', lambda _: Entity(None), 'Location')


class TestLocationGate:
    """Owner-only location routes."""

    def test_anonymous_edit_redirects_to_login(self, client, location):
        response = client.get(f'/locations/{location.id}/edit')
        assert response.status_code == 302
        assert '/login' in response.headers['Location']
        page = client.get('/login')
        assert b'You need to be logged in to do that' in page.data

    def test_non_owner_edit_redirected_back(self, client, location, other_user):
        login(client, other_user['username'])
        response = client.get(
            f'/locations/{location.id}/edit',
            headers={'Referer': f'http://localhost/locations/{location.id}'},
        )
        assert response.status_code == 302
        assert response.headers['Location'].endswith(f'/locations/{location.id}')

        page = client.get(f'/locations/{location.id}')
        assert b"You don&#39;t have permission to do that" in page.data

    def test_offsite_referrer_ignored(self, client, location, other_user):
        login(client, other_user['username'])
        response = client.get(
            f'/locations/{location.id}/edit',
            headers={'Referer': 'https://evil.example.com/phish'},
        )
        assert 'evil.example.com' not in response.headers['Location']
        assert response.headers['Location'].endswith('/locations')

    def test_non_owner_cannot_update(self, app, client, location, other_user):
        login(client, other_user['username'])
        client.put(f'/locations/{location.id}', data={
            'name': 'Hijacked',
            'image': 'https://images.example.com/x.jpg',
        })
        with app.app_context():
            assert get_location(location.id).name == 'Mirador de San Nicolas'

    def test_non_owner_cannot_delete(self, app, client, location, other_user):
        login(client, other_user['username'])
        client.delete(f'/locations/{location.id}')
        with app.app_context():
            assert get_location(location.id) is not None

    def test_missing_location(self, authenticated_client):
        response = authenticated_client.get('/locations/missing/edit')
        assert response.status_code == 302
        page = authenticated_client.get('/locations')
        assert b'Location not found' in page.data


class TestCommentGate:
    """Owner-only comment routes."""

    def test_post_owner_cannot_edit_someone_elses_comment(self, app, authenticated_client, location, other_user):
        with app.app_context():
            comment = create_comment(get_location(location.id), 'Mine, not yours', AuthorSnapshot.of(other_user))

        authenticated_client.put(
            f'/locations/{location.id}/comments/{comment.id}',
            data={'text': 'Overwritten'},
        )
        authenticated_client.delete(f'/locations/{location.id}/comments/{comment.id}')

        with app.app_context():
            assert get_comment(comment.id).text == 'Mine, not yours'

    def test_missing_comment(self, authenticated_client, location):
        authenticated_client.get(f'/locations/{location.id}/comments/missing/edit')
        page = authenticated_client.get('/locations')
        assert b'Comment not found' in page.data

    def test_denial_is_audited(self, caplog, client, location, other_user):
        login(client, other_user['username'])
        with caplog.at_level('WARNING', logger='buenavista.audit'):
            client.delete(f'/locations/{location.id}')
        events = [getattr(r, 'event', None) for r in caplog.records]
        assert 'access_denied' in events
