"""
HTML and plain-text bodies for transactional email.

Pure functions over their arguments: a standalone Jinja2 environment
(independent of any Flask app) renders the HTML with autoescaping on, so
user-supplied names and comment text can't inject markup.
"""

from jinja2 import Environment, PackageLoader, select_autoescape
from markupsafe import Markup, escape

DEFAULT_APP_URL = 'https://buenavista.in'

# Theme: orange and black. Inline styles only; email clients drop <style>.
THEME = {
    'orange': '#e85d04',
    'black': '#0a0a0a',
    'black_soft': '#1a1a1a',
    'white': '#ffffff',
    'gray_light': '#f5f5f5',
    'gray_text': '#6b6b6b',
}

_env = Environment(
    loader=PackageLoader('buenavista', 'templates/email'),
    autoescape=select_autoescape(['html']),
    trim_blocks=True,
    lstrip_blocks=True,
)


def _render(template_name: str, **context) -> str:
    return _env.get_template(template_name).render(theme=THEME, **context).strip()


def _multiline(text: str) -> Markup:
    """Escape ``text`` and keep its line breaks as <br>."""
    return Markup('<br>').join(escape(line) for line in (text or '').splitlines())


def onboarding_html(username: str, app_url: str = DEFAULT_APP_URL) -> str:
    return _render(
        'onboarding.html',
        name=username or 'Explorer',
        locations_url=f'{app_url.rstrip("/")}/locations',
    )


def onboarding_text(username: str, app_url: str = DEFAULT_APP_URL) -> str:
    name = username or 'Explorer'
    return (
        f"Hola, {name}! Welcome to BuenaVista. We're glad you're here. "
        'Discover amazing locations and share your own with explorers around the world. '
        f'Visit {app_url.rstrip("/")}/locations to get started.'
    )


def location_created_html(username: str, location_name: str, view_url: str) -> str:
    return _render(
        'location_created.html',
        name=username or 'Explorer',
        location_name=location_name or 'Your location',
        view_url=view_url,
    )


def location_created_text(username: str, location_name: str, view_url: str) -> str:
    return (
        f'Hey {username or "Explorer"}, your post "{location_name or "New location"}" is live. '
        f'Other explorers can discover it and comment. View it here: {view_url}'
    )


def comment_notification_html(recipient_name: str, location_name: str, commenter_username: str,
                              comment_text: str, view_url: str) -> str:
    return _render(
        'comment_notification.html',
        recipient=recipient_name or 'there',
        location_name=location_name or 'your post',
        commenter=commenter_username or 'Someone',
        comment=_multiline(comment_text),
        view_url=view_url,
    )


def comment_notification_text(recipient_name: str, location_name: str, commenter_username: str,
                              comment_text: str, view_url: str) -> str:
    return (
        f'{recipient_name or "There"}, {commenter_username or "Someone"} commented on your post '
        f'"{location_name or "your post"}": "{(comment_text or "")[:100]}..." '
        f'View and reply: {view_url}'
    )
