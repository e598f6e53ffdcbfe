"""
Find a displayable image for a pasted link.

Steps, in order, with no retries:

1. The link must be non-empty and start with http:// or https://.
2. A Google Images "imgres" link already names the image in its
   ``imgurl`` parameter; return it without fetching anything.
3. Refuse hosts that are ``localhost``, a loopback literal, or a private /
   link-local / "this network" IPv4 literal.
4. GET the page as a desktop browser would, with a timeout, reading
   at most ``MAX_PAGE_BYTES`` of the body.
5. Read ``og:image``, then ``twitter:image`` (name), then
   ``twitter:image`` (property) from the HTML.
6. Turn a protocol-relative result into https and require an http(s) URL.

Only literal IPs are checked: a hostname that resolves to a private
address is still fetched. Redirects are followed by the HTTP client
without re-checking the target.
"""

import ipaddress
import logging
from typing import Optional
from urllib.parse import parse_qs, urlparse

import requests
from bs4 import BeautifulSoup

from buenavista.errors import BadInput, FetchFailed, LinkTimeout, NoImageFound

logger = logging.getLogger(__name__)

FETCH_TIMEOUT = 10  # seconds

MAX_PAGE_BYTES = 512 * 1024

BROWSER_USER_AGENT = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
)

GOOGLE_HOSTS = frozenset({'google.com', 'www.google.com'})

BLOCKED_HOSTNAMES = frozenset({'localhost'})

_BLOCKED_NETWORKS = [
    ipaddress.ip_network(n)
    for n in (
        '0.0.0.0/8',
        '10.0.0.0/8',
        '127.0.0.0/8',
        '169.254.0.0/16',
        '172.16.0.0/12',
        '192.168.0.0/16',
        '::1/128',
    )
]

# (attribute, value) pairs tried in order.
_META_CANDIDATES = (
    ('property', 'og:image'),
    ('name', 'twitter:image'),
    ('property', 'twitter:image'),
)

MSG_EMPTY = 'Please paste a link.'
MSG_SCHEME = 'Link must start with http:// or https://'
MSG_BLOCKED = 'This link is not allowed. Use a public web page or direct image URL.'
MSG_BAD_STATUS = 'Could not fetch the page. Check the link or try a direct image URL.'


def _is_http_url(value: str) -> bool:
    return value.startswith(('http://', 'https://'))


def google_images_url(url: str) -> Optional[str]:
    """The ``imgurl`` of a Google Images "imgres" link, or None."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    if parsed.hostname not in GOOGLE_HOSTS or '/imgres' not in parsed.path:
        return None
    imgurl = (parse_qs(parsed.query).get('imgurl') or [''])[0]
    return imgurl if _is_http_url(imgurl) else None


def is_url_allowed_for_fetch(url: str) -> bool:
    """
    False for localhost, loopback, and private-range IP literals.

    Unparseable URLs are refused too. Hostnames are not resolved.
    """
    try:
        hostname = (urlparse(url).hostname or '').lower()
    except ValueError:
        return False
    if not hostname:
        return False
    if hostname in BLOCKED_HOSTNAMES:
        return False
    try:
        address = ipaddress.ip_address(hostname)
    except ValueError:
        return True
    return not any(address in network for network in _BLOCKED_NETWORKS)


def find_meta_image(html: str) -> Optional[str]:
    """First non-empty preview-image meta content in ``html``."""
    soup = BeautifulSoup(html or '', 'html.parser')
    for attr, value in _META_CANDIDATES:
        tag = soup.find('meta', attrs={attr: value})
        if tag is not None:
            content = (tag.get('content') or '').strip()
            if content:
                return content
    return None


def normalize_image_url(candidate: Optional[str]) -> str:
    """
    Make a found URL usable or raise NoImageFound.

    ``//cdn/x.jpg`` becomes ``https://cdn/x.jpg``.
    """
    if candidate and candidate.startswith('//'):
        candidate = 'https:' + candidate
    if not candidate or not candidate.startswith('http'):
        raise NoImageFound()
    return candidate


def _read_capped(response, limit: int = MAX_PAGE_BYTES) -> str:
    """Decode at most ``limit`` bytes of a streamed response body."""
    body = bytearray()
    for chunk in response.iter_content(chunk_size=16384):
        body.extend(chunk)
        if len(body) >= limit:
            break
    try:
        return bytes(body[:limit]).decode(response.encoding or 'utf-8', errors='replace')
    except LookupError:
        return bytes(body[:limit]).decode('utf-8', errors='replace')


def extract_image_from_link(url: Optional[str], timeout: float = FETCH_TIMEOUT,
                            session: Optional[requests.Session] = None) -> str:
    """
    Return a direct image URL for ``url``.

    Only the first ``MAX_PAGE_BYTES`` of the page are read; preview meta
    tags live in ``<head>``.

    Raises:
        BadInput: empty or non-string link, wrong scheme, or a blocked host.
        LinkTimeout: the page did not answer within ``timeout`` seconds.
        FetchFailed: non-2xx response or any other network failure.
        NoImageFound: the page names no usable preview image.
    """
    if not isinstance(url, str) or not url.strip():
        raise BadInput(MSG_EMPTY)
    url = url.strip()
    if not _is_http_url(url):
        raise BadInput(MSG_SCHEME)

    direct = google_images_url(url)
    if direct:
        return direct

    if not is_url_allowed_for_fetch(url):
        raise BadInput(MSG_BLOCKED)

    http = session or requests
    try:
        response = http.get(
            url,
            headers={'User-Agent': BROWSER_USER_AGENT, 'Accept': 'text/html'},
            timeout=timeout,
            stream=True,
        )
        try:
            if not 200 <= response.status_code < 300:
                raise FetchFailed(MSG_BAD_STATUS)
            html = _read_capped(response)
        finally:
            response.close()
    except requests.Timeout as exc:
        raise LinkTimeout() from exc
    except requests.RequestException as exc:
        logger.warning('Extract image fetch failed for %s: %s', url, exc,
                       extra={'event': 'link_fetch_failed', 'url': url})
        raise FetchFailed() from exc

    return normalize_image_url(find_meta_image(html))
