"""
URL normalization and crawl scope filtering.
"""

from typing import Optional, Tuple
from urllib.parse import urljoin, urlsplit, urlunsplit

CRAWLABLE_SCHEMES = ('http', 'https')


def normalize(href: str, base_url: str) -> str:
    """
    Resolve a scraped href into an absolute URL.

    The href is resolved against base_url, the fragment is dropped, the host
    is lowercased and an empty path becomes "/". Never raises: an href that
    cannot be parsed is returned stripped, and in_scope() rejects it.
    """
    href = (href or '').strip()
    try:
        parsed = urlsplit(urljoin(base_url, href))
    except ValueError:
        return href

    return urlunsplit((
        parsed.scheme,
        parsed.netloc.lower(),
        parsed.path or '/',
        parsed.query,
        ''  # Remove fragment
    ))


def _host(url: str) -> Optional[Tuple[str, Optional[int]]]:
    try:
        parsed = urlsplit(url)
        if not parsed.hostname:
            return None
        return parsed.hostname, parsed.port
    except ValueError:
        return None


def in_scope(root_url: str, candidate_url: str) -> bool:
    """Check that a URL is an http(s) URL on the same host as the crawl root."""
    candidate_host = _host(candidate_url)
    if candidate_host is None or candidate_host != _host(root_url):
        return False

    return urlsplit(candidate_url).scheme in CRAWLABLE_SCHEMES


def request_path(url: str) -> str:
    """Path and query of a URL, as matched against robots.txt rules."""
    parsed = urlsplit(url)
    path = parsed.path or '/'
    if parsed.query:
        path = f"{path}?{parsed.query}"
    return path
