"""
Shared fixtures and test doubles for the crawler tests.
"""

import asyncio
import logging
import logging.handlers
from typing import Dict, List, Optional, Tuple, Union

import pytest

from spidered.crawler.fetcher import FetchResult
from spidered.crawler.robots import robots_url
from spidered.utils.config import CrawlConfig
from spidered.utils.errors import RobotsUnavailableError

ROOT = "http://example.test/"


class TransportFailure:
    """Marks a URL whose fetch fails before any response is received."""

    def __init__(self, message: str = "Client error: Connection refused"):
        self.message = message


class RaiseOnFetch:
    """Marks a URL whose fetch raises an unexpected exception."""

    def __init__(self, exc: Exception):
        self.exc = exc


def html_page(*hrefs: str) -> bytes:
    """Build a small HTML page linking to each href."""
    links = ''.join(f'<a href="{href}">link</a>' for href in hrefs)
    return f"<html><head><title>t</title></head><body>{links}</body></html>".encode('utf-8')


class FakeFetcher:
    """
    In-memory fetcher serving a fixed site.

    Pages map absolute URLs to bytes, (status, bytes) tuples, TransportFailure
    or RaiseOnFetch, or to a list of those served in turn. Unknown URLs
    answer 404. Records every fetch and the highest number of fetches
    observed running at once.
    """

    def __init__(self, pages: Optional[Dict[str, Union[bytes, Tuple[int, bytes], TransportFailure, RaiseOnFetch, list]]] = None,
                 robots: Union[None, bytes, Tuple[int, bytes]] = None,
                 robots_error: Optional[str] = None,
                 latency: float = 0.0,
                 delays: Optional[Dict[str, float]] = None):
        self.pages = pages or {}
        self.robots = robots
        self.robots_error = robots_error
        self.latency = latency
        self.delays = delays or {}

        self.calls: List[str] = []
        self.robots_calls = 0
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch(self, url: str) -> FetchResult:
        self.calls.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(url, self.latency))
        finally:
            self.in_flight -= 1

        page = self.pages.get(url, (404, b'not found'))
        if isinstance(page, list):
            # One response per fetch, the last one repeats
            page = page.pop(0) if len(page) > 1 else page[0]
        if isinstance(page, RaiseOnFetch):
            raise page.exc
        if isinstance(page, TransportFailure):
            return FetchResult(url=url, status_code=0, error=page.message)

        status, body = page if isinstance(page, tuple) else (200, page)
        return FetchResult(
            url=url,
            status_code=status,
            body=body,
            headers={'Content-Type': ['text/html; charset=utf-8']},
            content_type='text/html; charset=utf-8',
            fetch_time=0.01,
        )

    async def fetch_robots(self, root_url: str) -> FetchResult:
        self.robots_calls += 1
        url = robots_url(root_url)
        if self.robots_error:
            raise RobotsUnavailableError(url, self.robots_error)

        if self.robots is None:
            status, body = 404, b''
        elif isinstance(self.robots, tuple):
            status, body = self.robots
        else:
            status, body = 200, self.robots
        return FetchResult(url=url, status_code=status, body=body, content_type='text/plain')


@pytest.fixture
def make_config():
    """Factory for crawl configs rooted at ROOT."""
    def _make(**kwargs) -> CrawlConfig:
        kwargs.setdefault('root_url', ROOT)
        return CrawlConfig.create(**kwargs)
    return _make


@pytest.fixture
def restore_logging():
    """Undo changes made to the root logger by setup_logging()."""
    root = logging.getLogger()
    level = root.level
    yield root
    # pytest's own capture handlers are subclasses and are left alone
    for handler in list(root.handlers):
        if type(handler) in (logging.StreamHandler, logging.handlers.RotatingFileHandler):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
