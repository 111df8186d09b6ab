"""
HTTP fetch client used by the crawler.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import aiohttp
from aiohttp import ClientError, ClientSession, ClientTimeout

from ..utils.errors import RobotsUnavailableError
from .robots import robots_url


@dataclass
class FetchResult:
    """Result of a fetch operation."""
    url: str
    status_code: int
    body: bytes = b''
    headers: Dict[str, List[str]] = field(default_factory=dict)
    content_type: str = ''
    error: Optional[str] = None
    fetch_time: float = 0.0

    @property
    def ok(self) -> bool:
        """True when the request completed without a transport error."""
        return self.error is None


def _collect_headers(raw_headers) -> Dict[str, List[str]]:
    headers: Dict[str, List[str]] = {}
    for name, value in raw_headers.items():
        headers.setdefault(name, []).append(value)
    return headers


class WebFetcher:
    """
    Issues single GET requests with a fixed User-Agent.

    Transport failures are reported through FetchResult.error rather than
    raised, and nothing is retried. Concurrency is bounded by the caller.
    """

    def __init__(self, user_agent: str, request_timeout: Optional[float] = 30.0):
        self.user_agent = user_agent
        self.request_timeout = request_timeout
        self.logger = logging.getLogger(__name__)
        self.session: Optional[ClientSession] = None

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def start(self):
        """Initialize the fetcher session."""
        if self.session is None:
            self.session = aiohttp.ClientSession(
                timeout=ClientTimeout(total=self.request_timeout),
                headers={'User-Agent': self.user_agent},
                # The scheduler's socket limiter is the only connection bound
                connector=aiohttp.TCPConnector(limit=0),
            )
            self.logger.debug("WebFetcher session started")

    async def close(self):
        """Close the fetcher session."""
        if self.session:
            await self.session.close()
            self.session = None
            self.logger.debug("WebFetcher session closed")

    async def fetch(self, url: str) -> FetchResult:
        """
        Fetch a single URL and read its whole body.

        Args:
            url: The URL to fetch

        Returns:
            FetchResult with the response, or with error set on a transport failure
        """
        if self.session is None:
            raise RuntimeError("WebFetcher.start() must be called before fetch()")

        start_time = time.monotonic()
        try:
            async with self.session.get(url) as response:
                body = await response.read()
                result = FetchResult(
                    url=url,
                    status_code=response.status,
                    body=body,
                    headers=_collect_headers(response.headers),
                    content_type=response.headers.get('Content-Type', ''),
                    fetch_time=time.monotonic() - start_time
                )
                self.logger.debug(f"Fetched {url}: {response.status} ({len(body)} bytes)")
                return result

        except asyncio.TimeoutError:
            error_msg = "Request timeout"
        except ClientError as e:
            error_msg = f"Client error: {e}"

        self.logger.warning(f"Failed to fetch {url}: {error_msg}")
        return FetchResult(
            url=url,
            status_code=0,
            error=error_msg,
            fetch_time=time.monotonic() - start_time
        )

    async def fetch_robots(self, root_url: str) -> FetchResult:
        """
        Fetch the robots.txt for a crawl root.

        Raises:
            RobotsUnavailableError: if the request fails at the transport level
        """
        url = robots_url(root_url)
        result = await self.fetch(url)
        if not result.ok:
            raise RobotsUnavailableError(url, result.error)
        return result
