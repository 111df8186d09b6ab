"""
Crawl scheduler: expands the frontier from the root page until no work is left.

Every in-scope link that passes the robots gate and has not been seen before
gets its own task. A task waits for a socket permit, fetches its page once,
releases the permit, then parses the page, schedules the new links it finds
and records the page. The crawl is over when the task group drains.
"""

import logging
import time
from typing import Optional, Set

from ..storage.results import CrawlResult, PageRecord, ResultTable
from ..utils.config import CrawlConfig
from ..utils.errors import RobotsUnavailableError
from ..utils.logger import get_crawler_logger
from ..utils.monitoring import CrawlerMonitor
from .fetcher import WebFetcher
from .frontier import CrawlTaskGroup, DispatchedSet, SocketLimiter
from .parser import extract_hrefs
from .robots import is_allowed, load_policy
from .urls import in_scope, normalize, request_path


class CrawlerScheduler:
    """
    Coordinates a single crawl of one domain.

    The fetcher is anything with an async fetch(url) -> FetchResult and
    fetch_robots(root_url) -> FetchResult. When none is given, a WebFetcher
    is created and closed by crawl().
    """

    def __init__(self, config: CrawlConfig, fetcher: Optional[WebFetcher] = None,
                 monitor: Optional[CrawlerMonitor] = None):
        self.config = config
        self.fetcher = fetcher
        self.monitor = monitor or CrawlerMonitor()
        self.logger = get_crawler_logger(__name__, root_url=config.root_url)

        # Crawl state
        self.robots_policy = None
        self.dispatched = DispatchedSet()
        self.limiter = SocketLimiter(config.socket_limit)
        self.results = ResultTable()
        self.tasks = CrawlTaskGroup()
        self.failed: Set[str] = set()
        self.robots_blocked = 0
        self._started = False

        self.logger.info(
            f"Created a new crawler - url: {config.root_url}, "
            f"socket limit: {config.socket_limit}, "
            f"ignore robots: {config.ignore_robots}, "
            f"user agent: {config.user_agent}"
        )

    async def crawl(self) -> CrawlResult:
        """
        Crawl the configured domain and block until every task has finished.

        Returns:
            CrawlResult with one PageRecord per successfully fetched page

        Raises:
            RobotsUnavailableError: if robots.txt cannot be loaded and
                strict_robots is set
        """
        if self._started:
            raise RuntimeError("A CrawlerScheduler can only crawl once")
        self._started = True

        if self.fetcher is None:
            async with WebFetcher(self.config.user_agent, self.config.request_timeout) as fetcher:
                self.fetcher = fetcher
                return await self._crawl()

        return await self._crawl()

    async def _crawl(self) -> CrawlResult:
        start_time = time.monotonic()
        root_url = self.config.root_url

        await self._load_robots()

        try:
            await self.dispatched.insert_if_absent(root_url)
            self.tasks.spawn(self._crawl_url(root_url), name=root_url)
            await self.tasks.wait()
        finally:
            if self.tasks.pending:
                await self.tasks.cancel()

        elapsed = time.monotonic() - start_time
        pages = self.results.snapshot()
        self.logger.info(
            f"Crawl complete: {len(pages)} pages, {len(self.failed)} failed, "
            f"{elapsed:.2f}s, peak sockets {self.limiter.peak}"
        )

        return CrawlResult(
            root_url=root_url,
            pages=pages,
            elapsed=elapsed,
            failed=tuple(sorted(self.failed)),
            robots_blocked=self.robots_blocked,
        )

    async def _load_robots(self):
        """Load the domain's robots.txt unless robots are ignored."""
        if self.config.ignore_robots:
            self.logger.info("Ignoring robots.txt")
            return

        try:
            response = await self.fetcher.fetch_robots(self.config.root_url)
            self.robots_policy = load_policy(response.status_code, response.body, response.url)
            self.logger.info(f"Loaded robots.txt ({response.status_code})")
        except RobotsUnavailableError as e:
            if self.config.strict_robots:
                self.logger.error(f"{e}; aborting crawl")
                raise
            self.logger.warning(f"{e}; crawling without robots rules")

    async def _crawl_url(self, url: str):
        """Fetch one page, schedule its new links and record it."""
        self.logger.info(f"Crawling new URL: {url}")

        try:
            async with self.limiter:
                self.monitor.update_in_flight(self.limiter.in_flight)
                result = await self.fetcher.fetch(url)
        except Exception as e:
            self.logger.error(f"Unexpected error fetching {url}: {e}", exc_info=True)
            await self._page_failed(url, 'transport', str(e),
                                    release=self.config.release_failed_urls)
            return
        finally:
            self.monitor.update_in_flight(self.limiter.in_flight)

        if not result.ok:
            await self._page_failed(url, 'transport', result.error,
                                    release=self.config.release_failed_urls)
            return

        record = PageRecord.from_fetch(url, result)

        try:
            for href in extract_hrefs(result.body):
                await self._discover(href)
        except Exception as e:
            # Links found before the error have already been scheduled
            await self._page_failed(url, 'parse', str(e), release=False)
            return

        await self.results.insert(url, record)
        # A released URL can fail once and succeed when rediscovered
        self.failed.discard(url)
        self.monitor.record_page_crawled(url, record.size, result.fetch_time)
        self.logger.info(f"URL crawling complete: {url}")

    async def _discover(self, href: str):
        """Schedule a task for a scraped link if it should be crawled."""
        url = normalize(href, self.config.root_url)

        if not in_scope(self.config.root_url, url):
            self.logger.debug(f"Skipping irrelevant URL: {url}")
            return

        if not is_allowed(self.robots_policy, request_path(url), self.config.user_agent,
                          ignore_robots=self.config.ignore_robots,
                          strict=self.config.strict_robots):
            self.robots_blocked += 1
            self.monitor.record_robots_blocked(url)
            self.logger.info(f"Skipping URL as per robots.txt: {url}")
            return

        if not await self.dispatched.insert_if_absent(url):
            self.logger.debug(f"URL already crawled: {url}")
            return

        self.tasks.spawn(self._crawl_url(url), name=url)

    async def _page_failed(self, url: str, error_type: str, error: Optional[str], release: bool):
        self.failed.add(url)
        self.monitor.record_error(error_type)
        self.logger.log_url_event(logging.WARNING, url, f"Failed to crawl {url}: {error}")
        if release:
            await self.dispatched.discard(url)


async def run_crawl(config: CrawlConfig, fetcher: Optional[WebFetcher] = None,
                    monitor: Optional[CrawlerMonitor] = None) -> CrawlResult:
    """Crawl a domain with a fresh scheduler."""
    return await CrawlerScheduler(config, fetcher=fetcher, monitor=monitor).crawl()
