"""
Exception types raised by the crawler.
"""


class CrawlerError(Exception):
    """Base class for crawler errors."""


class ConfigurationError(CrawlerError, ValueError):
    """Raised when the crawl configuration is invalid."""


class RobotsUnavailableError(CrawlerError):
    """Raised when a domain's robots.txt cannot be fetched or parsed."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Unable to load robots.txt from {url}: {reason}")
        self.url = url
        self.reason = reason


class DuplicateRecordError(CrawlerError):
    """Raised when a page record is written twice for the same URL."""
