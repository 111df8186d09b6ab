"""
Page records and the shared result table written by crawl tasks.
"""

import asyncio
import zlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple
from urllib.parse import urlsplit

from ..crawler.fetcher import FetchResult
from ..utils.errors import DuplicateRecordError


def checksum(body: bytes) -> int:
    """CRC-32 (IEEE) of the raw body, as an unsigned 32-bit integer."""
    return zlib.crc32(body) & 0xFFFFFFFF


@dataclass(frozen=True)
class PageRecord:
    """What was observed when a single page was fetched."""
    url: str
    path: str
    content_type: str
    crawled_at: datetime
    status_code: int
    size: int
    checksum: int
    headers: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    fetch_time: float = 0.0

    @classmethod
    def from_fetch(cls, url: str, result: FetchResult,
                   crawled_at: Optional[datetime] = None) -> 'PageRecord':
        """Build a record from a successful fetch."""
        headers = {name: tuple(values) for name, values in result.headers.items()}
        return cls(
            url=url,
            path=urlsplit(url).path or '/',
            content_type=result.content_type,
            crawled_at=crawled_at or datetime.now(timezone.utc),
            status_code=result.status_code,
            size=len(result.body),
            checksum=checksum(result.body),
            headers=MappingProxyType(headers),
            fetch_time=result.fetch_time,
        )

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization."""
        return {
            'url': self.url,
            'path': self.path,
            'content_type': self.content_type,
            'crawled_at': self.crawled_at.isoformat(),
            'status_code': self.status_code,
            'size': self.size,
            'checksum': self.checksum,
            'headers': {name: list(values) for name, values in self.headers.items()},
            'fetch_time': self.fetch_time,
        }


class ResultTable:
    """
    URL -> PageRecord map shared by all crawl tasks.

    Writes go through insert() one at a time. Reads are meant for after the
    crawl has joined, through snapshot().
    """

    def __init__(self):
        self._records: Dict[str, PageRecord] = {}
        self._lock = asyncio.Lock()

    async def insert(self, url: str, record: PageRecord):
        """
        Store the record for url.

        Raises:
            DuplicateRecordError: if url already has a record
        """
        async with self._lock:
            if url in self._records:
                raise DuplicateRecordError(f"A page record already exists for {url}")
            self._records[url] = record

    def snapshot(self) -> Mapping[str, PageRecord]:
        """Read-only copy of the table."""
        return MappingProxyType(dict(self._records))

    def __contains__(self, url: str) -> bool:
        return url in self._records

    def __len__(self) -> int:
        return len(self._records)


@dataclass(frozen=True)
class CrawlResult:
    """Outcome of a completed crawl."""
    root_url: str
    pages: Mapping[str, PageRecord]
    elapsed: float
    failed: Tuple[str, ...] = ()
    robots_blocked: int = 0

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization."""
        pages: List[Dict] = [self.pages[url].to_dict() for url in sorted(self.pages)]
        return {
            'root_url': self.root_url,
            'elapsed_seconds': self.elapsed,
            'page_count': len(self.pages),
            'failed': list(self.failed),
            'robots_blocked': self.robots_blocked,
            'pages': pages,
        }
