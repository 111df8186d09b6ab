"""
Human-readable and JSON output for a finished crawl.
"""

import json
import logging
from pathlib import Path
from typing import List

from .results import CrawlResult, PageRecord

logger = logging.getLogger(__name__)


def _format_page(record: PageRecord) -> List[str]:
    lines = [
        f"URL: {record.url}",
        f"   - Path: {record.path}",
        f"   - Crawled At: {record.crawled_at.isoformat()}",
        f"   - Content-Type: {record.content_type}",
        f"   - Response Status: {record.status_code}",
        f"   - Response Size (bytes): {record.size}",
        f"   - Response Checksum (CRC32-IEEE): {record.checksum}",
        f"   - Response Headers: ({len(record.headers)})",
    ]
    for name, values in sorted(record.headers.items()):
        lines.append(f"       - {name}: {', '.join(values)}")
    return lines


def format_report(result: CrawlResult) -> str:
    """Render every crawled page, ordered by URL, followed by a summary."""
    lines: List[str] = []
    for url in sorted(result.pages):
        lines.append('')
        lines.extend(_format_page(result.pages[url]))

    lines.append('')
    lines.append(
        f"Crawled {len(result.pages)} pages from {result.root_url} "
        f"in {result.elapsed:.2f}s ({len(result.failed)} failed, "
        f"{result.robots_blocked} links blocked by robots.txt)"
    )
    return '\n'.join(lines)


def export_json(result: CrawlResult, file_path: str) -> Path:
    """Write the crawl result to a JSON file and return its path."""
    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, 'w', encoding='utf-8') as f:
        json.dump(result.to_dict(), f, ensure_ascii=False, indent=2)

    logger.info(f"Crawl result exported to {path}")
    return path
