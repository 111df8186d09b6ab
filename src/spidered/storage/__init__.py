"""
Crawl results and their output formats.
"""

from .report import export_json, format_report
from .results import CrawlResult, PageRecord, ResultTable, checksum

__all__ = ['CrawlResult', 'PageRecord', 'ResultTable', 'checksum', 'export_json', 'format_report']
