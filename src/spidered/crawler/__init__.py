"""
Crawler core components.
"""

from .fetcher import FetchResult, WebFetcher
from .frontier import CrawlTaskGroup, DispatchedSet, SocketLimiter
from .parser import extract_hrefs
from .robots import is_allowed, load_policy, robots_url
from .urls import in_scope, normalize, request_path

__all__ = [
    'FetchResult', 'WebFetcher',
    'CrawlTaskGroup', 'DispatchedSet', 'SocketLimiter',
    'extract_hrefs',
    'is_allowed', 'load_policy', 'robots_url',
    'in_scope', 'normalize', 'request_path',
]
