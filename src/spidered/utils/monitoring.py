"""
Monitoring and metrics collection for the crawler.
"""

import logging
import time
from typing import Any, Dict, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, start_http_server


class MetricsCollector:
    """Owns the Prometheus metrics for one crawl."""

    def __init__(self, enable_server: bool = False, prometheus_port: int = 8000):
        self.logger = logging.getLogger(__name__)
        self.enable_server = enable_server
        self.prometheus_port = prometheus_port
        self.registry = CollectorRegistry()

        self.pages_crawled = Counter(
            'spidered_pages_crawled_total',
            'Total number of pages fetched and recorded',
            registry=self.registry
        )
        self.fetch_errors = Counter(
            'spidered_fetch_errors_total',
            'Total number of failed page fetches',
            ['error_type'],
            registry=self.registry
        )
        self.robots_blocked = Counter(
            'spidered_robots_blocked_total',
            'Links skipped because robots.txt disallows them',
            registry=self.registry
        )
        self.bytes_downloaded = Counter(
            'spidered_bytes_downloaded_total',
            'Total bytes downloaded',
            registry=self.registry
        )
        self.in_flight = Gauge(
            'spidered_in_flight_fetches',
            'Number of fetches currently holding a socket',
            registry=self.registry
        )
        self.response_time = Histogram(
            'spidered_response_time_seconds',
            'Response time for page fetches',
            registry=self.registry
        )

    def start_server(self):
        """Start the Prometheus metrics HTTP server, if enabled."""
        if not self.enable_server:
            return

        start_http_server(self.prometheus_port, registry=self.registry)
        self.logger.info(f"Prometheus metrics server started on port {self.prometheus_port}")

    def value(self, name: str, labels: Optional[Dict[str, str]] = None) -> float:
        """Read the current value of a sample from the registry."""
        result = self.registry.get_sample_value(name, labels or {})
        return result or 0.0


class CrawlerMonitor:
    """High-level monitoring interface for the crawler."""

    def __init__(self, metrics_collector: Optional[MetricsCollector] = None):
        self.metrics = metrics_collector or MetricsCollector()
        self.start_time = time.time()

    def record_page_crawled(self, url: str, size: int, response_time: float):
        """Record a successfully fetched page."""
        self.metrics.pages_crawled.inc()
        self.metrics.bytes_downloaded.inc(size)
        self.metrics.response_time.observe(response_time)

    def record_error(self, error_type: str):
        """Record a failed page."""
        self.metrics.fetch_errors.labels(error_type=error_type).inc()

    def record_robots_blocked(self, url: str):
        self.metrics.robots_blocked.inc()

    def update_in_flight(self, count: int):
        self.metrics.in_flight.set(count)

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of the crawl metrics."""
        runtime = time.time() - self.start_time
        pages = self.metrics.value('spidered_pages_crawled_total')

        return {
            'runtime_seconds': runtime,
            'pages_crawled': pages,
            'fetch_errors': {
                error_type: self.metrics.value(
                    'spidered_fetch_errors_total', {'error_type': error_type}
                )
                for error_type in ('transport', 'parse')
            },
            'robots_blocked': self.metrics.value('spidered_robots_blocked_total'),
            'bytes_downloaded': self.metrics.value('spidered_bytes_downloaded_total'),
            'pages_per_second': pages / runtime if runtime > 0 else 0,
        }
