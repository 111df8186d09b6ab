"""
Utility modules for the crawler.
"""

from .config import Config, ConfigManager, CrawlConfig, load_config
from .errors import ConfigurationError, CrawlerError, DuplicateRecordError, RobotsUnavailableError
from .logger import get_crawler_logger, setup_logging
from .monitoring import CrawlerMonitor, MetricsCollector

__all__ = [
    'Config', 'ConfigManager', 'CrawlConfig', 'load_config',
    'ConfigurationError', 'CrawlerError', 'DuplicateRecordError', 'RobotsUnavailableError',
    'get_crawler_logger', 'setup_logging',
    'CrawlerMonitor', 'MetricsCollector',
]
