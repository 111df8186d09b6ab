"""
Configuration management for the crawler.
"""

import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlsplit, urlunsplit

import yaml

from .errors import ConfigurationError

DEFAULT_SOCKET_LIMIT = 15
DEFAULT_USER_AGENT = "SpideredBot"
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_LEVELS = ('debug', 'info', 'warning', 'error', 'critical')

logger = logging.getLogger(__name__)


def normalize_root_url(url: str) -> str:
    """
    Validate a crawl root and normalize its path to "/" and its host to lowercase.

    A bare host such as ``example.com`` is given the ``http`` scheme.

    Raises:
        ConfigurationError: if the URL is not an http(s) domain root
    """
    raw = (url or '').strip()
    if not raw:
        raise ConfigurationError("A root URL must be provided")

    if '://' not in raw:
        raw = f"http://{raw}"

    try:
        parsed = urlsplit(raw)
        parsed.port  # raises on a malformed port
    except ValueError as e:
        raise ConfigurationError(f"Root URL is not valid: {url!r}") from e

    if parsed.scheme.lower() not in ('http', 'https'):
        raise ConfigurationError(f"Root URL must use http or https: {url!r}")
    if not parsed.hostname:
        raise ConfigurationError(f"Root URL has no host: {url!r}")
    if parsed.path not in ('', '/'):
        raise ConfigurationError(f"Root URL must not have a path: {url!r}")
    if parsed.query or parsed.fragment:
        raise ConfigurationError(f"Root URL must not have a query or fragment: {url!r}")

    # Hosts are compared case-insensitively, as discovered links are
    return urlunsplit((parsed.scheme.lower(), parsed.netloc.lower(), '/', '', ''))


@dataclass(frozen=True)
class CrawlConfig:
    """Immutable settings for a single crawl."""
    root_url: str
    socket_limit: int = DEFAULT_SOCKET_LIMIT
    ignore_robots: bool = False
    user_agent: str = DEFAULT_USER_AGENT
    strict_robots: bool = False
    release_failed_urls: bool = True
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    @classmethod
    def create(cls, root_url: str, socket_limit: int = DEFAULT_SOCKET_LIMIT,
               ignore_robots: bool = False, user_agent: Optional[str] = None,
               strict_robots: bool = False, release_failed_urls: bool = True,
               request_timeout: float = DEFAULT_REQUEST_TIMEOUT) -> 'CrawlConfig':
        """Build a validated config. Raises ConfigurationError on bad input."""
        if isinstance(socket_limit, bool) or not isinstance(socket_limit, int):
            raise ConfigurationError(f"socket_limit must be an integer: {socket_limit!r}")
        if socket_limit <= 0:
            raise ConfigurationError("socket_limit must be greater than 0")
        if request_timeout is not None and request_timeout <= 0:
            raise ConfigurationError("request_timeout must be greater than 0")

        return cls(
            root_url=normalize_root_url(root_url),
            socket_limit=socket_limit,
            ignore_robots=bool(ignore_robots),
            user_agent=user_agent or DEFAULT_USER_AGENT,
            strict_robots=bool(strict_robots),
            release_failed_urls=bool(release_failed_urls),
            request_timeout=request_timeout,
        )


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = 'error'
    file: Optional[str] = None
    format: str = DEFAULT_LOG_FORMAT
    json: bool = False


@dataclass
class MonitoringConfig:
    """Configuration for monitoring."""
    metrics_enabled: bool = False
    prometheus_port: int = 8000


@dataclass
class Config:
    """Main configuration class."""
    crawler: CrawlConfig
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)


class ConfigManager:
    """Loads the YAML configuration file and applies command-line overrides."""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = Path(config_path) if config_path else None

    def _read_file(self) -> Dict[str, Any]:
        if self.config_path is None or not self.config_path.exists():
            return {}

        try:
            with open(self.config_path, 'r') as file:
                data = yaml.safe_load(file)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Malformed configuration file {self.config_path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file {self.config_path} must contain a mapping")
        return data

    @staticmethod
    def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
        section = data.get(name) or {}
        if not isinstance(section, dict):
            raise ConfigurationError(f"Configuration section '{name}' must be a mapping")
        return section

    @staticmethod
    def _build(cls, values: Dict[str, Any], section: str):
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ConfigurationError(
                f"Unknown keys in '{section}' section: {', '.join(sorted(unknown))}"
            )
        return cls(**values)

    def load_config(self, overrides: Optional[Dict[str, Any]] = None) -> Config:
        """
        Load configuration from the YAML file, if any, then apply overrides.

        Args:
            overrides: crawler settings from the command line; None values are ignored

        Returns:
            Validated Config
        """
        data = self._read_file()

        crawler_values = dict(self._section(data, 'crawler'))
        crawler_values.update({k: v for k, v in (overrides or {}).items() if v is not None})
        known = {f.name for f in fields(CrawlConfig)}
        unknown = set(crawler_values) - known
        if unknown:
            raise ConfigurationError(
                f"Unknown keys in 'crawler' section: {', '.join(sorted(unknown))}"
            )
        if 'root_url' not in crawler_values:
            raise ConfigurationError("A root URL must be provided")

        config = Config(
            crawler=CrawlConfig.create(**crawler_values),
            logging=self._build(LoggingConfig, self._section(data, 'logging'), 'logging'),
            monitoring=self._build(MonitoringConfig, self._section(data, 'monitoring'), 'monitoring'),
        )
        self._validate_config(config)
        return config

    def _validate_config(self, config: Config):
        """Validate values outside the crawl settings."""
        if config.logging.level.lower() not in LOG_LEVELS:
            raise ConfigurationError(f"Invalid log level: {config.logging.level!r}")

        port = config.monitoring.prometheus_port
        if not isinstance(port, int) or not 0 < port < 65536:
            raise ConfigurationError(f"Invalid prometheus_port: {port!r}")

        logger.debug("Configuration validation passed")


def load_config(config_path: Optional[str] = None,
                overrides: Optional[Dict[str, Any]] = None) -> Config:
    """Load configuration from file and command-line overrides."""
    return ConfigManager(config_path).load_config(overrides)


def with_log_level(config: Config, level: Optional[str]) -> Config:
    """Return a copy of config with the log level replaced, if one is given."""
    if not level:
        return config
    if level.lower() not in LOG_LEVELS:
        raise ConfigurationError(f"Invalid log level: {level!r}")
    return replace(config, logging=replace(config.logging, level=level))
