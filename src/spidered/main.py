"""
Command-line entry point for the crawler.
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import Optional

from . import __version__
from .crawler.scheduler import CrawlerScheduler
from .storage.report import export_json, format_report
from .utils.config import LOG_LEVELS, Config, load_config, with_log_level
from .utils.errors import ConfigurationError, RobotsUnavailableError
from .utils.logger import setup_logging
from .utils.monitoring import CrawlerMonitor, MetricsCollector


class CrawlerApp:
    """Main application class for the crawler."""

    def __init__(self):
        self.scheduler: Optional[CrawlerScheduler] = None
        self.logger = logging.getLogger(__name__)
        self._shutdown_event: Optional[asyncio.Event] = None

    def setup_signal_handlers(self):
        """Setup signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, self._shutdown_event.set)
            except (NotImplementedError, RuntimeError):
                # Not supported on this platform or outside the main thread
                pass

    async def run(self, config: Config, output: Optional[str] = None) -> int:
        """Run a crawl and print its report. Returns the process exit code."""
        # Created here so the event belongs to the running loop
        self._shutdown_event = asyncio.Event()
        self.setup_signal_handlers()

        monitor = CrawlerMonitor(MetricsCollector(
            enable_server=config.monitoring.metrics_enabled,
            prometheus_port=config.monitoring.prometheus_port,
        ))
        monitor.metrics.start_server()

        self.scheduler = CrawlerScheduler(config.crawler, monitor=monitor)

        crawl_task = asyncio.create_task(self.scheduler.crawl())
        shutdown_task = asyncio.create_task(self._shutdown_event.wait())

        done, pending = await asyncio.wait(
            [crawl_task, shutdown_task],
            return_when=asyncio.FIRST_COMPLETED
        )

        for task in pending:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        if crawl_task not in done:
            self.logger.warning("Shutdown requested, crawl stopped before completion")
            return 1

        try:
            result = crawl_task.result()
        except RobotsUnavailableError as e:
            self.logger.error(f"Crawl aborted: {e}")
            print(f"Error: {e}", file=sys.stderr)
            return 1

        print(format_report(result))
        if output:
            export_json(result, output)

        self.logger.info(f"Crawl summary: {monitor.get_summary()}")
        return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='spidered',
        description="Crawl a domain to find every page on it.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  spidered crawl --url example.com
  spidered crawl --url https://example.com --socket-limit 5 --ignore-robots
  spidered --log-level info crawl --url example.com --output results.json
        """
    )
    parser.add_argument(
        '--config',
        default='config.yaml',
        help='Path to configuration file (default: config.yaml, optional)'
    )
    parser.add_argument(
        '-l', '--log-level',
        type=str.lower,
        choices=LOG_LEVELS,
        help='Logging level (overrides the configuration file)'
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'spidered {__version__}'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)
    crawl = subparsers.add_parser('crawl', help='Crawl a url to find every url on the domain.')
    crawl.add_argument('-u', '--url', help='The url to crawl, eg. example.com')
    crawl.add_argument('-s', '--socket-limit', type=int,
                       help='The max number of socket connections to allow (default: 15)')
    crawl.add_argument('--ignore-robots', action='store_const', const=True,
                       help="Ignore the domain's robots.txt file")
    crawl.add_argument('--strict-robots', action='store_const', const=True,
                       help='Abort the crawl if robots.txt cannot be loaded')
    crawl.add_argument('--keep-failed-urls', dest='release_failed_urls',
                       action='store_const', const=False,
                       help='Never reschedule a URL whose fetch failed')
    crawl.add_argument('-ua', '--user-agent', help='The User-Agent to send when crawling')
    crawl.add_argument('--timeout', dest='request_timeout', type=float,
                       help='Per-request timeout in seconds (default: 30)')
    crawl.add_argument('-o', '--output', help='Write the results to a JSON file')
    return parser


def main(argv=None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    overrides = {
        'root_url': args.url,
        'socket_limit': args.socket_limit,
        'ignore_robots': args.ignore_robots,
        'strict_robots': args.strict_robots,
        'release_failed_urls': args.release_failed_urls,
        'user_agent': args.user_agent,
        'request_timeout': args.request_timeout,
    }

    try:
        config = with_log_level(load_config(args.config, overrides), args.log_level)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(config.logging)

    app = CrawlerApp()
    try:
        return asyncio.run(app.run(config, output=args.output))
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
