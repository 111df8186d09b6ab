"""
spidered

Crawls every page reachable from the root of a single domain.
"""

__version__ = "1.0.0"
__description__ = "A single-domain web crawler with a bounded socket budget"
