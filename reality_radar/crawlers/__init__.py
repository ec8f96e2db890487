"""Transport payload definitions."""

from reality_radar.crawlers.base import CrawlResult, RawListing, ScrapePass

__all__ = ["CrawlResult", "RawListing", "ScrapePass"]
