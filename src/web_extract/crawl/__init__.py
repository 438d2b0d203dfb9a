"""Recursive subpage crawling."""

from web_extract.crawl.engine import CrawlEngine, CrawlState

__all__ = [
    "CrawlEngine",
    "CrawlState",
]
