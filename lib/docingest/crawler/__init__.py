"""
Crawl module for docingest.

This module provides URL canonicalization, page fetching, article
extraction and the bounded-concurrency crawl driver.

Architecture:
- Discovery: canonical URLs, link extraction and the inclusion rule
- Fetcher: single-attempt HTTP fetch with header overrides
- Extractor: article isolation, boilerplate stripping, Markdown conversion
- Frontier: crawl driver with request budget and shared CrawlState
"""

from docingest.crawler.discovery import canonicalize
from docingest.crawler.fetcher import FetchResult, HttpFetcher
from docingest.crawler.frontier import CrawlDriver
from docingest.crawler.models import (
    CrawlConfig,
    CrawledPage,
    CrawlPhase,
    CrawlResult,
    CrawlState,
)

__all__ = [
    "CrawlConfig",
    "CrawlDriver",
    "CrawlPhase",
    "CrawlResult",
    "CrawlState",
    "CrawledPage",
    "FetchResult",
    "HttpFetcher",
    "canonicalize",
]
