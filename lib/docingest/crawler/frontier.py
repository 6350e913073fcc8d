"""
Crawl driver: bounded-concurrency fetch of a seed set plus discovered links.

Every URL is canonicalized and admitted at most once; admission is bounded
by the request budget. Fetches run on a fixed-size thread pool and all
shared state lives in a single CrawlState guarded by its lock.

Phases:
    IDLE -> RUNNING: seeds admitted, fetches start
    RUNNING -> DRAINING: queue empty and either the budget is exhausted or
        nothing is in flight; no new fetches start, in-flight ones complete
    DRAINING -> DONE: nothing left in flight
"""

import logging
import time
from collections import deque
from collections.abc import Callable, Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Protocol

from docingest.crawler.discovery import canonicalize, extract_links, filter_discovered_urls
from docingest.crawler.fetcher import FetchResult
from docingest.crawler.models import (
    CrawlConfig,
    CrawledPage,
    CrawlPhase,
    CrawlResult,
    CrawlState,
)
from docingest.logging_utils import log_summary, safe_log_event
from docingest.models import Document

logger = logging.getLogger(__name__)

PageHandler = Callable[[CrawledPage], Document | None]


class Fetcher(Protocol):
    """Fetch capability consumed by the driver."""

    def fetch(self, url: str) -> FetchResult: ...


class CrawlDriver:
    """
    Runs one crawl at a time over a fetcher and a page handler.

    Usage:
        driver = CrawlDriver(HttpFetcher(), handle_page, CrawlConfig(max_requests=50))
        result = driver.run(["https://support.example.com/docs"])
    """

    def __init__(self, fetcher: Fetcher, handler: PageHandler, config: CrawlConfig | None = None):
        self.fetcher = fetcher
        self.handler = handler
        self.config = config or CrawlConfig()
        if self.config.max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")

    def run(self, seeds: Iterable[str]) -> CrawlResult:
        """
        Crawl the seeds and every admitted link, then return the documents.

        Args:
            seeds: Starting URLs; canonicalized and admitted under the budget
                but not subject to the link inclusion rule

        Returns:
            CrawlResult with documents, per-page errors and stats
        """
        start = time.monotonic()
        state = CrawlState(max_requests=self.config.max_requests)
        logger.info(f"Starting crawl: {safe_log_event(self.config.to_dict())}")

        queue: deque[str] = deque()
        state.set_phase(CrawlPhase.RUNNING)
        for seed in seeds:
            url = canonicalize(seed)
            if state.admit(url):
                queue.append(url)

        in_flight: dict[Future, str] = {}
        with ThreadPoolExecutor(max_workers=self.config.max_concurrency) as executor:
            while True:
                while queue and len(in_flight) < self.config.max_concurrency:
                    url = queue.popleft()
                    in_flight[executor.submit(self._process, url, state)] = url

                if state.phase is CrawlPhase.RUNNING and not queue:
                    if state.budget_exhausted:
                        logger.info(
                            f"Request budget of {self.config.max_requests} reached, draining"
                        )
                        state.set_phase(CrawlPhase.DRAINING)
                    elif not in_flight:
                        state.set_phase(CrawlPhase.DRAINING)

                if not in_flight:
                    break

                done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
                for future in done:
                    in_flight.pop(future)
                    for link in future.result():
                        if state.admit(link):
                            queue.append(link)

        state.set_phase(CrawlPhase.DONE)

        stats = {
            "requests_issued": state.requests_issued,
            "pages_visited": len(state.visited),
            "documents": len(state.documents),
            "errors": len(state.errors),
        }
        logger.info(
            log_summary(
                "crawl",
                success=True,
                duration_ms=(time.monotonic() - start) * 1000,
                item_count=len(state.documents),
                **stats,
            )
        )
        return CrawlResult(documents=list(state.documents), errors=list(state.errors), stats=stats)

    def _process(self, url: str, state: CrawlState) -> list[str]:
        """
        Fetch and handle one page.

        Never raises: failures are recorded on the state and yield no links.

        Returns:
            Canonical links that pass the inclusion rule
        """
        count = state.record_request()
        logger.debug(f"Fetching {url} ({count}/{self.config.max_requests})")

        try:
            result = self.fetcher.fetch(url)
        except Exception as e:
            logger.warning(f"Fetch failed for {url}: {e}")
            state.record_error(url, str(e), "fetch")
            return []

        if result.error:
            logger.warning(f"Fetch failed for {url}: {result.error}")
            state.record_error(url, result.error, "fetch")
            return []

        if not result.is_html:
            logger.warning(f"Skipping non-HTML content at {url}: {result.content_type}")
            state.record_error(url, f"Not HTML content: {result.content_type}", "fetch")
            return []

        try:
            soup = result.soup()
            links = filter_discovered_urls(
                extract_links(soup, result.url, self.config.link_selector),
                self.config.include_patterns,
                self.config.exclude_patterns,
            )
        except Exception as e:
            logger.warning(f"Link discovery failed for {url}: {e}")
            state.record_error(url, str(e), "discover")
            return []

        page = CrawledPage(
            url=url,
            final_url=result.url,
            status_code=result.status_code,
            html=result.content,
            soup=soup,
        )
        try:
            document = self.handler(page)
        except Exception as e:
            logger.error(f"Page handler failed for {url}: {e}")
            state.record_error(url, str(e), "handle")
            return links

        if document is None:
            logger.debug(f"No document for {url}")
        elif state.add_document(document):
            logger.info(f"✓ Crawled: {document.title}")
        else:
            logger.debug(f"Duplicate document id {document.id}, dropped")

        return links
