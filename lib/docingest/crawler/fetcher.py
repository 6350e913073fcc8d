"""
HTTP fetching for crawl runs.

A failed fetch is reported in the FetchResult rather than raised, so the
crawl driver can treat it as a dead end for that URL without retrying.
"""

import logging
import time
from dataclasses import dataclass

import httpx
from bs4 import BeautifulSoup

from docingest import constants

logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    """Result of a page fetch operation."""

    url: str
    status_code: int
    content: str
    content_type: str
    is_html: bool
    error: str | None = None

    def soup(self) -> BeautifulSoup:
        """Parse the fetched content into a DOM."""
        return BeautifulSoup(self.content, "lxml")


class HttpFetcher:
    """HTTP fetcher with request-level header overrides and configurable delay."""

    USER_AGENT = "docingest/1.0 (+https://github.com/docingest)"

    def __init__(
        self,
        timeout: float = constants.REQUEST_TIMEOUT,
        delay_ms: int = 0,
        cookies: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ):
        """
        Initialize HTTP fetcher.

        Args:
            timeout: Request timeout in seconds
            delay_ms: Delay before each request in milliseconds
            cookies: Optional cookies for authenticated sites
            headers: Optional header overrides, merged over the defaults
        """
        self.timeout = timeout
        self.delay_ms = delay_ms
        self.cookies = cookies or {}
        self.headers = headers or {}

    def fetch(self, url: str) -> FetchResult:
        """
        Fetch URL once.

        Args:
            url: URL to fetch

        Returns:
            FetchResult with content, or with ``error`` set on network
            errors, timeouts and non-success status codes
        """
        if self.delay_ms > 0:
            time.sleep(self.delay_ms / 1000.0)

        try:
            return self._do_fetch(url)
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            return self._failed(url, f"HTTP {status}: {e.response.reason_phrase}", status)
        except httpx.TimeoutException as e:
            return self._failed(url, f"Timeout: {e}")
        except httpx.RequestError as e:
            return self._failed(url, f"Request error: {e}")

    def _do_fetch(self, url: str) -> FetchResult:
        """Perform the actual HTTP fetch."""
        request_headers = {
            "User-Agent": self.USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
            **self.headers,
        }

        with httpx.Client(
            timeout=self.timeout,
            follow_redirects=True,
            cookies=self.cookies,
        ) as client:
            response = client.get(url, headers=request_headers)
            response.raise_for_status()

            content_type = response.headers.get("content-type", "")
            is_html = "text/html" in content_type or "application/xhtml" in content_type

            return FetchResult(
                url=str(response.url),  # May differ from request URL due to redirects
                status_code=response.status_code,
                content=response.text,
                content_type=content_type,
                is_html=is_html,
            )

    @staticmethod
    def _failed(url: str, error: str, status_code: int = 0) -> FetchResult:
        return FetchResult(
            url=url,
            status_code=status_code,
            content="",
            content_type="",
            is_html=False,
            error=error,
        )
