"""
Data models for the crawl pipeline.

These models represent one crawl run as it flows through the driver:
configuration -> state (visited set, request budget, documents) -> result.
"""

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from bs4 import BeautifulSoup

from docingest import constants
from docingest.models import Document


class CrawlPhase(str, Enum):
    """Lifecycle of a crawl run."""

    IDLE = "idle"
    RUNNING = "running"
    DRAINING = "draining"  # No new fetches start; in-flight fetches complete
    DONE = "done"


@dataclass
class CrawlConfig:
    """
    Configuration for a crawl run.

    Attributes:
        max_requests: Maximum number of URLs admitted (and fetched) per run
        max_concurrency: Maximum number of in-flight fetches
        link_selector: CSS selector limiting where outbound links are collected
        include_patterns: Glob patterns a discovered link must match
        exclude_patterns: Glob patterns a discovered link must not match
        request_delay_ms: Delay before each request in milliseconds
        timeout: Request timeout in seconds
        headers: Request header overrides
        cookies: Optional cookies for authenticated sites
    """

    max_requests: int = constants.MAX_REQUESTS
    max_concurrency: int = constants.MAX_CONCURRENCY
    link_selector: str | None = None
    include_patterns: list[str] = field(default_factory=list)
    exclude_patterns: list[str] = field(default_factory=list)
    request_delay_ms: int = 0
    timeout: float = constants.REQUEST_TIMEOUT
    headers: dict[str, str] = field(default_factory=dict)
    cookies: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "max_requests": self.max_requests,
            "max_concurrency": self.max_concurrency,
            "link_selector": self.link_selector,
            "include_patterns": self.include_patterns,
            "exclude_patterns": self.exclude_patterns,
            "request_delay_ms": self.request_delay_ms,
            "timeout": self.timeout,
            "headers": self.headers,
            "cookies": self.cookies,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CrawlConfig":
        return cls(
            max_requests=data.get("max_requests", constants.MAX_REQUESTS),
            max_concurrency=data.get("max_concurrency", constants.MAX_CONCURRENCY),
            link_selector=data.get("link_selector"),
            include_patterns=data.get("include_patterns", []),
            exclude_patterns=data.get("exclude_patterns", []),
            request_delay_ms=data.get("request_delay_ms", 0),
            timeout=data.get("timeout", constants.REQUEST_TIMEOUT),
            headers=data.get("headers", {}),
            cookies=data.get("cookies", {}),
        )


@dataclass
class CrawledPage:
    """A fetched HTML page handed to a page handler."""

    url: str  # Canonical request URL
    final_url: str  # URL after redirects
    status_code: int
    html: str
    soup: BeautifulSoup


@dataclass
class CrawlState:
    """
    Mutable state of a single crawl run.

    Shared by every fetch task; all mutation goes through the methods
    below, which hold ``lock``. Created at run start and discarded when
    the run ends.
    """

    max_requests: int
    visited: set[str] = field(default_factory=set)
    requests_issued: int = 0
    documents: list[Document] = field(default_factory=list)
    errors: list[dict[str, str]] = field(default_factory=list)
    phase: CrawlPhase = CrawlPhase.IDLE
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _document_ids: set[str] = field(default_factory=set, repr=False)

    def admit(self, url: str) -> bool:
        """Mark a URL as seen if it is new and the request budget allows it."""
        with self.lock:
            if self.phase in (CrawlPhase.DRAINING, CrawlPhase.DONE):
                return False
            if url in self.visited:
                return False
            if len(self.visited) >= self.max_requests:
                return False
            self.visited.add(url)
            return True

    def record_request(self) -> int:
        with self.lock:
            self.requests_issued += 1
            return self.requests_issued

    def add_document(self, document: Document) -> bool:
        """Append a document unless its id was already produced in this run."""
        with self.lock:
            if document.id in self._document_ids:
                return False
            self._document_ids.add(document.id)
            self.documents.append(document)
            return True

    def record_error(self, url: str, error: str, stage: str) -> None:
        with self.lock:
            self.errors.append({"url": url, "error": error, "stage": stage})

    def set_phase(self, phase: CrawlPhase) -> None:
        with self.lock:
            self.phase = phase

    @property
    def budget_exhausted(self) -> bool:
        with self.lock:
            return len(self.visited) >= self.max_requests


@dataclass
class CrawlResult:
    """Result of a crawl run."""

    documents: list[Document] = field(default_factory=list)
    errors: list[dict[str, str]] = field(default_factory=list)
    stats: dict[str, Any] = field(default_factory=dict)
