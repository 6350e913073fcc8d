"""
URL canonicalization and link discovery.

Canonical URLs (no query string, no fragment) are the dedup key for a
crawl and the identity of crawled documents.
"""

import fnmatch
from urllib.parse import urljoin, urlsplit, urlunsplit

from bs4 import BeautifulSoup

_DEFAULT_PORTS = {"http": 80, "https": 443}

_SKIPPED_SCHEMES = ("javascript:", "mailto:", "tel:", "data:")


def canonicalize(raw_url: str) -> str:
    """
    Map a URL to its canonical form: scheme, host and path only.

    Query string and fragment are dropped, scheme and hostname are
    lowercased and default ports removed. Input that does not parse as an
    absolute URL is returned unchanged.

    Args:
        raw_url: URL to canonicalize

    Returns:
        Canonical URL string
    """
    try:
        parsed = urlsplit(raw_url.strip())
        port = parsed.port
    except (ValueError, AttributeError):
        return raw_url

    if not parsed.scheme or not parsed.hostname:
        return raw_url

    scheme = parsed.scheme.lower()
    netloc = parsed.hostname.lower()
    if ":" in netloc:
        netloc = f"[{netloc}]"
    if port is not None and port != _DEFAULT_PORTS.get(scheme):
        netloc = f"{netloc}:{port}"

    return urlunsplit((scheme, netloc, parsed.path or "/", "", ""))


def extract_links(soup: BeautifulSoup, page_url: str, selector: str | None = None) -> list[str]:
    """
    Extract canonical outbound links from a parsed page.

    Args:
        soup: Parsed page
        page_url: URL of the page (for resolving relative links)
        selector: Optional CSS selector; only links inside the first
            matching element are collected

    Returns:
        De-duplicated canonical URLs in document order
    """
    scope = soup.select_one(selector) if selector else soup
    if scope is None:
        return []

    links: list[str] = []
    seen: set[str] = set()

    for a in scope.find_all("a", href=True):
        href = a["href"].strip()

        if not href or href.startswith("#"):
            continue

        if href.lower().startswith(_SKIPPED_SCHEMES):
            continue

        try:
            absolute = urljoin(page_url, href)
            scheme = urlsplit(absolute).scheme
        except ValueError:
            continue
        if scheme not in ("http", "https"):
            continue

        canonical = canonicalize(absolute)
        if canonical not in seen:
            seen.add(canonical)
            links.append(canonical)

    return links


def matches_patterns(url: str, patterns: list[str]) -> bool:
    """Check if URL matches any of the glob patterns."""
    return any(fnmatch.fnmatch(url, pattern) for pattern in patterns)


def is_allowed(
    url: str,
    include_patterns: list[str] | None = None,
    exclude_patterns: list[str] | None = None,
) -> bool:
    """
    Apply the link inclusion rule.

    If include patterns are given the URL must match at least one; it must
    not match any exclude pattern.
    """
    if include_patterns and not matches_patterns(url, include_patterns):
        return False
    return not (exclude_patterns and matches_patterns(url, exclude_patterns))


def filter_discovered_urls(
    urls: list[str],
    include_patterns: list[str] | None = None,
    exclude_patterns: list[str] | None = None,
) -> list[str]:
    """Keep the discovered URLs that pass the inclusion rule."""
    return [url for url in urls if is_allowed(url, include_patterns, exclude_patterns)]
