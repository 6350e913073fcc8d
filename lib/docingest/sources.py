"""
Documentation sites crawled into the index.

Each source names its seed URLs, the article container, where and which
links to follow, and how titles and metadata are derived. ``handle_page``
wires the extraction stages together for the crawl driver:

    article markup -> boilerplate stripped -> Markdown -> Document
"""

import logging
from dataclasses import dataclass, field
from urllib.parse import urlsplit

from docingest import constants
from docingest.crawler.extractor import (
    extract_article,
    extract_own_text,
    html_to_markdown,
    strip_boilerplate,
)
from docingest.crawler.models import CrawlConfig, CrawledPage
from docingest.metadata import derive_title, extract_article_metadata, fallback_title
from docingest.models import ArticleMetadata, Document, DocumentKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceDefinition:
    """
    A crawlable documentation site.

    Attributes:
        name: Source key used on the command line
        kind: Kind of the documents produced
        seeds: Starting URLs
        container_selector: CSS selector of the article region
        link_selector: CSS selector limiting link discovery
        include_patterns: Glob patterns followed links must match
        title_selector: Element whose own text is the title; when unset the
            first line of the converted content is used
        require_article_id: Only index pages whose URL carries an article id
        boilerplate_marker: Trailing footer phrase to strip
    """

    name: str
    kind: DocumentKind
    seeds: tuple[str, ...]
    container_selector: str = "article"
    link_selector: str | None = "article"
    include_patterns: tuple[str, ...] = ()
    title_selector: str | None = None
    require_article_id: bool = False
    boilerplate_marker: str = constants.BOILERPLATE_MARKER
    headers: dict[str, str] = field(default_factory=dict)

    def crawl_config(self, **overrides) -> CrawlConfig:
        """Crawl configuration for this source; keyword overrides win."""
        config = CrawlConfig(
            link_selector=self.link_selector,
            include_patterns=list(self.include_patterns),
            headers=dict(self.headers),
        )
        for key, value in overrides.items():
            if value is not None:
                setattr(config, key, value)
        return config

    def handle_page(self, page: CrawledPage) -> Document | None:
        """
        Build the Document for a crawled page.

        Returns None (skip, not an error) when the page has no article
        container, converts to empty content, or lacks a required article id.
        """
        metadata = extract_article_metadata(page.url)
        if self.require_article_id and not metadata.article_id:
            return None

        article = extract_article(page.soup, self.container_selector)
        if not article.strip():
            logger.debug(f"No content container on {page.url}")
            return None

        content = html_to_markdown(strip_boilerplate(article, self.boilerplate_marker))
        if not content:
            return None

        return Document(
            id=page.url,
            content=content,
            kind=self.kind,
            url=page.url,
            title=self._title(page, content, metadata),
            metadata=metadata if metadata.to_dict() else None,
        )

    def _title(self, page: CrawledPage, content: str, metadata: ArticleMetadata) -> str:
        if self.title_selector:
            title = extract_own_text(page.soup, self.title_selector)
            return title or fallback_title(metadata.article_id or urlsplit(page.url).path)
        return derive_title(content, page.url)


HELPCENTER = SourceDefinition(
    name="helpcenter",
    kind=DocumentKind.ADMIN_DOCS,
    seeds=("https://support.google.com/chrome/a#topic=7679105",),
    include_patterns=("*/chrome/a/answer/*",),
    require_article_id=True,
)

CLOUD_DOCS = SourceDefinition(
    name="cloud",
    kind=DocumentKind.CLOUD_DOCS,
    seeds=("https://cloud.google.com/chrome-enterprise-premium/docs/overview",),
    include_patterns=("*/chrome-enterprise-premium/*",),
    title_selector="h1.devsite-page-title",
)

SOURCES: dict[str, SourceDefinition] = {source.name: source for source in (HELPCENTER, CLOUD_DOCS)}


def get_source(name: str) -> SourceDefinition:
    """
    Look up a source by name.

    Raises:
        KeyError: If no source has that name
    """
    try:
        return SOURCES[name]
    except KeyError:
        raise KeyError(f"Unknown source '{name}'. Available: {', '.join(sorted(SOURCES))}") from None
