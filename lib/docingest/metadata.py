"""
URL-pattern metadata for help-center articles.

Help-center URLs carry the article shape and numeric id in their path,
e.g. ``/chrome/a/answer/9037717``. Unmatched URLs yield empty metadata;
the document is still indexed without typed fields.
"""

import re

from docingest.crawler.extractor import first_line_title
from docingest.models import ArticleMetadata, ArticleType

ARTICLE_URL_PATTERN = re.compile(r"/(answer|topic)/(\d+)")


def extract_article_metadata(url: str) -> ArticleMetadata:
    """
    Derive article type and id from a canonical URL.

    Args:
        url: Canonical article URL

    Returns:
        ArticleMetadata; both fields None when the URL does not match
    """
    match = ARTICLE_URL_PATTERN.search(url)
    if not match:
        return ArticleMetadata()
    return ArticleMetadata(article_type=ArticleType(match.group(1)), article_id=match.group(2))


def fallback_title(identifier: str) -> str:
    return f"Article {identifier}"


def derive_title(markdown: str, url: str) -> str:
    """
    Title from the first line of converted content, else from the URL.

    Falls back to "Article <id>" for help-center URLs and "Untitled"
    otherwise.
    """
    title = first_line_title(markdown)
    if title:
        return title

    metadata = extract_article_metadata(url)
    if metadata.article_id:
        return fallback_title(metadata.article_id)
    return "Untitled"
