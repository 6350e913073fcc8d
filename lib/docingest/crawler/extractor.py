"""
Article extraction and HTML to Markdown conversion.

Isolates the article region of a page, strips the trailing feedback
footer, and converts the remainder to Markdown. Tables are kept as raw
HTML so platform/version matrices survive conversion.
"""

import re

from bs4 import BeautifulSoup, Comment, NavigableString
from markdownify import MarkdownConverter

from docingest import constants


class TableKeepingConverter(MarkdownConverter):
    """Markdown converter that emits table-family elements as raw HTML."""

    def convert_table(self, el, text, *args, **kwargs):
        return f"\n\n{el}\n\n"


def _as_soup(html: str | BeautifulSoup) -> BeautifulSoup:
    if isinstance(html, BeautifulSoup):
        return html
    return BeautifulSoup(html, "lxml")


def extract_article(html: str | BeautifulSoup, container_selector: str) -> str:
    """
    Return the inner markup of the page's content container.

    Args:
        html: Raw HTML or an already parsed page
        container_selector: CSS selector of the article/main region

    Returns:
        Inner HTML of the first matching element, or "" when absent
    """
    container = _as_soup(html).select_one(container_selector)
    if container is None:
        return ""
    return container.decode_contents()


def strip_boilerplate(html: str, marker: str = constants.BOILERPLATE_MARKER) -> str:
    """
    Drop everything from the first case-insensitive match of ``marker``.

    Args:
        html: Article markup
        marker: Regular expression for the trailing footer phrase

    Returns:
        The prefix before the marker; "" when the marker opens the markup
    """
    return re.split(marker, html, maxsplit=1, flags=re.IGNORECASE)[0]


def html_to_markdown(html: str) -> str:
    """
    Convert HTML to Markdown.

    Headings are ATX style, bullets use "-", code blocks are fenced and
    tables pass through as HTML. Identical input gives identical output.

    Args:
        html: HTML content (string or element)

    Returns:
        Markdown string
    """
    markdown = TableKeepingConverter(
        heading_style="ATX",
        bullets="-",
        code_language_callback=_get_code_language,
        escape_asterisks=False,
        escape_underscores=False,
    ).convert(str(html))

    # Collapse runs of blank lines
    lines = markdown.split("\n")
    cleaned_lines = []
    prev_blank = False

    for line in lines:
        is_blank = not line.strip()

        if is_blank and prev_blank:
            continue

        cleaned_lines.append(line.rstrip())
        prev_blank = is_blank

    return "\n".join(cleaned_lines).strip()


def _get_code_language(element) -> str:
    """Extract code language from element class."""
    classes = element.get("class", [])
    for cls in classes:
        if cls.startswith("language-"):
            return cls.replace("language-", "")
        if cls.startswith("lang-"):
            return cls.replace("lang-", "")
    return ""


def extract_own_text(soup: BeautifulSoup, selector: str) -> str:
    """
    Text of the element's direct text nodes only, whitespace-collapsed.

    Nested elements (badges, anchors, buttons inside a heading) are ignored.
    Returns "" when the element is absent.
    """
    element = soup.select_one(selector)
    if element is None:
        return ""
    text = "".join(
        str(child)
        for child in element.children
        if isinstance(child, NavigableString) and not isinstance(child, Comment)
    )
    return " ".join(text.split())


def first_line_title(markdown: str) -> str | None:
    """First non-blank line of the Markdown with heading markers removed."""
    for line in markdown.split("\n"):
        if line.strip():
            title = re.sub(r"^#+\s+", "", line.strip()).strip()
            return title or None
    return None
