"""Readable content extraction from article HTML."""

import re

from bs4 import BeautifulSoup, Tag

from curator.fetch.constants import FALLBACK_TEXT_CHARS
from curator.fetch.models import ExtractedContent


# Containers tried in order; the first with enough text wins
CONTENT_SELECTORS: list[str] = [
    "article",
    "main",
    "[role=main]",
    "[itemprop=articleBody]",
    ".article-body",
    ".article-content",
    ".story-body",
    ".post-content",
    ".entry-content",
    "#content",
    ".content",
]

# Elements that never hold article text
STRIP_TAGS: list[str] = [
    "script",
    "style",
    "noscript",
    "nav",
    "header",
    "footer",
    "aside",
    "form",
    "iframe",
    "svg",
]

# Ad and promo blocks
STRIP_SELECTORS: list[str] = [
    ".ad",
    ".ads",
    ".advert",
    ".advertisement",
    "[class*=ad-slot]",
    "[id^=ad-]",
    ".sponsored",
    ".promo",
    ".newsletter-signup",
    ".social-share",
]

MIN_CONTAINER_TEXT_CHARS = 200

_WHITESPACE = re.compile(r"\s+")


def _clean(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def _meta_content(soup: BeautifulSoup, **attrs: str) -> str | None:
    tag = soup.find("meta", attrs=attrs)
    if isinstance(tag, Tag):
        content = tag.get("content")
        if isinstance(content, str) and content.strip():
            return _clean(content)
    return None


def _extract_title(soup: BeautifulSoup) -> str | None:
    og_title = _meta_content(soup, property="og:title")
    if og_title:
        return og_title
    if soup.title and soup.title.string:
        title = _clean(soup.title.string)
        if title:
            return title
    h1 = soup.find("h1")
    if isinstance(h1, Tag):
        return _clean(h1.get_text(" ")) or None
    return None


def _extract_published(soup: BeautifulSoup) -> str | None:
    published = _meta_content(soup, property="article:published_time")
    if published:
        return published
    published = _meta_content(soup, name="date")
    if published:
        return published
    time_tag = soup.find("time", attrs={"datetime": True})
    if isinstance(time_tag, Tag):
        value = time_tag.get("datetime")
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _container_text(container: Tag) -> str:
    paragraphs = [_clean(p.get_text(" ")) for p in container.find_all("p")]
    paragraphs = [p for p in paragraphs if p]
    if paragraphs:
        return "\n\n".join(paragraphs)
    return _clean(container.get_text(" "))


def extract_content(
    html: str | bytes, fallback_chars: int = FALLBACK_TEXT_CHARS
) -> ExtractedContent:
    """Extract title, author, publication time and body text from a page.

    Metadata is read before boilerplate is stripped. The body comes from
    the first content container with enough text; otherwise the first
    ``fallback_chars`` characters of the page text are used.

    Args:
        html: Page HTML.
        fallback_chars: Length of the raw-text fallback.

    Returns:
        Extracted content. Text may be empty for an empty page.
    """
    soup = BeautifulSoup(html, "lxml")

    title = _extract_title(soup)
    author = _meta_content(soup, name="author") or _meta_content(
        soup, property="article:author"
    )
    published_at = _extract_published(soup)

    for tag in soup.find_all(STRIP_TAGS):
        tag.decompose()
    for selector in STRIP_SELECTORS:
        for element in soup.select(selector):
            element.decompose()

    for selector in CONTENT_SELECTORS:
        container = soup.select_one(selector)
        if container is None:
            continue
        text = _container_text(container)
        if len(text) >= MIN_CONTAINER_TEXT_CHARS:
            return ExtractedContent(
                title=title, author=author, published_at=published_at, text=text
            )

    root = soup.body or soup
    raw = _clean(root.get_text(" "))
    if len(raw) > fallback_chars:
        raw = raw[:fallback_chars] + "..."
    return ExtractedContent(
        title=title,
        author=author,
        published_at=published_at,
        text=raw,
        used_fallback=True,
    )
