"""
Article body extraction from raw HTML.

Extractors are tried in order until one produces non-empty text:
1. readability: Mozilla's readability algorithm (default primary)
2. trafilatura: boilerplate-removing article extractor
3. bs4: BeautifulSoup plain text extraction (last resort)
"""

from __future__ import annotations

import logging
from typing import Callable

from bs4 import BeautifulSoup
import trafilatura
from readability import Document


logger = logging.getLogger(__name__)

# Tags that never carry article text
_NON_CONTENT_TAGS = ["script", "style", "noscript", "template", "svg", "iframe"]


def extract_article_text(html: str, primary: str, fallback: list[str]) -> str | None:
    """Extract the article body from HTML using a chain of extractors.

    Args:
        html: The HTML document
        primary: Name of the extractor to try first
        fallback: Extractor names to try, in order, if the primary yields nothing

    Returns:
        Extracted text with surrounding whitespace stripped, or None if every
        extractor came back empty

    Examples:
        >>> extract_article_text("<p>Hello</p>", "bs4", [])
        'Hello'
    """
    order = [primary] + [name for name in fallback if name != primary]
    for method in order:
        extractor = _get_extractor(method)
        if not extractor:
            continue
        try:
            text = extractor(html)
        except Exception as exc:  # noqa: BLE001
            # Malformed markup can trip lxml-based extractors; try the next one.
            logger.debug("Extractor %s failed: %s", method, exc)
            continue
        if text and text.strip():
            return text.strip()
    return None


def _get_extractor(name: str) -> Callable[[str], str | None] | None:
    if name == "readability":
        return _extract_readability
    if name == "trafilatura":
        return _extract_trafilatura
    if name == "bs4":
        return extract_plain_text
    return None


def _extract_trafilatura(html: str) -> str | None:
    return trafilatura.extract(html, include_comments=False, include_tables=True)


def _extract_readability(html: str) -> str | None:
    doc = Document(html)
    # readability returns simplified HTML; bs4 turns it into text
    return extract_plain_text(doc.summary(html_partial=True))


def extract_plain_text(html: str) -> str | None:
    """Extract visible text from HTML using BeautifulSoup.

    Keeps the document title, so callers strip a leading duplicate title from
    the chosen body.

    Returns:
        Non-empty lines joined by newlines, or None if nothing is left
    """
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(_NON_CONTENT_TAGS):
        tag.decompose()
    text = soup.get_text(separator="\n")
    cleaned = "\n".join([line.strip() for line in text.splitlines() if line.strip()])
    return cleaned if cleaned else None
