"""
Page metadata extraction.

Parsers here are pure leaf functions: malformed HTML or JSON yields None for
the affected field and never raises.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
import logging
from typing import Any, Iterable
from urllib.parse import urlsplit

from bs4 import BeautifulSoup

from .cleaner import normalize_candidate


logger = logging.getLogger(__name__)


@dataclass
class PageMetadata:
    title: str | None = None
    description: str | None = None
    site_name: str | None = None


@dataclass
class JsonLdContent:
    title: str | None = None
    description: str | None = None
    type: str | None = None


def pick_first_text(candidates: Iterable[Any]) -> str | None:
    """Return the first candidate that is non-empty after whitespace normalization.

    Examples:
        >>> pick_first_text([None, "", "  ", "Real Title"])
        'Real Title'
        >>> pick_first_text([None, " "]) is None
        True
    """
    for candidate in candidates:
        normalized = normalize_candidate(candidate)
        if normalized:
            return normalized
    return None


def safe_hostname(url: str) -> str | None:
    """Return the bare hostname of a URL (without ``www.``), or None."""
    try:
        host = urlsplit(url).hostname
    except ValueError:
        return None
    if not host:
        return None
    return host[4:] if host.lower().startswith("www.") else host


def extract_metadata_from_html(html: str, url: str | None = None) -> PageMetadata:
    """Extract title, description and site name from HTML head tags.

    Open Graph and Twitter card tags take precedence over ``<title>`` and the
    plain description meta tag.
    """
    try:
        soup = BeautifulSoup(html, "html.parser")
    except Exception as exc:  # noqa: BLE001
        logger.debug("HTML metadata parse failed for %s: %s", url, exc)
        return PageMetadata()

    def meta(*keys: str) -> list[str | None]:
        values: list[str | None] = []
        for key in keys:
            tag = soup.find("meta", attrs={"property": key}) or soup.find("meta", attrs={"name": key})
            values.append(tag.get("content") if tag else None)
        return values

    title_tag = soup.find("title")
    title_text = title_tag.get_text() if title_tag else None

    return PageMetadata(
        title=pick_first_text([*meta("og:title", "twitter:title"), title_text]),
        description=pick_first_text(meta("og:description", "twitter:description", "description")),
        site_name=pick_first_text(meta("og:site_name", "application-name")),
    )


def extract_metadata_from_firecrawl(metadata: dict[str, Any] | None) -> PageMetadata:
    """Extract title, description and site name from Firecrawl scrape metadata."""
    if not isinstance(metadata, dict):
        return PageMetadata()
    return PageMetadata(
        title=pick_first_text(
            [metadata.get("ogTitle"), metadata.get("og:title"), metadata.get("title")]
        ),
        description=pick_first_text(
            [
                metadata.get("ogDescription"),
                metadata.get("og:description"),
                metadata.get("description"),
            ]
        ),
        site_name=pick_first_text([metadata.get("ogSiteName"), metadata.get("og:site_name")]),
    )


def extract_json_ld_content(html: str) -> JsonLdContent | None:
    """Extract headline/description/type from the first usable JSON-LD block."""
    try:
        soup = BeautifulSoup(html, "html.parser")
    except Exception:  # noqa: BLE001
        return None

    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        raw = script.string or script.get_text()
        if not raw or not raw.strip():
            continue
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            continue
        for node in _iter_json_ld_nodes(parsed):
            title = pick_first_text([node.get("headline"), node.get("name")])
            description = pick_first_text([node.get("description")])
            if title or description:
                node_type = node.get("@type")
                if isinstance(node_type, list):
                    node_type = next((item for item in node_type if isinstance(item, str)), None)
                return JsonLdContent(
                    title=title,
                    description=description,
                    type=node_type if isinstance(node_type, str) else None,
                )
    return None


def _iter_json_ld_nodes(parsed: Any) -> Iterable[dict[str, Any]]:
    if isinstance(parsed, list):
        for item in parsed:
            yield from _iter_json_ld_nodes(item)
    elif isinstance(parsed, dict):
        graph = parsed.get("@graph")
        if isinstance(graph, list):
            yield from _iter_json_ld_nodes(graph)
        yield parsed


def is_podcast_like_json_ld_type(value: str | None) -> bool:
    if not value:
        return False
    normalized = value.lower()
    if "podcast" in normalized:
        return True
    return normalized in {"audioobject", "episode", "radioepisode", "musicrecording"}
