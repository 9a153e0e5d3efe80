"""
Content extraction for a single link.

Two strategies, tried in order:
1. firecrawl: the enhanced fetch service returns markdown, raw HTML and
   metadata. Used when its markdown normalizes to non-empty text.
2. html: fetch the page directly, extract metadata and the article body,
   and resolve a transcript against the same HTML.

Both strategies end in ``finalize_extracted_link_content``.
"""

from __future__ import annotations

from dataclasses import replace
import logging

from ..core.types import (
    ContentDiagnostics,
    ExtractedLinkContent,
    FetchLinkContentOptions,
    FirecrawlDiagnostics,
    LinkContentDeps,
)
from ..fetch.extractor import extract_article_text, extract_plain_text
from ..fetch.fetcher import fetch_html_document
from ..fetch.firecrawl import FirecrawlScrapeResult
from ..logging_utils import log_event
from ..transcript.providers.podcast import PODCAST_PLATFORM_HOST_RE
from ..transcript.resolver import resolve_transcript_for_link
from ..transcript.urls import is_youtube_url
from .cleaner import normalize_for_prompt
from .finalize import finalize_extracted_link_content, select_base_content, strip_leading_title
from .metadata import (
    extract_json_ld_content,
    extract_metadata_from_firecrawl,
    extract_metadata_from_html,
    is_podcast_like_json_ld_type,
    pick_first_text,
    safe_hostname,
)
from .youtube import extract_youtube_short_description


logger = logging.getLogger(__name__)

MIN_HTML_CONTENT_CHARACTERS = 200
MIN_READABILITY_CONTENT_CHARACTERS = 200
MIN_METADATA_DESCRIPTION_CHARACTERS = 120
READABILITY_RELATIVE_THRESHOLD = 0.6


def _prefer_description(description: str, body: str, podcast_like: bool) -> bool:
    """A long metadata description beats a thin or comparably short body."""
    if len(description) < MIN_METADATA_DESCRIPTION_CHARACTERS:
        return False
    if podcast_like:
        return True
    return len(body) < MIN_HTML_CONTENT_CHARACTERS or len(description) >= len(body) * READABILITY_RELATIVE_THRESHOLD


async def fetch_link_content(
    url: str,
    options: FetchLinkContentOptions | None = None,
    deps: LinkContentDeps | None = None,
) -> ExtractedLinkContent:
    """Fetch a URL and return normalized, budgeted content with diagnostics.

    "No content" is never an exception: empty pages produce empty content and
    descriptive diagnostics.

    Args:
        url: The link to process
        options: Per-request options (cache mode, budget, transcript modes)
        deps: Injected transport, enhanced fetch service, cache and progress sink

    Returns:
        ExtractedLinkContent

    Raises:
        LinkFetchError: If the HTML strategy cannot fetch the page
        ConfigurationError: If the transcript provider registry is misconfigured
    """
    if deps is None:
        raise ValueError("fetch_link_content requires LinkContentDeps")
    options = options or FetchLinkContentOptions()
    url = url.strip()

    firecrawl_diag = FirecrawlDiagnostics(
        attempted=False,
        used=False,
        cache_mode=options.cache_mode,
        cache_status="bypassed" if options.cache_mode == "bypass" else "unknown",
    )

    if deps.scrape_with_firecrawl is None:
        firecrawl_diag = firecrawl_diag.with_note("Firecrawl is not configured")
    elif options.firecrawl_mode == "off":
        firecrawl_diag = firecrawl_diag.with_note("Firecrawl disabled by options")
    elif is_youtube_url(url):
        firecrawl_diag = firecrawl_diag.with_note("Skipping Firecrawl for YouTube URL")
    else:
        firecrawl_diag = replace(firecrawl_diag, attempted=True)
        payload: FirecrawlScrapeResult | None = None
        try:
            payload = await deps.scrape_with_firecrawl(url, options.cache_mode)
        except Exception as exc:  # noqa: BLE001
            log_event(
                logger,
                "Firecrawl scrape raised",
                level=logging.WARNING,
                event="firecrawl_error",
                url=url,
                error=f"{type(exc).__name__}: {exc}",
            )
            firecrawl_diag = firecrawl_diag.with_note(f"Firecrawl failed: {type(exc).__name__}: {exc}")
        else:
            if payload is None:
                firecrawl_diag = firecrawl_diag.with_note("Firecrawl returned no content")
        if payload is not None:
            result, firecrawl_diag = await _build_from_firecrawl(url, payload, options, deps, firecrawl_diag)
            if result is not None:
                return result

    return await _build_from_html(url, options, deps, firecrawl_diag)


async def _build_from_firecrawl(
    url: str,
    payload: FirecrawlScrapeResult,
    options: FetchLinkContentOptions,
    deps: LinkContentDeps,
    firecrawl_diag: FirecrawlDiagnostics,
) -> tuple[ExtractedLinkContent | None, FirecrawlDiagnostics]:
    markdown = normalize_for_prompt(payload.markdown)
    if not markdown:
        return None, firecrawl_diag.with_note("Firecrawl markdown normalization yielded empty text")

    html = payload.html
    json_ld = extract_json_ld_content(html) if html else None
    html_meta = extract_metadata_from_html(html, url) if html else None
    service_meta = extract_metadata_from_firecrawl(payload.metadata)

    transcript = await resolve_transcript_for_link(url, html, deps, options.transcript_options())

    title = pick_first_text(
        [json_ld and json_ld.title, service_meta.title, html_meta and html_meta.title]
    )
    description = pick_first_text(
        [json_ld and json_ld.description, service_meta.description, html_meta and html_meta.description]
    )
    site_name = pick_first_text([service_meta.site_name, html_meta and html_meta.site_name, safe_hostname(url)])

    description_candidate = normalize_for_prompt(description)
    podcast_like = is_podcast_like_json_ld_type(json_ld.type if json_ld else None) or bool(
        PODCAST_PLATFORM_HOST_RE.search(url)
    )
    body = description_candidate if _prefer_description(description_candidate, markdown, podcast_like) else markdown
    base_content = select_base_content(body, transcript.text, transcript.segments)

    used = replace(firecrawl_diag, used=True)
    log_event(logger, "Content extracted", level=logging.DEBUG, event="content_extracted", url=url, strategy="firecrawl")
    result = finalize_extracted_link_content(
        url=url,
        base_content=base_content,
        max_characters=options.max_characters,
        title=title,
        description=description,
        site_name=site_name,
        transcript=transcript,
        diagnostics=ContentDiagnostics(strategy="firecrawl", firecrawl=used, transcript=transcript.diagnostics),
    )
    return result, used


async def _build_from_html(
    url: str,
    options: FetchLinkContentOptions,
    deps: LinkContentDeps,
    firecrawl_diag: FirecrawlDiagnostics,
) -> ExtractedLinkContent:
    document = await fetch_html_document(deps.fetch, url, timeout=options.timeout_seconds)
    html = document.html
    # Metadata and hostnames describe the page actually served, after redirects.
    page_url = document.final_url or url

    page_meta = extract_metadata_from_html(html, page_url)
    json_ld = extract_json_ld_content(html)
    title = pick_first_text([json_ld and json_ld.title, page_meta.title])
    description = pick_first_text([json_ld and json_ld.description, page_meta.description])
    site_name = pick_first_text([page_meta.site_name, safe_hostname(page_url)])

    plain = normalize_for_prompt(extract_plain_text(html))
    article = normalize_for_prompt(extract_article_text(html, options.extract_primary, options.extract_fallback))
    prefer_article = len(article) >= MIN_READABILITY_CONTENT_CHARACTERS and (
        len(plain) < MIN_HTML_CONTENT_CHARACTERS or len(article) >= len(plain) * READABILITY_RELATIVE_THRESHOLD
    )
    article_body = article if prefer_article else plain
    body = article_body

    description_candidate = normalize_for_prompt(description)
    podcast_like = is_podcast_like_json_ld_type(json_ld.type if json_ld else None) or bool(
        PODCAST_PLATFORM_HOST_RE.search(page_url)
    )
    if _prefer_description(description_candidate, body, podcast_like) and (podcast_like or not prefer_article):
        body = description_candidate

    transcript = await resolve_transcript_for_link(url, html, deps, options.transcript_options())

    short_description = None if transcript.text else extract_youtube_short_description(html)
    candidate = normalize_for_prompt(short_description) if short_description else body
    base_content = select_base_content(candidate, transcript.text, transcript.segments)
    if base_content == article_body:
        base_content = strip_leading_title(base_content, title)

    log_event(logger, "Content extracted", level=logging.DEBUG, event="content_extracted", url=url, strategy="html")
    return finalize_extracted_link_content(
        url=url,
        base_content=base_content,
        max_characters=options.max_characters,
        title=title,
        description=description,
        site_name=site_name,
        transcript=transcript,
        diagnostics=ContentDiagnostics(strategy="html", firecrawl=firecrawl_diag, transcript=transcript.diagnostics),
    )
