"""Tests for fetch_link_content: strategy selection, metadata, transcripts and budget."""

from __future__ import annotations

import asyncio
import json
import time

import httpx
import pytest

from link_content import fetch_link_content
from link_content.core.types import (
    CachedTranscriptEntry,
    FetchLinkContentOptions,
    LinkContentDeps,
    TranscriptMetadata,
    TranscriptSegment,
)
from link_content.errors import LinkFetchError
from link_content.fetch.fetcher import FetchResponse, HttpxFetcher
from link_content.fetch.firecrawl import FirecrawlScrapeResult
from link_content.transcript.cache import InMemoryTranscriptCache


ARTICLE_URL = "https://www.example.com/post"
ARTICLE_HTML = """<html><head><title>My Post</title></head>
<body><p>Body paragraph here.</p></body></html>"""


def _scraper(result=None, error=None):
    calls = []

    async def scrape(url, cache_mode):
        calls.append((url, cache_mode))
        if error is not None:
            raise error
        return result

    scrape.calls = calls
    return scrape


def _bs4_options(**kwargs):
    return FetchLinkContentOptions(extract_primary="bs4", extract_fallback=[], **kwargs)


def test_empty_firecrawl_markdown_falls_back_to_html(fake_fetch):
    fetch = fake_fetch({ARTICLE_URL: ARTICLE_HTML})
    scrape = _scraper(FirecrawlScrapeResult(markdown="  \n\u200b \n"))

    result = asyncio.run(fetch_link_content(ARTICLE_URL, _bs4_options(), LinkContentDeps(fetch=fetch, scrape_with_firecrawl=scrape)))

    assert result.diagnostics.strategy == "html"
    assert result.diagnostics.firecrawl.attempted is True
    assert result.diagnostics.firecrawl.used is False
    assert "normalization yielded empty text" in result.diagnostics.firecrawl.notes
    assert result.content == "Body paragraph here."


def test_firecrawl_markdown_is_used_with_service_metadata(fake_fetch):
    fetch = fake_fetch()
    scrape = _scraper(
        FirecrawlScrapeResult(
            markdown="# Heading\n\n\n\nSome   article text.",
            metadata={"ogTitle": "  Firecrawl   Title ", "description": "Short summary", "ogSiteName": " "},
        )
    )

    result = asyncio.run(
        fetch_link_content(ARTICLE_URL, FetchLinkContentOptions(cache_mode="bypass"), LinkContentDeps(fetch=fetch, scrape_with_firecrawl=scrape))
    )

    assert result.diagnostics.strategy == "firecrawl"
    assert result.diagnostics.firecrawl.used is True
    assert result.diagnostics.firecrawl.cache_status == "bypassed"
    assert scrape.calls == [(ARTICLE_URL, "bypass")]
    assert result.title == "Firecrawl Title"
    assert result.description == "Short summary"
    assert result.site_name == "example.com"
    assert result.content == "# Heading\n\nSome article text."
    assert fetch.calls == []


def test_firecrawl_failure_is_noted_and_html_used(fake_fetch):
    fetch = fake_fetch({ARTICLE_URL: ARTICLE_HTML})
    scrape = _scraper(error=RuntimeError("service down"))

    result = asyncio.run(fetch_link_content(ARTICLE_URL, _bs4_options(), LinkContentDeps(fetch=fetch, scrape_with_firecrawl=scrape)))

    assert result.diagnostics.strategy == "html"
    assert "Firecrawl failed: RuntimeError: service down" in result.diagnostics.firecrawl.notes


def test_firecrawl_is_skipped_when_off_or_unconfigured(fake_fetch):
    fetch = fake_fetch({ARTICLE_URL: ARTICLE_HTML})
    scrape = _scraper(FirecrawlScrapeResult(markdown="unused"))

    off = asyncio.run(
        fetch_link_content(ARTICLE_URL, _bs4_options(firecrawl_mode="off"), LinkContentDeps(fetch=fetch, scrape_with_firecrawl=scrape))
    )
    unconfigured = asyncio.run(fetch_link_content(ARTICLE_URL, _bs4_options(), LinkContentDeps(fetch=fetch)))

    assert scrape.calls == []
    assert off.diagnostics.firecrawl.attempted is False
    assert off.diagnostics.firecrawl.notes == "Firecrawl disabled by options"
    assert unconfigured.diagnostics.firecrawl.notes == "Firecrawl is not configured"


def test_html_strategy_strips_leading_title(fake_fetch):
    fetch = fake_fetch({ARTICLE_URL: ARTICLE_HTML})

    result = asyncio.run(fetch_link_content(ARTICLE_URL, _bs4_options(), LinkContentDeps(fetch=fetch)))

    assert result.title == "My Post"
    assert result.site_name == "example.com"
    assert result.content == "Body paragraph here."
    assert result.transcript_source is None
    assert result.transcript_characters is None


def test_readability_body_strips_leading_title(fake_fetch):
    paragraph = "This is a long paragraph about the post that keeps going with plenty of detail. " * 4
    html = f"""<html><head><title>My Post</title></head>
<body><article><h1>My Post</h1><p>{paragraph}</p><p>{paragraph}</p></article></body></html>"""
    fetch = fake_fetch({ARTICLE_URL: html})

    result = asyncio.run(fetch_link_content(ARTICLE_URL, FetchLinkContentOptions(), LinkContentDeps(fetch=fetch)))

    assert result.title == "My Post"
    assert result.content.startswith("This is a long paragraph")
    assert not result.content.lower().startswith("my post")


def test_redirected_page_reports_final_host(fake_fetch):
    final_url = "https://news.example.org/2024/post"
    fetch = fake_fetch({ARTICLE_URL: FetchResponse(url=final_url, status_code=200, text=ARTICLE_HTML)})

    result = asyncio.run(fetch_link_content(ARTICLE_URL, _bs4_options(), LinkContentDeps(fetch=fetch)))

    assert result.site_name == "news.example.org"
    assert result.url == ARTICLE_URL
    assert result.content == "Body paragraph here."


def test_html_metadata_prefers_json_ld_and_open_graph(fake_fetch):
    html = """<html><head>
    <title>Plain Title</title>
    <meta property="og:title" content="OG Title">
    <meta property="og:site_name" content="Example News">
    <script type="application/ld+json">{"@type": "NewsArticle", "headline": "LD Headline", "description": "LD description"}</script>
    </head><body><p>Story text.</p></body></html>"""
    fetch = fake_fetch({ARTICLE_URL: html})

    result = asyncio.run(fetch_link_content(ARTICLE_URL, _bs4_options(), LinkContentDeps(fetch=fetch)))

    assert result.title == "LD Headline"
    assert result.description == "LD description"
    assert result.site_name == "Example News"


def test_youtube_short_description_used_without_transcript(fake_fetch):
    url = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
    player = {"videoDetails": {"videoId": "dQw4w9WgXcQ", "shortDescription": "A fun  video\nabout   things"}}
    html = f"<html><head><title>Video - YouTube</title></head><script>var ytInitialPlayerResponse = {json.dumps(player)};</script></html>"
    fetch = fake_fetch({url: html})
    scrape = _scraper(FirecrawlScrapeResult(markdown="should not be used"))

    result = asyncio.run(fetch_link_content(url, _bs4_options(), LinkContentDeps(fetch=fetch, scrape_with_firecrawl=scrape)))

    assert scrape.calls == []
    assert "Skipping Firecrawl for YouTube URL" in result.diagnostics.firecrawl.notes
    assert result.content == "A fun video about things"
    assert result.transcript_source == "unavailable"
    assert fetch.calls == [("GET", url)]


def test_cached_transcript_becomes_content(fake_fetch):
    url = "https://example.com/talk"
    cache = InMemoryTranscriptCache()
    cache.set(
        url,
        CachedTranscriptEntry(content="Transcript words here", source="embedded", metadata=None, fetched_at=time.time()),
    )
    scrape = _scraper(FirecrawlScrapeResult(markdown="Article body"))

    result = asyncio.run(
        fetch_link_content(url, None, LinkContentDeps(fetch=fake_fetch(), scrape_with_firecrawl=scrape, transcript_cache=cache))
    )

    assert result.content == "Transcript:\nTranscript words here"
    assert result.transcript_source == "embedded"
    assert result.transcript_characters == len("Transcript words here")
    assert result.transcript_lines == 1
    assert result.transcript_word_count == 3
    assert result.diagnostics.transcript.cache_status == "hit"


def test_timed_transcript_renders_timestamps(fake_fetch):
    url = "https://example.com/talk"
    segments = [TranscriptSegment(start_ms=0, end_ms=1000, text="hi"), TranscriptSegment(start_ms=65_000, end_ms=None, text="there")]
    cache = InMemoryTranscriptCache()
    cache.set(
        url,
        CachedTranscriptEntry(
            content="hi\nthere",
            source="podcastTranscript",
            metadata=TranscriptMetadata(timestamps=True, segments=segments, duration_seconds=90.0),
            fetched_at=time.time(),
        ),
    )
    scrape = _scraper(FirecrawlScrapeResult(markdown="Article body"))

    result = asyncio.run(
        fetch_link_content(
            url,
            FetchLinkContentOptions(transcript_timestamps=True),
            LinkContentDeps(fetch=fake_fetch(), scrape_with_firecrawl=scrape, transcript_cache=cache),
        )
    )

    assert result.content == "Transcript:\n[0:00] hi\n[1:05] there"
    assert result.transcript_timed_text == "[0:00] hi\n[1:05] there"
    assert result.transcript_segments == segments
    assert result.media_duration_seconds == 90.0


def test_budget_truncates_on_word_boundary(fake_fetch):
    scrape = _scraper(FirecrawlScrapeResult(markdown="word " * 100))

    result = asyncio.run(
        fetch_link_content(
            ARTICLE_URL, FetchLinkContentOptions(max_characters=52), LinkContentDeps(fetch=fake_fetch(), scrape_with_firecrawl=scrape)
        )
    )

    assert result.truncated is True
    assert result.content == " ".join(["word"] * 10)
    assert result.total_characters == 499
    assert result.word_count == 100


def test_html_fetch_failure_raises_link_fetch_error(fake_fetch):
    fetch = fake_fetch({ARTICLE_URL: FetchResponse(url=ARTICLE_URL, status_code=500, text="oops")})

    with pytest.raises(LinkFetchError) as excinfo:
        asyncio.run(fetch_link_content(ARTICLE_URL, None, LinkContentDeps(fetch=fetch)))

    assert excinfo.value.status_code == 500
    assert excinfo.value.url == ARTICLE_URL


def test_missing_deps_is_rejected():
    with pytest.raises(ValueError):
        asyncio.run(fetch_link_content(ARTICLE_URL))


def test_httpx_fetcher_reraises_transport_error_after_retries():
    attempts = []

    def handler(request):
        attempts.append(str(request.url))
        raise httpx.ConnectError("connection refused", request=request)

    fetcher = HttpxFetcher(retries=0, transport=httpx.MockTransport(handler))

    with pytest.raises(httpx.ConnectError):
        asyncio.run(fetcher(ARTICLE_URL))

    assert attempts == [ARTICLE_URL]


def test_httpx_fetcher_without_attempts_raises_transport_error():
    fetcher = HttpxFetcher(retries=-1, transport=httpx.MockTransport(lambda request: httpx.Response(200)))

    with pytest.raises(httpx.TransportError):
        asyncio.run(fetcher(ARTICLE_URL))


def test_httpx_fetcher_returns_final_url_and_lowercased_headers():
    def handler(request):
        return httpx.Response(200, headers={"Content-Type": "text/html"}, text="<p>hi</p>")

    fetcher = HttpxFetcher(transport=httpx.MockTransport(handler))

    resp = asyncio.run(fetcher(ARTICLE_URL))

    assert resp.ok
    assert resp.url == ARTICLE_URL
    assert resp.headers["content-type"] == "text/html"
    assert resp.text == "<p>hi</p>"
