"""Tests for transcript resolution: cache short-circuit, fallback, progress and dispatch."""

from __future__ import annotations

import asyncio
from dataclasses import replace
import threading
import time

import pytest

from link_content.core.types import (
    CachedTranscriptEntry,
    LinkContentDeps,
    ProviderContext,
    ProviderResult,
    TranscriptMetadata,
    TranscriptOptions,
    TranscriptSegment,
)
from link_content.errors import ConfigurationError
from link_content.transcript.cache import InMemoryTranscriptCache
from link_content.transcript.providers import TranscriptProvider
from link_content.transcript.registry import select_provider
from link_content.transcript.resolver import FALLBACK_NOTE, resolve_transcript_for_link
from link_content.transcript.resources import resolve_resource


class StubProvider(TranscriptProvider):
    def __init__(self, provider_id, result=None, handles=True, error=None):
        self.id = provider_id
        self.result = result or ProviderResult()
        self.handles = handles
        self.error = error
        self.contexts: list[ProviderContext] = []

    def can_handle(self, context):
        return self.handles

    async def fetch_transcript(self, context, options):
        self.contexts.append(context)
        if self.error is not None:
            raise self.error
        return replace(self.result, attempted_providers=list(self.result.attempted_providers))

    @property
    def calls(self):
        return len(self.contexts)


async def _unused_fetch(url, **kwargs):
    raise AssertionError(f"unexpected fetch of {url}")


def _deps(cache=None, on_progress=None):
    return LinkContentDeps(fetch=_unused_fetch, transcript_cache=cache, on_progress=on_progress)


def _resolve(url, deps, providers, html=None, options=None):
    return asyncio.run(resolve_transcript_for_link(url, html, deps, options, providers=providers))


def _found(text="hello world", source="youtubei"):
    return ProviderResult(text=text, source=source, attempted_providers=[source])


def test_fresh_cache_entry_skips_provider_dispatch():
    url = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
    cache = InMemoryTranscriptCache()
    cache.set(url, CachedTranscriptEntry(content="from cache", source="captionTracks", metadata=None, fetched_at=time.time()))
    youtube = StubProvider("youtube", _found())
    generic = StubProvider("generic")

    resolution = _resolve(url, _deps(cache), (youtube, generic))

    assert resolution.text == "from cache"
    assert resolution.source == "captionTracks"
    assert resolution.diagnostics.cache_status == "hit"
    assert youtube.calls == 0
    assert generic.calls == 0


def test_second_resolution_is_served_from_cache():
    url = "https://example.com/talk"
    cache = InMemoryTranscriptCache()
    generic = StubProvider("generic", _found(text="talk transcript", source="embedded"))

    first = _resolve(url, _deps(cache), (generic,))
    second = _resolve(url, _deps(cache), (generic,))

    assert first.diagnostics.cache_status == "miss"
    assert second.diagnostics.cache_status == "hit"
    assert second.text == first.text == "talk transcript"
    assert second.source == "embedded"
    assert generic.calls == 1


def test_miss_falls_back_to_stale_cached_content():
    url = "https://example.com/talk"
    cache = InMemoryTranscriptCache()
    cache.set(
        url,
        CachedTranscriptEntry(content="OLD", source="embedded", metadata=None, fetched_at=0.0, ttl_seconds=1),
    )
    generic = StubProvider("generic", ProviderResult(notes="nothing found"))

    resolution = _resolve(url, _deps(cache), (generic,))

    assert generic.calls == 1
    assert resolution.text == "OLD"
    assert resolution.diagnostics.cache_status == "fallback"
    assert resolution.diagnostics.text_provided is True
    assert FALLBACK_NOTE in resolution.diagnostics.notes
    assert "nothing found" in resolution.diagnostics.notes


def test_bypass_never_reports_hit_and_never_falls_back():
    url = "https://example.com/talk"
    cache = InMemoryTranscriptCache()
    cache.set(url, CachedTranscriptEntry(content="OLD", source="embedded", metadata=None, fetched_at=time.time()))
    generic = StubProvider("generic")

    resolution = _resolve(url, _deps(cache), (generic,), options=TranscriptOptions(cache_mode="bypass"))

    assert generic.calls == 1
    assert resolution.text is None
    assert resolution.diagnostics.cache_status == "bypassed"


def test_bypass_still_writes_fresh_result():
    url = "https://example.com/talk"
    cache = InMemoryTranscriptCache()
    cache.set(url, CachedTranscriptEntry(content="OLD", source="embedded", metadata=None, fetched_at=time.time()))
    generic = StubProvider("generic", _found(text="NEW", source="embedded"))

    resolution = _resolve(url, _deps(cache), (generic,), options=TranscriptOptions(cache_mode="bypass"))

    assert resolution.text == "NEW"
    assert cache.get(url).content == "NEW"


def test_negative_result_is_cached_and_served():
    url = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
    cache = InMemoryTranscriptCache()
    youtube = StubProvider(
        "youtube",
        ProviderResult(source="unavailable", attempted_providers=["captionTracks", "unavailable"]),
    )
    providers = (youtube, StubProvider("generic"))

    first = _resolve(url, _deps(cache), providers)
    second = _resolve(url, _deps(cache), providers)

    assert first.text is None
    assert first.diagnostics.attempted_providers == ("captionTracks", "unavailable")
    assert second.diagnostics.cache_status == "hit"
    assert second.source == "unavailable"
    assert youtube.calls == 1


def test_progress_events_bracket_specialized_dispatch():
    events = []
    youtube = StubProvider("youtube", _found())

    _resolve(
        "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
        _deps(on_progress=events.append),
        (youtube, StubProvider("generic")),
    )

    assert [event.kind for event in events] == ["transcript-start", "transcript-done"]
    assert events[0].service == "youtube"
    assert events[1].ok is True
    assert events[1].source == "youtubei"


def test_generic_dispatch_emits_no_progress():
    events = []

    _resolve("https://example.com/post", _deps(on_progress=events.append), (StubProvider("generic", _found()),))

    assert events == []


def test_throwing_progress_sink_does_not_break_resolution():
    def sink(event):
        raise RuntimeError("sink exploded")

    resolution = _resolve(
        "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
        _deps(on_progress=sink),
        (StubProvider("youtube", _found()), StubProvider("generic")),
    )

    assert resolution.text == "hello world"


def test_provider_exception_becomes_empty_result():
    generic = StubProvider("generic", error=RuntimeError("boom"))

    resolution = _resolve("https://example.com/post", _deps(), (generic,))

    assert resolution.text is None
    assert "boom" in resolution.diagnostics.notes


def test_embedded_youtube_iframe_routes_to_youtube_with_resource_key():
    html = '<html><body><iframe src="https://www.youtube.com/embed/dQw4w9WgXcQ?rel=0"></iframe></body></html>'
    cache = InMemoryTranscriptCache()

    class UrlAwareYoutube(StubProvider):
        def can_handle(self, context):
            return "youtube.com" in context.url

    youtube = UrlAwareYoutube("youtube", _found())
    generic = StubProvider("generic")

    _resolve("https://blog.example.com/post", _deps(cache), (youtube, generic), html=html)

    assert generic.calls == 0
    assert youtube.contexts[0].url == "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
    assert youtube.contexts[0].resource_key == "dQw4w9WgXcQ"
    entry = cache.get("https://blog.example.com/post")
    assert entry.resource_key == "dQw4w9WgXcQ"
    assert entry.service == "youtube"


def test_resolve_resource_keeps_plain_urls():
    reference = resolve_resource("  https://example.com/article  ")

    assert reference.normalized_url == "https://example.com/article"
    assert reference.effective_url == "https://example.com/article"
    assert reference.resource_key is None


def test_timestamps_are_folded_into_cache_and_returned():
    url = "https://example.com/talk"
    cache = InMemoryTranscriptCache()
    segments = [TranscriptSegment(start_ms=0, end_ms=1000, text="hi"), TranscriptSegment(start_ms=65_000, end_ms=None, text="there")]
    generic = StubProvider("generic", ProviderResult(text="hi\nthere", source="embedded", segments=segments))
    options = TranscriptOptions(transcript_timestamps=True)

    first = _resolve(url, _deps(cache), (generic,), options=options)
    second = _resolve(url, _deps(cache), (generic,), options=options)

    assert first.segments == segments
    assert cache.get(url).metadata.timestamps is True
    assert second.diagnostics.cache_status == "hit"
    assert second.segments == segments
    assert generic.calls == 1


def test_segments_omitted_when_timestamps_not_requested():
    segments = [TranscriptSegment(start_ms=0, end_ms=1000, text="hi")]
    generic = StubProvider("generic", ProviderResult(text="hi", source="embedded", segments=segments))

    resolution = _resolve("https://example.com/talk", _deps(), (generic,))

    assert resolution.segments is None


def test_missing_generic_provider_is_a_configuration_error():
    youtube = StubProvider("youtube", handles=False)

    with pytest.raises(ConfigurationError):
        select_provider(ProviderContext(url="https://example.com"), (youtube,))

    with pytest.raises(ConfigurationError):
        _resolve("https://example.com", _deps(), (youtube,))


def test_fallback_rebuilds_segments_from_cached_metadata():
    url = "https://example.com/talk"
    segments = [TranscriptSegment(start_ms=0, end_ms=2000, text="old"), TranscriptSegment(start_ms=2000, end_ms=None, text="words")]
    cache = InMemoryTranscriptCache()
    cache.set(
        url,
        CachedTranscriptEntry(
            content="old\nwords",
            source="embedded",
            metadata=TranscriptMetadata(timestamps=True, segments=segments),
            fetched_at=0.0,
            ttl_seconds=1,
        ),
    )
    generic = StubProvider("generic", ProviderResult(text=None, notes="nothing found"))

    resolution = _resolve(url, _deps(cache), (generic,), options=TranscriptOptions(transcript_timestamps=True))

    assert generic.calls == 1
    assert resolution.diagnostics.cache_status == "fallback"
    assert resolution.text == "old\nwords"
    assert resolution.segments == segments


def test_cache_hit_reports_no_attempted_providers():
    url = "https://example.com/talk"
    cache = InMemoryTranscriptCache()
    cache.set(url, CachedTranscriptEntry(content="cached", source="embedded", metadata=None, fetched_at=time.time()))

    resolution = _resolve(url, _deps(cache), (StubProvider("generic"),))

    assert resolution.diagnostics.cache_status == "hit"
    assert resolution.diagnostics.provider == "embedded"
    assert resolution.diagnostics.attempted_providers == ()


def test_cache_store_is_accessed_off_the_event_loop_thread():
    loop_thread = threading.get_ident()

    class ThreadRecordingCache(InMemoryTranscriptCache):
        def __init__(self):
            super().__init__()
            self.threads = []

        def get(self, url):
            self.threads.append(threading.get_ident())
            return super().get(url)

        def set(self, url, entry):
            self.threads.append(threading.get_ident())
            super().set(url, entry)

    cache = ThreadRecordingCache()

    _resolve("https://example.com/talk", _deps(cache), (StubProvider("generic", _found(source="embedded")),))

    assert len(cache.threads) == 2
    assert loop_thread not in cache.threads
