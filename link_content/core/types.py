"""
Core data types for link content extraction.

This module defines the structures that flow through the pipeline:
- ResourceReference / ProviderContext: what a transcript provider looks at
- ProviderResult / TranscriptResolution: what transcript resolution returns
- CachedTranscriptEntry: what the transcript cache persists
- TranscriptDiagnostics / FirecrawlDiagnostics / ContentDiagnostics: how a
  result was produced
- ExtractedLinkContent: the final budgeted result
- LinkContentDeps / TranscriptOptions / FetchLinkContentOptions: injected
  capabilities and per-request options
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Literal, Mapping

if TYPE_CHECKING:
    from ..fetch.fetcher import FetchResponse
    from ..fetch.firecrawl import FirecrawlScrapeResult
    from ..transcript.cache import TranscriptCacheStore


CacheMode = Literal["default", "bypass"]
CacheStatus = Literal["hit", "miss", "bypassed", "fallback", "unknown"]
TranscriptService = Literal["youtube", "podcast", "generic"]
ContentStrategy = Literal["firecrawl", "html"]

# Sub-strategy tags recorded in ProviderResult.source / attempted_providers.
KNOWN_TRANSCRIPT_SOURCES: tuple[str, ...] = (
    "youtubei",
    "captionTracks",
    "podcastTranscript",
    "embedded",
    "whisper",
    "yt-dlp",
    "apify",
    "html",
    "unavailable",
    "unknown",
)


def append_note(existing: str | None, note: str | None) -> str | None:
    """Append a diagnostic note, joining with ``"; "``."""
    if not note:
        return existing
    if not existing:
        return note
    return f"{existing}; {note}"


@dataclass(frozen=True)
class ResourceReference:
    """A URL after normalization and embedded-video detection.

    Attributes:
        normalized_url: The caller's URL, trimmed
        effective_url: The URL providers see (an embedded video URL if one was found)
        resource_key: Stable identifier such as a YouTube video id, or None
    """

    normalized_url: str
    effective_url: str
    resource_key: str | None = None


@dataclass(frozen=True)
class ProviderContext:
    url: str
    html: str | None = None
    resource_key: str | None = None


@dataclass
class TranscriptSegment:
    """A timed transcript fragment."""

    start_ms: int
    end_ms: int | None
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"start_ms": self.start_ms, "end_ms": self.end_ms, "text": self.text}

    @classmethod
    def from_dict(cls, raw: Any) -> TranscriptSegment | None:
        if not isinstance(raw, dict):
            return None
        start = raw.get("start_ms", raw.get("startMs"))
        end = raw.get("end_ms", raw.get("endMs"))
        text = raw.get("text")
        if not isinstance(start, (int, float)) or not isinstance(text, str):
            return None
        end_ms = int(end) if isinstance(end, (int, float)) else None
        return cls(start_ms=int(start), end_ms=end_ms, text=text)


@dataclass
class TranscriptMetadata:
    """Transcript metadata restricted to the keys consumed downstream.

    Attributes:
        provider: Provider or sub-strategy that produced the transcript
        kind: Kind of source (e.g. "rss_podcast_transcript", "video")
        reason: Why no transcript was produced, when applicable
        timestamps: Whether segment timing was requested and available
        segments: Timed segments, when available
        duration_seconds: Media duration
        transcription_provider: Speech-to-text backend, when one was used
        transcript_url: URL the transcript document was fetched from
    """

    provider: str | None = None
    kind: str | None = None
    reason: str | None = None
    timestamps: bool | None = None
    segments: list[TranscriptSegment] | None = None
    duration_seconds: float | None = None
    transcription_provider: str | None = None
    transcript_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for key in (
            "provider",
            "kind",
            "reason",
            "timestamps",
            "duration_seconds",
            "transcription_provider",
            "transcript_url",
        ):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        if self.segments is not None:
            data["segments"] = [segment.to_dict() for segment in self.segments]
        return data

    @classmethod
    def from_dict(cls, raw: Any) -> TranscriptMetadata | None:
        """Rebuild metadata from a persisted dict, ignoring unknown or malformed keys."""
        if not isinstance(raw, dict):
            return None
        segments_raw = raw.get("segments")
        segments: list[TranscriptSegment] | None = None
        if isinstance(segments_raw, list):
            parsed = [TranscriptSegment.from_dict(item) for item in segments_raw]
            segments = [segment for segment in parsed if segment is not None]
        duration = raw.get("duration_seconds", raw.get("durationSeconds"))
        timestamps = raw.get("timestamps")
        return cls(
            provider=_str_or_none(raw.get("provider")),
            kind=_str_or_none(raw.get("kind")),
            reason=_str_or_none(raw.get("reason")),
            timestamps=timestamps if isinstance(timestamps, bool) else None,
            segments=segments,
            duration_seconds=float(duration)
            if isinstance(duration, (int, float)) and not isinstance(duration, bool)
            else None,
            transcription_provider=_str_or_none(raw.get("transcription_provider")),
            transcript_url=_str_or_none(raw.get("transcript_url")),
        )


def _str_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) else None


@dataclass
class ProviderResult:
    """Outcome of a provider fetch. Providers never raise; failures leave text None.

    Attributes:
        text: Transcript text, or None
        source: Sub-strategy that produced the result (e.g. "youtubei"), or None
        metadata: Typed transcript metadata
        segments: Timed segments, when available
        attempted_providers: Sub-strategy names tried, in order
        notes: Human-readable notes explaining failures or fallbacks
    """

    text: str | None = None
    source: str | None = None
    metadata: TranscriptMetadata | None = None
    segments: list[TranscriptSegment] | None = None
    attempted_providers: list[str] = field(default_factory=list)
    notes: str | None = None


@dataclass
class CachedTranscriptEntry:
    """A transcript result persisted across requests.

    Attributes:
        content: Transcript text, or None for a cached negative result
        source: Sub-strategy tag
        metadata: Transcript metadata (segments folded in when available)
        fetched_at: Epoch seconds when the entry was written
        service: Provider id that produced the entry
        resource_key: Resource key (e.g. video id) of the effective URL
        ttl_seconds: Lifetime of the entry, or None for no expiry
    """

    content: str | None
    source: str | None
    metadata: TranscriptMetadata | None
    fetched_at: float
    service: str | None = None
    resource_key: str | None = None
    ttl_seconds: float | None = None

    def is_expired(self, now: float) -> bool:
        if self.ttl_seconds is None:
            return False
        return now - self.fetched_at > self.ttl_seconds

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": self.content,
            "source": self.source,
            "metadata": self.metadata.to_dict() if self.metadata else None,
            "fetched_at": self.fetched_at,
            "service": self.service,
            "resource_key": self.resource_key,
            "ttl_seconds": self.ttl_seconds,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> CachedTranscriptEntry:
        ttl = raw.get("ttl_seconds")
        return cls(
            content=_str_or_none(raw.get("content")),
            source=_str_or_none(raw.get("source")),
            metadata=TranscriptMetadata.from_dict(raw.get("metadata")),
            fetched_at=float(raw.get("fetched_at") or 0.0),
            service=_str_or_none(raw.get("service")),
            resource_key=_str_or_none(raw.get("resource_key")),
            ttl_seconds=float(ttl) if isinstance(ttl, (int, float)) else None,
        )


@dataclass(frozen=True)
class TranscriptDiagnostics:
    """How a transcript resolution was produced.

    Instances are immutable; use ``with_note`` and ``dataclasses.replace`` to
    derive updated copies.
    """

    cache_mode: CacheMode
    cache_status: CacheStatus
    text_provided: bool = False
    provider: str | None = None
    attempted_providers: tuple[str, ...] = ()
    notes: str | None = None

    def with_note(self, note: str | None) -> TranscriptDiagnostics:
        return replace(self, notes=append_note(self.notes, note))


@dataclass
class TranscriptResolution:
    text: str | None
    source: str | None
    metadata: TranscriptMetadata | None = None
    segments: list[TranscriptSegment] | None = None
    diagnostics: TranscriptDiagnostics | None = None


@dataclass(frozen=True)
class FirecrawlDiagnostics:
    """Diagnostics for the enhanced fetch (Firecrawl) stage."""

    attempted: bool
    used: bool
    cache_mode: CacheMode
    cache_status: CacheStatus
    notes: str | None = None

    def with_note(self, note: str | None) -> FirecrawlDiagnostics:
        return replace(self, notes=append_note(self.notes, note))


@dataclass(frozen=True)
class ContentDiagnostics:
    strategy: ContentStrategy
    firecrawl: FirecrawlDiagnostics
    transcript: TranscriptDiagnostics


@dataclass
class ExtractedLinkContent:
    """Final normalized, budgeted content for a URL.

    Attributes:
        url: The URL the content was extracted for
        title: Resolved page title, or None
        description: Resolved page description, or None
        site_name: Resolved site name (falls back to the bare hostname)
        content: Normalized content after the character budget
        truncated: True iff the content exceeded the budget
        total_characters: Length of the full normalized content (code points)
        word_count: Word count of the full normalized content
        transcript_characters: Transcript length, or None without a transcript
        transcript_lines: Non-empty transcript lines, or None
        transcript_word_count: Transcript words, or None
        transcript_source: Sub-strategy that produced the transcript
        transcription_provider: Speech-to-text backend, when reported
        transcript_metadata: Transcript metadata
        transcript_segments: Timed segments, when timestamps were requested
        transcript_timed_text: Segments rendered as "[m:ss] text" lines
        media_duration_seconds: Media duration from transcript metadata
        diagnostics: Strategy and stage diagnostics
    """

    url: str
    title: str | None
    description: str | None
    site_name: str | None
    content: str
    truncated: bool
    total_characters: int
    word_count: int
    transcript_characters: int | None
    transcript_lines: int | None
    transcript_word_count: int | None
    transcript_source: str | None
    transcription_provider: str | None
    transcript_metadata: TranscriptMetadata | None
    transcript_segments: list[TranscriptSegment] | None
    transcript_timed_text: str | None
    media_duration_seconds: float | None
    diagnostics: ContentDiagnostics

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ProgressEvent:
    """Progress event emitted around transcript provider dispatch."""

    kind: Literal["transcript-start", "transcript-done"]
    url: str
    service: TranscriptService
    hint: str | None = None
    ok: bool | None = None
    source: str | None = None


ProgressSink = Callable[[ProgressEvent], None]
FetchFn = Callable[..., Awaitable["FetchResponse"]]
ScrapeFn = Callable[[str, CacheMode], Awaitable["FirecrawlScrapeResult | None"]]


@dataclass
class LinkContentDeps:
    """Capabilities injected into the pipeline.

    Attributes:
        fetch: Async HTTP transport ``fetch(url, *, method, headers, json, timeout)``
        scrape_with_firecrawl: Optional enhanced fetch service
        transcript_cache: Optional persistent transcript store
        on_progress: Optional progress sink; exceptions it raises are discarded
        credentials: Opaque credential bag passed unmodified to providers
    """

    fetch: FetchFn
    scrape_with_firecrawl: ScrapeFn | None = None
    transcript_cache: TranscriptCacheStore | None = None
    on_progress: ProgressSink | None = None
    credentials: Mapping[str, str | None] = field(default_factory=dict)


@dataclass
class TranscriptOptions:
    cache_mode: CacheMode = "default"
    transcript_timestamps: bool = False
    youtube_transcript_mode: str = "auto"
    media_transcript_mode: str = "auto"
    file_mtime: float | None = None
    cache_ttl_seconds: float | None = 60 * 60 * 24 * 7
    negative_cache_ttl_seconds: float | None = 60 * 60 * 6


@dataclass
class FetchLinkContentOptions:
    """Per-request options for ``fetch_link_content``.

    Attributes:
        timeout_seconds: Timeout for HTML fetches
        cache_mode: "default" honours cached transcripts, "bypass" ignores them on read
        max_characters: Character budget, or None for unlimited
        youtube_transcript_mode: "auto", "web", or "no-auto"
        media_transcript_mode: "auto" or "prefer"
        transcript_timestamps: Whether to request timed segments
        firecrawl_mode: "auto" uses the enhanced fetch when available, "off" skips it
        file_mtime: Modification time of a local source file, for cache staleness
        cache_ttl_seconds: Lifetime of cached transcripts (None for no expiry)
        negative_cache_ttl_seconds: Lifetime of cached "no transcript" results
        extract_primary: Primary article body extractor
        extract_fallback: Fallback article body extractors, in order
    """

    timeout_seconds: float = 30.0
    cache_mode: CacheMode = "default"
    max_characters: int | None = None
    youtube_transcript_mode: str = "auto"
    media_transcript_mode: str = "auto"
    transcript_timestamps: bool = False
    firecrawl_mode: str = "auto"
    file_mtime: float | None = None
    cache_ttl_seconds: float | None = 60 * 60 * 24 * 7
    negative_cache_ttl_seconds: float | None = 60 * 60 * 6
    extract_primary: str = "readability"
    extract_fallback: list[str] = field(default_factory=lambda: ["trafilatura", "bs4"])

    def transcript_options(self) -> TranscriptOptions:
        return TranscriptOptions(
            cache_mode=self.cache_mode,
            transcript_timestamps=self.transcript_timestamps,
            youtube_transcript_mode=self.youtube_transcript_mode,
            media_transcript_mode=self.media_transcript_mode,
            file_mtime=self.file_mtime,
            cache_ttl_seconds=self.cache_ttl_seconds,
            negative_cache_ttl_seconds=self.negative_cache_ttl_seconds,
        )
