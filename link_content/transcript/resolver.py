"""
Transcript resolution for a single link.

Flow: resolve resource → select provider → cache lookup → (hit: return) →
progress start → provider fetch → progress done → fold segments into
metadata → cache write → (no text and a cached entry: stale fallback) →
return.

Diagnostics are immutable; every stage derives a new instance.
"""

from __future__ import annotations

from dataclasses import replace
import asyncio
import logging
import time
from typing import Sequence

from ..core.types import (
    LinkContentDeps,
    ProgressEvent,
    ProviderContext,
    ProviderResult,
    TranscriptMetadata,
    TranscriptOptions,
    TranscriptResolution,
)
from ..logging_utils import log_event
from .cache import map_cached_source, read_transcript_cache, segments_from_metadata, write_transcript_cache
from .progress import emit_progress
from .providers import ProviderFetchOptions, TranscriptProvider
from .registry import PROVIDERS, select_provider
from .resources import resolve_resource


logger = logging.getLogger(__name__)

FALLBACK_NOTE = "Falling back to cached transcript content after provider miss"
_PROGRESS_HINTS = {
    "youtube": "YouTube: resolving transcript",
    "podcast": "Podcast: resolving transcript",
}


async def resolve_transcript_for_link(
    url: str,
    html: str | None,
    deps: LinkContentDeps,
    options: TranscriptOptions | None = None,
    providers: Sequence[TranscriptProvider] = PROVIDERS,
) -> TranscriptResolution:
    """Resolve the transcript for a URL, using the cache when allowed.

    Args:
        url: The link being processed
        html: Page markup already fetched for the link, if any
        deps: Injected transport, cache, progress sink and credentials
        options: Cache mode, timestamp and transcript mode flags
        providers: Provider registry (specialized providers first)

    Returns:
        TranscriptResolution with diagnostics describing the path taken

    Raises:
        ConfigurationError: If the registry has no generic provider
    """
    options = options or TranscriptOptions()
    wants_timestamps = bool(options.transcript_timestamps)

    resource = resolve_resource(url, html)
    context = ProviderContext(url=resource.effective_url, html=html, resource_key=resource.resource_key)
    provider = select_provider(context, providers)

    # Store access runs off the event loop; file-backed stores block on disk I/O.
    lookup = await asyncio.to_thread(
        read_transcript_cache,
        resource.normalized_url,
        options.cache_mode,
        deps.transcript_cache,
        wants_timestamps=wants_timestamps,
        file_mtime=options.file_mtime,
    )
    # No provider runs on a hit, and a miss carries none forward.
    diagnostics = replace(lookup.diagnostics, attempted_providers=())
    if lookup.resolution is not None:
        return replace(lookup.resolution, diagnostics=diagnostics)

    reports_progress = provider.id in _PROGRESS_HINTS
    if reports_progress:
        emit_progress(
            deps.on_progress,
            ProgressEvent(
                kind="transcript-start",
                url=resource.normalized_url,
                service=provider.id,
                hint=_PROGRESS_HINTS[provider.id],
            ),
        )

    log_event(
        logger,
        "Dispatching transcript provider",
        level=logging.DEBUG,
        event="transcript_dispatch",
        url=resource.normalized_url,
        provider=provider.id,
        resource_key=resource.resource_key,
    )
    started = time.perf_counter()
    result = await _execute_provider(
        provider,
        context,
        ProviderFetchOptions(
            fetch=deps.fetch,
            scrape_with_firecrawl=deps.scrape_with_firecrawl,
            credentials=deps.credentials,
            on_progress=deps.on_progress,
            youtube_transcript_mode=options.youtube_transcript_mode,
            media_transcript_mode=options.media_transcript_mode,
            transcript_timestamps=wants_timestamps,
        ),
    )
    has_text = bool(result.text)

    if reports_progress:
        emit_progress(
            deps.on_progress,
            ProgressEvent(
                kind="transcript-done",
                url=resource.normalized_url,
                service=provider.id,
                hint=f"{provider.id}/{result.source}" if result.source else provider.id,
                ok=has_text,
                source=result.source,
            ),
        )
    log_event(
        logger,
        "Transcript provider finished",
        level=logging.DEBUG,
        event="transcript_provider_done",
        url=resource.normalized_url,
        provider=provider.id,
        source=result.source,
        ok=has_text,
        elapsed_s=round(time.perf_counter() - started, 3),
    )

    diagnostics = replace(
        diagnostics,
        provider=result.source,
        attempted_providers=tuple(result.attempted_providers),
        text_provided=has_text,
    ).with_note(result.notes)

    if result.source is not None or result.text is not None:
        result.metadata = fold_segments_into_metadata(result, wants_timestamps)
        await asyncio.to_thread(
            write_transcript_cache,
            resource.normalized_url,
            provider.id,
            resource.resource_key,
            result,
            deps.transcript_cache,
            file_mtime=options.file_mtime,
            ttl_seconds=options.cache_ttl_seconds,
            negative_ttl_seconds=options.negative_cache_ttl_seconds,
        )

    cached = lookup.cached
    if not has_text and cached is not None and cached.content and options.cache_mode != "bypass":
        source = map_cached_source(cached.source)
        log_event(
            logger,
            "Using stale cached transcript",
            event="transcript_cache_fallback",
            url=resource.normalized_url,
            source=source,
        )
        return TranscriptResolution(
            text=cached.content,
            source=source,
            metadata=cached.metadata,
            segments=segments_from_metadata(cached.metadata) if wants_timestamps else None,
            diagnostics=replace(
                diagnostics,
                cache_status="fallback",
                provider=source,
                text_provided=True,
            ).with_note(FALLBACK_NOTE),
        )

    return TranscriptResolution(
        text=result.text,
        source=result.source,
        metadata=result.metadata,
        segments=result.segments if wants_timestamps else None,
        diagnostics=diagnostics,
    )


async def _execute_provider(
    provider: TranscriptProvider, context: ProviderContext, options: ProviderFetchOptions
) -> ProviderResult:
    try:
        return await provider.fetch_transcript(context, options)
    except Exception as exc:  # noqa: BLE001
        log_event(
            logger,
            "Transcript provider raised",
            level=logging.WARNING,
            event="transcript_provider_error",
            url=context.url,
            provider=provider.id,
            error=f"{type(exc).__name__}: {exc}",
        )
        return ProviderResult(notes=f"{provider.id} provider failed: {type(exc).__name__}: {exc}")


def fold_segments_into_metadata(result: ProviderResult, wants_timestamps: bool) -> TranscriptMetadata | None:
    """Return metadata with the result's segments folded in, ready for persistence.

    With timestamps requested, ``timestamps`` records whether segments were
    produced. Without, segments are kept when present and the flag is untouched.
    """
    metadata = result.metadata
    segments = result.segments or None
    if wants_timestamps:
        base = metadata or TranscriptMetadata()
        if segments:
            return replace(base, timestamps=True, segments=list(segments))
        if base.timestamps is None:
            return replace(base, timestamps=False)
        return base
    if segments:
        return replace(metadata or TranscriptMetadata(), segments=list(segments))
    return metadata
