"""Transcript resolution: providers, cache policy and orchestration."""

from .cache import (
    FileTranscriptCache,
    InMemoryTranscriptCache,
    TranscriptCacheLookup,
    TranscriptCacheStore,
    map_cached_source,
    read_transcript_cache,
    write_transcript_cache,
)
from .providers import GenericProvider, PodcastProvider, ProviderFetchOptions, TranscriptProvider, YoutubeProvider
from .registry import PROVIDERS, select_provider
from .resolver import resolve_transcript_for_link
from .resources import resolve_resource
from .timestamps import format_timestamp, format_transcript_segments

__all__ = [
    "FileTranscriptCache",
    "InMemoryTranscriptCache",
    "TranscriptCacheLookup",
    "TranscriptCacheStore",
    "map_cached_source",
    "read_transcript_cache",
    "write_transcript_cache",
    "GenericProvider",
    "PodcastProvider",
    "ProviderFetchOptions",
    "TranscriptProvider",
    "YoutubeProvider",
    "PROVIDERS",
    "select_provider",
    "resolve_transcript_for_link",
    "resolve_resource",
    "format_timestamp",
    "format_transcript_segments",
]
