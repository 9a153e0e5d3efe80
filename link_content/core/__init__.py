"""
Core domain models.

This package contains the data types shared by the fetch, transcript and
content stages.
"""

from .types import (
    CachedTranscriptEntry,
    ContentDiagnostics,
    ExtractedLinkContent,
    FetchLinkContentOptions,
    FirecrawlDiagnostics,
    LinkContentDeps,
    ProgressEvent,
    ProviderContext,
    ProviderResult,
    ResourceReference,
    TranscriptDiagnostics,
    TranscriptMetadata,
    TranscriptOptions,
    TranscriptResolution,
    TranscriptSegment,
    append_note,
)

__all__ = [
    "CachedTranscriptEntry",
    "ContentDiagnostics",
    "ExtractedLinkContent",
    "FetchLinkContentOptions",
    "FirecrawlDiagnostics",
    "LinkContentDeps",
    "ProgressEvent",
    "ProviderContext",
    "ProviderResult",
    "ResourceReference",
    "TranscriptDiagnostics",
    "TranscriptMetadata",
    "TranscriptOptions",
    "TranscriptResolution",
    "TranscriptSegment",
    "append_note",
]
