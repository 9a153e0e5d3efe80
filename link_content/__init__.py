"""
Link Content - turn a URL into normalized text for summarization.

This package fetches a link (through Firecrawl when configured, otherwise
directly), extracts metadata and the article body, resolves a transcript for
video and podcast links with caching and stale fallback, and applies a
word-safe character budget.

Main entry points are ``fetch_link_content`` / ``resolve_transcript_for_link``
and the CLI via the `link-content fetch` command.

Example:
    $ link-content fetch https://www.youtube.com/watch?v=dQw4w9WgXcQ --max-characters 4000
"""

__all__ = [
    "__version__",
    "fetch_link_content",
    "resolve_transcript_for_link",
    "ConfigurationError",
    "LinkFetchError",
    "ExtractedLinkContent",
    "FetchLinkContentOptions",
    "LinkContentDeps",
    "TranscriptOptions",
    "TranscriptResolution",
]
__version__ = "0.1.0"

from .content.orchestrator import fetch_link_content
from .core.types import (
    ExtractedLinkContent,
    FetchLinkContentOptions,
    LinkContentDeps,
    TranscriptOptions,
    TranscriptResolution,
)
from .errors import ConfigurationError, LinkFetchError
from .transcript.resolver import resolve_transcript_for_link
