"""
Abstract base class for transcript providers.

New providers should inherit from TranscriptProvider, set ``id`` and
implement ``can_handle`` and ``fetch_transcript``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Mapping

from ...core.types import (
    FetchFn,
    ProgressSink,
    ProviderContext,
    ProviderResult,
    ScrapeFn,
    TranscriptService,
)


@dataclass
class ProviderFetchOptions:
    """Option bag handed to ``fetch_transcript``.

    Attributes:
        fetch: Injected async HTTP transport
        scrape_with_firecrawl: Optional enhanced fetch service
        credentials: Opaque credential bag, passed through unmodified
        on_progress: Optional progress sink for sub-strategy hints
        youtube_transcript_mode: "auto", "web", or "no-auto"
        media_transcript_mode: "auto" or "prefer"
        transcript_timestamps: Whether timed segments should be returned
    """

    fetch: FetchFn
    scrape_with_firecrawl: ScrapeFn | None = None
    credentials: Mapping[str, str | None] = field(default_factory=dict)
    on_progress: ProgressSink | None = None
    youtube_transcript_mode: str = "auto"
    media_transcript_mode: str = "auto"
    transcript_timestamps: bool = False


class TranscriptProvider(ABC):
    """A transcript source for one class of URLs.

    ``can_handle`` must be synchronous and free of I/O. ``fetch_transcript``
    must not raise: failures are reported as a ProviderResult without text
    and with an explanatory note.
    """

    id: TranscriptService

    @abstractmethod
    def can_handle(self, context: ProviderContext) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def fetch_transcript(
        self, context: ProviderContext, options: ProviderFetchOptions
    ) -> ProviderResult:
        """Resolve a transcript for the context.

        Args:
            context: URL, optional HTML and resource key
            options: Transport, credentials and mode flags

        Returns:
            ProviderResult; ``attempted_providers`` lists sub-strategies in order
        """
        raise NotImplementedError
