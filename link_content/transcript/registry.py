"""Provider registry and selection."""

from __future__ import annotations

from typing import Sequence

from ..core.types import ProviderContext
from ..errors import ConfigurationError
from .providers import GenericProvider, PodcastProvider, TranscriptProvider, YoutubeProvider


GENERIC_PROVIDER_ID = "generic"

# Specialized providers first, in priority order; the generic provider last.
PROVIDERS: tuple[TranscriptProvider, ...] = (
    YoutubeProvider(),
    PodcastProvider(),
    GenericProvider(),
)


def select_provider(
    context: ProviderContext, providers: Sequence[TranscriptProvider] = PROVIDERS
) -> TranscriptProvider:
    """Return the first specialized provider that can handle the context, else the generic one.

    Raises:
        ConfigurationError: If no generic provider is registered
    """
    generic: TranscriptProvider | None = None
    for provider in providers:
        if provider.id == GENERIC_PROVIDER_ID:
            generic = generic or provider
            continue
        if provider.can_handle(context):
            return provider
    if generic is None:
        raise ConfigurationError("Generic transcript provider is not registered")
    return generic

