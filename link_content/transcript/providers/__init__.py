"""
Transcript provider implementations.

This package contains the abstract base class and the concrete providers.

To add a new provider:
1. Inherit from TranscriptProvider and set a unique ``id``
2. Implement can_handle() (sync, no I/O) and fetch_transcript() (never raises)
3. Export the class from __init__.py
4. Register an instance in PROVIDERS in transcript/registry.py, before the generic provider
"""

from .base import ProviderFetchOptions, TranscriptProvider
from .generic import GenericProvider
from .podcast import PodcastProvider
from .youtube import YoutubeProvider

__all__ = [
    "ProviderFetchOptions",
    "TranscriptProvider",
    "GenericProvider",
    "PodcastProvider",
    "YoutubeProvider",
]
