"""Resource resolution: URL normalization, embedded video detection and resource keys."""

from __future__ import annotations

from ..core.types import ResourceReference
from .urls import extract_embedded_youtube_url_from_html, extract_youtube_video_id, is_youtube_url


def resolve_resource(url: str, html: str | None = None) -> ResourceReference:
    """Normalize a URL and derive the URL and resource key providers should use.

    When the URL is not itself a video URL and page HTML is supplied, an
    embedded YouTube player is promoted to the effective URL. Resource keys
    are derived only for recognized video URLs.

    Args:
        url: The caller's URL
        html: Optional page markup to scan for embedded players

    Returns:
        ResourceReference for the request
    """
    normalized_url = url.strip()
    embedded_url = None
    if html and not is_youtube_url(normalized_url):
        embedded_url = extract_embedded_youtube_url_from_html(html, normalized_url)
    effective_url = embedded_url or normalized_url
    resource_key = extract_youtube_video_id(effective_url) if is_youtube_url(effective_url) else None
    return ResourceReference(
        normalized_url=normalized_url,
        effective_url=effective_url,
        resource_key=resource_key,
    )
