"""
Podcast transcript provider.

Reads ``<podcast:transcript>`` links from RSS/Atom feeds (Podcasting 2.0
namespace) and downloads the referenced VTT, SRT, JSON or plain-text file.
Episode audio is never transcribed; an enclosure without a transcript link is
reported as unavailable.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from ...core.types import ProgressEvent, ProviderContext, ProviderResult, TranscriptMetadata, TranscriptSegment
from ...logging_utils import log_event
from ..parse import (
    json_transcript_to_segments,
    normalize_transcript_text,
    segments_to_plain_text,
    vtt_to_segments,
)
from ..progress import emit_progress
from ..urls import is_direct_media_url
from .base import ProviderFetchOptions, TranscriptProvider


logger = logging.getLogger(__name__)

PODCAST_PLATFORM_HOST_RE = re.compile(
    r"^https?://(?:[^/]+\.)?(?:"
    r"podcasts\.apple\.com|open\.spotify\.com/(?:episode|show)|podbean\.com|buzzsprout\.com|"
    r"anchor\.fm|simplecast\.com|transistor\.fm|megaphone\.fm|libsyn\.com|overcast\.fm|"
    r"pocketcasts\.com|castbox\.fm|podcasts\.google\.com|captivate\.fm|rss\.com"
    r")",
    re.IGNORECASE,
)
FEED_HINT_URL_RE = re.compile(r"/feed/?(?:$|[?#])|\.rss(?:$|[?#])|//rss\.|/rss/?(?:$|[?#])|podcast", re.IGNORECASE)
_FEED_ROOT_RE = re.compile(r"<rss[\s>]|<feed[\s>][^>]*xmlns=[\"']http://www\.w3\.org/2005/Atom", re.IGNORECASE)
_TRANSCRIPT_TYPE_PREFERENCE = (
    "text/vtt",
    "application/x-subrip",
    "application/srt",
    "application/json",
    "text/plain",
    "text/html",
)
FEED_ACCEPT = "application/rss+xml,application/atom+xml,application/xml;q=0.9,text/xml;q=0.9,*/*;q=0.5"
TRANSCRIPT_ACCEPT = "text/vtt,application/x-subrip,application/json;q=0.9,text/plain;q=0.8,*/*;q=0.5"


def looks_like_rss_or_atom_feed(text: str) -> bool:
    head = text.lstrip()[:2048]
    return bool(_FEED_ROOT_RE.search(head))


@dataclass
class FeedTranscriptLink:
    url: str
    type: str | None
    duration_seconds: float | None


def parse_itunes_duration(value: str | None) -> float | None:
    """Parse ``<itunes:duration>`` values: plain seconds or ``[HH:]MM:SS``."""
    if not value:
        return None
    parts = value.strip().split(":")
    try:
        numbers = [float(part) for part in parts]
    except ValueError:
        return None
    seconds = 0.0
    for number in numbers:
        seconds = seconds * 60 + number
    return seconds if seconds > 0 else None


def find_feed_transcript(feed_xml: str, base_url: str | None = None) -> FeedTranscriptLink | None:
    """Return the preferred transcript link of the first episode that has one."""
    soup = BeautifulSoup(feed_xml, "html.parser")
    containers = soup.find_all(["item", "entry"]) or [soup]
    for container in containers:
        candidates = [tag for tag in container.find_all("podcast:transcript") if tag.get("url")]
        if not candidates:
            continue

        def rank(tag) -> int:
            kind = (tag.get("type") or "").lower()
            for index, preferred in enumerate(_TRANSCRIPT_TYPE_PREFERENCE):
                if kind.startswith(preferred):
                    return index
            return len(_TRANSCRIPT_TYPE_PREFERENCE)

        best = min(candidates, key=rank)
        duration_tag = container.find("itunes:duration")
        url = best["url"].strip()
        return FeedTranscriptLink(
            url=urljoin(base_url, url) if base_url else url,
            type=(best.get("type") or None),
            duration_seconds=parse_itunes_duration(duration_tag.get_text() if duration_tag else None),
        )
    return None


def _has_enclosure(feed_xml: str) -> bool:
    return BeautifulSoup(feed_xml, "html.parser").find("enclosure") is not None


def parse_transcript_document(body: str, content_type: str | None, url: str) -> list[TranscriptSegment] | str | None:
    """Parse a downloaded transcript into segments, or plain text when it has no timing."""
    kind = (content_type or "").lower()
    lowered_url = url.lower().split("?")[0]
    stripped = body.strip()
    if not stripped:
        return None
    if "json" in kind or lowered_url.endswith(".json"):
        try:
            return json_transcript_to_segments(json.loads(stripped)) or None
        except json.JSONDecodeError:
            return None
    is_cue_file = any(marker in kind for marker in ("vtt", "subrip", "srt"))
    if is_cue_file or lowered_url.endswith((".vtt", ".srt")) or stripped.startswith("WEBVTT"):
        return vtt_to_segments(stripped) or None
    if "html" in kind:
        text = BeautifulSoup(stripped, "html.parser").get_text("\n")
        return normalize_transcript_text(text) or None
    return normalize_transcript_text(stripped) or None


class PodcastProvider(TranscriptProvider):
    id = "podcast"

    def can_handle(self, context: ProviderContext) -> bool:
        # Direct media files go to the generic provider even when "podcast" is in the path.
        if is_direct_media_url(context.url):
            return False
        if context.html and looks_like_rss_or_atom_feed(context.html):
            return True
        if PODCAST_PLATFORM_HOST_RE.search(context.url):
            return True
        return bool(FEED_HINT_URL_RE.search(context.url))

    async def fetch_transcript(self, context: ProviderContext, options: ProviderFetchOptions) -> ProviderResult:
        attempted: list[str] = []
        notes: list[str] = []

        feed_xml = context.html
        if not feed_xml:
            fetched = await self._fetch_text(context.url, options, notes, accept=FEED_ACCEPT)
            if fetched and looks_like_rss_or_atom_feed(fetched[0]):
                feed_xml = fetched[0]

        link = find_feed_transcript(feed_xml, context.url) if feed_xml else None
        if link:
            attempted.append("podcastTranscript")
            emit_progress(
                options.on_progress,
                ProgressEvent(
                    kind="transcript-start",
                    url=context.url,
                    service="podcast",
                    hint="Podcast: downloading feed transcript",
                ),
            )
            fetched = await self._fetch_text(link.url, options, notes, accept=TRANSCRIPT_ACCEPT)
            parsed = parse_transcript_document(fetched[0], link.type or fetched[1], link.url) if fetched else None
            if parsed:
                segments = parsed if isinstance(parsed, list) else None
                text = segments_to_plain_text(segments) if segments else parsed
                return ProviderResult(
                    text=text,
                    source="podcastTranscript",
                    metadata=TranscriptMetadata(
                        provider="podcast",
                        kind="rss_podcast_transcript",
                        duration_seconds=link.duration_seconds,
                        transcript_url=link.url,
                    ),
                    segments=segments if options.transcript_timestamps else None,
                    attempted_providers=attempted,
                    notes="; ".join(notes) or None,
                )
            notes.append("Podcast transcript file was empty or unparseable")

        if feed_xml and _has_enclosure(feed_xml):
            notes.append("Podcast audio transcription is not supported")
            reason = "transcription_unavailable"
        else:
            reason = "no_transcript_available"
        return ProviderResult(
            text=None,
            source=None,
            metadata=TranscriptMetadata(provider="podcast", reason=reason),
            attempted_providers=attempted,
            notes="; ".join(notes) or None,
        )

    async def _fetch_text(
        self, url: str, options: ProviderFetchOptions, notes: list[str], accept: str
    ) -> tuple[str, str | None] | None:
        try:
            resp = await options.fetch(url, headers={"Accept": accept})
        except Exception as exc:  # noqa: BLE001
            log_event(logger, "Podcast fetch failed", level=logging.DEBUG, url=url, error=str(exc))
            notes.append(f"Podcast fetch failed: {type(exc).__name__}")
            return None
        if not resp.ok:
            notes.append(f"Podcast fetch failed ({resp.status_code})")
            return None
        return resp.text, resp.headers.get("content-type")
