"""
Generic transcript provider: the catch-all for every URL.

Only embedded caption tracks (``<track kind="captions|subtitles">``) are
read. Pages without one report ``reason="not_implemented"``.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
import logging
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from ...core.types import ProviderContext, ProviderResult, TranscriptMetadata, TranscriptSegment
from ...logging_utils import log_event
from ..parse import json_transcript_to_segments, normalize_transcript_text, segments_to_plain_text, vtt_to_segments
from ..urls import is_direct_media_url
from .base import ProviderFetchOptions, TranscriptProvider


logger = logging.getLogger(__name__)

CAPTION_ACCEPT = "text/vtt,text/plain,application/json;q=0.9,*/*;q=0.8"


@dataclass
class EmbeddedTrack:
    url: str
    type: str | None
    language: str | None
    media_kind: str


def find_caption_track(html: str, base_url: str) -> EmbeddedTrack | None:
    """Return the preferred caption track of the page (English first)."""
    try:
        soup = BeautifulSoup(html, "html.parser")
    except Exception:  # noqa: BLE001
        return None
    tracks: list[EmbeddedTrack] = []
    for tag in soup.find_all("track"):
        if (tag.get("kind") or "").lower() not in {"captions", "subtitles"}:
            continue
        src = (tag.get("src") or "").strip()
        if not src:
            continue
        parent = tag.find_parent(["video", "audio"])
        tracks.append(
            EmbeddedTrack(
                url=urljoin(base_url, src),
                type=(tag.get("type") or "").strip() or None,
                language=((tag.get("srclang") or tag.get("lang") or "").strip().lower() or None),
                media_kind=parent.name if parent is not None else "video",
            )
        )
    if not tracks:
        return None
    english = next((track for track in tracks if track.language and track.language.startswith("en")), None)
    return english or tracks[0]


class GenericProvider(TranscriptProvider):
    id = "generic"

    def can_handle(self, context: ProviderContext) -> bool:
        return True

    async def fetch_transcript(self, context: ProviderContext, options: ProviderFetchOptions) -> ProviderResult:
        attempted: list[str] = []
        notes: list[str] = []

        track = find_caption_track(context.html, context.url) if context.html else None
        if track:
            attempted.append("embedded")
            segments, text = await self._fetch_caption_track(track, options, notes)
            if text:
                return ProviderResult(
                    text=text,
                    source="embedded",
                    metadata=TranscriptMetadata(provider="embedded", kind=track.media_kind, transcript_url=track.url),
                    segments=segments if options.transcript_timestamps else None,
                    attempted_providers=attempted,
                    notes="; ".join(notes) or None,
                )

        if is_direct_media_url(context.url) or options.media_transcript_mode == "prefer":
            notes.append("Media transcription is not supported")
        return ProviderResult(
            text=None,
            source=None,
            metadata=TranscriptMetadata(provider="generic", reason="not_implemented"),
            attempted_providers=attempted,
            notes="; ".join(notes) or None,
        )

    async def _fetch_caption_track(
        self, track: EmbeddedTrack, options: ProviderFetchOptions, notes: list[str]
    ) -> tuple[list[TranscriptSegment] | None, str | None]:
        try:
            resp = await options.fetch(track.url, headers={"Accept": CAPTION_ACCEPT})
        except Exception as exc:  # noqa: BLE001
            log_event(logger, "Caption track fetch failed", level=logging.DEBUG, url=track.url, error=str(exc))
            notes.append(f"Embedded captions fetch failed: {type(exc).__name__}")
            return None, None
        if not resp.ok:
            notes.append(f"Embedded captions fetch failed ({resp.status_code})")
            return None, None

        declared = (track.type or "").lower()
        content_type = resp.headers.get("content-type", "").lower()
        body = resp.text
        if "application/json" in declared or "application/json" in content_type:
            try:
                segments = json_transcript_to_segments(json.loads(body))
            except json.JSONDecodeError:
                notes.append("Embedded captions JSON parse failed")
                return None, None
            return segments or None, segments_to_plain_text(segments) or None

        if "text/vtt" in declared or "text/vtt" in content_type or track.url.lower().endswith(".vtt"):
            segments = vtt_to_segments(body)
            return segments or None, segments_to_plain_text(segments) or None

        return None, normalize_transcript_text(body) or None
