"""
YouTube transcript provider.

Sub-strategies, tried in order:
1. ``youtubei``: the Innertube ``get_transcript`` endpoint, using the API key
   and client context from ``ytcfg`` and the transcript params embedded in the
   watch page.
2. ``captionTracks``: caption tracks listed in ``ytInitialPlayerResponse``,
   downloaded in ``json3`` format.

In "no-auto" mode only creator-provided caption tracks are accepted.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any
from urllib.parse import urlencode

from bs4 import BeautifulSoup

from ...content.youtube import (
    extract_balanced_json_object,
    extract_player_response,
    extract_youtube_duration_seconds,
    extract_ytcfg,
)
from ...core.types import ProgressEvent, ProviderContext, ProviderResult, TranscriptMetadata, TranscriptSegment
from ...fetch.fetcher import DEFAULT_USER_AGENT, HTML_ACCEPT
from ...logging_utils import log_event
from ..parse import json_transcript_to_segments, normalize_transcript_text, segments_to_plain_text
from ..progress import emit_progress
from ..urls import extract_youtube_video_id, is_youtube_url
from .base import ProviderFetchOptions, TranscriptProvider


logger = logging.getLogger(__name__)

YOUTUBEI_TRANSCRIPT_URL = "https://www.youtube.com/youtubei/v1/get_transcript"
_CONFIG_TOKEN_RE = re.compile(r"ytcfg\.set|ytInitialPlayerResponse")
_TRANSCRIPT_PARAMS_RE = re.compile(r'"getTranscriptEndpoint"\s*:\s*\{\s*"params"\s*:\s*"([^"]+)"')
_API_KEY_RE = re.compile(r'"INNERTUBE_API_KEY"\s*:\s*"([^"]+)"')


class YoutubeProvider(TranscriptProvider):
    id = "youtube"

    def can_handle(self, context: ProviderContext) -> bool:
        return is_youtube_url(context.url)

    async def fetch_transcript(self, context: ProviderContext, options: ProviderFetchOptions) -> ProviderResult:
        attempted: list[str] = []
        notes: list[str] = []
        url = context.url

        def hint(message: str) -> None:
            emit_progress(
                options.on_progress,
                ProgressEvent(kind="transcript-start", url=url, service="youtube", hint=message),
            )

        html = context.html
        if not html or not _CONFIG_TOKEN_RE.search(html):
            html = await self._fetch_watch_page(url, options) or html
        if not html:
            return ProviderResult(attempted_providers=attempted, notes="YouTube watch page unavailable")

        video_id = (context.resource_key or "").strip() or extract_youtube_video_id(url)
        if not video_id:
            return ProviderResult(attempted_providers=attempted, notes="Could not determine YouTube video id")

        duration = extract_youtube_duration_seconds(html)
        mode = options.youtube_transcript_mode

        if mode == "no-auto":
            hint("YouTube: checking creator captions only (skipping auto-generated)")
            attempted.append("captionTracks")
            segments = await self._fetch_caption_tracks(html, options, notes, skip_auto_generated=True)
            if segments:
                return self._success("captionTracks", segments, duration, attempted, notes, options)
            notes.append("No creator captions found")
        else:
            hint("YouTube: checking captions (youtubei)")
            config = _youtubei_config(html)
            if config:
                attempted.append("youtubei")
                segments = await self._fetch_youtubei(config, options, notes)
                if segments:
                    return self._success("youtubei", segments, duration, attempted, notes, options)
                hint("YouTube: youtubei empty; checking caption tracks")
            else:
                hint("YouTube: youtubei unavailable; checking caption tracks")

            attempted.append("captionTracks")
            segments = await self._fetch_caption_tracks(html, options, notes, skip_auto_generated=False)
            if segments:
                return self._success("captionTracks", segments, duration, attempted, notes, options)

        attempted.append("unavailable")
        return ProviderResult(
            text=None,
            source="unavailable",
            metadata=TranscriptMetadata(
                provider="youtube",
                kind="video",
                reason="no_transcript_available",
                duration_seconds=duration,
            ),
            attempted_providers=attempted,
            notes="; ".join(notes) or None,
        )

    def _success(
        self,
        source: str,
        segments: list[TranscriptSegment],
        duration: float | None,
        attempted: list[str],
        notes: list[str],
        options: ProviderFetchOptions,
    ) -> ProviderResult:
        return ProviderResult(
            text=segments_to_plain_text(segments),
            source=source,
            metadata=TranscriptMetadata(provider=source, kind="video", duration_seconds=duration),
            segments=segments if options.transcript_timestamps else None,
            attempted_providers=attempted,
            notes="; ".join(notes) or None,
        )

    async def _fetch_watch_page(self, url: str, options: ProviderFetchOptions) -> str | None:
        try:
            resp = await options.fetch(url, headers=_request_headers(options, {"Accept": HTML_ACCEPT}))
        except Exception as exc:  # noqa: BLE001
            log_event(logger, "YouTube watch page fetch failed", level=logging.DEBUG, url=url, error=str(exc))
            return None
        return resp.text if resp.ok else None

    async def _fetch_youtubei(
        self, config: dict[str, Any], options: ProviderFetchOptions, notes: list[str]
    ) -> list[TranscriptSegment] | None:
        endpoint = f"{YOUTUBEI_TRANSCRIPT_URL}?{urlencode({'key': config['api_key'], 'prettyPrint': 'false'})}"
        try:
            resp = await options.fetch(
                endpoint,
                method="POST",
                headers=_request_headers(options, {"Content-Type": "application/json"}),
                json={"context": config["context"], "params": config["params"]},
            )
        except Exception as exc:  # noqa: BLE001
            notes.append(f"youtubei request failed: {type(exc).__name__}")
            return None
        if not resp.ok:
            notes.append(f"youtubei request failed ({resp.status_code})")
            return None
        try:
            payload = resp.json()
        except json.JSONDecodeError:
            notes.append("youtubei response was not JSON")
            return None
        return _segments_from_youtubei(payload) or None

    async def _fetch_caption_tracks(
        self,
        html: str,
        options: ProviderFetchOptions,
        notes: list[str],
        skip_auto_generated: bool,
    ) -> list[TranscriptSegment] | None:
        track = select_caption_track(_caption_tracks(html), skip_auto_generated=skip_auto_generated)
        if not track:
            return None
        base_url = track["baseUrl"]
        separator = "&" if "?" in base_url else "?"
        try:
            resp = await options.fetch(f"{base_url}{separator}fmt=json3", headers=_request_headers(options, {}))
        except Exception as exc:  # noqa: BLE001
            notes.append(f"Caption track fetch failed: {type(exc).__name__}")
            return None
        if not resp.ok:
            notes.append(f"Caption track fetch failed ({resp.status_code})")
            return None
        body = resp.text.strip()
        if not body:
            return None
        if body.startswith("<"):
            return _segments_from_timedtext_xml(body) or None
        try:
            return json_transcript_to_segments(json.loads(body)) or None
        except json.JSONDecodeError:
            notes.append("Caption track payload was not JSON")
            return None


def _request_headers(options: ProviderFetchOptions, extra: dict[str, str]) -> dict[str, str]:
    headers = {"User-Agent": DEFAULT_USER_AGENT, **extra}
    cookie = options.credentials.get("youtube_cookie")
    if cookie:
        headers["Cookie"] = cookie
    return headers


def _youtubei_config(html: str) -> dict[str, Any] | None:
    match = _TRANSCRIPT_PARAMS_RE.search(html)
    if not match:
        return None
    ytcfg = extract_ytcfg(html) or {}
    api_key = ytcfg.get("INNERTUBE_API_KEY")
    context = ytcfg.get("INNERTUBE_CONTEXT")
    # ytcfg.set is called several times per page; the first call may not hold the client config.
    if not isinstance(api_key, str):
        key_match = _API_KEY_RE.search(html)
        api_key = key_match.group(1) if key_match else None
    if not isinstance(context, dict):
        context_start = html.find('"INNERTUBE_CONTEXT"')
        raw = extract_balanced_json_object(html, context_start) if context_start >= 0 else None
        try:
            context = json.loads(raw) if raw else None
        except json.JSONDecodeError:
            context = None
    if not api_key or not isinstance(context, dict):
        return None
    return {"api_key": api_key, "context": context, "params": match.group(1)}


def _segments_from_youtubei(payload: Any) -> list[TranscriptSegment]:
    segments: list[TranscriptSegment] = []
    for node in _iter_key(payload, "transcriptSegmentRenderer"):
        runs = (node.get("snippet") or {}).get("runs") or []
        text = normalize_transcript_text(" ".join(run.get("text", "") for run in runs if isinstance(run, dict)))
        try:
            start_ms = int(node.get("startMs"))
        except (TypeError, ValueError):
            continue
        try:
            end_ms: int | None = int(node.get("endMs"))
        except (TypeError, ValueError):
            end_ms = None
        if text:
            segments.append(TranscriptSegment(start_ms=start_ms, end_ms=end_ms, text=text))
    return segments


def _iter_key(node: Any, key: str):
    if isinstance(node, dict):
        for name, value in node.items():
            if name == key and isinstance(value, dict):
                yield value
            else:
                yield from _iter_key(value, key)
    elif isinstance(node, list):
        for item in node:
            yield from _iter_key(item, key)


def _caption_tracks(html: str) -> list[dict[str, Any]]:
    player = extract_player_response(html) or {}
    tracks = (
        (player.get("captions") or {}).get("playerCaptionsTracklistRenderer") or {}
    ).get("captionTracks")
    if not isinstance(tracks, list):
        return []
    return [track for track in tracks if isinstance(track, dict) and isinstance(track.get("baseUrl"), str)]


def select_caption_track(tracks: list[dict[str, Any]], skip_auto_generated: bool = False) -> dict[str, Any] | None:
    """Pick a caption track: English creator captions, then any creator captions, then auto captions."""
    manual = [track for track in tracks if track.get("kind") != "asr"]
    automatic = [track for track in tracks if track.get("kind") == "asr"]
    groups = (manual,) if skip_auto_generated else (manual, automatic)
    for group in groups:
        for track in group:
            if str(track.get("languageCode", "")).lower().startswith("en"):
                return track
        if group:
            return group[0]
    return None


def _segments_from_timedtext_xml(body: str) -> list[TranscriptSegment]:
    soup = BeautifulSoup(body, "html.parser")
    segments: list[TranscriptSegment] = []
    for node in soup.find_all("text"):
        text = normalize_transcript_text(node.get_text(" "))
        try:
            start = float(node.get("start", ""))
        except ValueError:
            continue
        try:
            end_ms: int | None = int(round((start + float(node.get("dur", ""))) * 1000))
        except ValueError:
            end_ms = None
        if text:
            segments.append(TranscriptSegment(start_ms=int(round(start * 1000)), end_ms=end_ms, text=text))
    return segments
