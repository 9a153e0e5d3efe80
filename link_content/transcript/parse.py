"""
Transcript document parsing.

Supported inputs:
- WebVTT and SRT cue files (``HH:MM:SS.mmm --> HH:MM:SS.mmm`` timings)
- Podcast namespace JSON (``{"segments": [{"startTime", "endTime", "body"}]}``)
- YouTube ``json3`` caption payloads (``{"events": [{"tStartMs", "segs"}]}``)
"""

from __future__ import annotations

import html
import re
from typing import Any

from ..core.types import TranscriptSegment


_TIMING_RE = re.compile(
    r"(?P<start>(?:\d+:)?\d{1,2}:\d{2}[.,]\d{1,3})\s*-->\s*(?P<end>(?:\d+:)?\d{1,2}:\d{2}[.,]\d{1,3})"
)
_TAG_RE = re.compile(r"<[^>]+>")
_INLINE_WS_RE = re.compile(r"[ \t]+")


def normalize_transcript_text(text: str) -> str:
    """Normalize transcript text: unify line breaks, collapse spaces, drop blank runs."""
    unified = text.replace("\r\n", "\n").replace("\r", "\n")
    lines = [_INLINE_WS_RE.sub(" ", line).strip() for line in unified.split("\n")]
    collapsed: list[str] = []
    for line in lines:
        if not line and (not collapsed or not collapsed[-1]):
            continue
        collapsed.append(line)
    return "\n".join(collapsed).strip()


def parse_cue_timestamp(value: str) -> int | None:
    """Parse ``[HH:]MM:SS.mmm`` (or SRT's ``,mmm``) into milliseconds."""
    parts = value.strip().replace(",", ".").split(":")
    try:
        seconds = float(parts[-1])
        minutes = int(parts[-2]) if len(parts) >= 2 else 0
        hours = int(parts[-3]) if len(parts) >= 3 else 0
    except (ValueError, IndexError):
        return None
    return int(round((hours * 3600 + minutes * 60 + seconds) * 1000))


def _clean_cue_text(line: str) -> str:
    return html.unescape(_TAG_RE.sub("", line)).strip()


def vtt_to_segments(body: str) -> list[TranscriptSegment]:
    """Parse WebVTT or SRT cues into segments.

    Consecutive cues with identical text (rolling captions) are merged.
    """
    segments: list[TranscriptSegment] = []
    blocks = re.split(r"\n\s*\n", body.replace("\r\n", "\n").replace("\r", "\n"))
    for block in blocks:
        lines = [line for line in block.split("\n") if line.strip()]
        timing_index = next((i for i, line in enumerate(lines) if _TIMING_RE.search(line)), None)
        if timing_index is None:
            continue
        match = _TIMING_RE.search(lines[timing_index])
        start_ms = parse_cue_timestamp(match.group("start"))
        end_ms = parse_cue_timestamp(match.group("end"))
        text = " ".join(
            cleaned for cleaned in (_clean_cue_text(line) for line in lines[timing_index + 1 :]) if cleaned
        )
        if start_ms is None or not text:
            continue
        if segments and segments[-1].text == text:
            segments[-1].end_ms = end_ms
            continue
        segments.append(TranscriptSegment(start_ms=start_ms, end_ms=end_ms, text=text))
    return segments


def json_transcript_to_segments(payload: Any) -> list[TranscriptSegment]:
    """Parse a podcast-namespace or YouTube json3 transcript payload into segments."""
    if isinstance(payload, dict) and isinstance(payload.get("events"), list):
        return _json3_to_segments(payload["events"])

    items: Any = payload.get("segments") if isinstance(payload, dict) else payload
    if not isinstance(items, list):
        return []
    segments: list[TranscriptSegment] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        text = item.get("body", item.get("text"))
        start = item.get("startTime", item.get("start"))
        end = item.get("endTime", item.get("end"))
        if not isinstance(text, str) or not text.strip():
            continue
        if not isinstance(start, (int, float)):
            continue
        segments.append(
            TranscriptSegment(
                start_ms=int(round(float(start) * 1000)),
                end_ms=int(round(float(end) * 1000)) if isinstance(end, (int, float)) else None,
                text=normalize_transcript_text(text),
            )
        )
    return segments


def _json3_to_segments(events: list[Any]) -> list[TranscriptSegment]:
    segments: list[TranscriptSegment] = []
    for event in events:
        if not isinstance(event, dict) or not isinstance(event.get("segs"), list):
            continue
        text = "".join(
            seg.get("utf8", "") for seg in event["segs"] if isinstance(seg, dict)
        )
        text = normalize_transcript_text(text.replace("\n", " "))
        start = event.get("tStartMs")
        if not text or not isinstance(start, (int, float)):
            continue
        duration = event.get("dDurationMs")
        end = start + duration if isinstance(duration, (int, float)) else None
        segments.append(TranscriptSegment(start_ms=int(start), end_ms=int(end) if end is not None else None, text=text))
    return segments


def segments_to_plain_text(segments: list[TranscriptSegment]) -> str:
    return normalize_transcript_text("\n".join(segment.text for segment in segments))
