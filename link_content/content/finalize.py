"""
Final assembly of extracted link content.

Takes the chosen base content plus the transcript resolution and produces the
budgeted ``ExtractedLinkContent`` with transcript statistics and diagnostics.
"""

from __future__ import annotations

import re

from ..core.types import (
    ContentDiagnostics,
    ExtractedLinkContent,
    TranscriptMetadata,
    TranscriptResolution,
    TranscriptSegment,
)
from ..transcript.timestamps import format_transcript_segments
from .cleaner import apply_content_budget, count_words, normalize_for_prompt


TRANSCRIPT_MARKER = "Transcript:\n"
_LEADING_CONTROL_RE = re.compile(r"^[\s\x00-\x1f\x7f-\x9f]+")


def transcript_block(text: str | None, segments: list[TranscriptSegment] | None = None) -> str | None:
    """Render a transcript as ``"Transcript:\\n..."``, timed when segments are available."""
    candidate = format_transcript_segments(segments) if segments else None
    candidate = candidate or text
    if not candidate:
        return None
    normalized = normalize_for_prompt(candidate)
    if not normalized:
        return None
    return f"{TRANSCRIPT_MARKER}{normalized}"


def select_base_content(
    source_content: str,
    transcript_text: str | None,
    transcript_segments: list[TranscriptSegment] | None = None,
) -> str:
    """Prefer the transcript block over ``source_content`` when a transcript exists."""
    return transcript_block(transcript_text, transcript_segments) or source_content


def strip_leading_title(content: str, title: str | None) -> str:
    """Drop a leading copy of ``title`` (case-insensitive) and the whitespace after it.

    Examples:
        >>> strip_leading_title("My Post\\n\\nBody text", "my post")
        'Body text'
        >>> strip_leading_title("Body text", "My Post")
        'Body text'
    """
    if not content or not title:
        return content
    normalized_title = title.strip()
    if not normalized_title:
        return content
    trimmed = _LEADING_CONTROL_RE.sub("", content)
    if not trimmed.lower().startswith(normalized_title.lower()):
        return content
    return _LEADING_CONTROL_RE.sub("", trimmed[len(normalized_title) :])


def summarize_transcript(text: str | None) -> tuple[int | None, int | None, int | None]:
    """Return (characters, non-empty lines, words) of a transcript; None for empty counts."""
    if not text:
        return None, None, None
    lines = sum(1 for line in text.splitlines() if line.strip())
    words = count_words(text)
    return len(text), lines or None, words or None


def _media_duration(metadata: TranscriptMetadata | None) -> float | None:
    if metadata is None or metadata.duration_seconds is None:
        return None
    return metadata.duration_seconds if metadata.duration_seconds > 0 else None


def _transcription_provider(metadata: TranscriptMetadata | None) -> str | None:
    if metadata is None or not metadata.transcription_provider:
        return None
    return metadata.transcription_provider.strip() or None


def finalize_extracted_link_content(
    url: str,
    base_content: str,
    max_characters: int | None,
    title: str | None,
    description: str | None,
    site_name: str | None,
    transcript: TranscriptResolution,
    diagnostics: ContentDiagnostics,
) -> ExtractedLinkContent:
    """Assemble, normalize and budget the final content.

    A transcript block is appended after the base content unless the base
    already is (or contains) that block.

    Args:
        url: URL the content belongs to
        base_content: Chosen primary text (transcript block, description or article)
        max_characters: Character budget, or None for unlimited
        title: Resolved title
        description: Resolved description
        site_name: Resolved site name
        transcript: Transcript resolution for the link
        diagnostics: Strategy and stage diagnostics

    Returns:
        ExtractedLinkContent
    """
    content = base_content
    block = transcript_block(transcript.text, transcript.segments)
    if block and normalize_for_prompt(block) not in normalize_for_prompt(content):
        content = f"{content}\n\n{block}" if content.strip() else block

    budgeted = apply_content_budget(normalize_for_prompt(content), max_characters)
    characters, lines, words = summarize_transcript(transcript.text)
    segments = transcript.segments or None

    return ExtractedLinkContent(
        url=url,
        title=title,
        description=description,
        site_name=site_name,
        content=budgeted.content,
        truncated=budgeted.truncated,
        total_characters=budgeted.total_characters,
        word_count=budgeted.word_count,
        transcript_characters=characters,
        transcript_lines=lines,
        transcript_word_count=words,
        transcript_source=transcript.source,
        transcription_provider=_transcription_provider(transcript.metadata),
        transcript_metadata=transcript.metadata,
        transcript_segments=segments,
        transcript_timed_text=format_transcript_segments(segments),
        media_duration_seconds=_media_duration(transcript.metadata),
        diagnostics=diagnostics,
    )
