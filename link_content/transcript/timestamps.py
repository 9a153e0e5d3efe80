from __future__ import annotations

from ..core.types import TranscriptSegment


def format_timestamp(ms: int) -> str:
    """Format milliseconds as ``m:ss``, or ``h:mm:ss`` from one hour on.

    Examples:
        >>> format_timestamp(65_000)
        '1:05'
        >>> format_timestamp(3_723_000)
        '1:02:03'
    """
    total_seconds = max(0, int(ms) // 1000)
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def format_transcript_segments(segments: list[TranscriptSegment] | None) -> str | None:
    """Render segments as ``[m:ss] text`` lines; None when nothing is renderable."""
    if not segments:
        return None
    lines = [
        f"[{format_timestamp(segment.start_ms)}] {segment.text.strip()}"
        for segment in segments
        if segment.text and segment.text.strip()
    ]
    return "\n".join(lines) if lines else None
