"""
Text normalization and the character budget.

All lengths are counted in Unicode code points (Python ``str`` length),
never in encoded bytes.
"""

from __future__ import annotations

from dataclasses import dataclass
import re


_HORIZONTAL_WS_RE = re.compile(r"[ \t\f\v\u00a0\u2000-\u200a\u202f\u205f\u3000]+")
_ZERO_WIDTH_RE = re.compile(r"[\u200b\u200c\u200d\ufeff]")
_BLANK_LINES_RE = re.compile(r"\n{3,}")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    """Collapse every whitespace run to a single space."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def normalize_for_prompt(text: str | None) -> str:
    """Normalize extracted text for downstream prompts.

    Line breaks are unified, horizontal whitespace is collapsed per line,
    zero-width characters are dropped, and runs of blank lines are capped at
    one empty line.
    """
    if not text:
        return ""
    unified = text.replace("\r\n", "\n").replace("\r", "\n")
    unified = _ZERO_WIDTH_RE.sub("", unified)
    lines = [_HORIZONTAL_WS_RE.sub(" ", line).strip() for line in unified.split("\n")]
    joined = "\n".join(lines)
    return _BLANK_LINES_RE.sub("\n\n", joined).strip()


def normalize_candidate(value: object) -> str | None:
    """Normalize a metadata candidate; empty or non-string values become None."""
    if not isinstance(value, str):
        return None
    normalized = normalize_whitespace(value)
    return normalized or None


def count_words(text: str) -> int:
    return len(text.split())


@dataclass
class BudgetedContent:
    content: str
    truncated: bool
    total_characters: int
    word_count: int


def truncate_at_word_boundary(content: str, max_characters: int) -> str:
    """Cut ``content`` to at most ``max_characters`` without splitting a word.

    The cut backs off to the nearest preceding whitespace. A word is split
    only when the budget is smaller than the first word. No ellipsis is added.
    """
    if len(content) <= max_characters:
        return content
    # Leading whitespace is not a word boundary.
    content = content.lstrip()
    if len(content) <= max_characters:
        return content
    cut = content[:max_characters]
    if content[max_characters].isspace():
        return cut.rstrip()
    boundary = len(cut) - 1
    while boundary > 0 and not cut[boundary].isspace():
        boundary -= 1
    if boundary <= 0:
        return cut
    return cut[:boundary].rstrip()


def apply_content_budget(content: str, max_characters: int | None) -> BudgetedContent:
    """Apply the character budget to normalized content.

    Args:
        content: Normalized content
        max_characters: Budget in code points; None or non-positive means unlimited

    Returns:
        BudgetedContent; ``total_characters`` and ``word_count`` describe the
        full content, ``truncated`` is True iff the budget was exceeded
    """
    total = len(content)
    words = count_words(content)
    if max_characters is None or max_characters <= 0 or total <= max_characters:
        return BudgetedContent(content=content, truncated=False, total_characters=total, word_count=words)
    return BudgetedContent(
        content=truncate_at_word_boundary(content, max_characters),
        truncated=True,
        total_characters=total,
        word_count=words,
    )
