"""
Parsing of the JSON blobs YouTube embeds in watch pages.

Watch pages carry ``ytInitialPlayerResponse = {...}`` (video details and
caption tracks) and ``ytcfg.set({...})`` (Innertube client config). Both are
JavaScript object literals embedded in script tags, so they are located with
a string-aware brace scanner and then decoded with ``json``.
"""

from __future__ import annotations

import json
from typing import Any

from .cleaner import normalize_whitespace


_PLAYER_RESPONSE_TOKEN = "ytInitialPlayerResponse"
_YTCFG_SET_TOKEN = "ytcfg.set"


def extract_balanced_json_object(source: str, start_at: int) -> str | None:
    """Return the first balanced ``{...}`` object at or after ``start_at``.

    Braces inside single- or double-quoted strings are ignored.
    """
    start = source.find("{", start_at)
    if start < 0:
        return None

    depth = 0
    quote: str | None = None
    escaping = False
    for index in range(start, len(source)):
        char = source[index]
        if quote:
            if escaping:
                escaping = False
            elif char == "\\":
                escaping = True
            elif char == quote:
                quote = None
            continue
        if char in ("'", '"'):
            quote = char
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return source[start : index + 1]
    return None


def _parse_object_after(html: str, token: str) -> dict[str, Any] | None:
    index = html.find(token)
    while index >= 0:
        object_text = extract_balanced_json_object(html, index + len(token))
        if object_text:
            try:
                parsed = json.loads(object_text)
            except json.JSONDecodeError:
                parsed = None
            if isinstance(parsed, dict):
                return parsed
        index = html.find(token, index + len(token))
    return None


def extract_player_response(html: str) -> dict[str, Any] | None:
    """Parse ``ytInitialPlayerResponse`` from a watch page, or None."""
    return _parse_object_after(html, _PLAYER_RESPONSE_TOKEN)


def extract_ytcfg(html: str) -> dict[str, Any] | None:
    """Parse the first ``ytcfg.set({...})`` config object, or None."""
    return _parse_object_after(html, _YTCFG_SET_TOKEN)


def extract_youtube_short_description(html: str) -> str | None:
    """Return ``videoDetails.shortDescription`` with whitespace collapsed, or None."""
    player = extract_player_response(html)
    if not player:
        return None
    details = player.get("videoDetails")
    if not isinstance(details, dict):
        return None
    description = details.get("shortDescription")
    if not isinstance(description, str):
        return None
    normalized = normalize_whitespace(description)
    return normalized or None


def extract_youtube_duration_seconds(html: str) -> float | None:
    player = extract_player_response(html)
    if not player:
        return None
    details = player.get("videoDetails")
    if not isinstance(details, dict):
        return None
    try:
        seconds = float(details.get("lengthSeconds"))
    except (TypeError, ValueError):
        return None
    return seconds if seconds > 0 else None
