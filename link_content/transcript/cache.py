"""
Transcript cache: stores and the read/write policy around them.

Stores persist ``CachedTranscriptEntry`` objects keyed by the normalized URL:
- InMemoryTranscriptCache: process-local dict, used in tests and one-shot runs
- FileTranscriptCache: one JSON file per SHA-256 of the URL, written with an
  atomic replace (last writer wins), plus an optional JSONL operation index

``read_transcript_cache`` decides whether an entry can short-circuit provider
dispatch; ``write_transcript_cache`` decides whether a provider result is
worth persisting and with which TTL.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import json
import logging
import os
from pathlib import Path
import tempfile
import time
from typing import Any, Protocol

from ..core.types import (
    KNOWN_TRANSCRIPT_SOURCES,
    CachedTranscriptEntry,
    CacheMode,
    ProviderResult,
    TranscriptDiagnostics,
    TranscriptResolution,
    TranscriptSegment,
    TranscriptMetadata,
)
from ..fetch.fetcher import cache_path
from ..logging_utils import log_event


logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 60 * 60 * 24 * 7
NEGATIVE_TTL_SECONDS = 60 * 60 * 6


class TranscriptCacheStore(Protocol):
    def get(self, url: str) -> CachedTranscriptEntry | None: ...

    def set(self, url: str, entry: CachedTranscriptEntry) -> None: ...


class InMemoryTranscriptCache:
    def __init__(self) -> None:
        self._entries: dict[str, CachedTranscriptEntry] = {}

    def get(self, url: str) -> CachedTranscriptEntry | None:
        return self._entries.get(url)

    def set(self, url: str, entry: CachedTranscriptEntry) -> None:
        self._entries[url] = entry

    def __len__(self) -> int:
        return len(self._entries)


class FileTranscriptCache:
    """Filesystem transcript store.

    Each entry lives in ``<cache_dir>/<sha256(url)>.json``. Writes go to a
    temporary file in the same directory and are moved into place with
    ``os.replace``, so readers never observe a partial entry.

    Attributes:
        cache_dir: Directory holding entry files and the index
        write_index: Whether to append get/set operations to the JSONL index
        index_path: Path of the JSONL index file
    """

    def __init__(self, cache_dir: Path | str, write_index: bool = True, index_filename: str = "index.jsonl"):
        self.cache_dir = Path(cache_dir).expanduser()
        self.write_index = write_index
        self.index_path = self.cache_dir / index_filename

    def path_for(self, url: str) -> Path:
        return cache_path(self.cache_dir, url, "json")

    def get(self, url: str) -> CachedTranscriptEntry | None:
        path = self.path_for(url)
        if not path.exists():
            self._append_index({"op": "get", "url": url, "status": "absent"})
            return None
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            log_event(
                logger,
                "Transcript cache entry unreadable",
                level=logging.WARNING,
                event="transcript_cache_corrupt",
                url=url,
                path=str(path),
                error=f"{type(exc).__name__}: {exc}",
            )
            return None
        if not isinstance(raw, dict):
            return None
        self._append_index({"op": "get", "url": url, "status": "present", "path": str(path)})
        return CachedTranscriptEntry.from_dict(raw)

    def set(self, url: str, entry: CachedTranscriptEntry) -> None:
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(url)
        payload = dict(entry.to_dict(), url=url)
        fd, tmp_name = tempfile.mkstemp(dir=self.cache_dir, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, ensure_ascii=False)
            os.replace(tmp_name, path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        self._append_index(
            {
                "op": "set",
                "url": url,
                "path": str(path),
                "source": entry.source,
                "service": entry.service,
                "has_content": entry.content is not None,
            }
        )

    def _append_index(self, payload: dict[str, Any]) -> None:
        if not self.write_index:
            return
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        payload = dict(payload)
        payload.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
        with self.index_path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(payload, ensure_ascii=True))
            handle.write("\n")


@dataclass
class TranscriptCacheLookup:
    """Outcome of a cache read.

    Attributes:
        resolution: Short-circuit result; set only on a valid hit
        cached: The stored entry, if any, kept for stale fallback
        diagnostics: Seed diagnostics for the resolution
    """

    resolution: TranscriptResolution | None
    cached: CachedTranscriptEntry | None
    diagnostics: TranscriptDiagnostics


def map_cached_source(source: str | None) -> str | None:
    """Map a persisted source tag onto a known tag; unrecognized tags become "unknown"."""
    if source is None:
        return None
    return source if source in KNOWN_TRANSCRIPT_SOURCES else "unknown"


def segments_from_metadata(metadata: TranscriptMetadata | None) -> list[TranscriptSegment] | None:
    if metadata is None or not metadata.segments:
        return None
    return list(metadata.segments)


def read_transcript_cache(
    url: str,
    cache_mode: CacheMode,
    store: TranscriptCacheStore | None,
    wants_timestamps: bool = False,
    file_mtime: float | None = None,
    now: float | None = None,
) -> TranscriptCacheLookup:
    """Look up ``url`` and decide whether the entry may short-circuit dispatch.

    An entry is a hit only when the mode is not bypass, the entry is not older
    than ``file_mtime``, its TTL has not elapsed, and it carries segments when
    timestamps are requested. In every other case the entry is still returned
    as ``cached`` so the caller can fall back to it.

    Args:
        url: Normalized URL (the cache key)
        cache_mode: "default" or "bypass"
        store: The cache store, or None when caching is disabled
        wants_timestamps: Whether the caller needs timed segments
        file_mtime: Modification time of a local source, in epoch seconds
        now: Current time in epoch seconds (defaults to ``time.time()``)

    Returns:
        TranscriptCacheLookup
    """
    diagnostics = TranscriptDiagnostics(
        cache_mode=cache_mode,
        cache_status="bypassed" if cache_mode == "bypass" else "miss",
        notes="Cache bypass requested" if cache_mode == "bypass" else None,
    )
    cached = _safe_get(store, url)
    if cached is None:
        return TranscriptCacheLookup(resolution=None, cached=None, diagnostics=diagnostics)

    provider = map_cached_source(cached.source)
    diagnostics = TranscriptDiagnostics(
        cache_mode=diagnostics.cache_mode,
        cache_status=diagnostics.cache_status,
        text_provided=bool(cached.content),
        provider=provider,
        attempted_providers=(provider,) if provider else (),
        notes=diagnostics.notes,
    )

    if cache_mode == "bypass":
        return TranscriptCacheLookup(
            resolution=None,
            cached=cached,
            diagnostics=diagnostics.with_note("Cached transcript ignored due to bypass request"),
        )

    if file_mtime is not None and cached.fetched_at < file_mtime:
        return TranscriptCacheLookup(
            resolution=None,
            cached=cached,
            diagnostics=diagnostics.with_note("Cached transcript is older than the source file; fetching fresh copy"),
        )

    if cached.is_expired(time.time() if now is None else now):
        return TranscriptCacheLookup(
            resolution=None,
            cached=cached,
            diagnostics=diagnostics.with_note("Cached transcript expired; fetching fresh copy"),
        )

    segments = segments_from_metadata(cached.metadata)
    if wants_timestamps and not segments:
        return TranscriptCacheLookup(
            resolution=None,
            cached=cached,
            diagnostics=diagnostics.with_note("Cached transcript lacks timestamps; fetching fresh copy"),
        )

    hit = TranscriptDiagnostics(
        cache_mode=cache_mode,
        cache_status="hit",
        text_provided=diagnostics.text_provided,
        provider=provider,
        attempted_providers=diagnostics.attempted_providers,
        notes=diagnostics.notes,
    ).with_note("Served transcript from cache")
    log_event(logger, "Transcript cache hit", level=logging.DEBUG, event="transcript_cache_hit", url=url, source=provider)
    resolution = TranscriptResolution(
        text=cached.content,
        source=provider,
        metadata=cached.metadata,
        segments=segments if wants_timestamps else None,
        diagnostics=hit,
    )
    return TranscriptCacheLookup(resolution=resolution, cached=cached, diagnostics=hit)


def write_transcript_cache(
    url: str,
    service: str,
    resource_key: str | None,
    result: ProviderResult,
    store: TranscriptCacheStore | None,
    file_mtime: float | None = None,
    now: float | None = None,
    ttl_seconds: float | None = DEFAULT_TTL_SECONDS,
    negative_ttl_seconds: float | None = NEGATIVE_TTL_SECONDS,
) -> bool:
    """Persist a provider result when it carries a source or text.

    Returns:
        True when an entry was written
    """
    if store is None:
        return False
    if result.source is None and result.text is None:
        return False

    fetched_at = time.time() if now is None else now
    if file_mtime is not None:
        fetched_at = max(fetched_at, file_mtime)
    entry = CachedTranscriptEntry(
        content=result.text,
        source=result.source or ("unknown" if result.text else "unavailable"),
        metadata=result.metadata,
        fetched_at=fetched_at,
        service=service,
        resource_key=resource_key,
        ttl_seconds=ttl_seconds if result.text else negative_ttl_seconds,
    )
    try:
        store.set(url, entry)
    except Exception as exc:  # noqa: BLE001
        log_event(
            logger,
            "Transcript cache write failed",
            level=logging.WARNING,
            event="transcript_cache_write_failed",
            url=url,
            error=f"{type(exc).__name__}: {exc}",
        )
        return False
    return True


def _safe_get(store: TranscriptCacheStore | None, url: str) -> CachedTranscriptEntry | None:
    if store is None:
        return None
    try:
        return store.get(url)
    except Exception as exc:  # noqa: BLE001
        log_event(
            logger,
            "Transcript cache read failed",
            level=logging.WARNING,
            event="transcript_cache_read_failed",
            url=url,
            error=f"{type(exc).__name__}: {exc}",
        )
        return None
