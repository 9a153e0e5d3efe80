"""
Configuration management using YAML files and dataclasses.

This module defines all configuration dataclasses and provides loading
from YAML files with defaults. Configuration sections:
- FetchConfig: HTTP transport settings
- FirecrawlConfig: Enhanced fetch (Firecrawl API) settings
- ExtractConfig: Article body extraction settings
- TranscriptConfig: Transcript resolution settings
- CacheConfig: Transcript cache directory and TTL settings
- ContentConfig: Content budget settings
- LoggingConfig: Logging behavior
- AppConfig: Root configuration container
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import os
from typing import Any

import yaml

from .core.types import FetchLinkContentOptions


@dataclass
class FetchConfig:
    """Configuration for the default HTTP transport.

    Attributes:
        timeout_seconds: HTTP request timeout
        retries: Number of retry attempts for network-level failures
        trust_env: Whether to respect system proxy settings
        user_agent: HTTP User-Agent header string
    """

    timeout_seconds: float = 20.0
    retries: int = 2
    trust_env: bool = True
    user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    )


@dataclass
class FirecrawlConfig:
    """Configuration for the Firecrawl enhanced fetch service.

    Attributes:
        mode: "auto" to try Firecrawl first when a key is available, "off" to never use it
        api_url: Base URL of the Firecrawl API
        api_key: Optional inline API key (overrides env var)
        api_key_env: Environment variable name containing the API key
        timeout_seconds: Page timeout passed to Firecrawl
        retries: Number of retry attempts
    """

    mode: str = "auto"
    api_url: str = "https://api.firecrawl.dev"
    api_key: str | None = None
    api_key_env: str = "FIRECRAWL_API_KEY"
    timeout_seconds: float = 60.0
    retries: int = 1


@dataclass
class ExtractConfig:
    """Configuration for article body extraction.

    Attributes:
        primary: Primary extraction method ("readability", "trafilatura", or "bs4")
        fallback: List of fallback methods to try if primary fails
    """

    primary: str = "readability"
    fallback: list[str] = field(default_factory=lambda: ["trafilatura", "bs4"])


@dataclass
class TranscriptConfig:
    """Configuration for transcript resolution.

    Attributes:
        youtube_mode: "auto", "web", or "no-auto" (creator captions only)
        media_mode: "auto" or "prefer"
        timestamps: Whether to request timed transcript segments
    """

    youtube_mode: str = "auto"
    media_mode: str = "auto"
    timestamps: bool = False


@dataclass
class CacheConfig:
    """Configuration for the transcript cache.

    Attributes:
        enabled: Whether transcripts are cached on disk
        mode: "default" to honour cached transcripts, "bypass" to ignore them on read
        dir: Cache directory (defaults to ~/.cache/link-content/transcripts)
        ttl_days: Lifetime of cached transcripts
        negative_ttl_hours: Lifetime of cached "no transcript" results
        write_index: Whether to append cache writes to a JSONL index
        index_filename: Name of the cache index file
    """

    enabled: bool = True
    mode: str = "default"
    dir: str | None = None
    ttl_days: float | None = 7
    negative_ttl_hours: float | None = 6
    write_index: bool = True
    index_filename: str = "index.jsonl"


@dataclass
class ContentConfig:
    """Configuration for content finalization.

    Attributes:
        max_characters: Character budget for extracted content (None for unlimited)
    """

    max_characters: int | None = None


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Optional path of a log file
        format: Log file format ("jsonl" or "plain")
    """

    level: str = "WARNING"
    console: bool = True
    file: str | None = None
    format: str = "jsonl"


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    fetch: FetchConfig = field(default_factory=FetchConfig)
    firecrawl: FirecrawlConfig = field(default_factory=FirecrawlConfig)
    extract: ExtractConfig = field(default_factory=ExtractConfig)
    transcript: TranscriptConfig = field(default_factory=TranscriptConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    content: ContentConfig = field(default_factory=ContentConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: str | None) -> AppConfig:
    """Load configuration from a YAML file with defaults."""
    if not path:
        return AppConfig()

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    return _merge_config(AppConfig(), raw)


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig. Unknown keys are ignored."""
    data = asdict(base)
    for key, value in raw.items():
        if key not in data:
            continue
        if isinstance(value, dict) and isinstance(data[key], dict):
            data[key].update({k: v for k, v in value.items() if k in data[key]})
    return _fromdict(data)


def _fromdict(data: dict[str, Any]) -> AppConfig:
    """Reconstruct AppConfig from nested dictionary."""
    return AppConfig(
        fetch=FetchConfig(**data["fetch"]),
        firecrawl=FirecrawlConfig(**data["firecrawl"]),
        extract=ExtractConfig(**data["extract"]),
        transcript=TranscriptConfig(**data["transcript"]),
        cache=CacheConfig(**data["cache"]),
        content=ContentConfig(**data["content"]),
        logging=LoggingConfig(**data["logging"]),
    )


def get_firecrawl_api_key(cfg: FirecrawlConfig) -> str | None:
    """Get the Firecrawl API key from inline config or environment variable."""
    if cfg.api_key:
        return cfg.api_key
    return os.getenv(cfg.api_key_env) or None


def get_cache_dir(cfg: CacheConfig) -> str:
    """Resolve the transcript cache directory."""
    if cfg.dir:
        return os.path.expanduser(cfg.dir)
    base = os.getenv("XDG_CACHE_HOME") or os.path.join(os.path.expanduser("~"), ".cache")
    return os.path.join(base, "link-content", "transcripts")


def build_fetch_options(cfg: AppConfig) -> FetchLinkContentOptions:
    """Translate config sections into per-request options."""
    cache_mode = "bypass" if cfg.cache.mode == "bypass" else "default"
    return FetchLinkContentOptions(
        timeout_seconds=cfg.fetch.timeout_seconds,
        cache_mode=cache_mode,
        max_characters=cfg.content.max_characters,
        youtube_transcript_mode=cfg.transcript.youtube_mode,
        media_transcript_mode=cfg.transcript.media_mode,
        transcript_timestamps=cfg.transcript.timestamps,
        firecrawl_mode=cfg.firecrawl.mode,
        cache_ttl_seconds=cfg.cache.ttl_days * 86400 if cfg.cache.ttl_days else None,
        negative_cache_ttl_seconds=cfg.cache.negative_ttl_hours * 3600 if cfg.cache.negative_ttl_hours else None,
        extract_primary=cfg.extract.primary,
        extract_fallback=list(cfg.extract.fallback),
    )
