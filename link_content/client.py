"""
Wiring from configuration to the pipeline.

``build_deps`` turns an ``AppConfig`` into ``LinkContentDeps`` (httpx
transport, optional Firecrawl client, optional file-backed transcript cache);
``fetch_link`` runs ``fetch_link_content`` with options derived from the same
config.
"""

from __future__ import annotations

import logging
import os

from .config import AppConfig, build_fetch_options, get_cache_dir, get_firecrawl_api_key
from .content.orchestrator import fetch_link_content
from .core.types import ExtractedLinkContent, LinkContentDeps, ProgressSink
from .fetch.fetcher import HttpxFetcher
from .fetch.firecrawl import FirecrawlClient
from .logging_utils import log_event
from .transcript.cache import FileTranscriptCache


logger = logging.getLogger(__name__)

# Environment variables forwarded to providers as credentials
CREDENTIAL_ENV_VARS = {"youtube_cookie": "YOUTUBE_COOKIE"}


def build_deps(cfg: AppConfig, on_progress: ProgressSink | None = None) -> LinkContentDeps:
    """Build pipeline dependencies from configuration.

    Firecrawl is wired only when its mode is not "off" and an API key is
    available; the transcript cache only when caching is enabled.
    """
    fetcher = HttpxFetcher(
        timeout=cfg.fetch.timeout_seconds,
        retries=cfg.fetch.retries,
        user_agent=cfg.fetch.user_agent,
        trust_env=cfg.fetch.trust_env,
    )

    scrape = None
    api_key = get_firecrawl_api_key(cfg.firecrawl)
    if cfg.firecrawl.mode != "off" and api_key:
        scrape = FirecrawlClient(
            api_key=api_key,
            api_url=cfg.firecrawl.api_url,
            timeout=cfg.firecrawl.timeout_seconds,
            retries=cfg.firecrawl.retries,
        )
    elif cfg.firecrawl.mode != "off":
        log_event(
            logger,
            "Firecrawl API key missing; using direct HTML fetch only",
            level=logging.DEBUG,
            event="firecrawl_unconfigured",
            api_key_env=cfg.firecrawl.api_key_env,
        )

    cache = None
    if cfg.cache.enabled:
        cache = FileTranscriptCache(
            get_cache_dir(cfg.cache),
            write_index=cfg.cache.write_index,
            index_filename=cfg.cache.index_filename,
        )

    credentials = {name: os.getenv(env_var) for name, env_var in CREDENTIAL_ENV_VARS.items()}
    return LinkContentDeps(
        fetch=fetcher,
        scrape_with_firecrawl=scrape,
        transcript_cache=cache,
        on_progress=on_progress,
        credentials=credentials,
    )


async def fetch_link(
    url: str,
    cfg: AppConfig | None = None,
    on_progress: ProgressSink | None = None,
) -> ExtractedLinkContent:
    """Fetch a link using configuration-derived options and dependencies."""
    cfg = cfg or AppConfig()
    return await fetch_link_content(url, build_fetch_options(cfg), build_deps(cfg, on_progress))
