"""
Enhanced fetching through the remote Firecrawl scrape API.

Firecrawl renders JavaScript and returns markdown, raw HTML and page metadata
in one call. The client is exposed as an async callable matching
``LinkContentDeps.scrape_with_firecrawl``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import asyncio
import json
import logging
from typing import Any

import httpx

from ..core.types import CacheMode
from ..logging_utils import log_event


logger = logging.getLogger(__name__)

DEFAULT_FIRECRAWL_API_URL = "https://api.firecrawl.dev"


@dataclass
class FirecrawlScrapeResult:
    """Payload returned by the enhanced fetch service.

    Attributes:
        markdown: Page content as markdown
        html: Raw page HTML, when returned
        metadata: Structured page metadata (title, description, og:* keys)
    """

    markdown: str
    html: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class FirecrawlClient:
    """Async client for the Firecrawl ``/v1/scrape`` endpoint.

    Failures are retried and finally reported as ``None``; the caller falls
    back to direct HTML fetching.

    Attributes:
        api_key: Firecrawl API key
        api_url: Base URL of the Firecrawl API
        timeout: Page timeout in seconds
        retries: Number of retry attempts after the initial failure
    """

    def __init__(
        self,
        api_key: str,
        api_url: str = DEFAULT_FIRECRAWL_API_URL,
        timeout: float = 60.0,
        retries: int = 1,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.retries = retries
        self._transport = transport

    async def __call__(self, url: str, cache_mode: CacheMode = "default") -> FirecrawlScrapeResult | None:
        endpoint = f"{self.api_url}/v1/scrape"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        payload: dict[str, Any] = {
            "url": url,
            "formats": ["markdown", "html"],
            "timeout": int(self.timeout * 1000),
        }
        if cache_mode == "bypass":
            payload["maxAge"] = 0

        # Connect is short, read is long (for slow renders)
        timeout_config = httpx.Timeout(connect=10.0, read=self.timeout + 30.0, write=10.0, pool=10.0)
        last_error: str | None = None

        for attempt in range(self.retries + 1):
            try:
                async with httpx.AsyncClient(
                    timeout=timeout_config, trust_env=True, transport=self._transport
                ) as client:
                    resp = await client.post(endpoint, json=payload, headers=headers)

                if resp.status_code != 200:
                    last_error = f"Firecrawl HTTP Error: {resp.status_code} {resp.text[:200]}"
                else:
                    result = parse_scrape_response(resp.json())
                    if result is not None:
                        return result
                    last_error = "Firecrawl Error: empty response"
            except httpx.TimeoutException as exc:
                last_error = f"TimeoutError: {exc}"
            except json.JSONDecodeError as exc:
                last_error = f"JSONDecodeError: {exc}"
            except Exception as exc:  # noqa: BLE001
                last_error = f"{type(exc).__name__}: {exc}"

            if attempt < self.retries:
                await asyncio.sleep(0.5 * (attempt + 1))

        log_event(logger, "Firecrawl scrape failed", event="firecrawl_failed", url=url, error=last_error)
        return None


def parse_scrape_response(data: Any) -> FirecrawlScrapeResult | None:
    """Extract markdown/html/metadata from a Firecrawl response body.

    Args:
        data: Decoded JSON response

    Returns:
        FirecrawlScrapeResult, or None when the payload reports failure or has no markdown
    """
    if not isinstance(data, dict):
        return None
    if data.get("success") is False:
        return None
    body = data.get("data", data)
    if not isinstance(body, dict):
        return None
    markdown = body.get("markdown")
    if not isinstance(markdown, str):
        return None
    html = body.get("rawHtml") or body.get("html")
    metadata = body.get("metadata")
    return FirecrawlScrapeResult(
        markdown=markdown,
        html=html if isinstance(html, str) else None,
        metadata=metadata if isinstance(metadata, dict) else {},
    )
