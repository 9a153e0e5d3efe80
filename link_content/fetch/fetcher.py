"""
HTTP transport used by the link content pipeline.

The pipeline never talks to httpx directly: it receives an async ``fetch``
callable through ``LinkContentDeps``. ``HttpxFetcher`` is the default
implementation, with retry logic and environment proxy support.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import asyncio
import hashlib
import json
import logging
from pathlib import Path
from typing import Any, Mapping

import httpx

from ..core.types import FetchFn
from ..errors import LinkFetchError
from ..logging_utils import log_event


logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)
HTML_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


@dataclass
class FetchResponse:
    """Response returned by a fetch capability.

    Attributes:
        url: Final URL after redirects
        status_code: HTTP status code
        headers: Response headers (lower-cased keys)
        text: Decoded response body
    """

    url: str
    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    text: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        return json.loads(self.text)


class HttpxFetcher:
    """Default async fetch capability backed by ``httpx.AsyncClient``.

    Network-level failures are retried with linear backoff. HTTP error statuses
    are returned as-is; callers decide what a non-2xx status means.

    Attributes:
        timeout: Default request timeout in seconds
        retries: Number of retry attempts after the initial failure
        user_agent: User-Agent header sent with every request
        trust_env: Whether to respect system proxy settings
    """

    def __init__(
        self,
        timeout: float = 20.0,
        retries: int = 2,
        user_agent: str = DEFAULT_USER_AGENT,
        trust_env: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout
        self.retries = retries
        self.user_agent = user_agent
        self.trust_env = trust_env
        self._transport = transport

    async def __call__(
        self,
        url: str,
        *,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        json: Any = None,
        timeout: float | None = None,
    ) -> FetchResponse:
        request_headers = {"User-Agent": self.user_agent}
        if headers:
            request_headers.update(headers)
        last_exc: httpx.HTTPError | None = None

        for attempt in range(self.retries + 1):
            try:
                async with httpx.AsyncClient(
                    timeout=timeout or self.timeout,
                    follow_redirects=True,
                    trust_env=self.trust_env,
                    transport=self._transport,
                ) as client:
                    resp = await client.request(method, url, headers=request_headers, json=json)
                    return FetchResponse(
                        url=str(resp.url),
                        status_code=resp.status_code,
                        headers={key.lower(): value for key, value in resp.headers.items()},
                        text=resp.text,
                    )
            except httpx.HTTPError as exc:
                last_exc = exc
                log_event(
                    logger,
                    "Fetch attempt failed",
                    event="fetch_retry",
                    url=url,
                    attempt=attempt + 1,
                    error=f"{type(exc).__name__}: {exc}",
                )
                if attempt < self.retries:
                    await asyncio.sleep(0.5 * (attempt + 1))

        if last_exc is None:
            raise httpx.TransportError(f"No fetch attempts made for {url}")
        raise last_exc


@dataclass
class HtmlDocument:
    html: str
    final_url: str


async def fetch_html_document(fetch: FetchFn, url: str, timeout: float | None = None) -> HtmlDocument:
    """Fetch an HTML document through the injected transport.

    Args:
        fetch: The injected fetch capability
        url: URL to fetch
        timeout: Optional request timeout in seconds

    Returns:
        HtmlDocument with body and final URL

    Raises:
        LinkFetchError: On transport failure or a non-2xx status
    """
    try:
        resp = await fetch(url, headers={"Accept": HTML_ACCEPT}, timeout=timeout)
    except Exception as exc:  # noqa: BLE001
        raise LinkFetchError(
            f"Failed to fetch HTML document: {type(exc).__name__}: {exc}", url
        ) from exc

    if not resp.ok:
        raise LinkFetchError(
            f"Failed to fetch HTML document (HTTP {resp.status_code})",
            url,
            status_code=resp.status_code,
        )
    return HtmlDocument(html=resp.text, final_url=resp.url or url)


def cache_path(cache_dir: Path, url: str, suffix: str) -> Path:
    """Generate a cache file path for a URL using SHA256 hashing.

    Example:
        >>> cache_path(Path("/cache"), "https://example.com", "json").suffix
        '.json'
    """
    digest = hashlib.sha256(url.encode("utf-8")).hexdigest()
    return cache_dir / f"{digest}.{suffix}"
