"""
Page fetching and article extraction.

This package handles the HTTP transport, the Firecrawl enhanced fetch
service and article body extraction.
"""

from .fetcher import FetchResponse, HtmlDocument, HttpxFetcher, cache_path, fetch_html_document
from .extractor import extract_article_text, extract_plain_text
from .firecrawl import FirecrawlClient, FirecrawlScrapeResult

__all__ = [
    "FetchResponse",
    "HtmlDocument",
    "HttpxFetcher",
    "cache_path",
    "fetch_html_document",
    "extract_article_text",
    "extract_plain_text",
    "FirecrawlClient",
    "FirecrawlScrapeResult",
]
