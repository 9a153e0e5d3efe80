"""Exceptions raised by the link content pipeline.

Most failures in this package are reported through diagnostics rather than
exceptions. Only programmer errors and transport failures raise.
"""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised when the transcript provider registry is misconfigured."""


class LinkFetchError(RuntimeError):
    """Raised when the HTML document for a URL cannot be fetched at all.

    Attributes:
        url: The URL that failed
        status_code: HTTP status code, or None for network-level failures
    """

    def __init__(self, message: str, url: str, status_code: int | None = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code
