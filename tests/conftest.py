"""Shared fakes for pipeline tests."""

from __future__ import annotations

import pytest

from link_content.fetch.fetcher import FetchResponse


class FakeFetch:
    """Async fetch capability serving canned responses by URL.

    Routes map a URL to a body string (served as 200 text/html), a
    FetchResponse, or an exception instance to raise. Unknown URLs return 404.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls: list[tuple[str, str]] = []
        self.payloads: list[object] = []

    async def __call__(self, url, *, method="GET", headers=None, json=None, timeout=None):
        self.calls.append((method, url))
        self.payloads.append(json)
        route = self.routes.get(url)
        if route is None:
            return FetchResponse(url=url, status_code=404, text="")
        if isinstance(route, Exception):
            raise route
        if isinstance(route, FetchResponse):
            return route
        return FetchResponse(url=url, status_code=200, headers={"content-type": "text/html"}, text=route)


@pytest.fixture
def fake_fetch():
    return FakeFetch
