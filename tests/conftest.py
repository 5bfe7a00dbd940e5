"""
Shared fixtures: an in-memory stand-in for aiohttp sessions and a manual clock.
"""

import aiohttp
import pytest


def route_key(method, url, params=None):
    url = str(url)
    if params:
        query = "&".join(f"{k}={v}" for k, v in params.items())
        url = f"{url}?{query}"
    return method.upper(), url


class FakeResponse:
    def __init__(self, status=200, body=None):
        self.status = status
        self._body = body

    async def json(self, content_type=None):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body

    async def text(self):
        return str(self._body)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeNetwork:
    """
    Routes keyed by (METHOD, url-with-raw-query). Unknown routes raise
    ClientConnectionError unless accept_all is set, which answers 200 {}.
    """

    def __init__(self):
        self.routes = {}
        self.calls = []
        self.accept_all = False
        self.sessions_opened = 0

    def add(self, method, url, body=None, status=200, params=None):
        self.routes[route_key(method, url, params)] = FakeResponse(status, body)

    def session_factory(self, timeout=None):
        self.sessions_opened += 1
        return FakeSession(self)

    def calls_to(self, method, url_prefix):
        return [c for c in self.calls if c["method"] == method.upper() and c["url"].startswith(url_prefix)]


class FakeSession:
    def __init__(self, network):
        self.network = network

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    def request(self, method, url, params=None, json=None, **kwargs):
        self.network.calls.append({"method": method.upper(), "url": str(url), "params": params, "json": json})
        response = self.network.routes.get(route_key(method, url, params))
        if response is None:
            if self.network.accept_all:
                return FakeResponse(200, {})
            raise aiohttp.ClientConnectionError(f"no route to {url}")
        return response

    def get(self, url, params=None, **kwargs):
        return self.request("GET", url, params=params, **kwargs)

    def post(self, url, json=None, **kwargs):
        return self.request("POST", url, json=json, **kwargs)

    def put(self, url, json=None, **kwargs):
        return self.request("PUT", url, json=json, **kwargs)


class ManualClock:
    def __init__(self, start=1_700_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def network():
    return FakeNetwork()


@pytest.fixture
def clock():
    return ManualClock()
