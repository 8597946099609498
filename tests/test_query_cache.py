"""QueryCache tests — fetch on miss, invalidate marks stale, poll refetches."""

from collections import Counter

import httpx
import pytest

from trackpro.client.query_cache import QueryCache


class FakeApi:
    """httpx MockTransport handler that counts requests per path."""

    def __init__(self):
        self.hits: Counter = Counter()
        self.failing: set[str] = set()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.hits[path] += 1
        if path in self.failing:
            return httpx.Response(503, json={"detail": "unavailable"})
        return httpx.Response(200, json={"path": path, "version": self.hits[path]})


@pytest.fixture
def api():
    return FakeApi()


@pytest.fixture
async def cache(api):
    async with httpx.AsyncClient(transport=httpx.MockTransport(api), base_url="http://test") as client:
        yield QueryCache(client)


@pytest.mark.asyncio
async def test_get_fetches_once_then_serves_cached(cache, api):
    first = await cache.get("/api/events")
    second = await cache.get("/api/events")

    assert first == second == {"path": "/api/events", "version": 1}
    assert api.hits["/api/events"] == 1


@pytest.mark.asyncio
async def test_invalidate_only_marks_stale(cache, api):
    await cache.get("/api/events")

    assert cache.invalidate("/api/events") is True
    assert cache.is_stale("/api/events")
    assert api.hits["/api/events"] == 1  # no refetch yet
    assert cache.peek("/api/events")["version"] == 1

    assert (await cache.get("/api/events"))["version"] == 2
    assert not cache.is_stale("/api/events")


@pytest.mark.asyncio
async def test_invalidate_unknown_key(cache):
    assert cache.invalidate("/api/events/1/alerts") is False
    assert not cache.is_stale("/api/events/1/alerts")


@pytest.mark.asyncio
async def test_refresh_stale_refetches_only_stale(cache, api):
    await cache.get("/api/events")
    await cache.get("/api/events/1/alerts")
    cache.invalidate("/api/events/1/alerts")

    assert await cache.refresh_stale() == ["/api/events/1/alerts"]
    assert api.hits == Counter({"/api/events": 1, "/api/events/1/alerts": 2})
    assert await cache.refresh_stale() == []


@pytest.mark.asyncio
async def test_failed_refresh_stays_stale(cache, api):
    await cache.get("/api/events")
    cache.invalidate("/api/events")
    api.failing.add("/api/events")

    assert await cache.refresh_stale() == []
    assert cache.is_stale("/api/events")
    assert cache.peek("/api/events")["version"] == 1

    api.failing.clear()
    assert await cache.refresh_stale() == ["/api/events"]


@pytest.mark.asyncio
async def test_get_raises_on_http_error(cache, api):
    api.failing.add("/api/events/9")
    with pytest.raises(httpx.HTTPStatusError):
        await cache.get("/api/events/9")
    assert "/api/events/9" not in cache.keys()
