from __future__ import annotations

import asyncio
import json
from datetime import timedelta
from typing import Any

import aiohttp
import pytest
from aiohttp import test_utils, web

from cache import CacheEntry, FileCache, MemoryCache
from config import Config
from conftest import FixedClock, T0, make_payload
from consumer import DigestConsumer, fetch_digest
from errors import UnavailableError

URL = "https://example.test/news.json"


class FakeFetcher:
    """Records calls and returns or raises a canned result."""

    def __init__(self, result: Any):
        self.result = result
        self.calls: list[str] = []

    async def __call__(self, url: str) -> dict[str, Any]:
        self.calls.append(url)
        if isinstance(self.result, BaseException):
            raise self.result
        return self.result


def _consumer(cache, fetcher: FakeFetcher, clock: FixedClock) -> DigestConsumer:
    return DigestConsumer(URL, cache, ttl=timedelta(hours=6), fetcher=fetcher, clock=clock)


async def test_fresh_cache_skips_network(clock: FixedClock) -> None:
    cached = make_payload(5, date="2026-10-15")
    cache = MemoryCache(CacheEntry(payload=cached, fetched_at=T0))
    fetcher = FakeFetcher(make_payload(5))
    clock.now = T0 + timedelta(hours=5)
    consumer = _consumer(cache, fetcher, clock)

    for _ in range(3):
        assert await consumer.load_digest() is cached

    assert fetcher.calls == []
    assert cache.get().fetched_at == T0


async def test_expired_cache_is_refreshed(clock: FixedClock) -> None:
    fresh = make_payload(5)
    cache = MemoryCache(CacheEntry(payload=make_payload(5, date="2026-10-15"), fetched_at=T0))
    fetcher = FakeFetcher(fresh)
    clock.now = T0 + timedelta(hours=7)
    consumer = _consumer(cache, fetcher, clock)

    assert await consumer.load_digest() == fresh
    assert fetcher.calls == [URL]
    assert cache.get() == CacheEntry(payload=fresh, fetched_at=T0 + timedelta(hours=7))


async def test_at_most_one_fetch_per_ttl_window(clock: FixedClock) -> None:
    cache = MemoryCache()
    fetcher = FakeFetcher(make_payload(5))
    consumer = _consumer(cache, fetcher, clock)

    await consumer.load_digest()
    clock.now = T0 + timedelta(hours=3)
    await consumer.load_digest()
    clock.now = T0 + timedelta(hours=6)
    await consumer.load_digest()

    assert len(fetcher.calls) == 2


@pytest.mark.parametrize(
    "failure",
    [
        aiohttp.ClientConnectionError("offline"),
        asyncio.TimeoutError(),
        json.JSONDecodeError("Expecting value", "<html>", 0),
        ValueError("Digest is not a JSON object: list"),
    ],
)
async def test_stale_cache_served_on_fetch_failure(clock: FixedClock, failure: Exception) -> None:
    stale = make_payload(5, date="2026-10-15")
    cache = MemoryCache(CacheEntry(payload=stale, fetched_at=T0))
    fetcher = FakeFetcher(failure)
    clock.now = T0 + timedelta(hours=7)
    consumer = _consumer(cache, fetcher, clock)

    assert await consumer.load_digest() is stale
    assert fetcher.calls == [URL]
    assert cache.get().fetched_at == T0


async def test_very_old_cache_still_served(clock: FixedClock) -> None:
    stale = make_payload(5, date="2026-09-01")
    cache = MemoryCache(CacheEntry(payload=stale, fetched_at=T0 - timedelta(days=45)))
    consumer = _consumer(cache, FakeFetcher(aiohttp.ClientConnectionError("offline")), clock)

    assert await consumer.load_digest() is stale


async def test_cold_start_failure_raises_unavailable(clock: FixedClock) -> None:
    consumer = _consumer(MemoryCache(), FakeFetcher(aiohttp.ClientConnectionError("offline")), clock)

    with pytest.raises(UnavailableError):
        await consumer.load_digest()


async def test_cache_write_failure_still_returns_fresh_digest(clock: FixedClock) -> None:
    class ReadOnlyCache(MemoryCache):
        def put(self, entry: CacheEntry) -> None:
            raise PermissionError("read-only")

    fresh = make_payload(5)
    consumer = _consumer(ReadOnlyCache(), FakeFetcher(fresh), clock)

    assert await consumer.load_digest() == fresh


def test_from_config(config: Config) -> None:
    config.cache_ttl_hours = 2
    consumer = DigestConsumer.from_config(config)

    assert consumer.url == config.news_url
    assert consumer.ttl == timedelta(hours=2)
    assert isinstance(consumer.cache, FileCache)
    assert consumer.cache.path == config.cache_path


# === fetch_digest against a local server ===


def _serve(handler) -> test_utils.TestServer:
    app = web.Application()
    app.router.add_get("/news.json", handler)
    return test_utils.TestServer(app)


async def test_fetch_digest_sends_no_cache_headers() -> None:
    seen: dict[str, str | None] = {}
    payload = make_payload(5)

    async def handler(request: web.Request) -> web.Response:
        seen["Cache-Control"] = request.headers.get("Cache-Control")
        seen["Pragma"] = request.headers.get("Pragma")
        return web.json_response(payload)

    async with _serve(handler) as server:
        result = await fetch_digest(str(server.make_url("/news.json")), timeout=5)

    assert result == payload
    assert seen["Cache-Control"] == "no-cache"
    assert seen["Pragma"] == "no-cache"


async def test_fetch_digest_rejects_error_status() -> None:
    async def handler(request: web.Request) -> web.Response:
        return web.Response(status=404, text="not found")

    async with _serve(handler) as server:
        with pytest.raises(aiohttp.ClientResponseError) as excinfo:
            await fetch_digest(str(server.make_url("/news.json")), timeout=5)

    assert excinfo.value.status == 404


async def test_fetch_digest_rejects_non_object_json() -> None:
    async def handler(request: web.Request) -> web.Response:
        return web.json_response(["not", "a", "digest"])

    async with _serve(handler) as server:
        with pytest.raises(ValueError):
            await fetch_digest(str(server.make_url("/news.json")), timeout=5)


async def test_load_digest_end_to_end_with_file_cache(tmp_path, clock: FixedClock) -> None:
    payload = make_payload(5)
    state = {"status": 200}

    async def handler(request: web.Request) -> web.Response:
        if state["status"] != 200:
            return web.Response(status=state["status"])
        return web.json_response(payload)

    cache = FileCache(tmp_path / "cache.json")
    async with _serve(handler) as server:
        consumer = DigestConsumer(
            str(server.make_url("/news.json")), cache, ttl=timedelta(hours=6), clock=clock, timeout=5,
        )
        assert await consumer.load_digest() == payload

        state["status"] = 500
        clock.now = T0 + timedelta(hours=8)
        assert await consumer.load_digest() == payload

    assert cache.get().fetched_at == T0
