"""Digest consumer: cached, failure-tolerant loading of the published digest.

load_digest() decides between three sources, in order:

    1. A cache entry younger than the TTL is returned without any network
       call. This caps fetches at one per TTL window per client.
    2. Otherwise the artifact is fetched (bypassing HTTP caches). A
       successful fetch replaces the cache entry and is returned.
    3. If the fetch fails for any reason (connection error, timeout,
       non-200 status, invalid JSON), any cached entry is returned
       regardless of age. Only with an empty cache does the failure reach
       the caller, as UnavailableError.
"""

import asyncio
import json
import logging
import ssl
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable

import aiohttp
import certifi

from cache import CacheEntry, DigestCache, FileCache, is_fresh
from config import Config
from errors import UnavailableError

logger = logging.getLogger(__name__)

USER_AGENT = "daily-news-digest/1.0 (+https://github.com/sharifrayhan/daily-global-news)"

# Ask every intermediate cache to revalidate
NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
    "Accept": "application/json",
    "User-Agent": USER_AGENT,
}

Fetcher = Callable[[str], Awaitable[dict[str, Any]]]


def create_ssl_context() -> ssl.SSLContext:
    """Create an SSL context that verifies against the certifi bundle."""
    return ssl.create_default_context(cafile=certifi.where())


async def fetch_digest(url: str, timeout: float = 10.0) -> dict[str, Any]:
    """Fetch and decode the published digest.

    Args:
        url: Artifact URL
        timeout: Total request deadline in seconds

    Returns:
        The digest document

    Raises:
        aiohttp.ClientError: Connection failure or non-200 status
        asyncio.TimeoutError: Deadline exceeded
        ValueError: Body is not a JSON object
    """
    logger.debug("Fetching digest: %s", url)
    async with aiohttp.ClientSession() as session:
        async with session.get(
            url,
            timeout=aiohttp.ClientTimeout(total=timeout),
            headers=NO_CACHE_HEADERS,
            ssl=create_ssl_context(),
        ) as resp:
            if resp.status != 200:
                raise aiohttp.ClientResponseError(
                    resp.request_info, resp.history, status=resp.status
                )
            body = await resp.text(encoding="utf-8")

    payload = json.loads(body)
    if not isinstance(payload, dict):
        raise ValueError(f"Digest is not a JSON object: {type(payload).__name__}")
    return payload


def _describe(error: BaseException) -> str:
    return str(error) or type(error).__name__


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DigestConsumer:
    """Loads the digest for a UI, preferring stale data over no data.

    Example:
        >>> consumer = DigestConsumer.from_config(config)
        >>> payload = await consumer.load_digest()
    """

    def __init__(
        self,
        url: str,
        cache: DigestCache,
        ttl: timedelta = timedelta(hours=6),
        fetcher: Fetcher | None = None,
        clock: Callable[[], datetime] = _utc_now,
        timeout: float = 10.0,
    ):
        """Initialize the consumer.

        Args:
            url: Artifact URL
            cache: Cache slot owned by this client
            ttl: Age below which the cache is served without fetching
            fetcher: Async url -> document callable (defaults to fetch_digest)
            clock: Source of the current time (UTC-aware)
            timeout: Fetch deadline in seconds for the default fetcher
        """
        self.url = url
        self.cache = cache
        self.ttl = ttl
        self.clock = clock
        self.timeout = timeout
        self._fetcher = fetcher

    @classmethod
    def from_config(cls, config: Config) -> "DigestConsumer":
        """Create a consumer with a file-backed cache."""
        return cls(
            url=config.news_url,
            cache=FileCache(config.cache_path),
            ttl=timedelta(hours=config.cache_ttl_hours),
            timeout=config.fetch_timeout_seconds,
        )

    async def _fetch(self) -> dict[str, Any]:
        if self._fetcher is not None:
            return await self._fetcher(self.url)
        return await fetch_digest(self.url, timeout=self.timeout)

    async def load_digest(self) -> dict[str, Any]:
        """Return the freshest digest available.

        Raises:
            UnavailableError: Fetch failed and nothing is cached
        """
        entry = self.cache.get()
        now = self.clock()
        if is_fresh(entry, now, self.ttl):
            logger.debug("Using cached digest | age=%s", entry.age(now))
            return entry.payload

        try:
            payload = await self._fetch()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            if entry is not None:
                logger.warning(
                    "Fetch failed, using stale cache | url=%s age=%s error=%s",
                    self.url, entry.age(now), _describe(e),
                )
                return entry.payload
            logger.error("Fetch failed with empty cache | url=%s error=%s", self.url, _describe(e))
            raise UnavailableError(f"Digest unavailable from {self.url}: {_describe(e)}") from e

        try:
            self.cache.put(CacheEntry(payload=payload, fetched_at=self.clock()))
        except OSError as e:
            logger.warning("Cache write failed | error=%s", e)
        stories = payload.get("stories")
        logger.info("Digest fetched | url=%s stories=%d", self.url, len(stories) if isinstance(stories, list) else 0)
        return payload
