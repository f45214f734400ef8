"""Cache-or-fetch access to upstream JSON responses."""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import Any, Callable, Optional, Protocol, Tuple, TypeVar
from urllib.parse import quote

import redis

from steam_deals.repositories.redis.redis_cache import RedisCache

logger = logging.getLogger("steam_deals.cache")

T = TypeVar("T")


class CacheStore(Protocol):
    """Minimal put/match interface of the shared cache."""

    def match(self, key: str) -> Optional[str]: ...

    def put(self, key: str, value: str, ttl_seconds: int) -> None: ...


def build_cache_key(upstream_url: str, serving_origin: str) -> str:
    """Namespace the full upstream URL under this service's own origin."""
    return f"{serving_origin.rstrip('/')}/cache/{quote(upstream_url, safe='')}"


class CacheService:
    """Serve JSON values from the cache, fetching and storing them on a miss.

    Freshness is left to the store: entries expire after the TTL given at
    write time and are never revalidated against the upstream.
    """

    def __init__(self, store: CacheStore) -> None:
        """Initialize the cache service with the cache store."""
        self.store = store

    def _lookup(self, key: str) -> Optional[Any]:
        try:
            raw = self.store.match(key)
        except redis.RedisError as exc:
            logger.warning("Cache read failed: %s", exc)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding undecodable cache entry")
            return None

    def resolve(
        self, key: str, ttl_seconds: int, producer: Callable[[], T]
    ) -> Tuple[T, bool]:
        """
        Return ``(value, from_cache)`` for ``key``.

        Args:
            key (str): Cache key, see ``build_cache_key``.
            ttl_seconds (int): Lifetime recorded with a freshly produced value.
            producer (Callable): Fetches the value on a miss. Its exceptions
                propagate and nothing is written.

        Returns:
            Tuple[T, bool]: The value and whether it came from the cache.
        """
        cached = self._lookup(key)
        if cached is not None:
            return cached, True

        value = producer()

        if ttl_seconds <= 0:
            logger.debug("TTL is %d, value not cached", ttl_seconds)
            return value, False
        try:
            self.store.put(key, json.dumps(value), ttl_seconds)
        except redis.RedisError as exc:
            logger.warning("Cache write failed: %s", exc)
        return value, False


@lru_cache
def create_cache_service(
    host: str, port: int, password: Optional[str], ssl: bool
) -> CacheService:
    """Build the CacheService backed by Redis, once per connection setting."""
    return CacheService(RedisCache(host, port, password, ssl))
