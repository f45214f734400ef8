"""Shared fixtures: an in-memory cache store and fake upstream responses."""

from typing import Any, Callable, Dict, Optional, Tuple
from unittest.mock import MagicMock

import pytest

from steam_deals.services.cache.cache_services import CacheService


class FakeCacheStore:
    """Dict-backed stand-in for RedisCache that records every access."""

    def __init__(self) -> None:
        self.entries: Dict[str, Tuple[str, int]] = {}
        self.reads = 0
        self.writes = 0

    def match(self, key: str) -> Optional[str]:
        self.reads += 1
        entry = self.entries.get(key)
        return entry[0] if entry else None

    def put(self, key: str, value: str, ttl_seconds: int) -> None:
        self.writes += 1
        self.entries[key] = (value, ttl_seconds)


@pytest.fixture()
def cache_store() -> FakeCacheStore:
    return FakeCacheStore()


@pytest.fixture()
def cache_service(cache_store: FakeCacheStore) -> CacheService:
    return CacheService(cache_store)


@pytest.fixture()
def make_response() -> Callable[..., MagicMock]:
    """Build a fake ``requests.Response``."""

    def _make(status_code: int = 200, payload: Any = None, reason: str = "OK") -> MagicMock:
        response = MagicMock()
        response.status_code = status_code
        response.ok = status_code < 400
        response.reason = reason
        if isinstance(payload, Exception):
            response.json.side_effect = payload
        else:
            response.json.return_value = payload
        return response

    return _make


@pytest.fixture()
def raw_deals() -> list:
    """Two CheapShark records in upstream naming."""
    return [
        {
            "internalName": "OWNEDGAME",
            "title": "Owned Game",
            "dealID": "deal-owned",
            "storeID": "1",
            "gameID": "100",
            "salePrice": "4.99",
            "normalPrice": "19.99",
            "isOnSale": "1",
            "savings": "75.037519",
            "metacriticScore": "80",
            "steamRatingPercent": "90",
            "steamAppID": "10",
            "releaseDate": 1300000000,
            "lastChange": 1700000000,
            "dealRating": "9.1",
            "thumb": "https://example.com/owned.jpg",
        },
        {
            "internalName": "NEWGAME",
            "title": "New Game",
            "dealID": "deal-new",
            "storeID": "3",
            "gameID": "300",
            "salePrice": "9.99",
            "normalPrice": "19.99",
            "isOnSale": "1",
            "savings": "50",
            "metacriticScore": "75",
            "steamRatingPercent": "85",
            "steamAppID": "30",
            "releaseDate": 1400000000,
            "lastChange": 1700000001,
            "dealRating": "8",
            "thumb": "https://example.com/new.jpg",
        },
    ]
