"""CheapShark deals retrieval (https://apidocs.cheapshark.com/)."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Tuple
from urllib.parse import urlencode

import requests

from steam_deals.models.deal_models import Deal, DealFilterParams
from steam_deals.models.errors import DealsSourceError
from steam_deals.services.cache.cache_services import CacheService, build_cache_key

logger = logging.getLogger("steam_deals.cheapshark")

PAGE_SIZE = 100

# Upstream name -> canonical name. Every other field passes through.
FIELD_RENAMES = {
    "dealID": "dealId",
    "storeID": "storeId",
    "steamAppID": "steamAppId",
    "gameID": "gameId",
}


def build_deals_url(base_url: str, filters: DealFilterParams) -> str:
    """Build the CheapShark deals URL embedding every filter parameter."""
    query = urlencode(
        {
            "storeID": ",".join(str(store_id) for store_id in filters.store_ids),
            "pageSize": PAGE_SIZE,
            "maxAge": filters.max_age,
            "metacritic": filters.metacritic,
            "steamRating": filters.steam_rating,
            "upperPrice": filters.upper_price,
        },
        safe=",",
    )
    return f"{base_url}?{query}"


def normalize_deal(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Rename CheapShark identifiers to canonical names; values are untouched.

    Idempotent, so it is safe on entries cached before or after renaming.
    """
    deal: Dict[str, Any] = {}
    for key, value in raw.items():
        canonical = FIELD_RENAMES.get(key, key)
        # an already canonical key wins over a stale upstream one
        if canonical in deal and key in FIELD_RENAMES:
            continue
        deal[canonical] = value
    return deal


def normalize_deals(raw_deals: List[Dict[str, Any]]) -> List[Deal]:
    """Normalize every record and wrap it in the Deal model."""
    return [
        Deal.model_validate(normalize_deal(raw))
        for raw in raw_deals
        if isinstance(raw, dict)
    ]


class DealsRetriever:
    """Fetch the current CheapShark catalog through the cache."""

    def __init__(
        self, cache: CacheService, base_url: str, timeout: float = 15.0
    ) -> None:
        self.cache = cache
        self.base_url = base_url
        self.timeout = timeout

    def _fetch(self, url: str) -> List[Dict[str, Any]]:
        try:
            response = requests.get(url, timeout=self.timeout)
        except requests.exceptions.RequestException as exc:
            logger.warning("Could not reach CheapShark: %s", exc)
            raise DealsSourceError(f"CheapShark API error: {exc}") from exc

        if not response.ok:
            raise DealsSourceError(
                f"CheapShark API error: {response.status_code} {response.reason}",
                status_code=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise DealsSourceError(
                "CheapShark API error: invalid JSON response",
                status_code=response.status_code,
            ) from exc
        if not isinstance(payload, list):
            raise DealsSourceError(
                "CheapShark API error: unexpected response shape",
                status_code=response.status_code,
            )
        return [normalize_deal(raw) for raw in payload if isinstance(raw, dict)]

    def retrieve(
        self, filters: DealFilterParams, serving_origin: str, ttl_seconds: int
    ) -> Tuple[List[Deal], bool]:
        """Return ``(deals, from_cache)`` for the given filters."""
        url = build_deals_url(self.base_url, filters)
        data, from_cache = self.cache.resolve(
            build_cache_key(url, serving_origin),
            ttl_seconds,
            lambda: self._fetch(url),
        )
        logger.info(
            "CheapShark deals %s (%d deals)",
            "cache hit" if from_cache else "fetched",
            len(data),
        )
        return normalize_deals(data), from_cache
