"""Resolve one request into a random deal the user does not own."""

from __future__ import annotations

import asyncio
import logging
import math
import random
from typing import List, Optional, Set, Tuple, Union

from fastapi import status

from configs import CacheTtlConfig
from steam_deals.models.deal_models import (
    CacheHitsMeta,
    CacheTtlMeta,
    CountsMeta,
    Deal,
    DealFilterParams,
    DealResponse,
    ParamsMeta,
    RequestIntent,
    ResponseMeta,
)
from steam_deals.models.errors import UpstreamError, error_priority, status_for_error
from steam_deals.services.deal_selection import filter_deals, pick_random
from steam_deals.services.deals.cheapshark_client import DealsRetriever
from steam_deals.services.library.steam_client import OwnershipRetriever

logger = logging.getLogger("steam_deals.roulette")

MISSING_STEAM_ID = "Missing steamId parameter"


def _echo_number(value: float) -> Optional[Union[int, float]]:
    """JSON has no NaN or Infinity; integral thresholds are echoed as ints."""
    if not math.isfinite(value):
        return None
    if value.is_integer():
        return int(value)
    return value


def build_params_meta(steam_id: str, filters: DealFilterParams) -> ParamsMeta:
    """Echo the resolved parameters under their request names."""
    return ParamsMeta(
        steam_id=steam_id,
        cs_max_age=filters.max_age,
        cs_metacritic=filters.metacritic,
        cs_steam_rating=filters.steam_rating,
        cs_upper_price=filters.upper_price,
        cs_min_saving=_echo_number(filters.min_saving),
        cs_min_deal_rating=_echo_number(filters.min_deal_rating),
        cs_store_ids=list(filters.store_ids),
    )


def build_error_response(message: str, cache: CacheTtlMeta) -> DealResponse:
    """Error envelope; carries only the TTL metadata."""
    return DealResponse(deal=None, error=message, meta=ResponseMeta(cache=cache))


def build_success_response(
    deal: Optional[Deal],
    cache: CacheTtlMeta,
    cache_hits: CacheHitsMeta,
    counts: CountsMeta,
    params: ParamsMeta,
) -> DealResponse:
    """Success envelope; ``deal`` is None when nothing matched."""
    return DealResponse(
        deal=deal,
        meta=ResponseMeta(
            cache=cache, cache_hits=cache_hits, counts=counts, params=params
        ),
    )


class DealRouletteService:
    """Run both retrievals concurrently, then filter and pick a deal."""

    def __init__(
        self,
        deals_retriever: DealsRetriever,
        ownership_retriever: OwnershipRetriever,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.deals_retriever = deals_retriever
        self.ownership_retriever = ownership_retriever
        self.rng = rng

    async def _retrieve(
        self,
        steam_id: str,
        filters: DealFilterParams,
        serving_origin: str,
        ttl_config: CacheTtlConfig,
    ) -> Tuple[Tuple[List[Deal], bool], Tuple[Set[int], bool]]:
        """Fetch deals and owned games together; raise the most relevant failure."""
        deals_result, owned_result = await asyncio.gather(
            asyncio.to_thread(
                self.deals_retriever.retrieve,
                filters,
                serving_origin,
                ttl_config.deals_ttl,
            ),
            asyncio.to_thread(
                self.ownership_retriever.retrieve,
                steam_id,
                ttl_config,
                serving_origin,
            ),
            return_exceptions=True,
        )

        failures = [
            result
            for result in (deals_result, owned_result)
            if isinstance(result, BaseException)
        ]
        for failure in failures:
            if not isinstance(failure, UpstreamError):
                raise failure
        if failures:
            raise min(failures, key=error_priority)  # type: ignore[arg-type]
        return deals_result, owned_result  # type: ignore[return-value]

    async def resolve(
        self,
        intent: RequestIntent,
        serving_origin: str,
        ttl_config: CacheTtlConfig,
    ) -> Tuple[int, DealResponse]:
        """
        Produce the HTTP status and envelope for one request.

        Args:
            intent (RequestIntent): Resolved identity and filters.
            serving_origin (str): Origin of this service, used in cache keys.
            ttl_config (CacheTtlConfig): Cache lifetimes for this request.

        Returns:
            Tuple[int, DealResponse]: 200 with a deal (or null deal), 400 without
            an identity, 403 when the library is private, 502 otherwise.
        """
        cache = CacheTtlMeta(
            deals_ttl_seconds=ttl_config.deals_ttl,
            steam_ttl_seconds=ttl_config.steam_ttl_for(intent.identity),
        )
        if intent.identity is None:
            return status.HTTP_400_BAD_REQUEST, build_error_response(
                MISSING_STEAM_ID, cache
            )

        try:
            (deals, deals_from_cache), (owned, steam_from_cache) = await self._retrieve(
                intent.identity, intent.filters, serving_origin, ttl_config
            )
        except UpstreamError as exc:
            status_code = status_for_error(exc)
            logger.warning(
                "Request for %s failed with %d (%s): %s",
                intent.identity,
                status_code,
                exc.source,
                exc.message,
            )
            return status_code, build_error_response(exc.message, cache)

        candidates = filter_deals(deals, owned, intent.filters)
        deal = pick_random(candidates, self.rng)
        if deal is None:
            logger.info("No matching deal for %s", intent.identity)
        else:
            logger.info("Picked deal %s for %s", deal.deal_id, intent.identity)

        return status.HTTP_200_OK, build_success_response(
            deal,
            cache,
            CacheHitsMeta(deals=deals_from_cache, steam=steam_from_cache),
            CountsMeta(
                total_deals=len(deals),
                filtered_deals=len(candidates),
                owned_app_count=len(owned),
            ),
            build_params_meta(intent.identity, intent.filters),
        )
