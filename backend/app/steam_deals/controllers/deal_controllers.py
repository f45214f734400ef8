"""Random deal endpoint.

Input can come from the query string, a JSON body (POST/PUT/PATCH) or the
``X-Steam-Id`` header, so polling displays can avoid building long URLs.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from configs import CacheTtlConfig, Settings, get_settings
from steam_deals.models.deal_models import DealResponse
from steam_deals.services.cache.cache_services import (
    CacheService,
    create_cache_service,
)
from steam_deals.services.deal_roulette import DealRouletteService
from steam_deals.services.deals.cheapshark_client import DealsRetriever
from steam_deals.services.input_resolver import (
    read_json_body,
    resolve_request_intent,
)
from steam_deals.services.library.steam_client import OwnershipRetriever

logger = logging.getLogger("steam_deals.controller")

deal_router = APIRouter(tags=["Deals"])


# Dependencies for FastAPI
def get_cache_service(settings: Settings = Depends(get_settings)) -> CacheService:
    """Retrieve a Redis-backed CacheService."""
    return create_cache_service(
        host=settings.REDIS_HOST,
        port=settings.REDIS_PORT,
        password=settings.REDIS_PASSWORD,
        ssl=settings.REDIS_SSL,
    )


def get_deal_roulette_service(
    settings: Settings = Depends(get_settings),
    cache: CacheService = Depends(get_cache_service),
) -> DealRouletteService:
    """Retrieve a DealRouletteService wired to both upstream sources."""
    return DealRouletteService(
        DealsRetriever(cache, settings.CHEAPSHARK_API_URL, settings.UPSTREAM_TIMEOUT),
        OwnershipRetriever(
            cache,
            settings.STEAM_API_KEY,
            settings.STEAM_API_URL,
            settings.UPSTREAM_TIMEOUT,
        ),
    )


def serving_origin(request: Request) -> str:
    """Origin (scheme://host[:port]) of this service for the current request."""
    return f"{request.url.scheme}://{request.url.netloc}"


@deal_router.api_route(
    "/",
    methods=["GET", "POST", "PUT", "PATCH"],
    responses={
        200: {"model": DealResponse, "description": "Random deal, or null deal"},
        400: {"model": DealResponse, "description": "No steamId provided"},
        403: {"model": DealResponse, "description": "Steam library is private"},
        502: {"model": DealResponse, "description": "Upstream API failure"},
    },
)
async def random_deal(
    request: Request,
    settings: Settings = Depends(get_settings),
    service: DealRouletteService = Depends(get_deal_roulette_service),
) -> JSONResponse:
    """
    Return one random CheapShark deal for a game the user doesn't own.

    Args:
        request (Request): Inbound request; query, JSON body and headers are read.

    Returns:
        JSONResponse: ``{deal, error?, meta}`` with the status chosen by the service.
    """
    ttl_config = CacheTtlConfig.from_settings(settings)
    body = await read_json_body(request)
    intent = resolve_request_intent(
        request.method, request.headers, request.query_params, body
    )
    logger.info(
        "%s request for steamId=%s stores=%s",
        request.method,
        intent.identity,
        ",".join(str(store_id) for store_id in intent.filters.store_ids),
    )

    status_code, envelope = await service.resolve(
        intent, serving_origin(request), ttl_config
    )
    return JSONResponse(content=envelope.to_payload(), status_code=status_code)
