"""Domain and response models for the random deal endpoint."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# CheapShark sends these as strings; numbers are passed through untouched.
DecimalText = Optional[Union[str, int, float]]
Identifier = Optional[Union[str, int]]

# Steam, GreenManGaming, Humble Store, Fanatical.
DEFAULT_STORE_IDS: Tuple[int, ...] = (1, 3, 11, 15)


@dataclass(frozen=True)
class DealFilterParams:
    """CheapShark filters plus the local savings/rating thresholds."""

    max_age: str = "24"
    metacritic: str = "1"
    steam_rating: str = "1"
    upper_price: str = "15"
    min_saving: float = 0.0
    min_deal_rating: float = 0.0
    store_ids: Tuple[int, ...] = DEFAULT_STORE_IDS


@dataclass(frozen=True)
class RequestIntent:
    """Canonical view of one inbound request, whatever channel it used."""

    identity: Optional[str] = None
    filters: DealFilterParams = field(default_factory=DealFilterParams)


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Deal(CamelModel):
    """A CheapShark deal with normalized identifier names.

    Only the fields used by the service are declared; every other upstream
    field is kept as-is.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    deal_id: Identifier = Field(default=None, description="CheapShark deal id.")
    store_id: Identifier = Field(default=None, description="CheapShark store id.")
    game_id: Identifier = Field(default=None, description="CheapShark game id.")
    steam_app_id: DecimalText = Field(
        default=None, description="Steam application id, when the game is on Steam."
    )
    title: Optional[str] = None
    sale_price: DecimalText = None
    normal_price: DecimalText = None
    savings: DecimalText = Field(default=None, description="Savings percentage.")
    deal_rating: DecimalText = Field(
        default=None, description="CheapShark deal rating (0-10)."
    )


class CacheTtlMeta(CamelModel):
    """Cache TTLs in seconds (deals = CheapShark, steam = owned games)."""

    deals_ttl_seconds: int
    steam_ttl_seconds: int


class CacheHitsMeta(CamelModel):
    """Whether each source was served from cache."""

    deals: bool
    steam: bool


class CountsMeta(CamelModel):
    """Counts reported once deal data was fetched."""

    total_deals: int
    filtered_deals: int
    owned_app_count: int


class ParamsMeta(CamelModel):
    """Echo of the resolved request parameters."""

    steam_id: str
    cs_max_age: str
    cs_metacritic: str
    cs_steam_rating: str
    cs_upper_price: str
    cs_min_saving: Optional[Union[int, float]]
    cs_min_deal_rating: Optional[Union[int, float]]
    cs_store_ids: list[int]


class ResponseMeta(CamelModel):
    """Metadata returned in every response."""

    cache: CacheTtlMeta
    cache_hits: Optional[CacheHitsMeta] = None
    counts: Optional[CountsMeta] = None
    params: Optional[ParamsMeta] = None


class DealResponse(CamelModel):
    """Envelope returned by the random deal endpoint."""

    deal: Optional[Deal] = Field(..., description="Chosen deal, or null.")
    error: Optional[str] = None
    meta: ResponseMeta

    def to_payload(self) -> dict:
        """JSON-ready dict; optional members left unset are omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)
