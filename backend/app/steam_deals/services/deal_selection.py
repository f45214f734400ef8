"""Filter out owned or weak deals and pick one at random."""

from __future__ import annotations

import math
import random
from typing import AbstractSet, List, Optional, Sequence, Union

from steam_deals.models.deal_models import Deal, DealFilterParams


def _to_float(value: Optional[Union[str, int, float]]) -> float:
    if value is None or isinstance(value, bool):
        return math.nan
    try:
        return float(value)
    except ValueError:
        return math.nan


def _to_app_id(value: Optional[Union[str, int, float]]) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    try:
        return int(value.strip())
    except ValueError:
        return None


def is_eligible(
    deal: Deal, owned_app_ids: AbstractSet[int], filters: DealFilterParams
) -> bool:
    """Whether a deal meets both thresholds and is not already owned.

    NaN on either side of a threshold comparison is False, so unparseable
    savings/ratings and non-numeric thresholds exclude the deal. A deal with
    no Steam app id cannot be owned.
    """
    if not _to_float(deal.savings) >= filters.min_saving:
        return False
    if not _to_float(deal.deal_rating) >= filters.min_deal_rating:
        return False
    return _to_app_id(deal.steam_app_id) not in owned_app_ids


def filter_deals(
    deals: Sequence[Deal],
    owned_app_ids: AbstractSet[int],
    filters: DealFilterParams,
) -> List[Deal]:
    """Return the deals that survive the thresholds and ownership check."""
    return [deal for deal in deals if is_eligible(deal, owned_app_ids, filters)]


def pick_random(
    candidates: Sequence[Deal], rng: Optional[random.Random] = None
) -> Optional[Deal]:
    """Uniformly pick one candidate, or None when there is none."""
    if not candidates:
        return None
    rng = rng or random
    return candidates[rng.randrange(len(candidates))]
