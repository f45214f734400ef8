"""Merge query string, JSON body and headers into a single request intent.

Precedence per field, highest first: ``X-Steam-Id`` header (identity only),
JSON body, query string, built-in default. A value only counts when it is a
non-empty string, or for ``csStoreIds`` a non-empty list of integers. Nothing
here raises: malformed input degrades to the defaults.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Any, Iterable, Mapping, Optional, Tuple

from fastapi import Request

from steam_deals.models.deal_models import (
    DEFAULT_STORE_IDS,
    DealFilterParams,
    RequestIntent,
)

logger = logging.getLogger("steam_deals.input")

BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})
STEAM_ID_HEADER = "x-steam-id"

_INTEGER_RE = re.compile(r"[+-]?\d+")


def _as_text(value: Any) -> Optional[str]:
    """Return ``value`` as a stripped non-empty string, or None."""
    if value is None or isinstance(value, (dict, list)):
        return None
    if isinstance(value, bool):
        text = "true" if value else "false"
    elif isinstance(value, float) and value.is_integer():
        text = str(int(value))
    else:
        text = str(value)
    text = text.strip()
    return text or None


def coerce_number(text: str) -> float:
    """Convert a threshold to a float; anything unparseable becomes NaN."""
    try:
        return float(text)
    except ValueError:
        return math.nan


def _parse_store_id(token: Any) -> Optional[int]:
    if isinstance(token, bool):
        return None
    if isinstance(token, int):
        return token
    if isinstance(token, float):
        return int(token) if token.is_integer() else None
    if isinstance(token, str) and _INTEGER_RE.fullmatch(token.strip()):
        return int(token.strip())
    return None


def parse_store_ids(value: Any) -> Tuple[int, ...]:
    """Parse a native list or a comma separated string of store ids.

    Unparseable tokens are dropped. An empty tuple means "not provided".
    """
    tokens: Iterable[Any]
    if isinstance(value, list):
        tokens = value
    elif isinstance(value, str):
        tokens = value.split(",")
    else:
        return ()

    store_ids = []
    for token in tokens:
        store_id = _parse_store_id(token)
        if store_id is not None:
            store_ids.append(store_id)
    return tuple(store_ids)


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


async def read_json_body(request: Request) -> Optional[dict[str, Any]]:
    """Return the JSON object body of a write request, or None.

    Bodies are only read for POST/PUT/PATCH with a JSON content type; a body
    that fails to parse, or is not an object, counts as no body.
    """
    if request.method.upper() not in BODY_METHODS:
        return None
    content_type = request.headers.get("content-type", "")
    if "application/json" not in content_type.lower():
        return None

    try:
        raw = await request.json()
    except ValueError as exc:
        logger.info("Ignoring unparseable JSON body: %s", exc)
        return None
    return raw if isinstance(raw, dict) else None


def resolve_request_intent(
    method: str,
    headers: Mapping[str, str],
    query: Mapping[str, str],
    body: Optional[Mapping[str, Any]] = None,
) -> RequestIntent:
    """Build the canonical RequestIntent for one request."""
    if method.upper() not in BODY_METHODS:
        body = None
    body = body or {}

    def pick(key: str, default: str) -> str:
        return _as_text(body.get(key)) or _as_text(query.get(key)) or default

    identity = (
        _as_text(_header(headers, STEAM_ID_HEADER))
        or _as_text(body.get("steamId"))
        or _as_text(query.get("steamId"))
    )

    store_ids = (
        parse_store_ids(body.get("csStoreIds"))
        or parse_store_ids(query.get("csStoreIds"))
        or DEFAULT_STORE_IDS
    )

    filters = DealFilterParams(
        max_age=pick("csMaxAge", "24"),
        metacritic=pick("csMetacritic", "1"),
        steam_rating=pick("csSteamRating", "1"),
        upper_price=pick("csUpperPrice", "15"),
        min_saving=coerce_number(pick("csMinSaving", "0")),
        min_deal_rating=coerce_number(pick("csMinDealRating", "0")),
        store_ids=store_ids,
    )
    return RequestIntent(identity=identity, filters=filters)
