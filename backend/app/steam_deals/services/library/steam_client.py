"""Steam Web API client for a user's owned games.

See IPlayerService/GetOwnedGames:
https://partner.steamgames.com/doc/webapi/IPlayerService
"""

from __future__ import annotations

import logging
from typing import Any, List, Set, Tuple
from urllib.parse import urlencode

import requests

from configs import CacheTtlConfig
from steam_deals.models.errors import LibraryError, LibraryErrorKind
from steam_deals.services.cache.cache_services import CacheService, build_cache_key

logger = logging.getLogger("steam_deals.steam")

PRIVATE_PROFILE_HINT = (
    'They need to set their Steam profile (and "My profile" / "Game details") to public.'
)


def build_owned_games_url(base_url: str, api_key: str, steam_id: str) -> str:
    """Build the GetOwnedGames URL for one Steam user."""
    query = urlencode({"key": api_key, "steamid": steam_id, "format": "json"})
    return f"{base_url}?{query}"


def _app_ids(games: List[Any]) -> List[int]:
    app_ids = []
    for game in games:
        appid = game.get("appid") if isinstance(game, dict) else None
        if isinstance(appid, int) and not isinstance(appid, bool):
            app_ids.append(appid)
    return app_ids


class OwnershipRetriever:
    """Fetch the set of app ids a Steam user owns, through the cache."""

    def __init__(
        self,
        cache: CacheService,
        api_key: str,
        base_url: str,
        timeout: float = 15.0,
    ) -> None:
        self.cache = cache
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout

    def _fetch(self, url: str, steam_id: str) -> List[int]:
        try:
            response = requests.get(url, timeout=self.timeout)
        except requests.exceptions.RequestException as exc:
            # the exception text may contain the URL, and with it the API key
            logger.warning(
                "Could not reach Steam for %s: %s", steam_id, type(exc).__name__
            )
            raise LibraryError(
                LibraryErrorKind.UNAVAILABLE,
                "Could not retrieve owned games: Steam API is unreachable.",
            ) from exc

        if response.status_code == 403:
            raise LibraryError(
                LibraryErrorKind.ACCESS_DENIED,
                "Could not retrieve owned games: access denied. The user's game "
                f"library may be set to private. {PRIVATE_PROFILE_HINT}",
                status_code=403,
            )
        if not response.ok:
            raise LibraryError(
                LibraryErrorKind.UNAVAILABLE,
                "Could not retrieve owned games: Steam API returned "
                f"{response.status_code} {response.reason}.",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise LibraryError(
                LibraryErrorKind.UNAVAILABLE,
                "Could not retrieve owned games: Steam API returned invalid JSON.",
                status_code=response.status_code,
            ) from exc

        body = payload.get("response") if isinstance(payload, dict) else None
        games = body.get("games") if isinstance(body, dict) else None
        if not isinstance(games, list):
            # private profiles answer 200 with an empty "response" object
            raise LibraryError(
                LibraryErrorKind.ACCESS_DENIED,
                "Could not retrieve owned games. The user's game library may be "
                "set to private, or the Steam ID may be invalid. "
                'They need to set their Steam profile and "Game details" to public.',
                status_code=response.status_code,
            )
        return _app_ids(games)

    def retrieve(
        self, steam_id: str, ttl_config: CacheTtlConfig, serving_origin: str
    ) -> Tuple[Set[int], bool]:
        """Return ``(owned_app_ids, from_cache)`` for ``steam_id``."""
        url = build_owned_games_url(self.base_url, self.api_key, steam_id)
        app_ids, from_cache = self.cache.resolve(
            build_cache_key(url, serving_origin),
            ttl_config.steam_ttl_for(steam_id),
            lambda: self._fetch(url, steam_id),
        )
        owned = set(app_ids)
        logger.info(
            "Steam library for %s %s (%d apps)",
            steam_id,
            "cache hit" if from_cache else "fetched",
            len(owned),
        )
        return owned, from_cache
