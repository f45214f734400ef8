"""Application settings loaded from environment variables.

Defines all environment-driven configuration used by the app, plus the cache
TTL policy derived from it.
"""

import json
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Mapping, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("steam_deals.configs")

STEAM_CACHE_TTL_DEFAULT = 60 * 60 * 24 * 7  # 7 days
CHEAPSHARK_CACHE_TTL_DEFAULT = 60 * 60 * 24  # 24 hours


class Settings(BaseSettings):
    """Typed configuration model for the application."""

    # Steam Web API
    STEAM_API_KEY: str
    STEAM_API_URL: str = (
        "https://api.steampowered.com/IPlayerService/GetOwnedGames/v0001/"
    )

    # Cache TTL overrides, kept raw so malformed values fall back to defaults
    STEAM_CACHE_TTL: Optional[str] = None
    STEAM_ID_TTLS: Optional[str] = None
    CHEAPSHARK_CACHE_TTL: Optional[str] = None

    # CheapShark
    CHEAPSHARK_API_URL: str = "https://www.cheapshark.com/api/1.0/deals"

    UPSTREAM_TIMEOUT: float = 15.0

    # Redis configuration
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: Optional[str] = None
    REDIS_SSL: bool = False

    # API parameters
    ALLOWED_ORIGINS: list[str] = ["*"]
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env", env_ignore_empty=True, extra="ignore"
    )


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()  # type: ignore[call-arg]


def _parse_ttl(raw: Optional[str], default: int, name: str) -> int:
    """Parse a non-negative integer TTL, falling back to ``default``."""
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        logger.warning("Ignoring %s=%r: not an integer.", name, raw)
        return default
    if value < 0:
        logger.warning("Ignoring %s=%r: negative TTL.", name, raw)
        return default
    return value


def _parse_ttl_map(raw: Optional[str]) -> dict[str, int]:
    """Parse the STEAM_ID_TTLS JSON object. Invalid documents yield ``{}``."""
    if not raw:
        return {}
    try:
        document = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.warning("Ignoring STEAM_ID_TTLS: invalid JSON (%s).", exc)
        return {}
    if not isinstance(document, dict):
        logger.warning("Ignoring STEAM_ID_TTLS: expected a JSON object.")
        return {}

    ttls: dict[str, int] = {}
    for steam_id, ttl in document.items():
        # bool is an int subclass, JSON true/false are not TTLs
        if isinstance(ttl, bool) or not isinstance(ttl, (int, float)) or ttl < 0:
            logger.warning("Ignoring STEAM_ID_TTLS entry for %s: %r.", steam_id, ttl)
            continue
        ttls[str(steam_id)] = int(ttl)
    return ttls


@dataclass(frozen=True)
class CacheTtlConfig:
    """Cache lifetimes for both upstream sources, resolved once per request."""

    deals_ttl: int = CHEAPSHARK_CACHE_TTL_DEFAULT
    steam_default_ttl: int = STEAM_CACHE_TTL_DEFAULT
    steam_id_ttls: Mapping[str, int] = field(default_factory=dict)

    @classmethod
    def from_settings(cls, settings: Settings) -> "CacheTtlConfig":
        """Build the TTL policy from raw settings, never raising."""
        return cls(
            deals_ttl=_parse_ttl(
                settings.CHEAPSHARK_CACHE_TTL,
                CHEAPSHARK_CACHE_TTL_DEFAULT,
                "CHEAPSHARK_CACHE_TTL",
            ),
            steam_default_ttl=_parse_ttl(
                settings.STEAM_CACHE_TTL, STEAM_CACHE_TTL_DEFAULT, "STEAM_CACHE_TTL"
            ),
            steam_id_ttls=MappingProxyType(_parse_ttl_map(settings.STEAM_ID_TTLS)),
        )

    def steam_ttl_for(self, steam_id: Optional[str]) -> int:
        """TTL for one identity: explicit override, else the default."""
        if steam_id is None:
            return self.steam_default_ttl
        return self.steam_id_ttls.get(steam_id, self.steam_default_ttl)
