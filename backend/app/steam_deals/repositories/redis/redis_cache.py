"""Module for reading and writing cached upstream responses in Redis."""

import logging
from typing import Optional, Union

import redis

logger = logging.getLogger("steam_deals.redis")


def str_to_bool(value: str) -> bool:
    """Convert REDIS_SSL env variable to boolean."""
    return value.lower() in ("true", "1", "yes")


class RedisCache:
    """Key-addressed store with per-entry expiry, backed by Redis."""

    def __init__(
        self,
        host: str,
        port: int,
        password: Optional[str],
        ssl: Union[str, bool],
    ) -> None:
        """
        Initialize a connection to the Redis database.

        Args:
            host (str): The hostname or IP address of the Redis server.
            port (int): The port number of the Redis server.
            password (Optional[str]): Redis password, if any.
            ssl (Union[str, bool]): Whether to use TLS; strings like "true" are accepted.

        The connection is lazy: no network traffic happens until the first command.
        """
        ssl = str_to_bool(ssl) if isinstance(ssl, str) else ssl
        self.handler = redis.Redis(
            host=host,
            port=port,
            password=password,
            ssl=ssl,
            db=0,
            ssl_cert_reqs=None,
            decode_responses=True,
        )

    def match(self, key: str) -> Optional[str]:
        """Return the stored value for ``key`` if it has not expired."""
        return self.handler.get(key)  # type: ignore[return-value]

    def put(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store ``value`` under ``key``; Redis drops it after ``ttl_seconds``."""
        self.handler.set(key, value, ex=ttl_seconds)
        logger.debug("Cached entry for %ds", ttl_seconds)
