from __future__ import annotations

import logging

from redis.asyncio import ConnectionPool, Redis

from src.setup.redis_config import RedisSettings

logger = logging.getLogger(__name__)


class RedisClient:
    """Async connection holder for the ephemeral task store."""

    def __init__(
        self,
        url: str,
        *,
        max_connections: int = 10,
        socket_timeout: float = 5.0,
        retry_on_timeout: bool = True,
    ) -> None:
        # Task payloads are JSON text, so responses come back decoded.
        pool = ConnectionPool.from_url(
            url,
            max_connections=max_connections,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
            retry_on_timeout=retry_on_timeout,
            decode_responses=True,
        )
        self._redis = Redis(connection_pool=pool)

    @classmethod
    def from_settings(cls, settings: RedisSettings) -> "RedisClient":
        return cls(
            settings.REDIS_URL,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
        )

    @property
    def redis(self) -> Redis:
        return self._redis

    async def close(self) -> None:
        await self._redis.aclose()
        logger.debug("Closed Redis client")
