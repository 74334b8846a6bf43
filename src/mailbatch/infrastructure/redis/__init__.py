from src.mailbatch.infrastructure.redis.client import RedisClient
from src.mailbatch.infrastructure.redis.repositories import RedisTaskStateRepository

__all__ = [
    "RedisClient",
    "RedisTaskStateRepository",
]
