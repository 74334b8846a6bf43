from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class RedisSettings(BaseSettings):
    """Configuration for the ephemeral task store."""
    REDIS_URL: str = "redis://redis:6379/0"
    REDIS_MAX_CONNECTIONS: int = 10
    REDIS_SOCKET_TIMEOUT: float = 5.0
    TASK_TTL_SECONDS: int = 3600 * 24

    model_config = ConfigDict(env_file=".env", extra="ignore")


def get_redis_settings() -> RedisSettings:
    return RedisSettings()
