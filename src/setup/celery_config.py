from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class CelerySettings(BaseSettings):
    """Configuration for the Celery broker, result backend and batch worker."""
    REDIS_URL: str = "redis://redis:6379/0"
    RESULT_TTL_SECONDS: int = 3600
    BATCH_QUEUE: str = "batch-tasks"
    CHAIN_COUNTDOWN_SECONDS: float = 0.5
    WORKER_CONCURRENCY: int = 2
    LOG_LEVEL: str = "INFO"

    model_config = ConfigDict(env_file=".env", extra="ignore")


def get_celery_settings() -> CelerySettings:
    return CelerySettings()
