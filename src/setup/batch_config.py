from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class BatchSettings(BaseSettings):
    """Sizing knobs for chunked batch provisioning."""
    CHUNK_SIZE: int = 100
    INSERT_BATCH_SIZE: int = 20
    ASYNC_THRESHOLD: int = 50
    ATTEMPT_FACTOR: int = 5
    LOCAL_PART_LENGTH: int = 8
    CAS_RETRIES: int = 5
    HISTORY_DEFAULT_LIMIT: int = 20
    HISTORY_MAX_LIMIT: int = 100

    model_config = ConfigDict(env_file=".env", extra="ignore")

def get_batch_settings() -> BatchSettings:
    """Return a fresh batch settings instance."""
    return BatchSettings()
