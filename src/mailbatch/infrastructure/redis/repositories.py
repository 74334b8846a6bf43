from __future__ import annotations

import logging

from redis.exceptions import RedisError, WatchError

from src.mailbatch.domain.exceptions import (
    StorageFailureError,
    TaskNotFoundError,
    TaskVersionConflictError,
)
from src.mailbatch.domain.models.batch_task import BatchTask
from src.mailbatch.domain.repositories import TaskStateRepository
from src.mailbatch.infrastructure.redis.client import RedisClient
from src.mailbatch.infrastructure.redis.serializers import decode_task, encode_task, task_key

logger = logging.getLogger(__name__)


class RedisTaskStateRepository(TaskStateRepository):
    """Ephemeral task storage: one JSON value per task, TTL refreshed on every write."""

    def __init__(self, client: RedisClient, ttl_seconds: int) -> None:
        self._client = client
        self._ttl_seconds = ttl_seconds

    async def create(self, task: BatchTask) -> None:
        try:
            created = await self._client.redis.set(
                task_key(task.task_id), encode_task(task), ex=self._ttl_seconds, nx=True
            )
        except RedisError as exc:
            raise StorageFailureError(f"Could not store task '{task.task_id}'.") from exc
        if not created:
            raise StorageFailureError(f"Task '{task.task_id}' already exists.")

    async def get(self, task_id: str) -> BatchTask | None:
        try:
            raw = await self._client.redis.get(task_key(task_id))
        except RedisError as exc:
            raise StorageFailureError(f"Could not read task '{task_id}'.") from exc
        if raw is None:
            return None
        return decode_task(raw)

    async def compare_and_set(self, task: BatchTask, expected_version: int) -> BatchTask:
        key = task_key(task.task_id)
        written = task.model_copy(update={"version": expected_version + 1})
        try:
            async with self._client.redis.pipeline(transaction=True) as pipe:
                # WATCH aborts the MULTI block if anyone else writes the key meanwhile.
                await pipe.watch(key)
                raw = await pipe.get(key)
                if raw is None:
                    raise TaskNotFoundError(task.task_id)
                stored_version = decode_task(raw).version
                if stored_version != expected_version:
                    raise TaskVersionConflictError(task.task_id, expected_version, stored_version)
                pipe.multi()
                pipe.set(key, encode_task(written), ex=self._ttl_seconds)
                await pipe.execute()
        except WatchError as exc:
            raise TaskVersionConflictError(task.task_id, expected_version, None) from exc
        except RedisError as exc:
            raise StorageFailureError(f"Could not write task '{task.task_id}'.") from exc
        return written
