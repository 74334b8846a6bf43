from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, datetime

import inject

from src.mailbatch.application.generator import AddressGenerator
from src.mailbatch.application.task_store import TaskStore
from src.mailbatch.domain.exceptions import (
    GenerationExhaustedError,
    TaskAccessDeniedError,
    TaskNotFoundError,
)
from src.mailbatch.domain.models.address import NewAddress
from src.mailbatch.domain.models.batch_task import BatchTask
from src.mailbatch.domain.models.expiry import expires_at
from src.mailbatch.domain.models.progress import ProgressSnapshot
from src.mailbatch.domain.models.task_state import TaskState
from src.mailbatch.domain.repositories import AddressRepository
from src.setup.batch_config import get_batch_settings

logger = logging.getLogger(__name__)


def _start(task: BatchTask) -> BatchTask | None:
    if task.status != TaskState.PENDING:
        return None
    task.status = TaskState.PROCESSING
    return task


def _apply_chunk(task: BatchTask, attempted: int, inserted: Sequence[str]) -> BatchTask | None:
    if task.status.is_terminal:
        return None
    # A stale chunk size may overshoot the target; only the part that fits is counted.
    room = task.remaining
    counted = list(inserted[:room])
    task.processed_count = min(task.processed_count + attempted, task.total_count)
    task.created_count = min(task.created_count + len(counted), task.processed_count)
    task.address_list.extend(counted)
    task.status = TaskState.PROCESSING
    if task.processed_count >= task.total_count:
        task.status = TaskState.COMPLETED
    return task


def _fail(task: BatchTask, message: str) -> BatchTask | None:
    if task.status.is_terminal:
        return None
    task.status = TaskState.FAILED
    task.error = message
    return task


class ChunkProcessor:
    """
    Advances a batch task by one bounded chunk per invocation. Invocations are
    stateless and may race; the address store's uniqueness constraint and the
    task store's compare-and-set keep the outcome consistent.
    """

    def __init__(
        self,
        store: TaskStore | None = None,
        addresses: AddressRepository | None = None,
        generator: AddressGenerator | None = None,
        *,
        chunk_size: int | None = None,
        insert_batch_size: int | None = None,
    ) -> None:
        settings = get_batch_settings()
        self._store = store or TaskStore()
        self._addresses = addresses or inject.instance(AddressRepository)
        self._generator = generator or AddressGenerator(self._addresses)
        self._chunk_size = chunk_size or settings.CHUNK_SIZE
        self._insert_batch_size = insert_batch_size or settings.INSERT_BATCH_SIZE

    async def advance(self, task_id: str, owner_id: str | None = None) -> ProgressSnapshot:
        """Process the next chunk of ``task_id`` and return its progress."""
        task = await self._store.load(task_id)
        if owner_id is not None and task.owner_id != owner_id:
            raise TaskAccessDeniedError(task_id, owner_id)
        if task.status.is_terminal:
            return ProgressSnapshot.of(task)

        try:
            task = await self._run_chunk(task)
        except TaskNotFoundError:
            raise
        except Exception as exc:
            logger.exception("Batch chunk failed", extra={"task_id": task_id})
            await self._record_failure(task_id, exc)
            raise

        if task.status == TaskState.COMPLETED:
            logger.info(
                "Batch task completed",
                extra={"task_id": task_id, "created": task.created_count, "total": task.total_count},
            )
            await self._store.flush_record(task)
        return ProgressSnapshot.of(task)

    async def _run_chunk(self, task: BatchTask) -> BatchTask:
        if task.status == TaskState.PENDING:
            # Persist before any generation so concurrent triggers observe processing.
            task = await self._store.update(task.task_id, _start)
            if task.status.is_terminal:
                return task

        chunk_size = min(self._chunk_size, task.remaining)
        attempted = 0
        inserted: list[str] = []
        if chunk_size > 0:
            now = datetime.now(UTC)
            generated = await self._generator.generate(
                task.domain,
                chunk_size,
                owner_id=task.owner_id,
                created_at=now,
                expires_at=expires_at(task.expiry_time, now),
            )
            if not generated:
                raise GenerationExhaustedError(task.domain, self._generator.max_attempts(chunk_size))
            attempted = len(generated)
            inserted = await self._persist(generated)

        logger.debug(
            "Batch chunk generated",
            extra={"task_id": task.task_id, "attempted": attempted, "inserted": len(inserted)},
        )
        return await self._store.update(
            task.task_id, lambda current: _apply_chunk(current, attempted, inserted)
        )

    async def _persist(self, generated: Sequence[NewAddress]) -> list[str]:
        inserted: list[str] = []
        for start in range(0, len(generated), self._insert_batch_size):
            batch = generated[start : start + self._insert_batch_size]
            inserted.extend(await self._addresses.insert_many(batch))
        return inserted

    async def _record_failure(self, task_id: str, exc: Exception) -> None:
        message = str(exc) or exc.__class__.__name__
        try:
            task = await self._store.update(task_id, lambda current: _fail(current, message))
            if task.status == TaskState.FAILED:
                await self._store.flush_record(task)
        except Exception:
            logger.exception("Failed to record task failure", extra={"task_id": task_id})
