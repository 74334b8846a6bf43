from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

import inject

from src.mailbatch.domain.exceptions import (
    StorageFailureError,
    TaskAccessDeniedError,
    TaskNotFoundError,
    TaskVersionConflictError,
)
from src.mailbatch.domain.models.batch_task import BatchTask
from src.mailbatch.domain.models.task_record import TaskRecord
from src.mailbatch.domain.repositories import TaskRecordRepository, TaskStateRepository
from src.setup.batch_config import get_batch_settings

logger = logging.getLogger(__name__)

# Returns the mutated task, or None when no write is needed.
TaskMutation = Callable[[BatchTask], BatchTask | None]


def to_record(task: BatchTask) -> TaskRecord:
    return TaskRecord(
        task_id=task.task_id,
        owner_id=task.owner_id,
        domain=task.domain,
        total_count=task.total_count,
        created_count=task.created_count,
        status=task.status,
        error=task.error,
        created_at=task.created_at,
        completed_at=task.updated_at if task.status.is_terminal else None,
    )


class TaskStore:
    """
    Two-tier task persistence. Active tasks live in the ephemeral store under a
    retention window; terminal tasks are additionally projected into the
    permanent record store for history.
    """

    def __init__(
        self,
        tasks: TaskStateRepository | None = None,
        records: TaskRecordRepository | None = None,
        *,
        cas_retries: int | None = None,
    ) -> None:
        self._tasks = tasks or inject.instance(TaskStateRepository)
        self._records = records or inject.instance(TaskRecordRepository)
        self._cas_retries = cas_retries or get_batch_settings().CAS_RETRIES

    async def create(self, task: BatchTask) -> None:
        await self._tasks.create(task)

    async def find(self, task_id: str) -> BatchTask | None:
        return await self._tasks.get(task_id)

    async def load(self, task_id: str) -> BatchTask:
        task = await self._tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    async def load_owned(self, owner_id: str, task_id: str) -> BatchTask:
        """Fetch a task by id and enforce ownership."""
        task = await self.load(task_id)
        if task.owner_id != owner_id:
            raise TaskAccessDeniedError(task_id, owner_id)
        return task

    async def update(self, task_id: str, mutate: TaskMutation) -> BatchTask:
        """
        Read-modify-write with compare-and-set. On a version conflict the task is
        reloaded and ``mutate`` re-applied to the fresh copy, so deltas from
        concurrent invocations add up instead of overwriting each other.
        """
        for attempt in range(1, self._cas_retries + 1):
            current = await self.load(task_id)
            updated = mutate(current.model_copy(deep=True))
            if updated is None:
                return current
            updated.updated_at = datetime.now(UTC)
            try:
                return await self._tasks.compare_and_set(updated, current.version)
            except TaskVersionConflictError as exc:
                logger.info(
                    "Task write conflicted, retrying",
                    extra={"task_id": task_id, "attempt": attempt, "expected": exc.expected},
                )
        raise StorageFailureError(
            f"Task '{task_id}' could not be written after {self._cas_retries} attempts."
        )

    async def flush_record(self, task: BatchTask) -> None:
        """Upsert the permanent record. Failures are logged and swallowed."""
        try:
            await self._records.upsert(to_record(task))
        except Exception:
            logger.exception(
                "Failed to write permanent task record",
                extra={"task_id": task.task_id, "status": task.status.value},
            )

    async def get_record(self, task_id: str) -> TaskRecord | None:
        return await self._records.get(task_id)

    async def list_records(
        self, owner_id: str, *, limit: int, offset: int
    ) -> tuple[list[TaskRecord], int]:
        return await self._records.list_for_owner(owner_id, limit=limit, offset=offset)
