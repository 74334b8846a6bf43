from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol

from src.mailbatch.domain.models.address import NewAddress
from src.mailbatch.domain.models.batch_task import BatchTask
from src.mailbatch.domain.models.task_record import TaskRecord
from src.mailbatch.domain.models.user import UserContext


class TaskStateRepository(Protocol):
    """Ephemeral, TTL-bound storage for active batch tasks."""

    async def create(self, task: BatchTask) -> None:
        """Store a new task, starting its retention window."""

    async def get(self, task_id: str) -> BatchTask | None:
        """Return the task or ``None`` when absent or expired."""

    async def compare_and_set(self, task: BatchTask, expected_version: int) -> BatchTask:
        """
        Write ``task`` only if the stored copy still carries ``expected_version``.
        Returns the written task with its version advanced and raises
        ``TaskVersionConflictError`` when another writer got there first.
        """


class TaskRecordRepository(Protocol):
    """Permanent history of tasks that reached a terminal state."""

    async def upsert(self, record: TaskRecord) -> None:
        """Insert or replace the record keyed by ``task_id``."""

    async def get(self, task_id: str) -> TaskRecord | None:
        """Return the record or ``None``."""

    async def list_for_owner(
        self, owner_id: str, *, limit: int, offset: int
    ) -> tuple[list[TaskRecord], int]:
        """Return a newest-first page of the owner's records and their total count."""


class AddressRepository(Protocol):
    """Durable table of issued addresses, unique on the lower-cased address."""

    async def exists(self, address: str) -> bool:
        """Case-insensitive existence check."""

    async def insert_many(self, addresses: Sequence[NewAddress]) -> list[str]:
        """Insert addresses, skipping ones that collide; return those actually inserted."""

    async def count_active(self, owner_id: str, now: datetime) -> int:
        """Count the owner's addresses that have not expired at ``now``."""

    async def list_created_between(
        self,
        owner_id: str,
        domain: str,
        start: datetime,
        end: datetime,
        limit: int,
    ) -> list[str]:
        """Owner's addresses under ``domain`` created in ``[start, end]``, oldest first."""


class TaskTriggerRepository(Protocol):
    """Work-queue entry point that asks a worker to advance a task."""

    async def trigger(self, task_id: str) -> None:
        """Schedule one ``advance`` for the task."""


class UserContextProvider(Protocol):
    """Resolves the acting user from request headers."""

    def resolve(self, headers: dict[str, str]) -> UserContext | None:
        """Return the user or ``None`` when the request is anonymous."""
