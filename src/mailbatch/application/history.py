from __future__ import annotations

import logging
from datetime import UTC, datetime

import inject

from src.mailbatch.application.dtos import HistoryPage
from src.mailbatch.application.task_store import TaskStore
from src.mailbatch.domain.exceptions import (
    InvalidArgumentError,
    TaskAccessDeniedError,
    TaskNotFoundError,
)
from src.mailbatch.domain.models.task_state import TaskState
from src.mailbatch.domain.repositories import AddressRepository
from src.setup.batch_config import BatchSettings, get_batch_settings

logger = logging.getLogger(__name__)


class HistoryReader:
    """Read-only access to finished batches."""

    def __init__(
        self,
        store: TaskStore | None = None,
        addresses: AddressRepository | None = None,
        *,
        settings: BatchSettings | None = None,
    ) -> None:
        self._store = store or TaskStore()
        self._addresses = addresses or inject.instance(AddressRepository)
        self._settings = settings or get_batch_settings()

    async def list_history(
        self, owner_id: str, limit: int | None = None, offset: int = 0
    ) -> HistoryPage:
        if limit is None:
            limit = self._settings.HISTORY_DEFAULT_LIMIT
        limit = max(1, min(limit, self._settings.HISTORY_MAX_LIMIT))
        offset = max(offset, 0)
        records, total = await self._store.list_records(owner_id, limit=limit, offset=offset)
        return HistoryPage(history=records, total=total, limit=limit, offset=offset)

    async def download_addresses(self, owner_id: str, task_id: str) -> str:
        """
        Newline-joined addresses of a completed task. The ephemeral task carries the
        exact list; once it has expired the list is rebuilt from the address table
        using the record's time window and domain, which can miss or pick up
        addresses when the owner ran overlapping batches on the same domain.
        """
        task = await self._store.find(task_id)
        if task is not None:
            if task.owner_id != owner_id:
                raise TaskAccessDeniedError(task_id, owner_id)
            if task.status != TaskState.COMPLETED:
                raise InvalidArgumentError("Task has not completed yet.")
            addresses = list(task.address_list)
        else:
            addresses = await self._reconstruct(owner_id, task_id)

        if not addresses:
            raise InvalidArgumentError("No addresses available for download.")
        return "\n".join(addresses)

    async def _reconstruct(self, owner_id: str, task_id: str) -> list[str]:
        record = await self._store.get_record(task_id)
        if record is None:
            raise TaskNotFoundError(task_id)
        if record.owner_id != owner_id:
            raise TaskAccessDeniedError(task_id, owner_id)
        if record.status != TaskState.COMPLETED:
            raise InvalidArgumentError("Task has not completed yet.")

        end = record.completed_at or datetime.now(UTC)
        logger.info(
            "Rebuilding address list from storage",
            extra={"task_id": task_id, "domain": record.domain, "expected": record.created_count},
        )
        return await self._addresses.list_created_between(
            owner_id, record.domain, record.created_at, end, record.created_count
        )
