from __future__ import annotations

import logging
import secrets
from datetime import UTC, datetime

import inject

from src.mailbatch.application.task_store import TaskStore
from src.mailbatch.domain.exceptions import InvalidArgumentError, QuotaExceededError
from src.mailbatch.domain.models.batch_task import BatchTask
from src.mailbatch.domain.models.expiry import is_valid_expiry
from src.mailbatch.domain.models.progress import TaskStatusView
from src.mailbatch.domain.models.task_state import TaskState
from src.mailbatch.domain.models.user import UserContext
from src.mailbatch.domain.repositories import AddressRepository, TaskTriggerRepository
from src.setup.api_config import ApiSettings, get_api_settings
from src.setup.batch_config import BatchSettings, get_batch_settings

logger = logging.getLogger(__name__)


def new_task_id() -> str:
    return secrets.token_urlsafe(12)


class TaskDriver:
    """Creates batch tasks and hands them to the work queue."""

    def __init__(
        self,
        store: TaskStore | None = None,
        addresses: AddressRepository | None = None,
        trigger: TaskTriggerRepository | None = None,
        *,
        settings: ApiSettings | None = None,
        batch_settings: BatchSettings | None = None,
    ) -> None:
        self._store = store or TaskStore()
        self._addresses = addresses or inject.instance(AddressRepository)
        self._trigger = trigger or inject.instance(TaskTriggerRepository)
        self._settings = settings or get_api_settings()
        self._batch_settings = batch_settings or get_batch_settings()

    async def create_batch(
        self,
        user: UserContext,
        domain: str,
        expiry_time: int,
        total_count: int,
    ) -> BatchTask:
        """
        Validate the request, store a pending task and fire a best-effort trigger.
        Batches at or below the async threshold are rejected; they belong to the
        synchronous creation path.
        """
        if not is_valid_expiry(expiry_time):
            raise InvalidArgumentError("Invalid expiry time.")
        if domain not in self._settings.domains:
            raise InvalidArgumentError("Invalid domain.")
        if total_count < 1:
            raise InvalidArgumentError("Batch size must be at least 1.")

        await self._check_quota(user, total_count)

        threshold = self._batch_settings.ASYNC_THRESHOLD
        if total_count <= threshold:
            raise InvalidArgumentError(
                f"Batches of {threshold} or fewer addresses must use the synchronous creation path."
            )

        now = datetime.now(UTC)
        task = BatchTask(
            task_id=new_task_id(),
            owner_id=user.user_id,
            domain=domain,
            expiry_time=expiry_time,
            total_count=total_count,
            status=TaskState.PENDING,
            created_at=now,
            updated_at=now,
        )
        await self._store.create(task)
        logger.info(
            "Batch task created",
            extra={"task_id": task.task_id, "owner_id": user.user_id, "total": total_count},
        )
        await self.trigger(task.task_id)
        return task

    async def trigger(self, task_id: str) -> None:
        """Ask the work queue to advance the task; clients keep polling if this fails."""
        try:
            await self._trigger.trigger(task_id)
        except Exception:
            logger.warning("Failed to trigger batch task", extra={"task_id": task_id}, exc_info=True)

    async def get_status(self, user: UserContext, task_id: str) -> TaskStatusView:
        task = await self._store.load_owned(user.user_id, task_id)
        return TaskStatusView.of(task)

    async def _check_quota(self, user: UserContext, total_count: int) -> None:
        if user.role == self._settings.PRIVILEGED_ROLE:
            return
        maximum = self._settings.max_emails_for(user.role)
        current = await self._addresses.count_active(user.user_id, datetime.now(UTC))
        if current + total_count > maximum:
            raise QuotaExceededError(current, maximum, total_count)
