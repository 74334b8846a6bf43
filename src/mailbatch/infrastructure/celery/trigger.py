from __future__ import annotations

import asyncio
import logging

from celery import Celery

from src.mailbatch.domain.repositories import TaskTriggerRepository
from src.mailbatch.infrastructure.celery.app import ADVANCE_BATCH_TASK, celery_app
from src.setup.celery_config import get_celery_settings

logger = logging.getLogger(__name__)


class CeleryTaskTrigger(TaskTriggerRepository):
    """
    Enqueues ``advance_batch`` on the broker. The worker re-enqueues it while the
    task has work left, so one message starts the whole chain.
    """

    def __init__(self, celery_app_instance: Celery = celery_app, queue: str | None = None) -> None:
        self._celery_app = celery_app_instance
        self._queue = queue or get_celery_settings().BATCH_QUEUE

    async def trigger(self, task_id: str) -> None:
        async_result = await asyncio.to_thread(
            self._celery_app.send_task,
            ADVANCE_BATCH_TASK,
            args=[task_id],
            queue=self._queue,
            retry=False,
        )
        logger.debug(
            "Enqueued batch advance", extra={"task_id": task_id, "message_id": async_result.id}
        )
