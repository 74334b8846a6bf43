import asyncio
import logging

from src.mailbatch.domain.exceptions import TaskNotFoundError
from src.mailbatch.domain.models.progress import ProgressSnapshot
from src.mailbatch.infrastructure.celery.app import ADVANCE_BATCH_TASK, celery_app
from src.setup.app_config import worker_processor
from src.setup.celery_config import get_celery_settings

logger = logging.getLogger(__name__)
_settings = get_celery_settings()


async def _advance(task_id: str) -> ProgressSnapshot:
    async with worker_processor() as processor:
        return await processor.advance(task_id)


@celery_app.task(name=ADVANCE_BATCH_TASK, bind=True)
def advance_batch(self, task_id: str) -> dict | None:
    """
    Advance one chunk and re-enqueue while work remains.
    Processing failures are already recorded on the task before they propagate.
    """
    try:
        snapshot = asyncio.run(_advance(task_id))
    except TaskNotFoundError:
        logger.warning("Batch task vanished before processing", extra={"task_id": task_id})
        return None

    logger.info(
        "Batch chunk done",
        extra={
            "task_id": task_id,
            "status": snapshot.status.value,
            "processed": snapshot.processed_count,
            "total": snapshot.total_count,
        },
    )
    if snapshot.has_more:
        self.apply_async(
            args=[task_id],
            queue=_settings.BATCH_QUEUE,
            countdown=_settings.CHAIN_COUNTDOWN_SECONDS,
        )
    return snapshot.model_dump(mode="json")
