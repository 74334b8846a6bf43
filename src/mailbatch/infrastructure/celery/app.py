from celery import Celery

from src.setup.celery_config import get_celery_settings

ADVANCE_BATCH_TASK = "advance_batch"

_settings = get_celery_settings()

celery_app = Celery(
    "mailbatch",
    broker=_settings.REDIS_URL,
    backend=_settings.REDIS_URL,
    include=["src.mailbatch.worker.tasks.advance_batch"],
)

celery_app.conf.update(
    task_ignore_result=False,
    result_expires=_settings.RESULT_TTL_SECONDS,
    task_routes={ADVANCE_BATCH_TASK: {"queue": _settings.BATCH_QUEUE}},
    # At-least-once: a worker crash mid-chunk re-delivers the trigger.
    task_acks_late=True,
)
