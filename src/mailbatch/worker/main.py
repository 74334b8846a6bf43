from src.mailbatch.infrastructure.celery.app import celery_app
from src.setup.celery_config import get_celery_settings
from src.setup.logging_config import configure_logging


def main() -> None:
    settings = get_celery_settings()
    configure_logging(settings.LOG_LEVEL)
    celery_app.worker_main(
        [
            "worker",
            "-l",
            settings.LOG_LEVEL,
            "--concurrency",
            str(settings.WORKER_CONCURRENCY),
            "-Q",
            settings.BATCH_QUEUE,
            # Chunks are long-running; one in flight per process keeps redelivery fair.
            "--prefetch-multiplier",
            "1",
        ]
    )


if __name__ == "__main__":
    main()
