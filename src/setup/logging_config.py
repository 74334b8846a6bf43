import logging

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once per process."""
    logging.basicConfig(level=level.upper(), format=_FORMAT)
    # Celery and uvicorn attach their own handlers; keep the app logger at the requested level.
    logging.getLogger("src").setLevel(level.upper())
