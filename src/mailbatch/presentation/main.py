from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.setup.api_config import get_api_settings
from src.setup.app_config import close_resources, configure_di
from src.setup.logging_config import configure_logging

settings = get_api_settings()
configure_logging(settings.LOG_LEVEL)
configure_di()


@asynccontextmanager
async def _lifespan(_: FastAPI) -> AsyncIterator[None]:
    yield
    await close_resources()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Asynchronous batch provisioning of disposable email addresses",
    lifespan=_lifespan,
)

from src.mailbatch.presentation.routes import router as api_router  # noqa: E402

app.include_router(api_router, prefix="")
