from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import inject
from sqlalchemy.pool import NullPool

from src.mailbatch.application.processor import ChunkProcessor
from src.mailbatch.application.task_store import TaskStore
from src.mailbatch.domain.repositories import (
    AddressRepository,
    TaskRecordRepository,
    TaskStateRepository,
    TaskTriggerRepository,
    UserContextProvider,
)
from src.mailbatch.infrastructure.auth.headers import HeaderUserContextProvider
from src.mailbatch.infrastructure.celery.trigger import CeleryTaskTrigger
from src.mailbatch.infrastructure.postgres.orm import PostgresOrm
from src.mailbatch.infrastructure.postgres.repositories import (
    PostgresAddressRepository,
    PostgresTaskRecordRepository,
)
from src.mailbatch.infrastructure.redis.client import RedisClient
from src.mailbatch.infrastructure.redis.repositories import RedisTaskStateRepository
from src.setup.db_config import get_database_settings
from src.setup.redis_config import get_redis_settings

_orm: PostgresOrm | None = None
_redis: RedisClient | None = None


def _get_orm() -> PostgresOrm:
    global _orm
    if _orm is None:
        settings = get_database_settings()
        _orm = PostgresOrm(settings.DATABASE_URL, echo=settings.DB_ECHO, **settings.pool_options)
    return _orm


def _get_redis() -> RedisClient:
    global _redis
    if _redis is None:
        _redis = RedisClient.from_settings(get_redis_settings())
    return _redis


def _config(binder: inject.Binder) -> None:
    # Constructors run lazily so importing the API does not need live backends.
    binder.bind_to_constructor(
        TaskStateRepository,
        lambda: RedisTaskStateRepository(_get_redis(), get_redis_settings().TASK_TTL_SECONDS),
    )
    binder.bind_to_constructor(TaskRecordRepository, lambda: PostgresTaskRecordRepository(_get_orm()))
    binder.bind_to_constructor(AddressRepository, lambda: PostgresAddressRepository(_get_orm()))
    binder.bind_to_constructor(TaskTriggerRepository, CeleryTaskTrigger)
    binder.bind(UserContextProvider, HeaderUserContextProvider())


def configure_di() -> None:
    """Configure the process-wide injector once."""
    if not inject.is_configured():
        inject.configure(_config)


async def close_resources() -> None:
    global _orm, _redis
    if _redis is not None:
        await _redis.close()
        _redis = None
    if _orm is not None:
        await _orm.dispose()
        _orm = None


@asynccontextmanager
async def worker_processor() -> AsyncIterator[ChunkProcessor]:
    """
    Chunk processor with connections private to one event loop. Celery tasks run
    each invocation under a fresh ``asyncio.run``, so pooled connections cannot
    be shared across invocations.
    """
    db_settings = get_database_settings()
    redis_settings = get_redis_settings()
    orm = PostgresOrm(db_settings.DATABASE_URL, echo=db_settings.DB_ECHO, poolclass=NullPool)
    redis_client = RedisClient.from_settings(redis_settings)
    try:
        addresses = PostgresAddressRepository(orm)
        store = TaskStore(
            RedisTaskStateRepository(redis_client, redis_settings.TASK_TTL_SECONDS),
            PostgresTaskRecordRepository(orm),
        )
        yield ChunkProcessor(store, addresses)
    finally:
        await redis_client.close()
        await orm.dispose()
