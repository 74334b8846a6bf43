import pytest

from src.mailbatch.application.task_store import TaskStore, to_record
from src.mailbatch.domain.exceptions import (
    StorageFailureError,
    TaskAccessDeniedError,
    TaskNotFoundError,
    TaskVersionConflictError,
)
from src.mailbatch.domain.models.task_state import TaskState
from tests.conftest import InMemoryTaskStateRepository, make_task


class AlwaysConflicting(InMemoryTaskStateRepository):
    async def compare_and_set(self, task, expected_version):
        raise TaskVersionConflictError(task.task_id, expected_version, expected_version + 1)


@pytest.mark.asyncio
async def test_update_bumps_version(backends) -> None:
    store = backends.store
    await store.create(make_task())

    def start(task):
        task.status = TaskState.PROCESSING
        return task

    updated = await store.update("task-1", start)

    assert updated.version == 1
    assert updated.status == TaskState.PROCESSING
    assert updated.updated_at >= updated.created_at


@pytest.mark.asyncio
async def test_update_without_change_skips_write(backends) -> None:
    store = backends.store
    await store.create(make_task())

    unchanged = await store.update("task-1", lambda task: None)

    assert unchanged.version == 0
    assert len(backends.tasks.writes) == 1


@pytest.mark.asyncio
async def test_update_gives_up_after_retries(backends) -> None:
    tasks = AlwaysConflicting()
    await tasks.create(make_task())
    store = TaskStore(tasks, backends.records, cas_retries=3)

    with pytest.raises(StorageFailureError, match="3 attempts"):
        await store.update("task-1", lambda task: task)


@pytest.mark.asyncio
async def test_load_owned_checks_owner(backends) -> None:
    store = backends.store
    await store.create(make_task())

    assert (await store.load_owned("user-1", "task-1")).task_id == "task-1"
    with pytest.raises(TaskAccessDeniedError):
        await store.load_owned("user-2", "task-1")
    with pytest.raises(TaskNotFoundError):
        await store.load("missing")


def test_record_carries_completion_time_only_when_terminal() -> None:
    running = make_task(status=TaskState.PROCESSING)
    done = make_task(status=TaskState.COMPLETED, processed_count=250, created_count=249)

    assert to_record(running).completed_at is None
    record = to_record(done)
    assert record.completed_at == done.updated_at
    assert record.created_count == 249
