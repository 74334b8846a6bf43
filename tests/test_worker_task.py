import pytest

from src.mailbatch.domain.exceptions import TaskNotFoundError
from src.mailbatch.domain.models.progress import ProgressSnapshot
from src.mailbatch.domain.models.task_state import TaskState
from src.mailbatch.worker.tasks import advance_batch as module


def _snapshot(status: TaskState, processed: int, has_more: bool) -> ProgressSnapshot:
    return ProgressSnapshot(
        status=status,
        processed_count=processed,
        total_count=250,
        created_count=processed,
        progress_percent=processed * 100 // 250,
        has_more=has_more,
    )


@pytest.fixture
def enqueued(monkeypatch: pytest.MonkeyPatch) -> list[dict]:
    calls: list[dict] = []
    monkeypatch.setattr(module.advance_batch, "apply_async", lambda **kwargs: calls.append(kwargs))
    return calls


def test_chunk_with_work_left_is_re_enqueued(monkeypatch, enqueued) -> None:
    async def fake_advance(task_id: str) -> ProgressSnapshot:
        return _snapshot(TaskState.PROCESSING, 100, True)

    monkeypatch.setattr(module, "_advance", fake_advance)

    result = module.advance_batch.run("task-1")

    assert result["status"] == "processing"
    assert result["has_more"] is True
    assert enqueued == [{"args": ["task-1"], "queue": "batch-tasks", "countdown": 0.5}]


def test_finished_chunk_stops_the_chain(monkeypatch, enqueued) -> None:
    async def fake_advance(task_id: str) -> ProgressSnapshot:
        return _snapshot(TaskState.COMPLETED, 250, False)

    monkeypatch.setattr(module, "_advance", fake_advance)

    result = module.advance_batch.run("task-1")

    assert result["status"] == "completed"
    assert enqueued == []


def test_vanished_task_is_dropped(monkeypatch, enqueued) -> None:
    async def fake_advance(task_id: str) -> ProgressSnapshot:
        raise TaskNotFoundError(task_id)

    monkeypatch.setattr(module, "_advance", fake_advance)

    assert module.advance_batch.run("task-1") is None
    assert enqueued == []


def test_processing_failure_propagates(monkeypatch, enqueued) -> None:
    async def fake_advance(task_id: str) -> ProgressSnapshot:
        raise RuntimeError("insert failed")

    monkeypatch.setattr(module, "_advance", fake_advance)

    with pytest.raises(RuntimeError):
        module.advance_batch.run("task-1")
    assert enqueued == []
