from datetime import datetime

from pydantic import BaseModel, Field

from src.mailbatch.domain.models.batch_task import BatchTask
from src.mailbatch.domain.models.task_state import TaskState


def progress_percent(processed_count: int, total_count: int) -> int:
    """Whole percentage, rounding halves up."""
    if total_count <= 0:
        return 0
    return (processed_count * 200 + total_count) // (total_count * 2)


class ProgressSnapshot(BaseModel):
    """Progress returned by each chunk invocation."""

    status: TaskState
    processed_count: int
    total_count: int
    created_count: int
    progress_percent: int
    has_more: bool
    error: str | None = None

    @classmethod
    def of(cls, task: BatchTask) -> "ProgressSnapshot":
        return cls(
            status=task.status,
            processed_count=task.processed_count,
            total_count=task.total_count,
            created_count=task.created_count,
            progress_percent=progress_percent(task.processed_count, task.total_count),
            has_more=task.has_more and not task.status.is_terminal,
            error=task.error,
        )


class TaskStatusView(BaseModel):
    """Owner-facing status of a task."""

    task_id: str
    status: TaskState
    total_count: int
    processed_count: int
    created_count: int
    progress_percent: int
    error: str | None = Field(default=None)
    created_at: datetime
    updated_at: datetime

    @classmethod
    def of(cls, task: BatchTask) -> "TaskStatusView":
        return cls(
            task_id=task.task_id,
            status=task.status,
            total_count=task.total_count,
            processed_count=task.processed_count,
            created_count=task.created_count,
            progress_percent=progress_percent(task.processed_count, task.total_count),
            error=task.error,
            created_at=task.created_at,
            updated_at=task.updated_at,
        )
