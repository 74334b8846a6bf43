from datetime import datetime

from pydantic import BaseModel, Field

from src.mailbatch.domain.models.task_state import TaskState


class TaskRecord(BaseModel):
    """Permanent history projection of a task that reached a terminal state."""

    task_id: str = Field(description="Identifier of the task.")
    owner_id: str = Field(description="User that requested the batch.")
    domain: str = Field(description="Domain of the batch.")
    total_count: int = Field(description="Requested number of addresses.")
    created_count: int = Field(description="Addresses actually persisted.")
    status: TaskState = Field(description="Terminal state of the task.")
    error: str | None = Field(default=None, description="Failure message, if any.")
    created_at: datetime = Field(description="When the task was created.")
    completed_at: datetime | None = Field(
        default=None, description="When the task reached its terminal state."
    )
