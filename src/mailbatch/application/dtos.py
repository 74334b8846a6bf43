from pydantic import BaseModel, Field

from src.mailbatch.domain.models.task_record import TaskRecord


class HistoryPage(BaseModel):
    """One page of an owner's permanent task records, newest first."""

    history: list[TaskRecord] = Field(default_factory=list)
    total: int = Field(description="Total number of records for the owner.")
    limit: int
    offset: int
