from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.mailbatch.domain.models.task_state import TaskState


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateBatchRequest(CamelModel):
    domain: str = Field(..., description="Domain from the configured allow-list.")
    expiry_policy: int = Field(
        ..., description="Address lifetime in milliseconds; 0 keeps addresses forever."
    )
    total_count: int = Field(..., description="Number of addresses to create.")


class CreateBatchResponse(CamelModel):
    task_id: str = Field(..., description="Batch task id")
    status: TaskState


class ProgressResponse(CamelModel):
    status: TaskState
    processed_count: int
    total_count: int
    created_count: int
    progress_percent: int
    has_more: bool
    error: str | None = None


class StatusResponse(CamelModel):
    task_id: str
    status: TaskState
    total_count: int
    processed_count: int
    created_count: int
    progress_percent: int
    error: str | None = None
    created_at: datetime
    updated_at: datetime


class HistoryItem(CamelModel):
    task_id: str
    domain: str
    total_count: int
    created_count: int
    status: TaskState
    error: str | None = None
    created_at: datetime
    completed_at: datetime | None = None


class HistoryResponse(CamelModel):
    history: list[HistoryItem]
    total: int
    limit: int
    offset: int
