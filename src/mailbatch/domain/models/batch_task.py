from datetime import datetime

from pydantic import BaseModel, Field

from src.mailbatch.domain.models.task_state import TaskState


class BatchTask(BaseModel):
    """Ephemeral working copy of a batch provisioning task."""

    task_id: str = Field(description="Unique task identifier.")
    owner_id: str = Field(description="User that requested the batch.")
    domain: str = Field(description="Domain every address is created under.")
    expiry_time: int = Field(
        description="Address lifetime in milliseconds; 0 means never expires."
    )
    total_count: int = Field(ge=1, description="Target number of addresses.")
    processed_count: int = Field(
        default=0, ge=0, description="Generation attempts consumed so far."
    )
    created_count: int = Field(default=0, ge=0, description="Addresses actually persisted.")
    status: TaskState = Field(default=TaskState.PENDING, description="Lifecycle state.")
    error: str | None = Field(default=None, description="Failure message when failed.")
    address_list: list[str] = Field(
        default_factory=list, description="Persisted addresses in creation order."
    )
    created_at: datetime = Field(description="When the task was created.")
    updated_at: datetime = Field(description="When the task was last written.")
    version: int = Field(
        default=0, ge=0, description="Write sequence number used for compare-and-set."
    )

    @property
    def remaining(self) -> int:
        return max(self.total_count - self.processed_count, 0)

    @property
    def has_more(self) -> bool:
        return self.processed_count < self.total_count
