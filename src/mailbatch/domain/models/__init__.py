from src.mailbatch.domain.models.address import NewAddress
from src.mailbatch.domain.models.batch_task import BatchTask
from src.mailbatch.domain.models.progress import ProgressSnapshot, TaskStatusView, progress_percent
from src.mailbatch.domain.models.task_record import TaskRecord
from src.mailbatch.domain.models.task_state import TaskState
from src.mailbatch.domain.models.user import UserContext

__all__ = [
    "NewAddress",
    "BatchTask",
    "ProgressSnapshot",
    "TaskStatusView",
    "progress_percent",
    "TaskRecord",
    "TaskState",
    "UserContext",
]
