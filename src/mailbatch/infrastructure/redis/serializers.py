from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from src.mailbatch.domain.models.batch_task import BatchTask

TASK_KEY_PREFIX = "batch_task:"


def task_key(task_id: str) -> str:
    return f"{TASK_KEY_PREFIX}{task_id}"


def _as_str(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


def encode_task(task: BatchTask) -> str:
    return task.model_dump_json()


def decode_task(raw: Any) -> BatchTask:
    try:
        return BatchTask.model_validate_json(_as_str(raw))
    except ValidationError as exc:
        raise ValueError("Invalid task payload") from exc
