from __future__ import annotations

import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import PlainTextResponse

from src.mailbatch.application.driver import TaskDriver
from src.mailbatch.application.history import HistoryReader
from src.mailbatch.application.processor import ChunkProcessor
from src.mailbatch.domain.exceptions import (
    BatchError,
    InvalidArgumentError,
    QuotaExceededError,
    TaskAccessDeniedError,
    TaskNotFoundError,
    UnauthorizedError,
)
from src.mailbatch.domain.models.user import UserContext
from src.mailbatch.presentation.dependencies import optional_user, require_user
from src.mailbatch.presentation.schemas import (
    CreateBatchRequest,
    CreateBatchResponse,
    HistoryItem,
    HistoryResponse,
    ProgressResponse,
    StatusResponse,
)

router = APIRouter(prefix="/batch", tags=["batch"])
logger = logging.getLogger(__name__)

# Instantiate services once (simple DI)
_driver = TaskDriver()
_processor = ChunkProcessor()
_history = HistoryReader()

_STATUS_BY_ERROR: tuple[tuple[type[BatchError], int], ...] = (
    (UnauthorizedError, 401),
    (TaskAccessDeniedError, 403),
    (QuotaExceededError, 403),
    (TaskNotFoundError, 404),
    (InvalidArgumentError, 400),
)


def _http_error(exc: BatchError, fallback: str) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=500, detail=fallback)


@router.post(
    "/create",
    response_model=CreateBatchResponse,
    summary="Start batch creation",
    description=(
        "Queues an asynchronous task that creates `totalCount` addresses. "
        "Returns the task id; progress is read from `/batch/status/{taskId}`."
    ),
    responses={
        400: {"description": "Invalid domain, expiry or count."},
        401: {"description": "Unauthorized."},
        403: {"description": "Quota exceeded."},
        500: {"description": "Internal server error."},
    },
)
async def create_batch(body: CreateBatchRequest, user: UserContext = Depends(require_user)):
    try:
        task = await _driver.create_batch(user, body.domain, body.expiry_policy, body.total_count)
    except BatchError as exc:
        raise _http_error(exc, "Failed to create batch task") from exc
    except Exception:
        logger.exception("Failed to create batch task", extra={"owner_id": user.user_id})
        raise HTTPException(status_code=500, detail="Failed to create batch task")  # noqa: B904
    return CreateBatchResponse(task_id=task.task_id, status=task.status)


@router.post(
    "/process",
    response_model=ProgressResponse,
    summary="Advance a batch task",
    description=(
        "Processes the next chunk of the task. Safe to call repeatedly; finished "
        "tasks return their final snapshot unchanged."
    ),
    responses={
        400: {"description": "Missing task id."},
        404: {"description": "Task not found or expired."},
        500: {"description": "Chunk failed; the task is marked failed."},
    },
)
async def process_batch(
    task_id: str | None = Query(default=None, alias="taskId", description="Batch task id"),
    user: UserContext | None = Depends(optional_user),
):
    if not task_id:
        raise HTTPException(status_code=400, detail="Task id is required")
    try:
        snapshot = await _processor.advance(task_id, owner_id=user.user_id if user else None)
    except BatchError as exc:
        raise _http_error(exc, "Failed to process batch task") from exc
    except Exception:
        raise HTTPException(status_code=500, detail="Failed to process batch task")  # noqa: B904
    return ProgressResponse.model_validate(snapshot.model_dump())


@router.get(
    "/status/{task_id}",
    response_model=StatusResponse,
    summary="Check batch progress",
    responses={
        401: {"description": "Unauthorized."},
        403: {"description": "Task belongs to another user."},
        404: {"description": "Task not found or expired."},
    },
)
async def batch_status(task_id: str, user: UserContext = Depends(require_user)):
    try:
        status = await _driver.get_status(user, task_id)
    except BatchError as exc:
        raise _http_error(exc, "Failed to get batch task status") from exc
    return StatusResponse.model_validate(status.model_dump())


@router.get(
    "/download/{task_id}",
    response_class=PlainTextResponse,
    summary="Download created addresses",
    responses={
        400: {"description": "Task not completed or nothing to download."},
        401: {"description": "Unauthorized."},
        403: {"description": "Task belongs to another user."},
        404: {"description": "Task not found."},
    },
)
async def download_batch(task_id: str, user: UserContext = Depends(require_user)):
    try:
        content = await _history.download_addresses(user.user_id, task_id)
    except BatchError as exc:
        raise _http_error(exc, "Download failed") from exc
    filename = quote(f"emails-{task_id}.txt")
    return PlainTextResponse(
        content,
        media_type="text/plain; charset=utf-8",
        headers={
            "Content-Disposition": f"attachment; filename=\"{filename}\"; filename*=UTF-8''{filename}",
        },
    )


@router.get(
    "/history",
    response_model=HistoryResponse,
    summary="List finished batches",
    responses={401: {"description": "Unauthorized."}},
)
async def batch_history(
    limit: int | None = Query(default=None, description="Page size, at most 100"),
    offset: int = Query(default=0, description="Records to skip"),
    user: UserContext = Depends(require_user),
):
    try:
        page = await _history.list_history(user.user_id, limit=limit, offset=offset)
    except BatchError as exc:
        raise _http_error(exc, "Failed to fetch batch history") from exc
    return HistoryResponse(
        history=[HistoryItem.model_validate(record.model_dump()) for record in page.history],
        total=page.total,
        limit=page.limit,
        offset=page.offset,
    )
