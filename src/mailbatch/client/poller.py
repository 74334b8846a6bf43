from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

_TERMINAL = {"completed", "failed"}


def needs_trigger(status: dict[str, Any]) -> bool:
    """Whether the client should ask the server to process another chunk."""
    state = status.get("status")
    processed = status.get("processedCount", 0)
    total = status.get("totalCount", 0)
    if state == "pending":
        return processed == 0
    return state == "processing" and processed < total


class BatchPoller:
    """
    Client-driven progress loop for a batch task. Polls the status endpoint and
    fires a processing trigger whenever work remains, so the task converges even
    when the server-side queue drops a message. Cancel the awaiting coroutine to
    stop polling.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        interval: float = 2.0,
        error_interval: float = 3.0,
    ) -> None:
        self._client = client
        self._interval = interval
        self._error_interval = error_interval

    async def create(self, domain: str, expiry_policy: int, total_count: int) -> str:
        response = await self._client.post(
            "/batch/create",
            json={"domain": domain, "expiryPolicy": expiry_policy, "totalCount": total_count},
        )
        response.raise_for_status()
        return response.json()["taskId"]

    async def status(self, task_id: str) -> dict[str, Any]:
        response = await self._client.get(f"/batch/status/{task_id}")
        response.raise_for_status()
        return response.json()

    async def trigger(self, task_id: str) -> None:
        """Fire one processing request; failures are logged and left to the next poll."""
        try:
            response = await self._client.post("/batch/process", params={"taskId": task_id})
        except httpx.HTTPError as exc:
            logger.warning("Failed to trigger process", extra={"task_id": task_id, "error": str(exc)})
            return
        if response.is_error:
            logger.warning(
                "Failed to trigger process",
                extra={"task_id": task_id, "status_code": response.status_code},
            )

    async def wait(self, task_id: str) -> dict[str, Any]:
        """Poll until the task is completed or failed and return its final status."""
        while True:
            try:
                status = await self.status(task_id)
            except httpx.HTTPStatusError as exc:
                # 4xx (expired, foreign, unauthenticated) will not heal by retrying.
                if exc.response.status_code < 500:
                    raise
                logger.warning("Failed to poll task status", extra={"task_id": task_id, "error": str(exc)})
                await asyncio.sleep(self._error_interval)
                continue
            except httpx.HTTPError as exc:
                logger.warning("Failed to poll task status", extra={"task_id": task_id, "error": str(exc)})
                await asyncio.sleep(self._error_interval)
                continue

            if status.get("status") in _TERMINAL:
                return status
            if needs_trigger(status):
                await self.trigger(task_id)
            await asyncio.sleep(self._interval)

    async def run(self, domain: str, expiry_policy: int, total_count: int) -> dict[str, Any]:
        task_id = await self.create(domain, expiry_policy, total_count)
        return await self.wait(task_id)
