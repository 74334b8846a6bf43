import httpx
import pytest

from src.mailbatch.client.poller import BatchPoller, needs_trigger


def _status(state: str, processed: int, total: int = 250) -> dict:
    return {"taskId": "task-1", "status": state, "processedCount": processed, "totalCount": total}


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        (_status("pending", 0), True),
        (_status("processing", 100), True),
        (_status("processing", 250), False),
        (_status("completed", 250), False),
        (_status("failed", 100), False),
    ],
)
def test_needs_trigger(status, expected) -> None:
    assert needs_trigger(status) is expected


class FakeServer:
    """Serves a scripted sequence of status responses and records triggers."""

    def __init__(self, statuses: list) -> None:
        self.statuses = list(statuses)
        self.triggers: list[str] = []
        self.created: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/batch/create":
            self.created.append(request.read())
            return httpx.Response(200, json={"taskId": "task-1", "status": "pending"})
        if request.url.path == "/batch/process":
            self.triggers.append(request.url.params["taskId"])
            return httpx.Response(200, json={})
        item = self.statuses.pop(0)
        if isinstance(item, Exception):
            raise item
        if isinstance(item, int):
            return httpx.Response(item, json={"detail": "error"})
        return httpx.Response(200, json=item)


def _poller(server: FakeServer) -> BatchPoller:
    client = httpx.AsyncClient(transport=httpx.MockTransport(server), base_url="http://test")
    return BatchPoller(client, interval=0, error_interval=0)


@pytest.mark.asyncio
async def test_wait_triggers_until_completed() -> None:
    server = FakeServer(
        [
            _status("pending", 0),
            _status("processing", 100),
            _status("processing", 200),
            _status("completed", 250),
        ]
    )

    final = await _poller(server).wait("task-1")

    assert final["status"] == "completed"
    assert server.triggers == ["task-1", "task-1", "task-1"]


@pytest.mark.asyncio
async def test_wait_survives_transient_errors() -> None:
    server = FakeServer(
        [
            httpx.ConnectError("down"),
            503,
            _status("failed", 100),
        ]
    )

    final = await _poller(server).wait("task-1")

    assert final["status"] == "failed"
    assert server.triggers == []


@pytest.mark.asyncio
async def test_wait_stops_on_client_error() -> None:
    server = FakeServer([404])

    with pytest.raises(httpx.HTTPStatusError):
        await _poller(server).wait("task-1")


@pytest.mark.asyncio
async def test_run_creates_then_waits() -> None:
    server = FakeServer([_status("completed", 100, total=100)])

    final = await _poller(server).run("moemail.app", 3600000, 100)

    assert final["processedCount"] == 100
    assert len(server.created) == 1
    assert b'"totalCount":100' in server.created[0].replace(b" ", b"")
