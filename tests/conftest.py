from __future__ import annotations

import importlib
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.mailbatch.application.driver import TaskDriver
from src.mailbatch.application.generator import AddressGenerator
from src.mailbatch.application.history import HistoryReader
from src.mailbatch.application.processor import ChunkProcessor
from src.mailbatch.application.task_store import TaskStore
from src.mailbatch.domain.exceptions import TaskNotFoundError, TaskVersionConflictError
from src.mailbatch.domain.models.address import NewAddress
from src.mailbatch.domain.models.batch_task import BatchTask
from src.mailbatch.domain.models.task_record import TaskRecord
from src.mailbatch.domain.models.task_state import TaskState
from src.mailbatch.domain.repositories import (
    AddressRepository,
    TaskRecordRepository,
    TaskStateRepository,
    TaskTriggerRepository,
    UserContextProvider,
)
from src.mailbatch.infrastructure.auth.headers import HeaderUserContextProvider
from src.setup.api_config import ApiSettings


class InMemoryTaskStateRepository(TaskStateRepository):
    """Dict-backed stand-in for the Redis task store, with the same CAS contract."""

    def __init__(self) -> None:
        self.tasks: dict[str, BatchTask] = {}
        self.writes: list[BatchTask] = []

    async def create(self, task: BatchTask) -> None:
        self.tasks[task.task_id] = task.model_copy(deep=True)
        self.writes.append(task.model_copy(deep=True))

    async def get(self, task_id: str) -> BatchTask | None:
        task = self.tasks.get(task_id)
        return task.model_copy(deep=True) if task else None

    async def compare_and_set(self, task: BatchTask, expected_version: int) -> BatchTask:
        stored = self.tasks.get(task.task_id)
        if stored is None:
            raise TaskNotFoundError(task.task_id)
        if stored.version != expected_version:
            raise TaskVersionConflictError(task.task_id, expected_version, stored.version)
        written = task.model_copy(update={"version": expected_version + 1}, deep=True)
        self.tasks[task.task_id] = written
        self.writes.append(written.model_copy(deep=True))
        return written.model_copy(deep=True)


class InMemoryTaskRecordRepository(TaskRecordRepository):
    def __init__(self) -> None:
        self.records: dict[str, TaskRecord] = {}
        self.fail_writes = False

    async def upsert(self, record: TaskRecord) -> None:
        if self.fail_writes:
            raise RuntimeError("record store unavailable")
        self.records[record.task_id] = record

    async def get(self, task_id: str) -> TaskRecord | None:
        return self.records.get(task_id)

    async def list_for_owner(
        self, owner_id: str, *, limit: int, offset: int
    ) -> tuple[list[TaskRecord], int]:
        owned = sorted(
            (record for record in self.records.values() if record.owner_id == owner_id),
            key=lambda record: record.created_at,
            reverse=True,
        )
        return owned[offset : offset + limit], len(owned)


@dataclass
class StoredAddress:
    address: str
    owner_id: str
    created_at: datetime
    expires_at: datetime


class InMemoryAddressRepository(AddressRepository):
    """Address table keyed by the lower-cased address, like the unique index."""

    def __init__(self) -> None:
        self.rows: dict[str, StoredAddress] = {}
        self.insert_calls: list[int] = []
        self.fail_inserts = False

    def seed(self, address: str, owner_id: str = "someone", expires_at: datetime | None = None) -> None:
        now = datetime.now(UTC)
        self.rows[address.lower()] = StoredAddress(
            address=address,
            owner_id=owner_id,
            created_at=now,
            expires_at=expires_at or now + timedelta(days=1),
        )

    async def exists(self, address: str) -> bool:
        return address.lower() in self.rows

    async def insert_many(self, addresses: Sequence[NewAddress]) -> list[str]:
        if self.fail_inserts:
            raise RuntimeError("insert failed")
        self.insert_calls.append(len(addresses))
        inserted = []
        for item in addresses:
            key = item.address.lower()
            if key in self.rows:
                continue
            self.rows[key] = StoredAddress(
                address=item.address,
                owner_id=item.owner_id,
                created_at=item.created_at,
                expires_at=item.expires_at,
            )
            inserted.append(item.address)
        return inserted

    async def count_active(self, owner_id: str, now: datetime) -> int:
        return sum(1 for row in self.rows.values() if row.owner_id == owner_id and row.expires_at > now)

    async def list_created_between(
        self,
        owner_id: str,
        domain: str,
        start: datetime,
        end: datetime,
        limit: int,
    ) -> list[str]:
        matches = sorted(
            (
                row
                for row in self.rows.values()
                if row.owner_id == owner_id
                and row.address.lower().endswith(f"@{domain.lower()}")
                and start <= row.created_at <= end
            ),
            key=lambda row: row.created_at,
        )
        return [row.address for row in matches[:limit]]


class StubTaskTrigger(TaskTriggerRepository):
    def __init__(self) -> None:
        self.triggered: list[str] = []
        self.fail = False

    async def trigger(self, task_id: str) -> None:
        if self.fail:
            raise ConnectionError("broker unavailable")
        self.triggered.append(task_id)


@dataclass
class Backends:
    tasks: InMemoryTaskStateRepository
    records: InMemoryTaskRecordRepository
    addresses: InMemoryAddressRepository
    trigger: StubTaskTrigger

    @property
    def store(self) -> TaskStore:
        return TaskStore(self.tasks, self.records)


def make_task(
    *,
    task_id: str = "task-1",
    owner_id: str = "user-1",
    domain: str = "moemail.app",
    total_count: int = 250,
    status: TaskState = TaskState.PENDING,
    **overrides,
) -> BatchTask:
    now = datetime.now(UTC)
    fields = dict(
        task_id=task_id,
        owner_id=owner_id,
        domain=domain,
        expiry_time=3600000,
        total_count=total_count,
        status=status,
        created_at=now,
        updated_at=now,
    )
    fields.update(overrides)
    return BatchTask(**fields)


@pytest.fixture
def backends() -> Backends:
    return Backends(
        tasks=InMemoryTaskStateRepository(),
        records=InMemoryTaskRecordRepository(),
        addresses=InMemoryAddressRepository(),
        trigger=StubTaskTrigger(),
    )


@pytest.fixture
def api_settings() -> ApiSettings:
    return ApiSettings(EMAIL_DOMAINS="moemail.app,example.org", MAX_ACTIVE_EMAILS=1000)


@pytest.fixture
def processor(backends: Backends) -> ChunkProcessor:
    return ChunkProcessor(backends.store, backends.addresses)


@pytest.fixture
def driver(backends: Backends, api_settings: ApiSettings) -> TaskDriver:
    return TaskDriver(backends.store, backends.addresses, backends.trigger, settings=api_settings)


@pytest.fixture
def history(backends: Backends) -> HistoryReader:
    return HistoryReader(backends.store, backends.addresses)


@pytest.fixture
def generator(backends: Backends) -> AddressGenerator:
    return AddressGenerator(backends.addresses)


@pytest.fixture
def env_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    """Provide environment variables read by the settings classes."""
    monkeypatch.setenv("APP_NAME", "Test API")
    monkeypatch.setenv("APP_VERSION", "0.1.0")
    monkeypatch.setenv("EMAIL_DOMAINS", "moemail.app,example.org")
    monkeypatch.setenv("MAX_ACTIVE_EMAILS", "1000")


def _patch_inject_instance(
    monkeypatch: pytest.MonkeyPatch, backends: Backends
) -> Callable[[object], object]:
    """Patch `inject.instance` to hand out the in-memory backends."""
    import inject

    bindings: dict[object, object] = {
        TaskStateRepository: backends.tasks,
        TaskRecordRepository: backends.records,
        AddressRepository: backends.addresses,
        TaskTriggerRepository: backends.trigger,
        UserContextProvider: HeaderUserContextProvider(),
    }

    def fake_instance(interface: object) -> object:
        if interface in bindings:
            return bindings[interface]
        raise RuntimeError(f"Unexpected dependency request: {interface}")

    monkeypatch.setattr(inject, "instance", fake_instance)
    return fake_instance


@pytest.fixture
def api_client(env_settings: None, backends: Backends, monkeypatch: pytest.MonkeyPatch):
    """FastAPI test client with services wired to the in-memory backends."""
    _patch_inject_instance(monkeypatch, backends)

    # Reload so module-level service singletons pick up the patched injector.
    routes_module = importlib.reload(importlib.import_module("src.mailbatch.presentation.routes"))

    app = FastAPI()
    app.include_router(routes_module.router)
    client = TestClient(app)
    return client, backends
