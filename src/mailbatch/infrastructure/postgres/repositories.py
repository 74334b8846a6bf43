from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError

from src.mailbatch.domain.exceptions import StorageFailureError
from src.mailbatch.domain.models.address import NewAddress
from src.mailbatch.domain.models.task_record import TaskRecord
from src.mailbatch.domain.repositories import AddressRepository, TaskRecordRepository
from src.mailbatch.infrastructure.postgres.mappers import OrmMapper
from src.mailbatch.infrastructure.postgres.orm import AddressRow, BatchTaskRow, PostgresOrm


class PostgresAddressRepository(AddressRepository):
    """Postgres-backed address table; uniqueness is enforced on lower(address)."""

    def __init__(self, orm: PostgresOrm) -> None:
        self._orm = orm

    async def exists(self, address: str) -> bool:
        statement = (
            select(AddressRow.id)
            .where(func.lower(AddressRow.address) == address.lower())
            .limit(1)
        )
        try:
            async with self._orm.session_factory() as session:
                result = await session.execute(statement)
                return result.scalar_one_or_none() is not None
        except SQLAlchemyError as exc:
            raise StorageFailureError("Could not look up address.") from exc

    async def insert_many(self, addresses: Sequence[NewAddress]) -> list[str]:
        """Insert one sub-batch; rows losing a uniqueness race are skipped."""
        if not addresses:
            return []
        statement = (
            insert(AddressRow)
            .values([OrmMapper.to_address_values(address) for address in addresses])
            .on_conflict_do_nothing()
            .returning(AddressRow.address)
        )
        try:
            async with self._orm.session_factory() as session:
                async with session.begin():
                    result = await session.execute(statement)
                    returned = {value.lower() for value in result.scalars().all()}
        except SQLAlchemyError as exc:
            raise StorageFailureError("Could not insert addresses.") from exc
        # RETURNING order is not guaranteed; keep the caller's order.
        return [item.address for item in addresses if item.address.lower() in returned]

    async def count_active(self, owner_id: str, now: datetime) -> int:
        statement = (
            select(func.count())
            .select_from(AddressRow)
            .where(AddressRow.owner_id == owner_id, AddressRow.expires_at > now)
        )
        try:
            async with self._orm.session_factory() as session:
                result = await session.execute(statement)
                return int(result.scalar_one())
        except SQLAlchemyError as exc:
            raise StorageFailureError("Could not count active addresses.") from exc

    async def list_created_between(
        self,
        owner_id: str,
        domain: str,
        start: datetime,
        end: datetime,
        limit: int,
    ) -> list[str]:
        statement = (
            select(AddressRow.address)
            .where(
                AddressRow.owner_id == owner_id,
                func.lower(AddressRow.address).like(f"%@{domain.lower()}"),
                AddressRow.created_at >= start,
                AddressRow.created_at <= end,
            )
            .order_by(AddressRow.created_at, AddressRow.address)
            .limit(limit)
        )
        try:
            async with self._orm.session_factory() as session:
                result = await session.execute(statement)
                return list(result.scalars().all())
        except SQLAlchemyError as exc:
            raise StorageFailureError("Could not list addresses.") from exc


class PostgresTaskRecordRepository(TaskRecordRepository):
    """Permanent batch history using SQLAlchemy async sessions."""

    def __init__(self, orm: PostgresOrm) -> None:
        self._orm = orm

    async def upsert(self, record: TaskRecord) -> None:
        try:
            async with self._orm.session_factory() as session:
                async with session.begin():
                    await session.merge(OrmMapper.to_record_row(record))
        except SQLAlchemyError as exc:
            raise StorageFailureError(f"Could not write record for '{record.task_id}'.") from exc

    async def get(self, task_id: str) -> TaskRecord | None:
        try:
            async with self._orm.session_factory() as session:
                row = await session.get(BatchTaskRow, task_id)
        except SQLAlchemyError as exc:
            raise StorageFailureError(f"Could not read record for '{task_id}'.") from exc
        if row is None:
            return None
        return OrmMapper.to_domain_record(row)

    async def list_for_owner(
        self, owner_id: str, *, limit: int, offset: int
    ) -> tuple[list[TaskRecord], int]:
        """List an owner's records, newest first, with the owner's total."""
        statement = (
            select(BatchTaskRow)
            .where(BatchTaskRow.owner_id == owner_id)
            .order_by(BatchTaskRow.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        count_statement = (
            select(func.count()).select_from(BatchTaskRow).where(BatchTaskRow.owner_id == owner_id)
        )
        try:
            async with self._orm.session_factory() as session:
                rows = (await session.execute(statement)).scalars().all()
                total = (await session.execute(count_statement)).scalar_one()
        except SQLAlchemyError as exc:
            raise StorageFailureError("Could not list batch history.") from exc
        return [OrmMapper.to_domain_record(row) for row in rows], int(total)
