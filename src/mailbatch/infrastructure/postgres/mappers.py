from __future__ import annotations

from uuid import uuid4

from src.mailbatch.domain.models.address import NewAddress
from src.mailbatch.domain.models.task_record import TaskRecord
from src.mailbatch.infrastructure.postgres.orm import BatchTaskRow


class OrmMapper:
    @staticmethod
    def to_address_values(address: NewAddress) -> dict:
        return {
            "id": str(uuid4()),
            "address": address.address,
            "owner_id": address.owner_id,
            "created_at": address.created_at,
            "expires_at": address.expires_at,
        }

    @staticmethod
    def to_record_row(record: TaskRecord) -> BatchTaskRow:
        return BatchTaskRow(
            task_id=record.task_id,
            owner_id=record.owner_id,
            domain=record.domain,
            total_count=record.total_count,
            created_count=record.created_count,
            status=record.status,
            error=record.error,
            created_at=record.created_at,
            completed_at=record.completed_at,
        )

    @staticmethod
    def to_domain_record(row: BatchTaskRow) -> TaskRecord:
        return TaskRecord(
            task_id=row.task_id,
            owner_id=row.owner_id,
            domain=row.domain,
            total_count=row.total_count,
            created_count=row.created_count,
            status=row.status,
            error=row.error,
            created_at=row.created_at,
            completed_at=row.completed_at,
        )
