"""addresses and batch task records

Revision ID: 0001
Revises:
Create Date: 2026-10-16 00:00:00

"""
from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

task_state = sa.Enum("PENDING", "PROCESSING", "COMPLETED", "FAILED", name="batch_task_state")


def upgrade() -> None:
    op.create_table(
        "addresses",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("address", sa.String(length=320), nullable=False),
        sa.Column("owner_id", sa.String(length=128), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_addresses_owner_id", "addresses", ["owner_id"])
    op.create_index(
        "uq_addresses_address_lower",
        "addresses",
        [sa.text("lower(address)")],
        unique=True,
    )

    op.create_table(
        "batch_tasks",
        sa.Column("task_id", sa.String(length=64), primary_key=True),
        sa.Column("owner_id", sa.String(length=128), nullable=False),
        sa.Column("domain", sa.String(length=255), nullable=False),
        sa.Column("total_count", sa.Integer(), nullable=False),
        sa.Column("created_count", sa.Integer(), nullable=False),
        sa.Column("status", task_state, nullable=False),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_batch_tasks_owner_id", "batch_tasks", ["owner_id"])
    op.create_index("ix_batch_tasks_created_at", "batch_tasks", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_batch_tasks_created_at", table_name="batch_tasks")
    op.drop_index("ix_batch_tasks_owner_id", table_name="batch_tasks")
    op.drop_table("batch_tasks")
    task_state.drop(op.get_bind(), checkfirst=True)
    op.drop_index("uq_addresses_address_lower", table_name="addresses")
    op.drop_index("ix_addresses_owner_id", table_name="addresses")
    op.drop_table("addresses")
