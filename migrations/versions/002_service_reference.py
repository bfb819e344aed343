"""Service reference on appointments: service type and originating request id.

Revision ID: 002_service_reference
Revises: 001_appointments
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "002_service_reference"
down_revision: Union[str, None] = "001_appointments"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column("appointments", sa.Column("service_type", sa.String(), nullable=True))
    op.add_column("appointments", sa.Column("service_request_id", sa.String(), nullable=True))
    op.create_index(op.f("ix_appointments_service_type"), "appointments", ["service_type"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_appointments_service_type"), table_name="appointments")
    with op.batch_alter_table("appointments") as batch_op:
        batch_op.drop_column("service_request_id")
        batch_op.drop_column("service_type")
