"""Waitlist requests.

Revision ID: 002_waitlist
Revises: 001_initial
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "002_waitlist"
down_revision: Union[str, None] = "001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "waitlist_requests",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("patient_id", sa.Integer(), nullable=False),
        sa.Column("appointment_type_id", sa.Integer(), nullable=True),
        sa.Column("preferred_start_at", sa.DateTime(), nullable=True),
        sa.Column("preferred_end_at", sa.DateTime(), nullable=True),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("status", sa.String(), nullable=False, server_default="OPEN"),
        sa.Column("note", sa.String(), nullable=True),
        sa.Column("appointment_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["appointment_type_id"], ["appointment_types.id"]),
        sa.ForeignKeyConstraint(["appointment_id"], ["appointments.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_waitlist_requests_patient_id"), "waitlist_requests", ["patient_id"], unique=False)
    op.create_index(op.f("ix_waitlist_requests_status"), "waitlist_requests", ["status"], unique=False)
    op.create_index(op.f("ix_waitlist_requests_created_at"), "waitlist_requests", ["created_at"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_waitlist_requests_created_at"), table_name="waitlist_requests")
    op.drop_index(op.f("ix_waitlist_requests_status"), table_name="waitlist_requests")
    op.drop_index(op.f("ix_waitlist_requests_patient_id"), table_name="waitlist_requests")
    op.drop_table("waitlist_requests")
