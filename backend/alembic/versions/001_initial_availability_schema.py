"""Initial availability schema: directory tables, provider_availability, appointment_find_cache, sync log

Revision ID: 001
Revises:
Create Date: (run alembic upgrade head)

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "institution",
        sa.Column("institution_id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("time_zone", sa.String(64), nullable=False, server_default="America/New_York"),
        sa.Column("ehr_user_id", sa.String(64), nullable=True),
        sa.Column("ehr_user_id_type", sa.String(32), nullable=True),
        sa.Column("appointment_find_enabled", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("appointment_find_cache_expiration_seconds", sa.Integer(), nullable=False, server_default="300"),
    )
    op.create_table(
        "provider",
        sa.Column("provider_id", sa.String(36), primary_key=True),
        sa.Column("institution_id", sa.String(64), sa.ForeignKey("institution.institution_id"), nullable=False),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("time_zone", sa.String(64), nullable=False, server_default="America/New_York"),
        sa.Column("scheduling_system_id", sa.String(32), nullable=False),
        sa.Column("ehr_provider_id", sa.String(64), nullable=True),
        sa.Column("ehr_provider_id_type", sa.String(32), nullable=True),
        sa.Column("slot_classification", sa.String(32), nullable=False, server_default="DURATION_MATCHED"),
        sa.Column("active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_provider_institution_id", "provider", ["institution_id"], unique=False)
    op.create_table(
        "appointment_type",
        sa.Column("appointment_type_id", sa.String(36), primary_key=True),
        sa.Column("provider_id", sa.String(36), sa.ForeignKey("provider.provider_id"), nullable=False),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("scheduling_system_id", sa.String(32), nullable=False),
        sa.Column("duration_in_minutes", sa.Integer(), nullable=False),
        sa.Column("ehr_visit_type_id", sa.String(64), nullable=True),
        sa.Column("ehr_visit_type_id_type", sa.String(32), nullable=True),
    )
    op.create_index("ix_appointment_type_provider_id", "appointment_type", ["provider_id"], unique=False)
    op.create_table(
        "ehr_department",
        sa.Column("ehr_department_id", sa.String(36), primary_key=True),
        sa.Column("provider_id", sa.String(36), sa.ForeignKey("provider.provider_id"), nullable=False),
        sa.Column("department_id", sa.String(64), nullable=False),
        sa.Column("department_id_type", sa.String(32), nullable=False),
        sa.Column("name", sa.String(256), nullable=True),
    )
    op.create_index("ix_ehr_department_provider_id", "ehr_department", ["provider_id"], unique=False)
    op.create_table(
        "provider_availability",
        sa.Column("provider_availability_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("provider_id", sa.String(36), nullable=False),
        sa.Column("appointment_type_id", sa.String(36), nullable=False),
        sa.Column("date_time", sa.DateTime(timezone=False), nullable=False),
        sa.Column("ehr_department_id", sa.String(36), nullable=False),
    )
    op.create_index(
        "ix_provider_availability_provider_date_time",
        "provider_availability",
        ["provider_id", "date_time"],
        unique=False,
    )
    op.create_table(
        "appointment_find_cache",
        sa.Column("institution_id", sa.String(64), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("api_response", sa.Text(), nullable=False),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("institution_id", "date"),
    )
    op.create_table(
        "provider_availability_sync_log",
        sa.Column("sync_log_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("provider_id", sa.String(36), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("success", sa.Boolean(), nullable=False),
        sa.Column("sync_timestamp", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_provider_availability_sync_log_provider_id", "provider_availability_sync_log", ["provider_id"], unique=False
    )


def downgrade() -> None:
    op.drop_table("provider_availability_sync_log")
    op.drop_table("appointment_find_cache")
    op.drop_table("provider_availability")
    op.drop_table("ehr_department")
    op.drop_table("appointment_type")
    op.drop_table("provider")
    op.drop_table("institution")
