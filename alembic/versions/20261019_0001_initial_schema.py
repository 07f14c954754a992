"""initial schema

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


activity_type = postgresql.ENUM(
    "labor",
    "custom_labor",
    "material",
    "equipment",
    "subcontractor",
    "cost_only",
    name="activity_type",
    create_type=False,
)
momentum_project_status = postgresql.ENUM(
    "active", "on-hold", "completed", "archived", name="momentum_project_status", create_type=False
)


def upgrade() -> None:
    activity_type.create(op.get_bind(), checkfirst=True)
    momentum_project_status.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "proposals",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("proposal_number", sa.String(length=64), nullable=False),
        sa.Column("description", sa.String(length=1000), nullable=False),
        sa.Column("owner_name", sa.String(length=255), nullable=False),
        sa.Column("job_number", sa.String(length=64), nullable=True),
        sa.Column("job_site_address", sa.String(length=500), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default=sa.text("'open'")),
        sa.Column("project_start_date", sa.Date(), nullable=True),
        sa.Column("project_end_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_proposals_proposal_number", "proposals", ["proposal_number"])

    op.create_table(
        "wbs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("proposal_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("proposals.id"), nullable=False),
        sa.Column("wbs_pool_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )
    op.create_index("ix_wbs_proposal_sort", "wbs", ["proposal_id", "sort_order"])

    op.create_table(
        "phases",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("proposal_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("proposals.id"), nullable=False),
        sa.Column("wbs_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("wbs.id"), nullable=False),
        sa.Column("phase_pool_id", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )
    op.create_index("ix_phases_proposal_id", "phases", ["proposal_id"])
    op.create_index("ix_phases_wbs_sort", "phases", ["wbs_id", "sort_order"])

    op.create_table(
        "activities",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("proposal_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("proposals.id"), nullable=False),
        sa.Column("wbs_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("wbs.id"), nullable=False),
        sa.Column("phase_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("phases.id"), nullable=False),
        sa.Column("type", activity_type, nullable=False),
        sa.Column("description", sa.String(length=500), nullable=False),
        sa.Column("quantity", sa.Numeric(14, 4), nullable=False, server_default=sa.text("0")),
        sa.Column("unit", sa.String(length=32), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("craft_constant", sa.Numeric(12, 6), nullable=True),
        sa.Column("welder_constant", sa.Numeric(12, 6), nullable=True),
        sa.CheckConstraint("quantity >= 0", name="ck_activities_quantity_non_negative"),
    )
    op.create_index("ix_activities_proposal_id", "activities", ["proposal_id"])
    op.create_index("ix_activities_wbs_id", "activities", ["wbs_id"])
    op.create_index("ix_activities_phase_sort", "activities", ["phase_id", "sort_order"])

    op.create_table(
        "momentum_projects",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("proposal_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("proposals.id"), nullable=False),
        sa.Column("name", sa.String(length=1100), nullable=False),
        sa.Column("proposal_number", sa.String(length=64), nullable=False),
        sa.Column("job_number", sa.String(length=64), nullable=True),
        sa.Column("owner_name", sa.String(length=255), nullable=False),
        sa.Column("location", sa.String(length=500), nullable=True),
        sa.Column("description", sa.String(length=1000), nullable=True),
        sa.Column("status", momentum_project_status, nullable=False),
        sa.Column("actual_start_date", sa.Date(), nullable=True),
        sa.Column("projected_end_date", sa.Date(), nullable=True),
        sa.Column("last_entry_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_unique_constraint("uq_momentum_projects_proposal_id", "momentum_projects", ["proposal_id"])
    op.create_index("ix_momentum_projects_status", "momentum_projects", ["status"])

    op.create_table(
        "progress_entries",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "project_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("momentum_projects.id"),
            nullable=False,
        ),
        sa.Column("activity_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("activities.id"), nullable=False),
        sa.Column("wbs_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("wbs.id"), nullable=False),
        sa.Column("phase_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("phases.id"), nullable=False),
        sa.Column("entry_date", sa.Date(), nullable=False),
        sa.Column("quantity_completed", sa.Numeric(14, 4), nullable=False),
        sa.Column("notes", sa.String(length=2000), nullable=True),
        sa.Column("entered_by", sa.String(length=320), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("quantity_completed > 0", name="ck_progress_entries_quantity_positive"),
    )
    op.create_unique_constraint(
        "uq_progress_entries_project_activity_date",
        "progress_entries",
        ["project_id", "activity_id", "entry_date"],
    )
    op.create_index("ix_progress_entries_project_date", "progress_entries", ["project_id", "entry_date"])
    op.create_index("ix_progress_entries_project_activity", "progress_entries", ["project_id", "activity_id"])
    op.create_index("ix_progress_entries_project_wbs", "progress_entries", ["project_id", "wbs_id"])
    op.create_index("ix_progress_entries_project_phase", "progress_entries", ["project_id", "phase_id"])


def downgrade() -> None:
    op.drop_index("ix_progress_entries_project_phase", table_name="progress_entries")
    op.drop_index("ix_progress_entries_project_wbs", table_name="progress_entries")
    op.drop_index("ix_progress_entries_project_activity", table_name="progress_entries")
    op.drop_index("ix_progress_entries_project_date", table_name="progress_entries")
    op.drop_constraint("uq_progress_entries_project_activity_date", "progress_entries", type_="unique")
    op.drop_table("progress_entries")

    op.drop_index("ix_momentum_projects_status", table_name="momentum_projects")
    op.drop_constraint("uq_momentum_projects_proposal_id", "momentum_projects", type_="unique")
    op.drop_table("momentum_projects")

    op.drop_index("ix_activities_phase_sort", table_name="activities")
    op.drop_index("ix_activities_wbs_id", table_name="activities")
    op.drop_index("ix_activities_proposal_id", table_name="activities")
    op.drop_table("activities")

    op.drop_index("ix_phases_wbs_sort", table_name="phases")
    op.drop_index("ix_phases_proposal_id", table_name="phases")
    op.drop_table("phases")

    op.drop_index("ix_wbs_proposal_sort", table_name="wbs")
    op.drop_table("wbs")

    op.drop_index("ix_proposals_proposal_number", table_name="proposals")
    op.drop_table("proposals")

    momentum_project_status.drop(op.get_bind(), checkfirst=True)
    activity_type.drop(op.get_bind(), checkfirst=True)
