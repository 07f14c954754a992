"""ORM entities for the estimate hierarchy and progress tracking schema."""

from __future__ import annotations

import enum
import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from momentum.db.base import Base


class ActivityType(str, enum.Enum):
    LABOR = "labor"
    CUSTOM_LABOR = "custom_labor"
    MATERIAL = "material"
    EQUIPMENT = "equipment"
    SUBCONTRACTOR = "subcontractor"
    COST_ONLY = "cost_only"


class ProjectStatus(str, enum.Enum):
    ACTIVE = "active"
    ON_HOLD = "on-hold"
    COMPLETED = "completed"
    ARCHIVED = "archived"


# ---------- Estimate store (owned by the estimating application) ----------


class Proposal(Base):
    __tablename__ = "proposals"
    __table_args__ = (Index("ix_proposals_proposal_number", "proposal_number"),)

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    proposal_number: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str] = mapped_column(String(1000), nullable=False)
    owner_name: Mapped[str] = mapped_column(String(255), nullable=False)
    job_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    job_site_address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="open")
    project_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    project_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class WBS(Base):
    __tablename__ = "wbs"
    __table_args__ = (Index("ix_wbs_proposal_sort", "proposal_id", "sort_order"),)

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    proposal_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("proposals.id"), nullable=False)
    wbs_pool_id: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class Phase(Base):
    __tablename__ = "phases"
    __table_args__ = (
        Index("ix_phases_proposal_id", "proposal_id"),
        Index("ix_phases_wbs_sort", "wbs_id", "sort_order"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    proposal_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("proposals.id"), nullable=False)
    wbs_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("wbs.id"), nullable=False)
    phase_pool_id: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class Activity(Base):
    __tablename__ = "activities"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_activities_quantity_non_negative"),
        Index("ix_activities_proposal_id", "proposal_id"),
        Index("ix_activities_wbs_id", "wbs_id"),
        Index("ix_activities_phase_sort", "phase_id", "sort_order"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    proposal_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("proposals.id"), nullable=False)
    wbs_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("wbs.id"), nullable=False)
    phase_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("phases.id"), nullable=False)
    type: Mapped[ActivityType] = mapped_column(
        SQLEnum(
            ActivityType,
            name="activity_type",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False, default=Decimal("0"))
    unit: Mapped[str] = mapped_column(String(32), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Labor constants (man-hours per unit); only populated for labor-bearing types.
    craft_constant: Mapped[Decimal | None] = mapped_column(Numeric(12, 6), nullable=True)
    welder_constant: Mapped[Decimal | None] = mapped_column(Numeric(12, 6), nullable=True)


# ---------- Tracking store ----------


class MomentumProject(Base):
    __tablename__ = "momentum_projects"
    __table_args__ = (
        UniqueConstraint("proposal_id", name="uq_momentum_projects_proposal_id"),
        Index("ix_momentum_projects_status", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    proposal_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("proposals.id"), nullable=False)
    # Snapshot of proposal fields at import time; never re-synced.
    name: Mapped[str] = mapped_column(String(1100), nullable=False)
    proposal_number: Mapped[str] = mapped_column(String(64), nullable=False)
    job_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    owner_name: Mapped[str] = mapped_column(String(255), nullable=False)
    location: Mapped[str | None] = mapped_column(String(500), nullable=True)
    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    status: Mapped[ProjectStatus] = mapped_column(
        SQLEnum(
            ProjectStatus,
            name="momentum_project_status",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
        default=ProjectStatus.ACTIVE,
    )
    actual_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    projected_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    last_entry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class ProgressEntry(Base):
    __tablename__ = "progress_entries"
    __table_args__ = (
        CheckConstraint("quantity_completed > 0", name="ck_progress_entries_quantity_positive"),
        UniqueConstraint(
            "project_id",
            "activity_id",
            "entry_date",
            name="uq_progress_entries_project_activity_date",
        ),
        Index("ix_progress_entries_project_date", "project_id", "entry_date"),
        Index("ix_progress_entries_project_activity", "project_id", "activity_id"),
        Index("ix_progress_entries_project_wbs", "project_id", "wbs_id"),
        Index("ix_progress_entries_project_phase", "project_id", "phase_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("momentum_projects.id"), nullable=False
    )
    activity_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("activities.id"), nullable=False)
    # Parent references copied from the activity at insert time.
    wbs_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("wbs.id"), nullable=False)
    phase_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("phases.id"), nullable=False)
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    quantity_completed: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    notes: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    entered_by: Mapped[str | None] = mapped_column(String(320), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
