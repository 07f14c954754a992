"""Repository helpers for the estimate hierarchy and progress entries."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import and_, delete, select
from sqlalchemy.orm import Session

from momentum.models.entities import (
    WBS,
    Activity,
    ActivityType,
    MomentumProject,
    Phase,
    ProgressEntry,
    Proposal,
)

LABOR_ACTIVITY_TYPES = (ActivityType.LABOR, ActivityType.CUSTOM_LABOR)


class ProgressRepository:
    """Persistence operations used by rollup queries and the entry upsert path."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Proposals (read-only estimate data) ----------
    def get_proposal(self, proposal_id: UUID) -> Proposal | None:
        return self.db.scalar(select(Proposal).where(Proposal.id == proposal_id))

    def list_unlinked_proposals(self) -> list[Proposal]:
        linked = select(MomentumProject.proposal_id)
        return self.db.scalars(
            select(Proposal)
            .where(Proposal.id.not_in(linked))
            .order_by(Proposal.proposal_number.asc())
        ).all()

    # ---------- Momentum projects ----------
    def list_projects(self) -> list[MomentumProject]:
        return self.db.scalars(select(MomentumProject).order_by(MomentumProject.name.asc())).all()

    def get_project(self, project_id: UUID) -> MomentumProject | None:
        return self.db.scalar(select(MomentumProject).where(MomentumProject.id == project_id))

    def get_project_for_proposal(self, proposal_id: UUID) -> MomentumProject | None:
        return self.db.scalar(select(MomentumProject).where(MomentumProject.proposal_id == proposal_id))

    def add_project(self, project: MomentumProject) -> MomentumProject:
        self.db.add(project)
        self.db.flush()
        return project

    def delete_project(self, project: MomentumProject) -> None:
        self.db.delete(project)
        self.db.flush()

    # ---------- WBS and phases ----------
    def list_wbs(self, proposal_id: UUID) -> list[WBS]:
        return self.db.scalars(
            select(WBS)
            .where(WBS.proposal_id == proposal_id)
            .order_by(WBS.sort_order.asc(), WBS.wbs_pool_id.asc())
        ).all()

    def get_wbs(self, wbs_id: UUID) -> WBS | None:
        return self.db.scalar(select(WBS).where(WBS.id == wbs_id))

    def list_phases(self, proposal_id: UUID, *, wbs_id: UUID | None = None) -> list[Phase]:
        conditions = [Phase.proposal_id == proposal_id]
        if wbs_id is not None:
            conditions.append(Phase.wbs_id == wbs_id)

        return self.db.scalars(
            select(Phase)
            .where(and_(*conditions))
            .order_by(Phase.sort_order.asc(), Phase.phase_pool_id.asc())
        ).all()

    def get_phase(self, phase_id: UUID) -> Phase | None:
        return self.db.scalar(select(Phase).where(Phase.id == phase_id))

    # ---------- Activities ----------
    def list_labor_activities(
        self,
        proposal_id: UUID,
        *,
        wbs_id: UUID | None = None,
        phase_id: UUID | None = None,
    ) -> list[Activity]:
        conditions = [
            Activity.proposal_id == proposal_id,
            Activity.type.in_(LABOR_ACTIVITY_TYPES),
        ]
        if wbs_id is not None:
            conditions.append(Activity.wbs_id == wbs_id)
        if phase_id is not None:
            conditions.append(Activity.phase_id == phase_id)

        return self.db.scalars(
            select(Activity)
            .where(and_(*conditions))
            .order_by(Activity.sort_order.asc(), Activity.description.asc())
        ).all()

    def list_activities_by_ids(self, activity_ids: set[UUID]) -> list[Activity]:
        if not activity_ids:
            return []
        return self.db.scalars(select(Activity).where(Activity.id.in_(activity_ids))).all()

    # ---------- Progress entries ----------
    def list_entries(
        self,
        project_id: UUID,
        *,
        wbs_id: UUID | None = None,
        phase_id: UUID | None = None,
    ) -> list[ProgressEntry]:
        conditions = [ProgressEntry.project_id == project_id]
        if wbs_id is not None:
            conditions.append(ProgressEntry.wbs_id == wbs_id)
        if phase_id is not None:
            conditions.append(ProgressEntry.phase_id == phase_id)

        return self.db.scalars(
            select(ProgressEntry)
            .where(and_(*conditions))
            .order_by(ProgressEntry.entry_date.asc(), ProgressEntry.activity_id.asc())
        ).all()

    def list_entries_for_date(self, project_id: UUID, entry_date: date) -> list[ProgressEntry]:
        return self.db.scalars(
            select(ProgressEntry)
            .where(
                and_(
                    ProgressEntry.project_id == project_id,
                    ProgressEntry.entry_date == entry_date,
                )
            )
            .order_by(ProgressEntry.activity_id.asc())
        ).all()

    def get_entry(self, entry_id: UUID) -> ProgressEntry | None:
        return self.db.scalar(select(ProgressEntry).where(ProgressEntry.id == entry_id))

    def get_entry_by_key(
        self,
        *,
        project_id: UUID,
        activity_id: UUID,
        entry_date: date,
    ) -> ProgressEntry | None:
        return self.db.scalar(
            select(ProgressEntry).where(
                and_(
                    ProgressEntry.project_id == project_id,
                    ProgressEntry.activity_id == activity_id,
                    ProgressEntry.entry_date == entry_date,
                )
            )
        )

    def add_entry(self, entry: ProgressEntry) -> ProgressEntry:
        self.db.add(entry)
        self.db.flush()
        return entry

    def delete_entry(self, entry: ProgressEntry) -> None:
        self.db.delete(entry)
        self.db.flush()

    def delete_entries_for_project(self, project_id: UUID) -> int:
        result = self.db.execute(delete(ProgressEntry).where(ProgressEntry.project_id == project_id))
        self.db.flush()
        return result.rowcount or 0
