"""Application service for progress tracking queries and the entry upsert path."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from momentum.core.config import get_settings
from momentum.core.logging import get_logger
from momentum.models.entities import MomentumProject, ProgressEntry, ProjectStatus, Proposal
from momentum.repositories.progress_repository import ProgressRepository
from momentum.services.entry_validation import ValidationReport, validate_quantities
from momentum.services.rollup import (
    ZERO,
    ActivityRollup,
    PhaseRollup,
    ProjectRollup,
    RollupMetrics,
    WBSRollup,
    activity_earned_mh,
    build_rollup,
)

logger = get_logger(__name__)

Q2 = Decimal("0.01")
Q4 = Decimal("0.0001")
# Numeric(14, 4): ten integer digits, four fractional.
MAX_ENTRY_QUANTITY = Decimal("10000000000")


def _fmt_mh(value: Decimal) -> str:
    return str(value.quantize(Q2, rounding=ROUND_HALF_UP))


def _fmt_qty(value: Decimal) -> str:
    return str(Decimal(value).quantize(Q4))


def week_ending_for(value: date, weekday: int) -> date:
    """Return the first date on or after ``value`` that falls on ``weekday``."""

    return value + timedelta(days=(weekday - value.weekday()) % 7)


def entry_integrity_error(exc: IntegrityError) -> HTTPException:
    """Map a failed entry flush to 422 for the quantity check, else 409."""

    if "ck_progress_entries_quantity_positive" in str(exc.orig):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="quantity_completed must be greater than zero at stored precision.",
        )
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail="Progress save conflicted with a concurrent change to the same entries; resubmit the batch.",
    )


@dataclass(slots=True, frozen=True)
class RollupScope:
    project_id: UUID
    wbs_id: UUID | None = None
    phase_id: UUID | None = None


@dataclass(slots=True)
class ProjectCreateData:
    proposal_id: UUID
    status: ProjectStatus | None = None


@dataclass(slots=True)
class ProjectUpdateData:
    name: str | None = None
    status: ProjectStatus | None = None
    actual_start_date: date | None = None
    projected_end_date: date | None = None
    # Explicit nulls from the client; None above means "keep".
    clear_actual_start_date: bool = False
    clear_projected_end_date: bool = False


@dataclass(slots=True)
class ProgressEntryInput:
    activity_id: UUID
    quantity_completed: Decimal
    notes: str | None = None


@dataclass(slots=True)
class SaveEntriesResult:
    inserted: int = 0
    updated: int = 0
    deleted: int = 0
    skipped: int = 0
    unchanged: int = 0


class ProgressService:
    """Read-time rollups over the estimate plus the daily entry upsert protocol."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = ProgressRepository(db)
        self.settings = get_settings()

    def _require_project(self, project_id: UUID) -> MomentumProject:
        project = self.repo.get_project(project_id)
        if project is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")
        return project

    # ---------- Serialization ----------
    @staticmethod
    def serialize_project(project: MomentumProject) -> dict[str, object]:
        return {
            "id": str(project.id),
            "proposal_id": str(project.proposal_id),
            "name": project.name,
            "proposal_number": project.proposal_number,
            "job_number": project.job_number or "",
            "owner": project.owner_name,
            "location": project.location or "",
            "description": project.description or "",
            "status": project.status.value,
            "actual_start_date": project.actual_start_date.isoformat() if project.actual_start_date else None,
            "projected_end_date": project.projected_end_date.isoformat() if project.projected_end_date else None,
            "last_entry_date": project.last_entry_date.isoformat() if project.last_entry_date else None,
            "created_at": project.created_at.isoformat(),
            "updated_at": project.updated_at.isoformat(),
        }

    @staticmethod
    def serialize_proposal(proposal: Proposal) -> dict[str, object]:
        return {
            "id": str(proposal.id),
            "proposal_number": proposal.proposal_number,
            "description": proposal.description,
            "owner": proposal.owner_name,
            "job_number": proposal.job_number or "",
            "location": proposal.job_site_address or "",
            "status": proposal.status,
        }

    @staticmethod
    def serialize_metrics(metrics: RollupMetrics) -> dict[str, object]:
        return {
            "craft_mh": _fmt_mh(metrics.craft_mh),
            "weld_mh": _fmt_mh(metrics.weld_mh),
            "total_mh": _fmt_mh(metrics.total_mh),
            "earned_mh": _fmt_mh(metrics.earned_mh),
            "remaining_mh": _fmt_mh(metrics.remaining_mh),
            "percent_complete": metrics.percent_complete,
            "status": metrics.status.value,
        }

    def serialize_project_summary(self, project: MomentumProject, metrics: RollupMetrics) -> dict[str, object]:
        # Lifecycle status stays under "status"; the derived one moves to "progress_status".
        return {
            **self.serialize_metrics(metrics),
            **self.serialize_project(project),
            "progress_status": metrics.status.value,
        }

    def serialize_activity(self, node: ActivityRollup) -> dict[str, object]:
        activity = node.activity
        row: dict[str, object] = {
            "id": str(activity.id),
            "wbs_id": str(activity.wbs_id),
            "phase_id": str(activity.phase_id),
            "type": activity.type.value,
            "description": activity.description,
            "quantity": _fmt_qty(node.quantity),
            "unit": activity.unit,
            "quantity_complete": _fmt_qty(node.quantity_complete),
            "quantity_remaining": _fmt_qty(node.quantity_remaining),
            **self.serialize_metrics(node.metrics),
        }
        if node.day is not None:
            row["previous_total"] = _fmt_qty(node.day.previous_total)
            row["todays_entry"] = _fmt_qty(node.day.todays_entry)
            row["new_total"] = _fmt_qty(node.day.new_total)
            row["remaining"] = _fmt_qty(node.day.remaining)
        return row

    def serialize_phase(self, node: PhaseRollup, *, include_activities: bool = False) -> dict[str, object]:
        row: dict[str, object] = {
            "id": str(node.phase.id),
            "wbs_id": str(node.phase.wbs_id),
            "code": str(node.phase.phase_pool_id),
            "description": node.phase.description,
            **self.serialize_metrics(node.metrics),
        }
        if include_activities:
            row["activities"] = [self.serialize_activity(activity) for activity in node.activities]
        return row

    def serialize_wbs(
        self,
        node: WBSRollup,
        *,
        include_phases: bool = False,
        include_activities: bool = False,
    ) -> dict[str, object]:
        row: dict[str, object] = {
            "id": str(node.wbs.id),
            "code": str(node.wbs.wbs_pool_id),
            "description": node.wbs.name,
            **self.serialize_metrics(node.metrics),
        }
        if include_phases:
            row["phases"] = [
                self.serialize_phase(phase, include_activities=include_activities) for phase in node.phases
            ]
        return row

    # ---------- Rollup engine entrypoint ----------
    def compute_rollup(self, scope: RollupScope, as_of_date: date | None = None) -> ProjectRollup | None:
        """Fetch one scope's rows and fold them into a rollup tree.

        Returns ``None`` when the project, WBS or phase does not exist or does
        not belong to the project's proposal.
        """

        project = self.repo.get_project(scope.project_id)
        if project is None:
            return None
        proposal_id = project.proposal_id

        if scope.phase_id is not None:
            phase = self.repo.get_phase(scope.phase_id)
            if phase is None or phase.proposal_id != proposal_id:
                return None
            wbs = self.repo.get_wbs(phase.wbs_id)
            if wbs is None:
                return None
            return build_rollup(
                wbs_items=[wbs],
                phases=[phase],
                activities=self.repo.list_labor_activities(proposal_id, phase_id=phase.id),
                entries=self.repo.list_entries(project.id, phase_id=phase.id),
                as_of_date=as_of_date,
            )

        if scope.wbs_id is not None:
            wbs = self.repo.get_wbs(scope.wbs_id)
            if wbs is None or wbs.proposal_id != proposal_id:
                return None
            return build_rollup(
                wbs_items=[wbs],
                phases=self.repo.list_phases(proposal_id, wbs_id=wbs.id),
                activities=self.repo.list_labor_activities(proposal_id, wbs_id=wbs.id),
                entries=self.repo.list_entries(project.id, wbs_id=wbs.id),
                as_of_date=as_of_date,
            )

        return build_rollup(
            wbs_items=self.repo.list_wbs(proposal_id),
            phases=self.repo.list_phases(proposal_id),
            activities=self.repo.list_labor_activities(proposal_id),
            entries=self.repo.list_entries(project.id),
            as_of_date=as_of_date,
        )

    def get_rollup_tree(
        self,
        scope: RollupScope,
        as_of_date: date | None = None,
    ) -> dict[str, object] | None:
        rollup = self.compute_rollup(scope, as_of_date)
        if rollup is None:
            return None
        return {
            **self.serialize_metrics(rollup.metrics),
            "project_id": str(scope.project_id),
            "as_of_date": as_of_date.isoformat() if as_of_date else None,
            "wbs_items": [
                self.serialize_wbs(item, include_phases=True, include_activities=True) for item in rollup.wbs_items
            ],
        }

    # ---------- Queries ----------
    def list_projects(self) -> list[dict[str, object]]:
        items: list[dict[str, object]] = []
        for project in self.repo.list_projects():
            rollup = self.compute_rollup(RollupScope(project_id=project.id))
            metrics = rollup.metrics if rollup is not None else RollupMetrics()
            items.append(
                {
                    **self.serialize_project_summary(project, metrics),
                    "last_updated": (
                        project.last_entry_date.isoformat()
                        if project.last_entry_date
                        else project.created_at.isoformat()
                    ),
                }
            )
        return items

    def get_project_rollup(self, project_id: UUID) -> dict[str, object] | None:
        project = self.repo.get_project(project_id)
        if project is None:
            return None
        rollup = self.compute_rollup(RollupScope(project_id=project_id))
        if rollup is None:
            return None
        return {
            "project": self.serialize_project_summary(project, rollup.metrics),
            "wbs_items": [self.serialize_wbs(item) for item in rollup.wbs_items],
        }

    def get_wbs_rollup(self, project_id: UUID, wbs_id: UUID) -> dict[str, object] | None:
        project = self.repo.get_project(project_id)
        if project is None:
            return None
        rollup = self.compute_rollup(RollupScope(project_id=project_id, wbs_id=wbs_id))
        if rollup is None:
            return None
        wbs_node = rollup.find_wbs(wbs_id)
        if wbs_node is None:
            return None
        return {
            "project": {"id": str(project.id), "name": project.name},
            "wbs": self.serialize_wbs(wbs_node),
            "phases": [self.serialize_phase(phase) for phase in wbs_node.phases],
        }

    def get_phase_rollup(self, project_id: UUID, phase_id: UUID) -> dict[str, object] | None:
        project = self.repo.get_project(project_id)
        if project is None:
            return None
        rollup = self.compute_rollup(RollupScope(project_id=project_id, phase_id=phase_id))
        if rollup is None:
            return None
        phase_node = rollup.find_phase(phase_id)
        if phase_node is None:
            return None
        wbs_node = rollup.wbs_items[0]
        return {
            "project": {"id": str(project.id), "name": project.name},
            "wbs": {
                "id": str(wbs_node.wbs.id),
                "code": str(wbs_node.wbs.wbs_pool_id),
                "description": wbs_node.wbs.name,
            },
            "phase": self.serialize_phase(phase_node),
            "activities": [self.serialize_activity(activity) for activity in phase_node.activities],
        }

    def get_entry_form_data(self, project_id: UUID, entry_date: date) -> dict[str, object] | None:
        rollup = self.compute_rollup(RollupScope(project_id=project_id), as_of_date=entry_date)
        if rollup is None:
            return None

        metrics_by_id: dict[str, dict[str, object]] = {}
        todays_entries: dict[str, str] = {}
        for node in rollup.iter_activities():
            key = str(node.activity.id)
            day = node.day
            metrics_by_id[key] = {
                "previous_total": _fmt_qty(day.previous_total),
                "todays_entry": _fmt_qty(day.todays_entry),
                "new_total": _fmt_qty(day.new_total),
                "remaining": _fmt_qty(day.remaining),
                "percent_complete": node.metrics.percent_complete,
            }
            if day.todays_entry > ZERO:
                todays_entries[key] = _fmt_qty(day.todays_entry)

        return {
            "project_id": str(project_id),
            "entry_date": entry_date.isoformat(),
            **self.serialize_metrics(rollup.metrics),
            "wbs_items": [
                self.serialize_wbs(item, include_phases=True, include_activities=True) for item in rollup.wbs_items
            ],
            "metrics_by_id": metrics_by_id,
            "todays_entries": todays_entries,
        }

    def get_entries_for_date(self, project_id: UUID, entry_date: date) -> dict[str, str] | None:
        if self.repo.get_project(project_id) is None:
            return None
        return {
            str(entry.activity_id): _fmt_qty(entry.quantity_completed)
            for entry in self.repo.list_entries_for_date(project_id, entry_date)
        }

    def list_proposals_for_import(self) -> list[dict[str, object]]:
        return [self.serialize_proposal(proposal) for proposal in self.repo.list_unlinked_proposals()]

    def get_weekly_breakdown(self, project_id: UUID) -> dict[str, object] | None:
        project = self.repo.get_project(project_id)
        if project is None:
            return None

        activity_by_id = {
            activity.id: activity for activity in self.repo.list_labor_activities(project.proposal_id)
        }
        weekday = self.settings.week_ending_weekday
        weeks: dict[date, dict[str, Decimal | int]] = {}
        for entry in self.repo.list_entries(project.id):
            bucket = weeks.setdefault(
                week_ending_for(entry.entry_date, weekday),
                {"total_quantity": ZERO, "total_earned_mh": ZERO, "entry_count": 0},
            )
            quantity = Decimal(entry.quantity_completed)
            bucket["total_quantity"] += quantity
            bucket["entry_count"] += 1
            activity = activity_by_id.get(entry.activity_id)
            if activity is not None:
                bucket["total_earned_mh"] += activity_earned_mh(activity, quantity)

        return {
            "project": {"id": str(project.id), "name": project.name},
            "weeks": [
                {
                    "week_ending": week.isoformat(),
                    "total_quantity": _fmt_qty(bucket["total_quantity"]),
                    "total_earned_mh": _fmt_mh(bucket["total_earned_mh"]),
                    "entry_count": bucket["entry_count"],
                }
                for week, bucket in sorted(weeks.items())
            ],
        }

    def validate_entries(
        self,
        project_id: UUID,
        entry_date: date,
        entries: list[ProgressEntryInput],
    ) -> ValidationReport:
        rollup = self.compute_rollup(RollupScope(project_id=project_id), as_of_date=entry_date)
        if rollup is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")

        budgets = {}
        day_metrics = {}
        for node in rollup.iter_activities():
            budgets[node.activity.id] = node.quantity
            day_metrics[node.activity.id] = node.day

        return validate_quantities(
            [(entry.activity_id, entry.quantity_completed) for entry in entries],
            budgets=budgets,
            day_metrics=day_metrics,
        )

    # ---------- Project lifecycle ----------
    def get_project(self, project_id: UUID) -> MomentumProject:
        return self._require_project(project_id)

    def create_project(self, data: ProjectCreateData) -> MomentumProject:
        if self.repo.get_project_for_proposal(data.proposal_id) is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A momentum project already exists for this proposal.",
            )

        proposal = self.repo.get_proposal(data.proposal_id)
        if proposal is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Proposal not found.")

        now = datetime.utcnow()
        project = MomentumProject(
            proposal_id=proposal.id,
            name=f"{proposal.proposal_number} - {proposal.description}",
            proposal_number=proposal.proposal_number,
            job_number=proposal.job_number,
            owner_name=proposal.owner_name,
            location=proposal.job_site_address,
            description=proposal.description,
            status=data.status or ProjectStatus.ACTIVE,
            actual_start_date=proposal.project_start_date,
            projected_end_date=proposal.project_end_date,
            created_at=now,
            updated_at=now,
        )

        self.repo.add_project(project)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A momentum project already exists for this proposal.",
            ) from exc

        self.db.refresh(project)
        logger.info("Created project %s for proposal %s", project.id, proposal.proposal_number)
        return project

    def update_project(self, project_id: UUID, data: ProjectUpdateData) -> MomentumProject:
        project = self._require_project(project_id)

        target_start = data.actual_start_date or project.actual_start_date
        if data.clear_actual_start_date:
            target_start = None
        target_end = data.projected_end_date or project.projected_end_date
        if data.clear_projected_end_date:
            target_end = None
        if target_start is not None and target_end is not None and target_end < target_start:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="projected_end_date must be greater than or equal to actual_start_date.",
            )
        if data.name is not None and not data.name.strip():
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="name must not be blank.",
            )

        if data.name is not None:
            project.name = data.name.strip()
        if data.status is not None:
            project.status = data.status
        project.actual_start_date = target_start
        project.projected_end_date = target_end
        project.updated_at = datetime.utcnow()

        self.db.commit()
        self.db.refresh(project)
        logger.info("Updated project %s", project.id)
        return project

    def delete_project(self, project_id: UUID) -> int:
        """Delete a project and its progress entries; estimate rows are untouched."""

        project = self._require_project(project_id)
        try:
            removed = self.repo.delete_entries_for_project(project.id)
            self.repo.delete_project(project)
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Project could not be deleted.",
            ) from exc

        logger.info("Deleted project %s with %d progress entries", project_id, removed)
        return removed

    # ---------- Entry upsert ----------
    def save_progress_entries(
        self,
        *,
        project_id: UUID,
        entry_date: date,
        entries: list[ProgressEntryInput],
        entered_by: str | None = None,
    ) -> SaveEntriesResult:
        project = self._require_project(project_id)

        if not entries:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="At least one progress entry is required.",
            )

        seen: set[UUID] = set()
        for payload in entries:
            if payload.quantity_completed < ZERO:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="quantity_completed must be greater or equal zero.",
                )
            quantity = payload.quantity_completed
            if quantity >= MAX_ENTRY_QUANTITY or quantity != quantity.quantize(Q4):
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="quantity_completed must fit 10 integer digits and 4 decimal places.",
                )
            if payload.activity_id in seen:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="Duplicate activity_id in bulk payload.",
                )
            seen.add(payload.activity_id)

        # Activities outside this project's estimate are treated as stale.
        activity_by_id = {
            activity.id: activity
            for activity in self.repo.list_activities_by_ids(seen)
            if activity.proposal_id == project.proposal_id
        }

        result = SaveEntriesResult()
        now = datetime.utcnow()
        try:
            with self.db.begin_nested():
                for payload in entries:
                    activity = activity_by_id.get(payload.activity_id)
                    if activity is None:
                        result.skipped += 1
                        logger.debug("Skipping entry for unknown activity %s", payload.activity_id)
                        continue

                    existing = self.repo.get_entry_by_key(
                        project_id=project.id,
                        activity_id=activity.id,
                        entry_date=entry_date,
                    )
                    if existing is not None:
                        if payload.quantity_completed == ZERO:
                            self.repo.delete_entry(existing)
                            result.deleted += 1
                        else:
                            existing.quantity_completed = payload.quantity_completed
                            existing.notes = payload.notes
                            if entered_by is not None:
                                existing.entered_by = entered_by
                            existing.updated_at = now
                            result.updated += 1
                    elif payload.quantity_completed > ZERO:
                        self.repo.add_entry(
                            ProgressEntry(
                                project_id=project.id,
                                activity_id=activity.id,
                                wbs_id=activity.wbs_id,
                                phase_id=activity.phase_id,
                                entry_date=entry_date,
                                quantity_completed=payload.quantity_completed,
                                notes=payload.notes,
                                entered_by=entered_by,
                                created_at=now,
                                updated_at=now,
                            )
                        )
                        result.inserted += 1
                    else:
                        result.unchanged += 1

                project.last_entry_date = entry_date
                self.db.flush()

            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise entry_integrity_error(exc) from exc

        logger.info(
            "Saved entries for project %s on %s: inserted=%d updated=%d deleted=%d skipped=%d unchanged=%d",
            project.id,
            entry_date.isoformat(),
            result.inserted,
            result.updated,
            result.deleted,
            result.skipped,
            result.unchanged,
        )
        return result

    def delete_progress_entry(self, entry_id: UUID) -> None:
        entry = self.repo.get_entry(entry_id)
        if entry is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Entry not found.")
        self.repo.delete_entry(entry)
        self.db.commit()
