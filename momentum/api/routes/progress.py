"""Rollup reads and daily progress entry endpoints."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from momentum.db.dependencies import get_db_session
from momentum.services.progress_service import ProgressEntryInput, ProgressService, RollupScope

router = APIRouter(tags=["progress"])


class ProgressEntryPayload(BaseModel):
    activity_id: UUID
    quantity_completed: Decimal = Field(max_digits=14, decimal_places=4)
    notes: str | None = Field(default=None, max_length=2000)


class ProgressEntriesBulkPayload(BaseModel):
    entry_date: date
    entries: list[ProgressEntryPayload]
    entered_by: str | None = Field(default=None, max_length=320)


def _progress_service(db: Session) -> ProgressService:
    return ProgressService(db)


def _entry_inputs(entries: list[ProgressEntryPayload]) -> list[ProgressEntryInput]:
    return [
        ProgressEntryInput(
            activity_id=entry.activity_id,
            quantity_completed=entry.quantity_completed,
            notes=entry.notes,
        )
        for entry in entries
    ]


def _not_found(result: object | None, detail: str) -> object:
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
    return result


@router.get("/projects/{project_id}/rollup")
def get_rollup_tree(
    project_id: UUID,
    wbs_id: UUID | None = None,
    phase_id: UUID | None = None,
    as_of_date: date | None = None,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _progress_service(db)
    result = service.get_rollup_tree(
        RollupScope(project_id=project_id, wbs_id=wbs_id, phase_id=phase_id),
        as_of_date,
    )
    return _not_found(result, "Project scope not found.")


@router.get("/projects/{project_id}/wbs/{wbs_id}")
def get_wbs_rollup(project_id: UUID, wbs_id: UUID, db: Session = Depends(get_db_session)) -> dict[str, object]:
    service = _progress_service(db)
    return _not_found(service.get_wbs_rollup(project_id, wbs_id), "WBS not found.")


@router.get("/projects/{project_id}/phases/{phase_id}")
def get_phase_rollup(
    project_id: UUID,
    phase_id: UUID,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _progress_service(db)
    return _not_found(service.get_phase_rollup(project_id, phase_id), "Phase not found.")


@router.get("/projects/{project_id}/entry-form")
def get_entry_form_data(
    project_id: UUID,
    entry_date: date,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _progress_service(db)
    return _not_found(service.get_entry_form_data(project_id, entry_date), "Project not found.")


@router.get("/projects/{project_id}/entries")
def get_entries_for_date(
    project_id: UUID,
    entry_date: date,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _progress_service(db)
    entries = _not_found(service.get_entries_for_date(project_id, entry_date), "Project not found.")
    return {"entry_date": entry_date.isoformat(), "entries": entries}


@router.put("/projects/{project_id}/entries:bulk")
@router.put("/projects/{project_id}/entries/bulk")
def put_progress_entries_bulk(
    project_id: UUID,
    payload: ProgressEntriesBulkPayload,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _progress_service(db)
    result = service.save_progress_entries(
        project_id=project_id,
        entry_date=payload.entry_date,
        entries=_entry_inputs(payload.entries),
        entered_by=payload.entered_by,
    )
    return {
        "entry_date": payload.entry_date.isoformat(),
        "inserted": result.inserted,
        "updated": result.updated,
        "deleted": result.deleted,
        "skipped": result.skipped,
        "unchanged": result.unchanged,
    }


@router.post("/projects/{project_id}/entries/validate")
def validate_progress_entries(
    project_id: UUID,
    payload: ProgressEntriesBulkPayload,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _progress_service(db)
    report = service.validate_entries(project_id, payload.entry_date, _entry_inputs(payload.entries))
    return {
        "valid": not report.has_errors,
        "has_warnings": report.has_warnings,
        "issues": [
            {
                "activity_id": str(issue.activity_id),
                "severity": issue.severity.value,
                "code": issue.code,
                "message": issue.message,
            }
            for issue in report.issues
        ],
    }


@router.delete("/progress-entries/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_progress_entry(entry_id: UUID, db: Session = Depends(get_db_session)) -> Response:
    service = _progress_service(db)
    service.delete_progress_entry(entry_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/projects/{project_id}/reports/weekly")
def get_weekly_breakdown(project_id: UUID, db: Session = Depends(get_db_session)) -> dict[str, object]:
    service = _progress_service(db)
    return _not_found(service.get_weekly_breakdown(project_id), "Project not found.")
