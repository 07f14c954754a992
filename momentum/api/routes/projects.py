"""Momentum project lifecycle endpoints."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from momentum.db.dependencies import get_db_session
from momentum.models.entities import ProjectStatus
from momentum.services.progress_service import ProgressService, ProjectCreateData, ProjectUpdateData

router = APIRouter(tags=["projects"])


class ProjectCreatePayload(BaseModel):
    proposal_id: UUID
    status: ProjectStatus | None = None


class ProjectUpdatePayload(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=1100)
    status: ProjectStatus | None = None
    actual_start_date: date | None = None
    projected_end_date: date | None = None


def _progress_service(db: Session) -> ProgressService:
    return ProgressService(db)


@router.get("/projects")
def list_projects(db: Session = Depends(get_db_session)) -> dict[str, list[object]]:
    service = _progress_service(db)
    return {"items": service.list_projects()}


@router.post("/projects", status_code=status.HTTP_201_CREATED)
def create_project(
    payload: ProjectCreatePayload,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _progress_service(db)
    project = service.create_project(ProjectCreateData(proposal_id=payload.proposal_id, status=payload.status))
    return service.serialize_project(project)


@router.get("/projects/{project_id}")
def get_project_rollup(project_id: UUID, db: Session = Depends(get_db_session)) -> dict[str, object]:
    service = _progress_service(db)
    result = service.get_project_rollup(project_id)
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")
    return result


@router.patch("/projects/{project_id}")
def update_project(
    project_id: UUID,
    payload: ProjectUpdatePayload,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _progress_service(db)
    project = service.update_project(
        project_id,
        ProjectUpdateData(
            name=payload.name,
            status=payload.status,
            actual_start_date=payload.actual_start_date,
            projected_end_date=payload.projected_end_date,
            clear_actual_start_date="actual_start_date" in payload.model_fields_set
            and payload.actual_start_date is None,
            clear_projected_end_date="projected_end_date" in payload.model_fields_set
            and payload.projected_end_date is None,
        ),
    )
    return service.serialize_project(project)


@router.delete("/projects/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project(project_id: UUID, db: Session = Depends(get_db_session)) -> Response:
    service = _progress_service(db)
    service.delete_project(project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/proposals/importable")
def list_importable_proposals(db: Session = Depends(get_db_session)) -> dict[str, list[object]]:
    service = _progress_service(db)
    return {"items": service.list_proposals_for_import()}
