"""Export endpoint for progress workbooks."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from momentum.core.config import get_settings
from momentum.db.dependencies import get_db_session
from momentum.services.export_service import ExportService

router = APIRouter(prefix="/exports", tags=["exports"])


def _service(db: Session) -> ExportService:
    return ExportService(db)


@router.get("/projects/{project_id}/progress")
def export_project_progress(
    project_id: UUID,
    format: str | None = Query(default=None),
    db: Session = Depends(get_db_session),
) -> Response:
    service = _service(db)
    exported = service.export_progress(
        project_id=project_id,
        format_name=format or get_settings().export_default_format,
    )
    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )
