"""Progress workbook export (CSV and XLSX)."""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from io import BytesIO
from uuid import UUID

from fastapi import HTTPException, status
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from sqlalchemy.orm import Session

from momentum.core.logging import get_logger
from momentum.models.entities import MomentumProject
from momentum.services.progress_service import ProgressService, RollupScope, week_ending_for
from momentum.services.rollup import ZERO, RollupMetrics

logger = get_logger(__name__)

Q2 = Decimal("0.01")

BASE_COLUMNS = [
    "row_type",
    "wbs_code",
    "phase_code",
    "description",
    "quantity",
    "unit",
    "craft_mh",
    "weld_mh",
    "total_mh",
    "quantity_complete",
    "quantity_remaining",
    "earned_mh",
    "remaining_mh",
    "percent_complete",
]

ROW_FILLS = {
    "wbs": PatternFill(fill_type="solid", fgColor="FFDDEBF7"),
    "phase": PatternFill(fill_type="solid", fgColor="FFFFF2CC"),
}
ROW_FONTS = {
    "wbs": Font(name="Calibri", size=14, bold=True),
    "phase": Font(name="Calibri", size=12, bold=True),
    "detail": Font(name="Calibri", size=10),
}


@dataclass(slots=True)
class ExportFilePayload:
    media_type: str
    filename: str
    content: bytes


def _metric_cells(metrics: RollupMetrics) -> dict[str, object]:
    return {
        "craft_mh": metrics.craft_mh.quantize(Q2, rounding=ROUND_HALF_UP),
        "weld_mh": metrics.weld_mh.quantize(Q2, rounding=ROUND_HALF_UP),
        "total_mh": metrics.total_mh.quantize(Q2, rounding=ROUND_HALF_UP),
        "earned_mh": metrics.earned_mh.quantize(Q2, rounding=ROUND_HALF_UP),
        "remaining_mh": metrics.remaining_mh.quantize(Q2, rounding=ROUND_HALF_UP),
        "percent_complete": metrics.percent_complete,
    }


class ExportService:
    """Flatten a project rollup into spreadsheet rows with weekly quantity columns."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.progress = ProgressService(db)

    def build_rows(self, project: MomentumProject) -> tuple[list[dict[str, object]], list[date]]:
        rollup = self.progress.compute_rollup(RollupScope(project_id=project.id))
        if rollup is None:
            return [], []

        weekday = self.progress.settings.week_ending_weekday
        weekly_qty: dict[tuple[UUID, date], Decimal] = {}
        for entry in self.progress.repo.list_entries(project.id):
            key = (entry.activity_id, week_ending_for(entry.entry_date, weekday))
            weekly_qty[key] = weekly_qty.get(key, ZERO) + Decimal(entry.quantity_completed)
        week_endings = sorted({week for _activity_id, week in weekly_qty})

        rows: list[dict[str, object]] = []
        for wbs_node in rollup.wbs_items:
            wbs_code = str(wbs_node.wbs.wbs_pool_id)
            rows.append(
                {
                    "row_type": "wbs",
                    "wbs_code": wbs_code,
                    "phase_code": "",
                    "description": wbs_node.wbs.name,
                    **_metric_cells(wbs_node.metrics),
                }
            )
            for phase_node in wbs_node.phases:
                phase_code = str(phase_node.phase.phase_pool_id)
                rows.append(
                    {
                        "row_type": "phase",
                        "wbs_code": wbs_code,
                        "phase_code": phase_code,
                        "description": phase_node.phase.description,
                        **_metric_cells(phase_node.metrics),
                    }
                )
                for node in phase_node.activities:
                    row: dict[str, object] = {
                        "row_type": "detail",
                        "wbs_code": wbs_code,
                        "phase_code": phase_code,
                        "description": node.activity.description,
                        "quantity": node.quantity,
                        "unit": node.activity.unit,
                        "quantity_complete": node.quantity_complete,
                        "quantity_remaining": node.quantity_remaining,
                        **_metric_cells(node.metrics),
                    }
                    for week in week_endings:
                        quantity = weekly_qty.get((node.activity.id, week))
                        if quantity is not None:
                            row[week.isoformat()] = quantity
                    rows.append(row)

        return rows, week_endings

    def export_progress(self, *, project_id: UUID, format_name: str) -> ExportFilePayload:
        normalized_format = format_name.strip().lower()
        if normalized_format not in {"csv", "xlsx"}:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="format must be one of: csv, xlsx.",
            )

        project = self.progress.get_project(project_id)
        rows, week_endings = self.build_rows(project)
        fieldnames = BASE_COLUMNS + [week.isoformat() for week in week_endings]

        safe_number = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in project.proposal_number)
        base_filename = f"{safe_number}_Progress_{date.today().isoformat()}"
        logger.info("Exporting %d rows for project %s as %s", len(rows), project.id, normalized_format)

        if normalized_format == "csv":
            sio = io.StringIO()
            writer = csv.DictWriter(sio, fieldnames=fieldnames, restval="")
            writer.writeheader()
            writer.writerows(rows)
            return ExportFilePayload(
                media_type="text/csv; charset=utf-8",
                filename=f"{base_filename}.csv",
                content=sio.getvalue().encode("utf-8"),
            )

        workbook = Workbook()
        sheet = workbook.active
        sheet.title = "progress"

        metadata = [
            ("Project", project.name),
            ("Proposal", project.proposal_number),
            ("Job Number", project.job_number or ""),
            ("Owner", project.owner_name),
            ("Location", project.location or ""),
            ("Start Date", project.actual_start_date.isoformat() if project.actual_start_date else ""),
        ]
        for label, value in metadata:
            sheet.append([label, value])
            sheet.cell(row=sheet.max_row, column=1).font = Font(name="Calibri", size=11, bold=True)
        sheet.append([])

        sheet.append(fieldnames)
        header_row = sheet.max_row
        for cell in sheet[header_row]:
            cell.font = Font(name="Calibri", size=8, bold=True)
        sheet.freeze_panes = f"A{header_row + 1}"

        for row in rows:
            sheet.append([row.get(column, "") for column in fieldnames])
            row_type = str(row["row_type"])
            for cell in sheet[sheet.max_row]:
                cell.font = ROW_FONTS[row_type]
                if row_type in ROW_FILLS:
                    cell.fill = ROW_FILLS[row_type]

        output = BytesIO()
        workbook.save(output)
        return ExportFilePayload(
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            filename=f"{base_filename}.xlsx",
            content=output.getvalue(),
        )
