"""Reports API: saved report configurations and manual runs."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from reportmanager.api.deps import get_db, get_export_service
from reportmanager.api.schemas.exports import ExportResponse
from reportmanager.api.schemas.reports import ReorderRequest, ReportCreate, ReportResponse
from reportmanager.db.models.report import Report
from reportmanager.domain.enums import ExportTrigger
from reportmanager.export.service import ExportService
from reportmanager.reports.service import ReportsService

router = APIRouter(prefix="/api/reports", tags=["reports"])

DbDep = Annotated[AsyncSession, Depends(get_db)]
ExportServiceDep = Annotated[ExportService, Depends(get_export_service)]


def _apply(report: Report, body: ReportCreate) -> Report:
    for key, value in body.model_dump().items():
        if key == "handle" and not value:
            continue
        setattr(report, key, value.value if hasattr(value, "value") else value)
    return report


async def _report_or_404(service: ReportsService, report_id: uuid.UUID) -> Report:
    report = await service.get_report(report_id)
    if report is None:
        raise HTTPException(status_code=404, detail="Report not found")
    return report


@router.get("", response_model=list[ReportResponse])
async def list_reports(db: DbDep, enabled_only: bool = False) -> list[ReportResponse]:
    service = ReportsService(db)
    return [ReportResponse.model_validate(r) for r in await service.list_reports(enabled_only=enabled_only)]


@router.post("", response_model=ReportResponse, status_code=201)
async def create_report(body: ReportCreate, db: DbDep) -> ReportResponse:
    service = ReportsService(db)
    report = await service.save_report(_apply(Report(handle=""), body))
    await db.commit()
    return ReportResponse.model_validate(report)


@router.post("/reorder")
async def reorder_reports(body: ReorderRequest, db: DbDep) -> dict:
    await ReportsService(db).reorder_reports(body.ids)
    await db.commit()
    return {"status": "ok"}


@router.get("/{report_id}", response_model=ReportResponse)
async def get_report(report_id: uuid.UUID, db: DbDep) -> ReportResponse:
    report = await _report_or_404(ReportsService(db), report_id)
    return ReportResponse.model_validate(report)


@router.put("/{report_id}", response_model=ReportResponse)
async def update_report(report_id: uuid.UUID, body: ReportCreate, db: DbDep) -> ReportResponse:
    service = ReportsService(db)
    report = await _report_or_404(service, report_id)
    report = await service.save_report(_apply(report, body))
    await db.commit()
    return ReportResponse.model_validate(report)


@router.delete("/{report_id}")
async def delete_report(report_id: uuid.UUID, db: DbDep) -> dict:
    if not await ReportsService(db).delete_report(report_id):
        raise HTTPException(status_code=404, detail="Report not found")
    await db.commit()
    return {"status": "ok"}


@router.post("/{report_id}/generate", response_model=list[ExportResponse])
async def generate_report(report_id: uuid.UUID, db: DbDep, exports: ExportServiceDep) -> list[ExportResponse]:
    """Queue this report's exports now, independent of its schedule."""
    service = ReportsService(db)
    report = await _report_or_404(service, report_id)
    created = await service.run_report(report, exports, triggered_by=ExportTrigger.API)
    return [ExportResponse.model_validate(e) for e in created]


@router.get("/{report_id}/exports", response_model=list[ExportResponse])
async def list_report_exports(report_id: uuid.UUID, db: DbDep, exports: ExportServiceDep) -> list[ExportResponse]:
    await _report_or_404(ReportsService(db), report_id)
    return [ExportResponse.model_validate(e) for e in await exports.list_for_report(report_id)]
