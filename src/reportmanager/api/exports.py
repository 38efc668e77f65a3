"""Exports API: ad-hoc exports, status, download and deletion."""

import logging
import uuid
from io import BytesIO
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from reportmanager.api.deps import get_db, get_export_service
from reportmanager.api.schemas.exports import (
    ExportCreate,
    ExportListResponse,
    ExportResponse,
    ExportStatsResponse,
)
from reportmanager.domain.enums import ExportMode, ExportStatus
from reportmanager.domain.models import FilterSnapshot
from reportmanager.export.encoders import CONTENT_TYPES
from reportmanager.export.service import ExportService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/exports", tags=["exports"])

DbDep = Annotated[AsyncSession, Depends(get_db)]
ExportServiceDep = Annotated[ExportService, Depends(get_export_service)]


@router.get("", response_model=ExportListResponse)
async def list_exports(
    exports: ExportServiceDep,
    status: Optional[ExportStatus] = Query(None),
    format: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> ExportListResponse:
    rows, total = await exports.list_exports(
        status=status.value if status else None, fmt=format, search=search, limit=limit, offset=offset,
    )
    return ExportListResponse(
        exports=[ExportResponse.model_validate(e) for e in rows], total=total, limit=limit, offset=offset,
    )


@router.get("/stats", response_model=ExportStatsResponse)
async def export_stats(exports: ExportServiceDep) -> ExportStatsResponse:
    return ExportStatsResponse(**await exports.get_stats())


@router.post("", response_model=list[ExportResponse], status_code=201)
async def create_export(body: ExportCreate, db: DbDep, exports: ExportServiceDep) -> list[ExportResponse]:
    """Create ad-hoc exports and queue them, or generate inline with ``process_immediately``."""
    filters = FilterSnapshot(
        date_range=body.date_range.value,
        date_start=body.date_start,
        date_end=body.date_end,
        field_handles=tuple(body.field_handles),
        site_ids=tuple(body.site_ids),
    )
    trigger = body.resolved_trigger()

    if body.mode == ExportMode.COMBINED:
        created = [
            await exports.create_combined_export(
                body.data_source, body.entity_ids, body.format.value, filters,
                trigger, body.triggered_by_user,
            )
        ]
    else:
        created = [
            await exports.create_export(
                body.data_source, entity_id, body.format.value, filters,
                trigger, body.triggered_by_user,
            )
            for entity_id in body.entity_ids
        ]
    await db.commit()
    export_ids = [e.id for e in created]

    if body.process_immediately:
        for export_id in export_ids:
            await exports.generate(export_id)
        created = [await exports.get_export(export_id) for export_id in export_ids]
    else:
        for export in created:
            exports.queue_export(export)

    return [ExportResponse.model_validate(e) for e in created]


@router.get("/{export_id}", response_model=ExportResponse)
async def get_export(export_id: uuid.UUID, exports: ExportServiceDep) -> ExportResponse:
    export = await exports.get_export(export_id)
    if export is None:
        raise HTTPException(status_code=404, detail="Export not found")
    return ExportResponse.model_validate(export)


@router.get("/{export_id}/download")
async def download_export(export_id: uuid.UUID, exports: ExportServiceDep):
    export = await exports.get_export(export_id)
    if export is None:
        raise HTTPException(status_code=404, detail="Export not found")

    if export.status != ExportStatus.COMPLETED.value:
        raise HTTPException(status_code=400, detail=f"Export status is '{export.status}', not downloadable")

    content = await exports.get_file_content(export)
    if content is None:
        raise HTTPException(status_code=404, detail="Export file not found")

    return StreamingResponse(
        BytesIO(content),
        media_type=CONTENT_TYPES.get(export.format, "application/octet-stream"),
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )


@router.delete("/{export_id}")
async def delete_export(export_id: uuid.UUID, db: DbDep, exports: ExportServiceDep) -> dict:
    if not await exports.delete_export(export_id):
        raise HTTPException(status_code=404, detail="Export not found")
    await db.commit()
    return {"status": "ok"}
