import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from reportmanager.db.models.export import Export
from reportmanager.domain.enums import ExportStatus
from reportmanager.exceptions import InvalidStatusTransitionError

PROGRESS_CLAIMED = 10


class ExportRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, export: Export) -> Export:
        self._session.add(export)
        await self._session.flush()
        return export

    async def get_by_id(self, export_id: uuid.UUID) -> Optional[Export]:
        return await self._session.get(Export, export_id, populate_existing=True)

    async def claim_pending(self, export_id: uuid.UUID, now: datetime) -> bool:
        """Move a pending export to processing. False if it already left pending.

        The status check and the update are one statement, so two workers can
        never both claim the same export.
        """
        result = await self._session.execute(
            update(Export)
            .where(Export.id == export_id, Export.status == ExportStatus.PENDING.value)
            .values(status=ExportStatus.PROCESSING.value, started_at=now, progress=PROGRESS_CLAIMED)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def transition(self, export: Export, target: ExportStatus) -> None:
        current = ExportStatus(export.status)
        if not current.can_transition_to(target):
            raise InvalidStatusTransitionError(current.value, target.value)
        export.status = target.value

    async def mark_completed(
        self, export: Export, file_path: str, file_size: int, record_count: int, now: datetime
    ) -> None:
        self.transition(export, ExportStatus.COMPLETED)
        export.file_path = file_path
        export.file_size = file_size
        export.record_count = record_count
        export.progress = 100
        export.error_message = None
        export.completed_at = now
        await self._session.flush()

    async def mark_failed(self, export: Export, message: str, now: datetime) -> None:
        self.transition(export, ExportStatus.FAILED)
        export.error_message = message
        export.completed_at = now
        await self._session.flush()

    async def set_progress(self, export: Export, progress: int) -> None:
        export.progress = max(0, min(100, progress))
        await self._session.flush()

    async def list_exports(
        self,
        status: Optional[str] = None,
        fmt: Optional[str] = None,
        search: Optional[str] = None,
        report_id: Optional[uuid.UUID] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Export], int]:
        """Newest first, with the total count before pagination."""
        stmt = select(Export)
        if status:
            stmt = stmt.where(Export.status == status)
        if fmt:
            stmt = stmt.where(Export.format == fmt)
        if report_id is not None:
            stmt = stmt.where(Export.report_id == report_id)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(
                or_(
                    Export.entity_name.ilike(pattern),
                    Export.data_source.ilike(pattern),
                    Export.filename.ilike(pattern),
                )
            )

        total = (await self._session.execute(select(func.count()).select_from(stmt.subquery()))).scalar_one()
        result = await self._session.execute(
            stmt.order_by(Export.created_at.desc()).limit(limit).offset(offset)
        )
        return list(result.scalars().all()), total

    async def list_for_report(self, report_id: uuid.UUID, limit: Optional[int] = None) -> list[Export]:
        stmt = select(Export).where(Export.report_id == report_id).order_by(Export.created_at.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def created_before(self, cutoff: datetime) -> list[tuple[uuid.UUID, Optional[str]]]:
        """(id, file_path) of every export created before *cutoff*, any status."""
        result = await self._session.execute(
            select(Export.id, Export.file_path).where(Export.created_at < cutoff).order_by(Export.created_at)
        )
        return [(row.id, row.file_path) for row in result.all()]

    async def delete(self, export_id: uuid.UUID) -> bool:
        result = await self._session.execute(delete(Export).where(Export.id == export_id))
        return result.rowcount == 1

    async def orphan_for_report(self, report_id: uuid.UUID) -> int:
        """Detach exports from a report that is about to be deleted."""
        result = await self._session.execute(
            update(Export)
            .where(Export.report_id == report_id)
            .values(report_id=None)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def count_by_status(self) -> dict[str, int]:
        result = await self._session.execute(select(Export.status, func.count()).group_by(Export.status))
        return {status: count for status, count in result.all()}

    async def total_completed_size(self) -> int:
        result = await self._session.execute(
            select(func.coalesce(func.sum(Export.file_size), 0)).where(
                Export.status == ExportStatus.COMPLETED.value
            )
        )
        return int(result.scalar_one())
