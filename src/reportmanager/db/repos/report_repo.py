import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from reportmanager.db.models.report import Report


class ReportRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, report: Report) -> Report:
        self._session.add(report)
        await self._session.flush()
        return report

    async def get_by_id(self, report_id: uuid.UUID) -> Optional[Report]:
        return await self._session.get(Report, report_id, populate_existing=True)

    async def get_by_handle(self, handle: str) -> Optional[Report]:
        result = await self._session.execute(select(Report).where(Report.handle == handle))
        return result.scalar_one_or_none()

    async def handle_exists(self, handle: str, exclude_id: Optional[uuid.UUID] = None) -> bool:
        stmt = select(Report.id).where(Report.handle == handle)
        if exclude_id is not None:
            stmt = stmt.where(Report.id != exclude_id)
        result = await self._session.execute(stmt)
        return result.first() is not None

    async def list_all(self, enabled_only: bool = False) -> list[Report]:
        stmt = select(Report)
        if enabled_only:
            stmt = stmt.where(Report.enabled.is_(True))
        result = await self._session.execute(stmt.order_by(Report.sort_order, Report.name))
        return list(result.scalars().all())

    async def list_by_data_source(self, data_source: str) -> list[Report]:
        result = await self._session.execute(
            select(Report).where(Report.data_source == data_source).order_by(Report.sort_order, Report.name)
        )
        return list(result.scalars().all())

    async def due_ids(self, now: datetime) -> list[uuid.UUID]:
        """Enabled, scheduled reports whose next run is at or before *now*, in stable order."""
        result = await self._session.execute(
            select(Report.id)
            .where(
                Report.enabled.is_(True),
                Report.enable_schedule.is_(True),
                Report.next_scheduled_at.is_not(None),
                Report.next_scheduled_at <= now,
            )
            .order_by(Report.sort_order, Report.name, Report.created_at)
        )
        return list(result.scalars().all())

    async def max_sort_order(self) -> int:
        result = await self._session.execute(select(func.coalesce(func.max(Report.sort_order), 0)))
        return int(result.scalar_one())

    async def delete(self, report: Report) -> None:
        await self._session.delete(report)
        await self._session.flush()
