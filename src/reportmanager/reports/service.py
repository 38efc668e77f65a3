"""ReportsService: saved report configurations and their schedule state."""

import logging
import re
import uuid
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import inspect, update
from sqlalchemy.ext.asyncio import AsyncSession

from reportmanager.db.models.export import Export
from reportmanager.db.models.report import Report
from reportmanager.db.repos.export_repo import ExportRepo
from reportmanager.db.repos.report_repo import ReportRepo
from reportmanager.domain.enums import DateRange, ExportFormat, ExportMode, ExportTrigger, Schedule
from reportmanager.exceptions import ReportValidationError, UnknownScheduleError
from reportmanager.schedule.calculator import next_run

logger = logging.getLogger(__name__)


def kebab_case(name: str) -> str:
    """"Monthly Sales Report" -> "monthly-sales-report"."""
    words = re.findall(r"[A-Z]?[a-z0-9]+|[A-Z]+(?![a-z])", name)
    return "-".join(w.lower() for w in words) or "report"


class ReportsService:
    def __init__(self, session: AsyncSession, clock: Callable[[], datetime] = datetime.now) -> None:
        self._session = session
        self._clock = clock
        self._reports = ReportRepo(session)
        self._exports = ExportRepo(session)

    async def get_report(self, report_id: uuid.UUID) -> Optional[Report]:
        return await self._reports.get_by_id(report_id)

    async def get_by_handle(self, handle: str) -> Optional[Report]:
        return await self._reports.get_by_handle(handle)

    async def list_reports(self, enabled_only: bool = False) -> list[Report]:
        return await self._reports.list_all(enabled_only=enabled_only)

    async def list_by_data_source(self, data_source: str) -> list[Report]:
        return await self._reports.list_by_data_source(data_source)

    async def save_report(self, report: Report) -> Report:
        """Validate, assign a unique handle, compute the next run and persist."""
        self._validate(report)
        is_new = not inspect(report).has_identity

        handle = report.handle or kebab_case(report.name)
        report.handle = await self._unique_handle(handle, report.id if not is_new else None)

        report.next_scheduled_at = self._next_scheduled_at(report, self._clock())

        if is_new and not report.sort_order:
            report.sort_order = await self._reports.max_sort_order() + 1

        if is_new:
            await self._reports.add(report)
        else:
            await self._session.flush()
        logger.info("Report %s %s (handle=%s)", report.name, "created" if is_new else "updated", report.handle)
        return report

    def _validate(self, report: Report) -> None:
        if not report.name or not report.name.strip():
            raise ReportValidationError("Report name is required")
        if not report.data_source:
            raise ReportValidationError("Report data source is required")
        if not report.entity_ids:
            raise ReportValidationError("Report needs at least one entity")
        if report.export_format not in {f.value for f in ExportFormat}:
            raise ReportValidationError(f"Unsupported export format: {report.export_format}")
        if report.export_mode not in {m.value for m in ExportMode}:
            raise ReportValidationError(f"Unknown export mode: {report.export_mode}")
        if report.date_range not in {d.value for d in DateRange}:
            raise ReportValidationError(f"Unknown date range: {report.date_range}")
        if report.schedule not in {s.value for s in Schedule}:
            raise ReportValidationError(f"Unknown schedule: {report.schedule}")

    async def _unique_handle(self, handle: str, report_id: Optional[uuid.UUID]) -> str:
        candidate = handle
        n = 1
        while await self._reports.handle_exists(candidate, exclude_id=report_id):
            candidate = f"{handle}-{n}"
            n += 1
        return candidate

    @staticmethod
    def _next_scheduled_at(report: Report, now: datetime) -> Optional[datetime]:
        if not report.enable_schedule:
            return None
        try:
            return next_run(report.schedule, now)
        except UnknownScheduleError as e:
            raise ReportValidationError(str(e)) from e

    async def delete_report(self, report_id: uuid.UUID) -> bool:
        """Delete a report; its exports stay, detached from it."""
        report = await self._reports.get_by_id(report_id)
        if report is None:
            return False
        orphaned = await self._exports.orphan_for_report(report_id)
        await self._reports.delete(report)
        logger.info("Report %s deleted, %d exports kept", report_id, orphaned)
        return True

    async def get_scheduled_reports_due(self, now: Optional[datetime] = None) -> list[uuid.UUID]:
        return await self._reports.due_ids(now or self._clock())

    async def mark_report_generated(self, report: Report, now: Optional[datetime] = None) -> None:
        """Record a scheduled run and move the report to its next slot."""
        now = now or self._clock()
        report.last_generated_at = now
        report.next_scheduled_at = self._next_scheduled_at(report, now)
        await self._session.flush()

    async def update_last_generated(self, report: Report, now: Optional[datetime] = None) -> None:
        """Record a manual run; the schedule is left alone."""
        report.last_generated_at = now or self._clock()
        await self._session.flush()

    async def reorder_reports(self, report_ids: list[uuid.UUID]) -> None:
        for position, report_id in enumerate(report_ids, start=1):
            await self._session.execute(
                update(Report)
                .where(Report.id == report_id)
                .values(sort_order=position)
            )
        await self._session.flush()

    async def run_report(
        self,
        report: Report,
        exports,
        triggered_by: ExportTrigger = ExportTrigger.MANUAL,
        triggered_by_user: Optional[str] = None,
    ) -> list[Export]:
        """Create a report's exports and queue each of them for generation.

        *exports* is the ExportService doing the work.
        """
        created = await exports.create_exports_for_report(report, triggered_by, triggered_by_user)
        await self.update_last_generated(report)
        await self._session.commit()
        for export in created:
            exports.queue_export(export)
        return created
