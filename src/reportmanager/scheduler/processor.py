"""Scheduled reports loop: one queued run that re-enqueues itself.

Each run generates every due report, applies retention, then queues the next
run at the next slot of the global default schedule. At most one run is
outstanding because only a finished run (or the deduplicated bootstrap)
enqueues another.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from reportmanager.config import Settings
from reportmanager.datasources.registry import DataSourceRegistry
from reportmanager.domain.enums import ExportTrigger
from reportmanager.export.cleanup import RetentionCleaner
from reportmanager.export.service import ExportService
from reportmanager.reports.service import ReportsService
from reportmanager.schedule.calculator import format_next_run_label, next_run_delay
from reportmanager.storage.base import ExportStorage
from reportmanager.workers.queue import PROCESS_SCHEDULED_REPORTS_TASK, JobQueue, QueuedTask

logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
    processed: int = 0
    failed: int = 0
    exports_completed: int = 0
    exports_failed: int = 0
    cleaned: int = 0
    next_delay: Optional[int] = None
    next_run_label: Optional[str] = None

    def as_dict(self) -> dict:
        return dict(self.__dict__)


class ScheduledReportsProcessor:
    def __init__(
        self,
        session: AsyncSession,
        registry: DataSourceRegistry,
        storage: ExportStorage,
        settings: Settings,
        job_queue: JobQueue,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._session = session
        self._settings = settings
        self._queue = job_queue
        self._clock = clock
        self._reports = ReportsService(session, clock=clock)
        self._exports = ExportService(session, registry, storage, settings, job_queue=job_queue, clock=clock)
        self._cleaner = RetentionCleaner(session, storage, settings, clock=clock)

    async def run(self, reschedule: bool = True) -> RunSummary:
        summary = RunSummary()
        if not self._settings.enable_scheduled_reports:
            logger.info("Scheduled reports are disabled, not running or rescheduling")
            if reschedule:
                self._queue.clear_pending(PROCESS_SCHEDULED_REPORTS_TASK)
            return summary

        now = self._clock()
        due = await self._reports.get_scheduled_reports_due(now)
        if due:
            logger.info("%d scheduled reports due", len(due))

        for report_id in due:
            try:
                await self._process_report(report_id, now, summary)
                summary.processed += 1
            except Exception:
                await self._session.rollback()
                summary.failed += 1
                logger.exception("Scheduled report %s failed", report_id)

        try:
            summary.cleaned = await self._cleaner.cleanup()
        except Exception:
            await self._session.rollback()
            logger.exception("Export retention cleanup failed")

        if reschedule:
            self._reschedule(summary)
            if summary.next_delay is None:
                # The loop ends here, let the next bootstrap start it again
                self._queue.clear_pending(PROCESS_SCHEDULED_REPORTS_TASK)
        return summary

    async def _process_report(self, report_id, now: datetime, summary: RunSummary) -> None:
        report = await self._reports.get_report(report_id)
        if report is None:
            return

        exports = await self._exports.create_exports_for_report(report, ExportTrigger.SCHEDULED)
        await self._session.commit()
        export_ids = [e.id for e in exports]

        for export_id in export_ids:
            if await self._exports.generate(export_id):
                summary.exports_completed += 1
            else:
                summary.exports_failed += 1

        report = await self._reports.get_report(report_id)
        await self._reports.mark_report_generated(report, now)
        await self._session.commit()
        logger.info(
            "Scheduled report %s generated %d exports, next run at %s",
            report.name, len(export_ids), report.next_scheduled_at,
        )

    def _reschedule(self, summary: RunSummary) -> None:
        if not self._settings.enable_scheduled_reports:
            return
        now = self._clock()
        delay = next_run_delay(self._settings.default_schedule, now)
        if delay is None or delay <= 0:
            return

        label = format_next_run_label(now + timedelta(seconds=delay))
        self._queue.enqueue(QueuedTask.process_scheduled_reports(True, label), delay_seconds=delay)
        summary.next_delay = delay
        summary.next_run_label = label
        logger.info("Next scheduled reports run in %ss (%s)", delay, label)


def schedule_reports_job(settings: Settings, job_queue: JobQueue) -> bool:
    """Bootstrap the loop unless it is disabled or a run is already pending."""
    if not settings.enable_scheduled_reports:
        return False
    if job_queue.has_pending(PROCESS_SCHEDULED_REPORTS_TASK):
        logger.info("Scheduled reports job already queued, not adding another")
        return False
    job_queue.enqueue(QueuedTask.process_scheduled_reports(True), delay_seconds=settings.initial_schedule_delay)
    logger.info(
        "Scheduled initial reports processing job in %ss (schedule=%s)",
        settings.initial_schedule_delay, settings.default_schedule,
    )
    return True
