"""Celery tasks for export generation and the scheduled reports loop."""

import asyncio
import logging
import uuid

from reportmanager.workers.celery_app import build_job_queue, celery_app
from reportmanager.workers.queue import GENERATE_EXPORT_TASK, PROCESS_SCHEDULED_REPORTS_TASK

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, name=GENERATE_EXPORT_TASK)
def generate_export_task(self, export_id: str) -> dict:
    """Generate one export.

    Bridges to async code via asyncio.run(). Each task invocation
    creates its own engine + session (no shared state with FastAPI).
    The pipeline never retries; a failed export stays failed.
    """
    return asyncio.run(_generate_export_async(export_id))


async def _generate_export_async(export_id: str) -> dict:
    from reportmanager.config import settings
    from reportmanager.datasources.registry import build_default_registry
    from reportmanager.db.session import build_engine, build_session_factory
    from reportmanager.export.service import ExportService
    from reportmanager.storage.factory import build_storage

    engine = build_engine(settings.database_url, pooled=False)
    session_factory = build_session_factory(engine)
    try:
        async with session_factory() as session:
            service = ExportService(
                session,
                build_default_registry(settings.data_sources),
                build_storage(settings),
                settings,
                job_queue=build_job_queue(),
            )
            export = await service.get_export(uuid.UUID(export_id))
            if export is None:
                logger.warning("Export %s not found", export_id)
                return {"status": "missing"}
            ok = await service.generate(export.id)
            return {"status": "completed" if ok else "skipped_or_failed"}
    finally:
        await engine.dispose()


@celery_app.task(bind=True, name=PROCESS_SCHEDULED_REPORTS_TASK)
def process_scheduled_reports_task(self, reschedule: bool = True, next_run_label: str | None = None) -> dict:
    """Run due scheduled reports, clean up old exports and queue the next run."""
    if next_run_label:
        logger.info("Processing scheduled reports (planned for %s)", next_run_label)
    return asyncio.run(_process_scheduled_reports_async(reschedule))


async def _process_scheduled_reports_async(reschedule: bool) -> dict:
    from reportmanager.config import settings
    from reportmanager.datasources.registry import build_default_registry
    from reportmanager.db.session import build_engine, build_session_factory
    from reportmanager.scheduler.processor import ScheduledReportsProcessor
    from reportmanager.storage.factory import build_storage

    engine = build_engine(settings.database_url, pooled=False)
    session_factory = build_session_factory(engine)
    try:
        async with session_factory() as session:
            processor = ScheduledReportsProcessor(
                session,
                build_default_registry(settings.data_sources),
                build_storage(settings),
                settings,
                build_job_queue(),
            )
            summary = await processor.run(reschedule=reschedule)
            return summary.as_dict()
    finally:
        await engine.dispose()
