"""Queue the scheduled reports loop if it is not already queued.

Usage:
    PYTHONPATH=src python scripts/schedule_reports.py           # bootstrap (deduplicated)
    PYTHONPATH=src python scripts/schedule_reports.py --now     # run one pass inline, no reschedule

Safe to run repeatedly: the bootstrap skips enqueuing when a run is already
waiting in the queue.
"""

import asyncio
import logging
import sys

from reportmanager.config import settings
from reportmanager.log import configure_logging

configure_logging(settings.log_level)
logger = logging.getLogger("schedule_reports")


async def run_once() -> None:
    from reportmanager.datasources.registry import build_default_registry
    from reportmanager.db.session import build_engine, build_session_factory
    from reportmanager.scheduler.processor import ScheduledReportsProcessor
    from reportmanager.storage.factory import build_storage
    from reportmanager.workers.celery_app import build_job_queue

    engine = build_engine(settings.database_url, pooled=False)
    try:
        async with build_session_factory(engine)() as session:
            processor = ScheduledReportsProcessor(
                session,
                build_default_registry(settings.data_sources),
                build_storage(settings),
                settings,
                build_job_queue(),
            )
            summary = await processor.run(reschedule=False)
            logger.info("Run finished: %s", summary.as_dict())
    finally:
        await engine.dispose()


def main() -> None:
    if "--now" in sys.argv:
        asyncio.run(run_once())
        return

    from reportmanager.workers.celery_app import build_job_queue
    from reportmanager.scheduler.processor import schedule_reports_job

    if schedule_reports_job(settings, build_job_queue()):
        logger.info("Scheduled reports job queued")
    else:
        logger.info("Nothing queued (disabled or already pending)")


if __name__ == "__main__":
    main()
