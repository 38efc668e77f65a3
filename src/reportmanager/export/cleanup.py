"""RetentionCleaner: removes exports older than the retention window."""

import logging
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from reportmanager.config import Settings
from reportmanager.db.repos.export_repo import ExportRepo
from reportmanager.storage.base import ExportStorage

logger = logging.getLogger(__name__)


class RetentionCleaner:
    def __init__(
        self,
        session: AsyncSession,
        storage: ExportStorage,
        settings: Settings,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._session = session
        self._storage = storage
        self._settings = settings
        self._clock = clock
        self._exports = ExportRepo(session)

    async def cleanup(self) -> int:
        """Delete every export created before now − retention days. Returns the count removed.

        Each export is deleted in its own transaction; one failure is logged and
        the rest of the batch continues.
        """
        retention = self._settings.export_retention
        if not self._settings.auto_cleanup_exports or retention <= 0:
            return 0

        cutoff = self._clock() - timedelta(days=retention)
        candidates = await self._exports.created_before(cutoff)

        deleted = 0
        for export_id, file_path in candidates:
            try:
                if file_path and not await self._storage.delete(file_path):
                    logger.info("Export file already absent: %s", file_path)
                if await self._exports.delete(export_id):
                    deleted += 1
                await self._session.commit()
            except Exception:
                await self._session.rollback()
                logger.exception("Failed to clean up export %s", export_id)

        if deleted:
            logger.info("Cleaned up %d exports older than %s", deleted, cutoff)
        return deleted
