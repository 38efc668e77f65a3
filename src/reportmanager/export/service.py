"""ExportService: creates exports and runs the generation pipeline."""

import logging
import uuid
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from reportmanager.config import Settings
from reportmanager.datasources.registry import DataSourceRegistry
from reportmanager.db.models.export import Export
from reportmanager.db.models.report import Report
from reportmanager.db.repos.export_repo import ExportRepo
from reportmanager.domain.enums import ExportMode, ExportStatus, ExportTrigger, TargetKind
from reportmanager.domain.models import CombinedTarget, ExportData, FilterSnapshot, QueryOptions
from reportmanager.exceptions import (
    ConfigurationError,
    DataSourceNotFoundError,
    DataSourceUnavailableError,
    EntityNotFoundError,
    StorageError,
)
from reportmanager.export.encoders import encode_export, ensure_supported
from reportmanager.export.merge import merge_entities
from reportmanager.storage.base import ExportStorage
from reportmanager.workers.queue import JobQueue, QueuedTask

logger = logging.getLogger(__name__)

FILENAME_TIMESTAMP = "%Y-%m-%d_%H-%M-%S"
COMBINED_HANDLE = "combined"
COMBINED_NAME = "Combined"
FALLBACK_HANDLE = "export"
PROGRESS_COLLECTED = 60


def build_filename(data_source: str, entity_handle: str, fmt: str, now: datetime) -> str:
    """``{data_source}_{entity_handle}_{YYYY-MM-DD_HH-mm-ss}.{fmt}``"""
    return f"{data_source}_{entity_handle}_{now.strftime(FILENAME_TIMESTAMP)}.{fmt}"


def format_file_size(size: int) -> str:
    if size >= 1024 ** 3:
        return f"{size / 1024 ** 3:,.2f} GB"
    if size >= 1024 ** 2:
        return f"{size / 1024 ** 2:,.2f} MB"
    if size >= 1024:
        return f"{size / 1024:,.2f} KB"
    return f"{size} bytes"


class ExportService:
    """Owns export records from creation to their terminal state.

    ``generate`` is the pipeline: claim the pending export, collect rows from
    the data source (merging entities for combined exports), encode, store,
    and record the outcome. Any failure ends the export in ``failed`` with the
    error text; partial files are left in place.
    """

    def __init__(
        self,
        session: AsyncSession,
        registry: DataSourceRegistry,
        storage: ExportStorage,
        settings: Settings,
        job_queue: Optional[JobQueue] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._session = session
        self._registry = registry
        self._storage = storage
        self._settings = settings
        self._queue = job_queue
        self._clock = clock
        self._exports = ExportRepo(session)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create_export(
        self,
        data_source: str,
        entity_id: int,
        fmt: str,
        filters: FilterSnapshot | None = None,
        triggered_by: ExportTrigger = ExportTrigger.MANUAL,
        triggered_by_user: Optional[str] = None,
        report_id: Optional[uuid.UUID] = None,
    ) -> Export:
        """Create a pending single-entity export."""
        entity_name, entity_handle = await self._describe_entity(data_source, entity_id)
        now = self._clock()
        export = self._new_export(
            data_source, fmt, filters or FilterSnapshot(), triggered_by, triggered_by_user, report_id, now
        )
        export.target_kind = TargetKind.SINGLE.value
        export.entity_id = entity_id
        export.entity_ids = [entity_id]
        export.entity_name = entity_name
        export.filename = build_filename(data_source, entity_handle or FALLBACK_HANDLE, fmt, now)
        return await self._exports.add(export)

    async def create_combined_export(
        self,
        data_source: str,
        entity_ids: list[int],
        fmt: str,
        filters: FilterSnapshot | None = None,
        triggered_by: ExportTrigger = ExportTrigger.MANUAL,
        triggered_by_user: Optional[str] = None,
        report_id: Optional[uuid.UUID] = None,
    ) -> Export:
        """Create a pending export that merges several entities into one file."""
        now = self._clock()
        export = self._new_export(
            data_source, fmt, filters or FilterSnapshot(), triggered_by, triggered_by_user, report_id, now
        )
        export.target_kind = TargetKind.COMBINED.value
        export.entity_ids = list(entity_ids)
        export.entity_name = COMBINED_NAME
        export.filename = build_filename(data_source, COMBINED_HANDLE, fmt, now)
        return await self._exports.add(export)

    async def create_exports_for_report(
        self,
        report: Report,
        triggered_by: ExportTrigger,
        triggered_by_user: Optional[str] = None,
    ) -> list[Export]:
        """One export per entity, or one combined export, per the report's mode."""
        filters = FilterSnapshot.from_report(report)
        if report.export_mode == ExportMode.COMBINED.value:
            export = await self.create_combined_export(
                report.data_source, list(report.entity_ids), report.export_format,
                filters, triggered_by, triggered_by_user, report.id,
            )
            return [export]
        return [
            await self.create_export(
                report.data_source, entity_id, report.export_format,
                filters, triggered_by, triggered_by_user, report.id,
            )
            for entity_id in report.entity_ids
        ]

    def _new_export(
        self,
        data_source: str,
        fmt: str,
        filters: FilterSnapshot,
        triggered_by: ExportTrigger,
        triggered_by_user: Optional[str],
        report_id: Optional[uuid.UUID],
        now: datetime,
    ) -> Export:
        return Export(
            report_id=report_id,
            data_source=data_source,
            format=fmt,
            status=ExportStatus.PENDING.value,
            progress=0,
            triggered_by=ExportTrigger(triggered_by).value,
            triggered_by_user=triggered_by_user,
            date_range_used=filters.date_range,
            date_start_used=filters.date_start,
            date_end_used=filters.date_end,
            field_handles_used=list(filters.field_handles),
            site_ids_used=list(filters.site_ids),
            created_at=now,
        )

    async def _describe_entity(self, data_source: str, entity_id: int) -> tuple[Optional[str], Optional[str]]:
        """(name, handle) of an entity; (None, None) when it cannot be looked up."""
        source = self._registry.get(data_source)
        if source is None or not source.is_available():
            return None, None
        try:
            entity = await source.get_entity(entity_id)
        except Exception:
            logger.warning("Could not look up entity %s in %s", entity_id, data_source, exc_info=True)
            return None, None
        if entity is None:
            return None, None
        return entity.name, entity.handle

    # ------------------------------------------------------------------
    # Queueing
    # ------------------------------------------------------------------

    def queue_export(self, export: Export, delay_seconds: int = 0) -> None:
        if self._queue is None:
            raise RuntimeError("No job queue configured")
        self._queue.enqueue(QueuedTask.generate_export(export.id), delay_seconds=delay_seconds)

    # ------------------------------------------------------------------
    # Generation pipeline
    # ------------------------------------------------------------------

    async def generate(self, export_id: uuid.UUID) -> bool:
        """Run the pipeline for a pending export. Returns True when it completed.

        A redelivered or concurrent call finds the export no longer pending and
        returns False without touching it. The session is committed along the
        way, so callers commit their own pending work first.
        """
        if not await self._exports.claim_pending(export_id, self._clock()):
            logger.warning("Export %s is not pending, skipping generation", export_id)
            return False
        await self._session.commit()

        export = await self._exports.get_by_id(export_id)
        try:
            data = await self._collect(export)
            await self._exports.set_progress(export, PROGRESS_COLLECTED)

            content = encode_export(
                export.format,
                data,
                title=export.entity_name,
                delimiter=self._settings.csv_delimiter,
                enclosure=self._settings.csv_enclosure,
                include_bom=self._settings.csv_include_bom,
            )
            filename, path = await self._store(export.filename, content)
            export.filename = filename
            await self._exports.mark_completed(export, path, len(content), data.record_count, self._clock())
            await self._session.commit()
        except Exception as e:
            await self._session.rollback()
            export = await self._exports.get_by_id(export_id)
            await self._exports.mark_failed(export, str(e) or type(e).__name__, self._clock())
            await self._session.commit()
            logger.exception("Export %s failed", export_id)
            return False

        logger.info(
            "Export %s completed: %s, %d records, %d bytes",
            export_id, export.format, export.record_count, export.file_size,
        )
        return True

    async def _collect(self, export: Export) -> ExportData:
        source = self._registry.get(export.data_source)
        if source is None:
            raise DataSourceNotFoundError(export.data_source)
        if not source.is_available():
            raise DataSourceUnavailableError(export.data_source)
        ensure_supported(export.format)

        filters = export.filters
        options = QueryOptions.from_snapshot(filters)
        batch_size = self._settings.max_export_batch_size
        target = export.target

        if isinstance(target, CombinedTarget):
            if not target.entity_ids:
                raise ConfigurationError("Combined export has no entities")
            return await merge_entities(source, target.entity_ids, filters.field_handles, options, batch_size)

        if target.entity_id is None or await source.get_entity(target.entity_id) is None:
            raise EntityNotFoundError(export.data_source, target.entity_id)
        return await source.export_to_array(target.entity_id, filters.field_handles, options, batch_size=batch_size)

    async def _store(self, filename: str, content: bytes) -> tuple[str, str]:
        """Write under *filename*, adding a -N suffix if that name is taken."""
        stem, dot, ext = filename.rpartition(".")
        if not dot:
            stem, ext = filename, ""
        candidate = filename
        n = 1
        while await self._storage.exists(self._storage.path_for(candidate)):
            candidate = f"{stem}-{n}.{ext}" if ext else f"{stem}-{n}"
            n += 1
        path = self._storage.path_for(candidate)
        await self._storage.write(path, content)
        return candidate, path

    # ------------------------------------------------------------------
    # Management
    # ------------------------------------------------------------------

    async def get_export(self, export_id: uuid.UUID) -> Optional[Export]:
        return await self._exports.get_by_id(export_id)

    async def list_exports(
        self,
        status: Optional[str] = None,
        fmt: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Export], int]:
        return await self._exports.list_exports(status=status, fmt=fmt, search=search, limit=limit, offset=offset)

    async def list_for_report(self, report_id: uuid.UUID, limit: Optional[int] = None) -> list[Export]:
        return await self._exports.list_for_report(report_id, limit=limit)

    async def delete_export(self, export_id: uuid.UUID) -> bool:
        """Delete the file (if any) and then the record."""
        export = await self._exports.get_by_id(export_id)
        if export is None:
            return False
        if export.file_path:
            await self.delete_file(export.file_path)
        await self._exports.delete(export_id)
        logger.info("Export %s deleted", export_id)
        return True

    async def delete_file(self, path: str) -> None:
        try:
            if not await self._storage.delete(path):
                logger.info("Export file already absent: %s", path)
        except StorageError:
            logger.warning("Failed to delete export file %s", path, exc_info=True)

    async def get_file_content(self, export: Export) -> Optional[bytes]:
        if not export.file_path:
            return None
        return await self._storage.read(export.file_path)

    async def file_exists(self, export: Export) -> bool:
        if not export.file_path:
            return False
        return await self._storage.exists(export.file_path)

    async def get_stats(self) -> dict:
        counts = await self._exports.count_by_status()
        total_size = await self._exports.total_completed_size()
        stats = {status.value: counts.get(status.value, 0) for status in ExportStatus}
        stats["total"] = sum(counts.values())
        stats["total_file_size"] = total_size
        stats["formatted_file_size"] = format_file_size(total_size)
        return stats
