"""Abstract data source contract plus shared date-range helpers."""

from abc import ABC, abstractmethod
from datetime import datetime, time, timedelta
from typing import Any, Optional

from reportmanager.domain.enums import DateRange
from reportmanager.domain.models import EntityInfo, ExportData, FieldInfo, QueryOptions

DEFAULT_BATCH_SIZE = 10000

_RANGE_DAYS = {
    DateRange.LAST_7_DAYS.value: 7,
    DateRange.LAST_30_DAYS.value: 30,
    DateRange.LAST_90_DAYS.value: 90,
    DateRange.LAST_365_DAYS.value: 365,
    DateRange.LAST_YEAR.value: 365,
}


def date_range_bounds(date_range: Optional[str], now: datetime) -> tuple[Optional[datetime], Optional[datetime]]:
    """(start, end) for a date-range shorthand; None means unbounded on that side."""
    midnight = datetime.combine(now.date(), time(0), tzinfo=now.tzinfo)
    if date_range == DateRange.TODAY.value:
        return midnight, None
    if date_range == DateRange.YESTERDAY.value:
        start = midnight - timedelta(days=1)
        return start, start.replace(hour=23, minute=59, second=59)
    days = _RANGE_DAYS.get(date_range or "")
    if days is not None:
        return midnight - timedelta(days=days), None
    return None, None


def resolve_date_bounds(options: QueryOptions, now: datetime) -> tuple[Optional[datetime], Optional[datetime]]:
    """Explicit start/end take precedence over the shorthand, side by side."""
    start, end = date_range_bounds(options.date_range, now)
    if options.date_start is not None:
        start = options.date_start
    if options.date_end is not None:
        end = options.date_end
    return start, end


class DataSource(ABC):
    """A pluggable provider of reportable entities and their rows.

    Subclasses set ``handle``, ``display_name`` and ``description`` and
    implement the async accessors. Rows returned by ``get_rows`` are lists
    aligned to the requested field handles.
    """

    handle: str = ""
    display_name: str = ""
    description: str = ""

    @classmethod
    def is_available(cls) -> bool:
        return True

    @abstractmethod
    async def get_available_entities(self) -> list[EntityInfo]:
        """All entities this source can export."""

    @abstractmethod
    async def get_entity(self, entity_id: int) -> Optional[EntityInfo]:
        """A single entity, or None if it does not exist."""

    @abstractmethod
    async def get_entity_fields(self, entity_id: int) -> list[FieldInfo]:
        """Fields of an entity in display order."""

    @abstractmethod
    async def get_rows(
        self, entity_id: int, field_handles: list[str], options: QueryOptions
    ) -> list[list[Any]]:
        """Rows for *entity_id*, one cell per handle in *field_handles*."""

    @abstractmethod
    async def get_row_count(self, entity_id: int, options: QueryOptions) -> int:
        """Number of rows matching *options* (pagination ignored)."""

    async def get_export_fields(self, entity_id: int, field_handles: list[str] | tuple[str, ...] = ()) -> list[FieldInfo]:
        """Exportable fields, restricted to *field_handles* when non-empty."""
        fields = [f for f in await self.get_entity_fields(entity_id) if f.exportable]
        if field_handles:
            wanted = set(field_handles)
            fields = [f for f in fields if f.handle in wanted]
        return fields

    async def export_to_array(
        self,
        entity_id: int,
        field_handles: list[str] | tuple[str, ...] = (),
        options: Optional[QueryOptions] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> ExportData:
        """Headers (field labels) and every matching row, fetched in batches."""
        if not self.is_available():
            return ExportData()

        fields = await self.get_export_fields(entity_id, field_handles)
        handles = [f.handle for f in fields]
        base = options or QueryOptions()

        rows: list[list[Any]] = []
        offset = 0
        while True:
            page = await self.get_rows(
                entity_id, handles, base.model_copy(update={"limit": batch_size, "offset": offset})
            )
            rows.extend(page)
            if len(page) < batch_size:
                break
            offset += batch_size

        return ExportData(headers=[f.label for f in fields], rows=rows)
