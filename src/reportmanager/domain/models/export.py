"""Value types passed between the report, export and data-source layers."""

from datetime import datetime
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from reportmanager.domain.enums import DateRange


class FilterSnapshot(BaseModel):
    """Filters captured on an export at creation time; later report edits never touch it."""

    model_config = ConfigDict(frozen=True)

    date_range: str = DateRange.ALL.value
    date_start: Optional[datetime] = None
    date_end: Optional[datetime] = None
    field_handles: tuple[str, ...] = ()
    site_ids: tuple[int, ...] = ()

    @classmethod
    def from_report(cls, report) -> "FilterSnapshot":
        return cls(
            date_range=report.date_range,
            date_start=report.custom_date_start,
            date_end=report.custom_date_end,
            field_handles=tuple(report.field_handles or ()),
            site_ids=(report.site_id,) if report.site_id is not None else (),
        )


class SingleTarget(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["single"] = "single"
    entity_id: int


class CombinedTarget(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["combined"] = "combined"
    entity_ids: tuple[int, ...]


ExportTarget = Union[SingleTarget, CombinedTarget]


class QueryOptions(BaseModel):
    """Row extraction options handed to a data source."""

    date_range: Optional[str] = None
    date_start: Optional[datetime] = None
    date_end: Optional[datetime] = None
    site_ids: list[int] = Field(default_factory=list)
    limit: Optional[int] = None
    offset: int = 0

    @classmethod
    def from_snapshot(cls, snapshot: FilterSnapshot) -> "QueryOptions":
        return cls(
            date_range=snapshot.date_range,
            date_start=snapshot.date_start,
            date_end=snapshot.date_end,
            site_ids=list(snapshot.site_ids),
        )


class ExportData(BaseModel):
    headers: list[str] = Field(default_factory=list)
    rows: list[list[Any]] = Field(default_factory=list)

    @property
    def record_count(self) -> int:
        return len(self.rows)
