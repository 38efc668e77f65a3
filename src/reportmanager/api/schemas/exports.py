import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from reportmanager.domain.enums import DateRange, ExportFormat, ExportMode, ExportTrigger


class ExportCreate(BaseModel):
    """Ad-hoc export request."""

    data_source: str
    entity_ids: list[int] = Field(min_length=1)
    format: ExportFormat = ExportFormat.CSV
    mode: ExportMode = ExportMode.SEPARATE
    date_range: DateRange = DateRange.ALL
    date_start: Optional[datetime] = None
    date_end: Optional[datetime] = None
    field_handles: list[str] = []
    site_ids: list[int] = []
    triggered_by_user: Optional[str] = None
    process_immediately: bool = False
    # None: manual when generated inline, api when queued
    triggered_by: Optional[ExportTrigger] = None

    @field_validator("triggered_by")
    @classmethod
    def _not_scheduled(cls, v: Optional[ExportTrigger]) -> Optional[ExportTrigger]:
        if v == ExportTrigger.SCHEDULED:
            raise ValueError("scheduled exports are only created by the scheduler")
        return v

    def resolved_trigger(self) -> ExportTrigger:
        if self.triggered_by is not None:
            return self.triggered_by
        return ExportTrigger.MANUAL if self.process_immediately else ExportTrigger.API


class ExportResponse(BaseModel):
    id: uuid.UUID
    report_id: Optional[uuid.UUID] = None
    data_source: str
    target_kind: str
    entity_id: Optional[int] = None
    entity_ids: list[int]
    entity_name: Optional[str] = None
    date_range_used: Optional[str] = None
    date_start_used: Optional[datetime] = None
    date_end_used: Optional[datetime] = None
    field_handles_used: list[str]
    site_ids_used: list[int]
    format: str
    filename: Optional[str] = None
    file_size: Optional[int] = None
    record_count: Optional[int] = None
    status: str
    progress: int
    error_message: Optional[str] = None
    triggered_by: str
    triggered_by_user: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class ExportListResponse(BaseModel):
    exports: list[ExportResponse]
    total: int
    limit: int
    offset: int


class ExportStatsResponse(BaseModel):
    total: int
    pending: int
    processing: int
    completed: int
    failed: int
    total_file_size: int
    formatted_file_size: str
