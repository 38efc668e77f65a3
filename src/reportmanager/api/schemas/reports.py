import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from reportmanager.domain.enums import DateRange, ExportFormat, ExportMode, Schedule


class ReportCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    handle: Optional[str] = None
    description: Optional[str] = None
    data_source: str
    entity_ids: list[int] = Field(min_length=1)
    site_id: Optional[int] = None
    date_range: DateRange = DateRange.LAST_30_DAYS
    custom_date_start: Optional[datetime] = None
    custom_date_end: Optional[datetime] = None
    field_handles: list[str] = []
    export_format: ExportFormat = ExportFormat.CSV
    export_mode: ExportMode = ExportMode.SEPARATE
    enable_schedule: bool = False
    schedule: Schedule = Schedule.DISABLED
    enabled: bool = True


class ReportResponse(BaseModel):
    id: uuid.UUID
    name: str
    handle: str
    description: Optional[str] = None
    data_source: str
    entity_ids: list[int]
    site_id: Optional[int] = None
    date_range: str
    custom_date_start: Optional[datetime] = None
    custom_date_end: Optional[datetime] = None
    field_handles: list[str]
    export_format: str
    export_mode: str
    enable_schedule: bool
    schedule: str
    last_generated_at: Optional[datetime] = None
    next_scheduled_at: Optional[datetime] = None
    enabled: bool
    sort_order: int

    model_config = {"from_attributes": True}


class ReorderRequest(BaseModel):
    ids: list[uuid.UUID]
