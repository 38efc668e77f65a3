"""Export: one generated artifact and its lifecycle."""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from reportmanager.db.session import Base, UUIDPrimaryKey
from reportmanager.domain.enums import ExportStatus, TargetKind
from reportmanager.domain.models import CombinedTarget, ExportTarget, FilterSnapshot, SingleTarget


class Export(UUIDPrimaryKey, Base):
    __tablename__ = "exports"

    report_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("reports.id", ondelete="SET NULL"), default=None, index=True
    )
    data_source: Mapped[str] = mapped_column(String(100))

    # Target variant: single -> entity_id, combined -> entity_ids
    target_kind: Mapped[str] = mapped_column(String(20), default=TargetKind.SINGLE.value)
    entity_id: Mapped[Optional[int]] = mapped_column(Integer, default=None)
    entity_ids: Mapped[list[int]] = mapped_column(JSON, default=list)
    entity_name: Mapped[Optional[str]] = mapped_column(String(255), default=None)

    # Filter snapshot, immutable after creation
    date_range_used: Mapped[Optional[str]] = mapped_column(String(50), default=None)
    date_start_used: Mapped[Optional[datetime]] = mapped_column(default=None)
    date_end_used: Mapped[Optional[datetime]] = mapped_column(default=None)
    field_handles_used: Mapped[list[str]] = mapped_column(JSON, default=list)
    site_ids_used: Mapped[list[int]] = mapped_column(JSON, default=list)

    format: Mapped[str] = mapped_column(String(10))
    filename: Mapped[Optional[str]] = mapped_column(String(255), default=None)
    file_path: Mapped[Optional[str]] = mapped_column(String(1024), default=None)
    file_size: Mapped[Optional[int]] = mapped_column(Integer, default=None)
    record_count: Mapped[Optional[int]] = mapped_column(Integer, default=None)

    status: Mapped[str] = mapped_column(String(20), default=ExportStatus.PENDING.value, index=True)
    progress: Mapped[int] = mapped_column(Integer, default=0)
    error_message: Mapped[Optional[str]] = mapped_column(Text, default=None)
    triggered_by: Mapped[str] = mapped_column(String(20), default="manual")  # manual / scheduled / api
    triggered_by_user: Mapped[Optional[str]] = mapped_column(String(255), default=None)

    started_at: Mapped[Optional[datetime]] = mapped_column(default=None)
    completed_at: Mapped[Optional[datetime]] = mapped_column(default=None)
    created_at: Mapped[datetime] = mapped_column(default=datetime.now, index=True)

    @property
    def target(self) -> ExportTarget:
        if self.target_kind == TargetKind.COMBINED.value:
            return CombinedTarget(entity_ids=tuple(self.entity_ids or ()))
        return SingleTarget(entity_id=self.entity_id)

    @property
    def filters(self) -> FilterSnapshot:
        return FilterSnapshot(
            date_range=self.date_range_used or "all",
            date_start=self.date_start_used,
            date_end=self.date_end_used,
            field_handles=tuple(self.field_handles_used or ()),
            site_ids=tuple(self.site_ids_used or ()),
        )
