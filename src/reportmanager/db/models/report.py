"""Report: a saved, reusable export configuration."""

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Boolean, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from reportmanager.db.session import Base, TimestampMixin, UUIDPrimaryKey


class Report(UUIDPrimaryKey, TimestampMixin, Base):
    __tablename__ = "reports"

    name: Mapped[str] = mapped_column(String(255))
    handle: Mapped[str] = mapped_column(String(255), unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, default=None)

    data_source: Mapped[str] = mapped_column(String(100))
    entity_ids: Mapped[list[int]] = mapped_column(JSON, default=list)
    site_id: Mapped[Optional[int]] = mapped_column(Integer, default=None)

    date_range: Mapped[str] = mapped_column(String(50), default="last30days")
    custom_date_start: Mapped[Optional[datetime]] = mapped_column(default=None)
    custom_date_end: Mapped[Optional[datetime]] = mapped_column(default=None)
    field_handles: Mapped[list[str]] = mapped_column(JSON, default=list)  # empty = all fields

    export_format: Mapped[str] = mapped_column(String(10), default="csv")
    export_mode: Mapped[str] = mapped_column(String(20), default="separate")  # separate / combined

    enable_schedule: Mapped[bool] = mapped_column(Boolean, default=False)
    schedule: Mapped[str] = mapped_column(String(50), default="disabled")
    last_generated_at: Mapped[Optional[datetime]] = mapped_column(default=None)
    next_scheduled_at: Mapped[Optional[datetime]] = mapped_column(default=None, index=True)

    enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
