"""
MisUploadModel -- one committed MIS file.

Exactly one upload is ``Current``; committing a new file marks the previous
ones ``Historical``.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from sqlalchemy import Date, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from mis_kernel.db.base import TrackedBase


class UploadStatus(str, Enum):
    CURRENT = "Current"
    HISTORICAL = "Historical"


class MisUploadModel(TrackedBase):
    __tablename__ = "mis_uploads"

    upload_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    file_name: Mapped[str | None] = mapped_column(String(500), nullable=True)
    upload_date: Mapped[date] = mapped_column(Date, nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    uploaded_by: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=UploadStatus.CURRENT.value)
    record_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    new_records: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_records: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    skipped_records: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    unchanged_records: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
