"""
MisRecordModel -- latest accepted state of one bank application.

One row per ``application_id``. Raw status fields are overwritten only through
the transition guard's accept path; ``month`` is written once at insert and
never changes afterwards. Rows are never deleted.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from mis_kernel.db.base import TrackedBase, UUIDString
from mis_kernel.domain.dtos import RECORD_FIELDS

RAW_FIELDS = RECORD_FIELDS


class MisRecordModel(TrackedBase):
    """Stored application record with raw and derived fields."""

    __tablename__ = "mis_records"

    __table_args__ = (
        Index("ix_mis_records_month", "month"),
        Index("ix_mis_records_lead_quality", "lead_quality"),
    )

    application_id: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    # Raw fields
    blaze_output: Mapped[str | None] = mapped_column(String(50), nullable=True)
    login_status: Mapped[str | None] = mapped_column(String(100), nullable=True)
    final_status: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_updated_date: Mapped[str | None] = mapped_column(String(32), nullable=True)
    vkyc_status: Mapped[str | None] = mapped_column(String(100), nullable=True)
    core_non_core: Mapped[str | None] = mapped_column(String(50), nullable=True)
    vkyc_eligible: Mapped[str | None] = mapped_column(String(50), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    product: Mapped[str | None] = mapped_column(String(100), nullable=True)
    application_date: Mapped[str | None] = mapped_column(String(32), nullable=True)

    # Write-once reporting month, e.g. "Jan 2025"
    month: Mapped[str] = mapped_column(String(16), nullable=False)

    # Derived fields
    # Frozen at insert, like month
    lead_quality: Mapped[str] = mapped_column(String(20), nullable=False)
    kyc_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    card_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    journey_stage: Mapped[str] = mapped_column(String(32), nullable=False)
    applications: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    dedupe_pass: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    bureau_pass: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    vkyc_pass: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    disbursed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    upload_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("mis_uploads.id"),
        nullable=True,
    )

    def raw_values(self) -> dict[str, Any]:
        """Raw fields keyed by target field name."""
        return {name: getattr(self, name) for name in RAW_FIELDS}

    def __repr__(self) -> str:
        return f"<MisRecord {self.application_id} {self.journey_stage} {self.month}>"
