"""
DataConflictModel -- append-only log of field changes, defaulted values and
contradictory status signals.

Every field overwritten by an accepted update gets one ``auto-resolved`` row.
Records whose blaze_output or core_non_core arrived empty and were defaulted
get one ``pending`` row for manual review, once per field until resolved.
Records whose login, final status and blaze output contradict each other get
one row typed with the ``ConflictType`` and carrying its fixed resolution
policy text, logged when the classification first appears or changes.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from mis_kernel.db.base import TrackedBase, UUIDString

RESOLUTION_AUTO = "auto-resolved"
RESOLUTION_PENDING = "pending"


class DataConflictModel(TrackedBase):
    __tablename__ = "data_conflicts"

    __table_args__ = (
        Index("ix_data_conflicts_application_id", "application_id"),
        Index("ix_data_conflicts_resolution", "resolution"),
    )

    application_id: Mapped[str] = mapped_column(String(100), nullable=False)
    field_name: Mapped[str] = mapped_column(String(100), nullable=False)
    old_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    new_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    conflict_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    # Status ("auto-resolved", "pending") or the fixed policy text for signal conflicts
    resolution: Mapped[str] = mapped_column(Text, nullable=False)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    upload_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("mis_uploads.id"),
        nullable=True,
    )

    @property
    def is_pending(self) -> bool:
        return self.resolution == RESOLUTION_PENDING
