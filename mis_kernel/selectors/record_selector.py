"""
Module: mis_kernel.selectors.record_selector
Responsibility: Read access to stored MIS records, conflicts and uploads.

Invariants enforced:
    - Lookup is paged (``page_size`` rows per query) and accumulated into one
      list before any guard runs; no page is silently dropped.
    - ``keys=None`` means the full, unfiltered record set.
    - Ordering is deterministic (by application_id) so paging is stable.

Failure modes:
    - Returns empty lists when nothing matches; never raises on absence.
"""

from __future__ import annotations

from typing import Iterable

from sqlalchemy import select

from mis_kernel.domain.dtos import ConflictDTO, MisRecordDTO, UploadDTO
from mis_kernel.domain.rules import ConflictType
from mis_kernel.logging_config import get_logger
from mis_kernel.models.conflict import RESOLUTION_PENDING, DataConflictModel
from mis_kernel.models.mis_record import MisRecordModel
from mis_kernel.models.upload import MisUploadModel
from mis_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.record")

DEFAULT_PAGE_SIZE = 1000


class MisRecordSelector(BaseSelector[MisRecordModel]):
    """Paged reads over mis_records plus conflict and upload history."""

    def fetch_all_records(self, page_size: int = DEFAULT_PAGE_SIZE) -> list[MisRecordDTO]:
        """Every stored record, fetched ``page_size`` rows at a time."""
        if page_size < 1:
            raise ValueError("page_size must be positive")

        records: list[MisRecordDTO] = []
        offset = 0
        pages = 0
        while True:
            stmt = (
                select(MisRecordModel)
                .order_by(MisRecordModel.application_id)
                .offset(offset)
                .limit(page_size)
            )
            page = self.session.execute(stmt).scalars().all()
            pages += 1
            records.extend(MisRecordDTO.from_model(row) for row in page)
            if len(page) < page_size:
                break
            offset += page_size

        logger.debug(
            "records_fetched",
            extra={"record_count": len(records), "pages": pages, "page_size": page_size},
        )
        return records

    def fetch_snapshot(
        self,
        keys: Iterable[str] | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> list[MisRecordDTO]:
        """
        Stored records for reconciliation.

        Args:
            keys: Application ids to look up; None for the full set.
            page_size: Rows (or keys) per query.
        """
        if keys is None:
            return self.fetch_all_records(page_size=page_size)
        if page_size < 1:
            raise ValueError("page_size must be positive")

        wanted = list(dict.fromkeys(keys))
        records: list[MisRecordDTO] = []
        for start in range(0, len(wanted), page_size):
            chunk = wanted[start:start + page_size]
            stmt = (
                select(MisRecordModel)
                .where(MisRecordModel.application_id.in_(chunk))
                .order_by(MisRecordModel.application_id)
            )
            records.extend(
                MisRecordDTO.from_model(row)
                for row in self.session.execute(stmt).scalars()
            )

        logger.debug(
            "snapshot_fetched",
            extra={"requested": len(wanted), "found": len(records)},
        )
        return records

    def get_record(self, application_id: str) -> MisRecordDTO | None:
        row = self.session.execute(
            select(MisRecordModel).where(MisRecordModel.application_id == application_id)
        ).scalar_one_or_none()
        return MisRecordDTO.from_model(row) if row is not None else None

    def _conflicts(self, stmt) -> list[ConflictDTO]:
        rows = self.session.execute(stmt).all()
        return [
            ConflictDTO(
                application_id=conflict.application_id,
                field_name=conflict.field_name,
                old_value=conflict.old_value,
                new_value=conflict.new_value,
                resolution=conflict.resolution,
                conflict_type=conflict.conflict_type,
                upload_id=upload_id,
            )
            for conflict, upload_id in rows
        ]

    def pending_conflicts(self) -> list[ConflictDTO]:
        """Conflicts still awaiting manual resolution."""
        stmt = (
            select(DataConflictModel, MisUploadModel.upload_id)
            .outerjoin(MisUploadModel, DataConflictModel.upload_id == MisUploadModel.id)
            .where(DataConflictModel.resolution == RESOLUTION_PENDING)
            .order_by(DataConflictModel.application_id, DataConflictModel.field_name)
        )
        return self._conflicts(stmt)

    def signal_conflicts(self) -> list[ConflictDTO]:
        """Contradictory status signals, with the policy that resolved each."""
        stmt = (
            select(DataConflictModel, MisUploadModel.upload_id)
            .outerjoin(MisUploadModel, DataConflictModel.upload_id == MisUploadModel.id)
            .where(DataConflictModel.conflict_type.in_([c.value for c in ConflictType]))
            .order_by(DataConflictModel.application_id, DataConflictModel.created_at)
        )
        return self._conflicts(stmt)

    def conflicts_for(self, application_id: str) -> list[ConflictDTO]:
        stmt = (
            select(DataConflictModel, MisUploadModel.upload_id)
            .outerjoin(MisUploadModel, DataConflictModel.upload_id == MisUploadModel.id)
            .where(DataConflictModel.application_id == application_id)
            .order_by(DataConflictModel.created_at, DataConflictModel.field_name)
        )
        return self._conflicts(stmt)

    def upload_history(self, limit: int = 50) -> list[UploadDTO]:
        """Most recent uploads first."""
        stmt = (
            select(MisUploadModel)
            .order_by(MisUploadModel.uploaded_at.desc(), MisUploadModel.upload_id.desc())
            .limit(limit)
        )
        return [
            UploadDTO(
                upload_id=u.upload_id,
                file_name=u.file_name,
                upload_date=u.upload_date.isoformat(),
                uploaded_by=u.uploaded_by,
                status=u.status,
                record_count=u.record_count,
                new_records=u.new_records,
                updated_records=u.updated_records,
                skipped_records=u.skipped_records,
                unchanged_records=u.unchanged_records,
            )
            for u in self.session.execute(stmt).scalars()
        ]
