"""
Commit service: apply a reconciled ChangeSet to the MIS store.

Runs strictly after reconciliation has produced its final ChangeSet. Every
write of one upload happens inside the caller's transaction:

    1. Previous ``Current`` uploads become ``Historical``; a new upload row
       is created.
    2. New records are inserted with derived fields and a ``month`` frozen
       from application_date (fallback last_updated_date, then the commit
       date).
    3. Updated records are upserted by application_id. The stored ``month``
       and ``lead_quality`` are kept; other derived fields are recomputed.
    4. Each changed field of an updated record is logged as an
       ``auto-resolved`` conflict. Records whose blaze_output or
       core_non_core arrived empty and were defaulted get a ``pending`` one
       unless one is already unresolved for that field. Contradictory status
       signals are logged with their fixed resolution policy when the
       classification first appears or changes.

On any database error the service raises ``CommitFailedError``; the caller's
``session_scope`` rolls the whole upload back and the ChangeSet can be
re-applied unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mis_ingestion.domain.types import ChangeSet, PreviewRecord
from mis_kernel.domain.clock import Clock, SystemClock
from mis_kernel.domain.dates import month_label
from mis_kernel.domain.derived import DerivedFields, derive_record_fields
from mis_kernel.domain.rules import (
    DEFAULT_BLAZE_OUTPUT,
    DEFAULT_CORE_NON_CORE,
    ConflictType,
    normalize,
    resolve_conflict,
)
from mis_kernel.exceptions import CommitFailedError, DateParseError
from mis_kernel.logging_config import LogContext, get_logger
from mis_kernel.models.conflict import (
    RESOLUTION_AUTO,
    RESOLUTION_PENDING,
    DataConflictModel,
)
from mis_kernel.models.mis_record import RAW_FIELDS, MisRecordModel
from mis_kernel.models.upload import MisUploadModel, UploadStatus
from mis_kernel.services.base import BaseService

logger = get_logger("ingestion.commit_service")

FIELD_CHANGE = "FIELD_CHANGE"
DEFAULTED_VALUE = "DEFAULTED_VALUE"
SIGNAL_FIELD = "status_signals"

_SIGNAL_FIELDS = ("login_status", "final_status", "blaze_output")
_LOOKUP_CHUNK = 1000

# Fields that fall back to a default when the extract leaves them empty
_DEFAULTED_FIELDS: tuple[tuple[str, str], ...] = (
    ("blaze_output", DEFAULT_BLAZE_OUTPUT),
    ("core_non_core", DEFAULT_CORE_NON_CORE),
)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


@dataclass(frozen=True)
class CommitResult:
    upload_id: str
    inserted: int
    updated: int
    skipped: int
    unchanged: int
    conflicts_logged: int
    pending_conflicts: int
    signal_conflicts: int = 0


class CommitService(BaseService[MisRecordModel]):
    """Applies ChangeSets. Flushes only; the caller commits."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        uploaded_by: str = "Manual Upload",
        day_first: bool = True,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._uploaded_by = uploaded_by
        self._day_first = day_first

    def new_upload_id(self) -> str:
        """``MIS-YYYY-MM-DD-<base36 epoch milliseconds>``."""
        now = self._clock.now_utc()
        millis = int(now.timestamp() * 1000)
        return f"MIS-{now.date().isoformat()}-{_base36(millis)}"

    def derive_month(self, values: Mapping[str, Any]) -> str:
        """Reporting month for a new record; first parseable source wins."""
        for name in ("application_date", "last_updated_date"):
            value = values.get(name)
            if _text(value) is None:
                continue
            try:
                return month_label(value, day_first=self._day_first)
            except DateParseError:
                logger.warning(
                    "month_source_unparseable",
                    extra={"field": name, "value": str(value)},
                )
        return month_label(self._clock.now_utc())

    def apply(
        self,
        change_set: ChangeSet,
        file_name: str | None = None,
        record_count: int | None = None,
        actor: str | None = None,
    ) -> CommitResult:
        """
        Persist a ChangeSet as one upload.

        Raises:
            CommitFailedError: a database error occurred; nothing from this
                upload survives once the caller rolls back.
        """
        upload_id = self.new_upload_id()
        actor = actor or self._uploaded_by

        with LogContext.bind(
            correlation_id=upload_id,
            upload_id=upload_id,
            actor_id=actor,
            producer="ingestion.commit",
        ):
            logger.info(
                "commit_started",
                extra={
                    "file_name": file_name,
                    "new": len(change_set.new_records),
                    "updated": len(change_set.updated_records),
                },
            )
            try:
                upload = self._create_upload(upload_id, change_set, file_name, record_count, actor)
                conflicts = signals = 0
                for record in change_set.new_records:
                    with LogContext.bind(application_id=record.application_id):
                        signals += self._insert(record, upload, actor)
                for record in change_set.updated_records:
                    with LogContext.bind(application_id=record.application_id):
                        changed, found = self._update(record, upload, actor)
                    conflicts += changed
                    signals += found
                pending = self._log_defaulted_values(change_set, upload, actor)
                self.session.flush()
            except SQLAlchemyError as exc:
                logger.error(
                    "commit_failed",
                    extra={"error_type": type(exc).__name__},
                    exc_info=True,
                )
                raise CommitFailedError(upload_id, str(exc.__class__.__name__)) from exc

            result = CommitResult(
                upload_id=upload_id,
                inserted=len(change_set.new_records),
                updated=len(change_set.updated_records),
                skipped=len(change_set.skipped_records),
                unchanged=change_set.unchanged_count,
                conflicts_logged=conflicts,
                pending_conflicts=pending,
                signal_conflicts=signals,
            )
            logger.info(
                "commit_completed",
                extra={
                    "inserted": result.inserted,
                    "updated": result.updated,
                    "skipped": result.skipped,
                    "unchanged": result.unchanged,
                    "conflicts_logged": result.conflicts_logged,
                    "pending_conflicts": result.pending_conflicts,
                    "signal_conflicts": result.signal_conflicts,
                },
            )
            return result

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _create_upload(
        self,
        upload_id: str,
        change_set: ChangeSet,
        file_name: str | None,
        record_count: int | None,
        actor: str,
    ) -> MisUploadModel:
        self.session.execute(
            update(MisUploadModel)
            .where(MisUploadModel.status == UploadStatus.CURRENT.value)
            .values(status=UploadStatus.HISTORICAL.value)
        )
        now = self._clock.now_utc()
        upload = MisUploadModel(
            upload_id=upload_id,
            file_name=file_name,
            upload_date=now.date(),
            uploaded_at=now,
            uploaded_by=actor,
            status=UploadStatus.CURRENT.value,
            record_count=change_set.total_incoming if record_count is None else record_count,
            new_records=len(change_set.new_records),
            updated_records=len(change_set.updated_records),
            skipped_records=len(change_set.skipped_records),
            unchanged_records=change_set.unchanged_count,
            created_by=actor,
        )
        self.session.add(upload)
        self.session.flush()
        return upload

    def _apply_values(
        self,
        model: MisRecordModel,
        values: Mapping[str, Any],
        keep_quality: bool = False,
    ) -> DerivedFields:
        for name in RAW_FIELDS:
            if name == "application_id" or name not in values:
                continue
            setattr(model, name, _text(values[name]))
        derived = derive_record_fields(model.raw_values())
        # lead_quality is frozen at first derivation
        if not (keep_quality and model.lead_quality):
            model.lead_quality = derived.lead_quality
        model.kyc_completed = derived.kyc_completed
        model.card_approved = derived.card_approved
        model.journey_stage = derived.journey_stage
        model.applications = derived.applications
        model.dedupe_pass = derived.dedupe_pass
        model.bureau_pass = derived.bureau_pass
        model.vkyc_pass = derived.vkyc_pass
        model.disbursed = derived.disbursed
        return derived

    def _insert(self, record: PreviewRecord, upload: MisUploadModel, actor: str) -> int:
        """Insert one record; returns the number of signal conflicts logged (0 or 1)."""
        model = MisRecordModel(
            application_id=record.application_id,
            month=self.derive_month(record.new_values),
            upload_id=upload.id,
            created_by=actor,
        )
        derived = self._apply_values(model, record.new_values)
        self.session.add(model)
        return self._log_signal_conflict(model, derived, None, upload, actor)

    def _update(self, record: PreviewRecord, upload: MisUploadModel, actor: str) -> tuple[int, int]:
        """Apply one accepted update; returns (field changes logged, signal conflicts logged)."""
        model = self.session.execute(
            select(MisRecordModel).where(MisRecordModel.application_id == record.application_id)
        ).scalar_one_or_none()
        if model is None:
            # Upsert: the snapshot said it existed; keep the write-once rule by
            # deriving the month now, exactly once.
            logger.warning("updated_record_missing")
            signals = self._insert(record, upload, actor)
        else:
            # month is deliberately untouched: written once at insert
            previous = derive_record_fields(model.raw_values()).conflict_type
            changed = {name: record.new_values.get(name) for name in record.changed_fields}
            derived = self._apply_values(model, changed, keep_quality=True)
            model.upload_id = upload.id
            model.updated_by = actor
            signals = self._log_signal_conflict(model, derived, previous, upload, actor)

        now = self._clock.now_utc()
        for name in record.changed_fields:
            self.session.add(
                DataConflictModel(
                    application_id=record.application_id,
                    field_name=name,
                    old_value=_text(record.old_values.get(name)),
                    new_value=_text(record.new_values.get(name)),
                    conflict_type=FIELD_CHANGE,
                    resolution=RESOLUTION_AUTO,
                    resolved_at=now,
                    upload_id=upload.id,
                    created_by=actor,
                )
            )
        return len(record.changed_fields), signals

    def _log_signal_conflict(
        self,
        model: MisRecordModel,
        derived: DerivedFields,
        previous: str | None,
        upload: MisUploadModel,
        actor: str,
    ) -> int:
        """Log contradictory status signals when the classification appears or changes."""
        if derived.conflict_type is None or derived.conflict_type == previous:
            return 0
        policy = resolve_conflict(ConflictType(derived.conflict_type))
        self.session.add(
            DataConflictModel(
                application_id=model.application_id,
                field_name=SIGNAL_FIELD,
                old_value=previous,
                new_value=", ".join(f"{name}={model.raw_values()[name] or ''}" for name in _SIGNAL_FIELDS),
                conflict_type=derived.conflict_type,
                resolution=policy.resolution,
                resolved_at=self._clock.now_utc(),
                upload_id=upload.id,
                created_by=actor,
            )
        )
        logger.info("signal_conflict_logged", extra={"conflict_type": derived.conflict_type})
        return 1

    def _pending_defaults(self, application_ids: Sequence[str]) -> set[tuple[str, str]]:
        """(application_id, field_name) pairs with an unresolved defaulted-value entry."""
        found: set[tuple[str, str]] = set()
        for start in range(0, len(application_ids), _LOOKUP_CHUNK):
            chunk = application_ids[start:start + _LOOKUP_CHUNK]
            stmt = select(DataConflictModel.application_id, DataConflictModel.field_name).where(
                DataConflictModel.conflict_type == DEFAULTED_VALUE,
                DataConflictModel.resolution == RESOLUTION_PENDING,
                DataConflictModel.application_id.in_(chunk),
            )
            found.update((app_id, field) for app_id, field in self.session.execute(stmt))
        return found

    def _log_defaulted_values(self, change_set: ChangeSet, upload: MisUploadModel, actor: str) -> int:
        already_pending = self._pending_defaults(
            [record.application_id for record in change_set.updated_records]
        )
        pending = 0
        for record in change_set.new_records + change_set.updated_records:
            for name, default in _DEFAULTED_FIELDS:
                if name not in record.new_values or normalize(record.new_values[name]):
                    continue
                if (record.application_id, name) in already_pending:
                    continue
                self.session.add(
                    DataConflictModel(
                        application_id=record.application_id,
                        field_name=name,
                        old_value=None,
                        new_value=default,
                        conflict_type=DEFAULTED_VALUE,
                        resolution=RESOLUTION_PENDING,
                        upload_id=upload.id,
                        created_by=actor,
                    )
                )
                pending += 1
        return pending
