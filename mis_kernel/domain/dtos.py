"""
DTOs -- immutable records crossing the kernel boundary.

Domain logic and reporting accept these, never ORM entities. ``from_model``
is a boundary converter invoked only from selectors.

ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from mis_kernel.models.mis_record import MisRecordModel

# Raw fields of an application record, in extract column order
RECORD_FIELDS: tuple[str, ...] = (
    "application_id",
    "blaze_output",
    "login_status",
    "final_status",
    "last_updated_date",
    "vkyc_status",
    "core_non_core",
    "vkyc_eligible",
    "rejection_reason",
    "state",
    "product",
    "application_date",
)


@dataclass(frozen=True)
class MisRecordDTO:
    """Stored application record as seen by reconciliation and reporting."""

    application_id: str
    month: str
    lead_quality: str
    kyc_completed: bool
    journey_stage: str
    card_approved: bool = False
    blaze_output: str | None = None
    login_status: str | None = None
    final_status: str | None = None
    last_updated_date: str | None = None
    vkyc_status: str | None = None
    core_non_core: str | None = None
    vkyc_eligible: str | None = None
    rejection_reason: str | None = None
    state: str | None = None
    product: str | None = None
    application_date: str | None = None
    applications: int = 1
    dedupe_pass: int = 0
    bureau_pass: int = 0
    vkyc_pass: int = 0
    disbursed: int = 0

    @classmethod
    def from_model(cls, model: MisRecordModel) -> MisRecordDTO:
        return cls(
            application_id=model.application_id,
            month=model.month,
            lead_quality=model.lead_quality,
            kyc_completed=bool(model.kyc_completed),
            journey_stage=model.journey_stage,
            card_approved=bool(model.card_approved),
            blaze_output=model.blaze_output,
            login_status=model.login_status,
            final_status=model.final_status,
            last_updated_date=model.last_updated_date,
            vkyc_status=model.vkyc_status,
            core_non_core=model.core_non_core,
            vkyc_eligible=model.vkyc_eligible,
            rejection_reason=model.rejection_reason,
            state=model.state,
            product=model.product,
            application_date=model.application_date,
            applications=model.applications,
            dedupe_pass=model.dedupe_pass,
            bureau_pass=model.bureau_pass,
            vkyc_pass=model.vkyc_pass,
            disbursed=model.disbursed,
        )

    def field_values(self) -> dict[str, Any]:
        """Raw fields keyed by target field name, as the reconciler diffs them."""
        return {name: getattr(self, name) for name in RECORD_FIELDS}


@dataclass(frozen=True)
class ConflictDTO:
    application_id: str
    field_name: str
    old_value: str | None
    new_value: str | None
    resolution: str
    conflict_type: str | None = None
    upload_id: str | None = None


@dataclass(frozen=True)
class UploadDTO:
    upload_id: str
    file_name: str | None
    upload_date: str
    uploaded_by: str
    status: str
    record_count: int
    new_records: int
    updated_records: int
    skipped_records: int = 0
    unchanged_records: int = 0
