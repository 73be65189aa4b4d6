"""
Derived fields stored alongside each MIS record.

Computed once from the raw fields at commit time, with the same rule
functions preview and reporting use.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Mapping

from mis_kernel.domain.journey import JourneyStage, calculate_journey_stage
from mis_kernel.domain.rules import (
    ConflictType,
    derive_lead_quality,
    detect_conflict,
    is_card_approved,
    is_kyc_completed,
    normalize,
)


@dataclass(frozen=True)
class DerivedFields:
    lead_quality: str
    kyc_completed: bool
    journey_stage: str
    applications: int
    dedupe_pass: int
    bureau_pass: int
    vkyc_pass: int
    disbursed: int
    card_approved: bool
    conflict_type: str | None

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def derive_record_fields(values: Mapping[str, Any]) -> DerivedFields:
    """Derived columns for a target-field keyed record."""
    final_status = values.get("final_status")
    login_status = values.get("login_status")
    vkyc_status = values.get("vkyc_status")
    blaze_output = values.get("blaze_output")

    stage = calculate_journey_stage(final_status, login_status, vkyc_status, blaze_output)
    conflict: ConflictType | None = detect_conflict(login_status, final_status, blaze_output)

    return DerivedFields(
        lead_quality=derive_lead_quality(blaze_output).value,
        kyc_completed=is_kyc_completed(
            login_status,
            final_status,
            vkyc_status,
            values.get("core_non_core"),
            values.get("rejection_reason"),
        ),
        journey_stage=stage.value,
        applications=1,
        dedupe_pass=int(stage.rank >= JourneyStage.DEDUPE_PASS.rank),
        bureau_pass=int(stage.rank >= JourneyStage.BUREAU_PASS.rank),
        vkyc_pass=int(normalize(vkyc_status) in ("APPROVED", "HARD_ACCEPT")),
        disbursed=int("DISBURSED" in normalize(final_status)),
        card_approved=is_card_approved(final_status),
        conflict_type=conflict.value if conflict else None,
    )
