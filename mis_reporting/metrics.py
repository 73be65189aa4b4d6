"""
Pure funnel metric functions over stored MIS records.

Every classification goes through ``mis_kernel.domain.rules``; nothing here
re-implements a rule, so dashboards agree with preview and commit. KYC completion
and eligibility are re-derived from the raw fields. Quality buckets use the
stored lead_quality, which is frozen at first derivation, and fall back to
deriving it when the stored value is not a known quality.

ZERO I/O. Deterministic: same records, same summary.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Sequence

from mis_kernel.domain.dates import MONTH_ABBREVIATIONS
from mis_kernel.domain.dtos import MisRecordDTO
from mis_kernel.domain.rules import (
    KycChannel,
    LeadQuality,
    derive_lead_quality,
    has_login,
    is_card_approved,
    is_non_core,
    is_rejected_post_kyc,
    kyc_completion_channel,
    normalize,
    normalize_blaze_output,
)
from mis_reporting.models import (
    ALL,
    FunnelRow,
    FunnelSummary,
    KycBreakdown,
    QualityTotals,
    VkycFunnelMetrics,
)

_ONE_DP = Decimal("0.1")
_ZERO = Decimal("0.0")

_TRUTHY = frozenset({"Y", "YES", "TRUE", "1", "ELIGIBLE"})


def percent(numerator: int, denominator: int) -> Decimal:
    """numerator / denominator as a percentage, 1 dp, half-up; 0 when denominator is 0."""
    if denominator <= 0:
        return _ZERO
    return (Decimal(numerator) * 100 / Decimal(denominator)).quantize(_ONE_DP, rounding=ROUND_HALF_UP)


def record_quality(record: MisRecordDTO) -> LeadQuality:
    """Stored lead quality when it is a known value, else derived from blaze_output."""
    try:
        return LeadQuality(record.lead_quality)
    except ValueError:
        return derive_lead_quality(record.blaze_output)


def month_sort_key(month: str) -> tuple[int, int, str]:
    """Chronological key for ``"Jan 2025"`` labels; anything else sorts last."""
    parts = month.split()
    if len(parts) == 2 and parts[0] in MONTH_ABBREVIATIONS and parts[1].isdigit():
        return (int(parts[1]), MONTH_ABBREVIATIONS.index(parts[0]), "")
    return (10_000, 0, month)


# =========================================================================
# Funnel
# =========================================================================


@dataclass
class _Tally:
    total: int = 0
    not_eligible: int = 0
    pending: int = 0
    approved: int = 0
    rejected_post_kyc: int = 0
    login: int = 0
    vkyc: int = 0
    non_core: int = 0
    progressed: int = 0

    def add(self, record: MisRecordDTO) -> None:
        self.total += 1
        if is_card_approved(record.final_status):
            self.approved += 1

        if derive_lead_quality(record.blaze_output) is LeadQuality.REJECTED:
            self.not_eligible += 1
            return

        channel = kyc_completion_channel(
            record.login_status,
            record.final_status,
            record.vkyc_status,
            record.core_non_core,
        )
        if channel is None:
            self.pending += 1
            return

        if channel is KycChannel.LOGIN:
            self.login += 1
        elif channel is KycChannel.VKYC:
            self.vkyc += 1
        elif channel is KycChannel.NON_CORE:
            self.non_core += 1
        else:
            self.progressed += 1
        if is_rejected_post_kyc(record.final_status, True):
            self.rejected_post_kyc += 1

    def row(self, month: str, quality: str) -> FunnelRow:
        breakdown = KycBreakdown(
            login=self.login,
            vkyc=self.vkyc,
            non_core=self.non_core,
            progressed=self.progressed,
        )
        eligible = self.total - self.not_eligible
        done = breakdown.total
        return FunnelRow(
            month=month,
            quality=quality,
            total_applications=self.total,
            eligible_for_kyc=eligible,
            kyc_done=done,
            kyc_pending=self.pending,
            kyc_breakdown=breakdown,
            cards_approved=self.approved,
            rejected_post_kyc=self.rejected_post_kyc,
            kyc_conversion_percent=percent(done, eligible),
            approval_percent=percent(self.approved, done),
            rejection_percent=percent(self.rejected_post_kyc, done),
        )


def summarize_records(records: Iterable[MisRecordDTO]) -> FunnelSummary:
    """
    Funnel per month, per lead quality and overall.

    Eligible for KYC means quality is not Rejected. KYC done counts eligible
    records only, split by the rule that closed KYC. Quality rows are always
    present for Good, Average and Rejected, even when empty.
    """
    overall = _Tally()
    by_month: dict[str, _Tally] = {}
    by_quality: dict[LeadQuality, _Tally] = {q: _Tally() for q in LeadQuality}
    null_dates = 0

    for record in records:
        overall.add(record)
        by_month.setdefault(record.month, _Tally()).add(record)
        by_quality[record_quality(record)].add(record)
        if not normalize(record.application_date):
            null_dates += 1

    months = sorted(by_month, key=month_sort_key)
    return FunnelSummary(
        by_month=tuple(by_month[m].row(m, ALL) for m in months),
        by_quality=tuple(by_quality[q].row(ALL, q.value) for q in LeadQuality),
        overall=overall.row(ALL, ALL),
        quality_totals=QualityTotals(
            good=by_quality[LeadQuality.GOOD].total,
            average=by_quality[LeadQuality.AVERAGE].total,
            rejected=by_quality[LeadQuality.REJECTED].total,
            total=overall.total,
        ),
        null_application_date_count=null_dates,
    )


# =========================================================================
# VKYC funnel
# =========================================================================


def is_stpk(record: MisRecordDTO) -> bool:
    return normalize_blaze_output(record.blaze_output) == "STPK"


def compute_vkyc_funnel(records: Iterable[MisRecordDTO]) -> VkycFunnelMetrics:
    """
    Video-KYC funnel over STPK leads.

    Physical paths use any login signal. Dropped counts STPK leads with a
    VKYC status that is neither Approved nor Rejected.
    """
    counts = dict.fromkeys(VkycFunnelMetrics.__dataclass_fields__, 0)

    for record in records:
        if not is_stpk(record):
            continue
        vkyc = normalize(record.vkyc_status)
        approved = vkyc == "APPROVED"
        rejected = vkyc == "REJECTED"
        non_core = is_non_core(record.core_non_core)
        card = is_card_approved(record.final_status)
        login = has_login(record.login_status)

        counts["total_stpk"] += 1
        if normalize(record.vkyc_eligible) in _TRUTHY:
            counts["vkyc_eligible"] += 1

        if approved:
            counts["vkyc_approved"] += 1
            counts["vkyc_approved_non_core" if non_core else "vkyc_approved_core"] += 1
            if card:
                counts["cards_from_vkyc_approved"] += 1
        elif rejected:
            counts["vkyc_rejected"] += 1
            counts["vkyc_rejected_non_core" if non_core else "vkyc_rejected_core"] += 1
            if login and card:
                counts["cards_from_vkyc_rejected_physical"] += 1
        else:
            if vkyc:
                counts["vkyc_dropped"] += 1
            if login and card:
                counts["cards_from_no_vkyc_physical"] += 1

        # Attempted VKYC without success and never logged in physically
        if vkyc and not approved and not login:
            counts["physical_dropoffs"] += 1

    return VkycFunnelMetrics(**counts)


def vkyc_funnel_by_month(records: Sequence[MisRecordDTO]) -> dict[str, VkycFunnelMetrics]:
    months = sorted({r.month for r in records}, key=month_sort_key)
    return {
        month: compute_vkyc_funnel(r for r in records if r.month == month)
        for month in months
    }
