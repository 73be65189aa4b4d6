"""
MIS Reporting Domain Models (``mis_reporting.models``).

Responsibility
--------------
Frozen dataclass value objects for funnel summaries, the STPK video-KYC
funnel and data-invariant check results.

Architecture position
---------------------
**Reporting layer** -- pure data definitions with ZERO I/O. Built by
``metrics`` and ``invariants`` and returned by ``ReportingService``.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* Percentages are ``Decimal`` rounded to one decimal place, never ``float``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

ALL = "All"


# =========================================================================
# Funnel
# =========================================================================


@dataclass(frozen=True)
class KycBreakdown:
    """KYC completions by the rule that closed them."""

    login: int = 0
    vkyc: int = 0
    non_core: int = 0
    progressed: int = 0

    @property
    def total(self) -> int:
        return self.login + self.vkyc + self.non_core + self.progressed


@dataclass(frozen=True)
class FunnelRow:
    """
    Conversion funnel for one slice of records.

    ``kyc_pending`` is counted directly (eligible and not done), never
    derived by subtraction.
    """

    month: str
    quality: str
    total_applications: int
    eligible_for_kyc: int
    kyc_done: int
    kyc_pending: int
    kyc_breakdown: KycBreakdown
    cards_approved: int
    rejected_post_kyc: int
    kyc_conversion_percent: Decimal
    approval_percent: Decimal
    rejection_percent: Decimal


@dataclass(frozen=True)
class QualityTotals:
    good: int
    average: int
    rejected: int
    total: int


@dataclass(frozen=True)
class FunnelSummary:
    by_month: tuple[FunnelRow, ...]
    by_quality: tuple[FunnelRow, ...]
    overall: FunnelRow
    quality_totals: QualityTotals
    null_application_date_count: int = 0

    @property
    def months(self) -> tuple[str, ...]:
        return tuple(row.month for row in self.by_month)

    def month_totals(self) -> dict[str, int]:
        return {row.month: row.total_applications for row in self.by_month}


# =========================================================================
# VKYC funnel (STPK leads only)
# =========================================================================


@dataclass(frozen=True)
class VkycFunnelMetrics:
    total_stpk: int = 0
    vkyc_eligible: int = 0

    vkyc_approved: int = 0
    vkyc_rejected: int = 0
    vkyc_dropped: int = 0  # attempted, neither approved nor rejected

    vkyc_approved_core: int = 0
    vkyc_approved_non_core: int = 0
    vkyc_rejected_core: int = 0
    vkyc_rejected_non_core: int = 0

    cards_from_vkyc_approved: int = 0
    cards_from_vkyc_rejected_physical: int = 0
    cards_from_no_vkyc_physical: int = 0
    physical_dropoffs: int = 0


# =========================================================================
# Invariants
# =========================================================================


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class InvariantCheckResult:
    name: str
    passed: bool
    message: str
    severity: Severity


@dataclass(frozen=True)
class InvariantValidation:
    results: tuple[InvariantCheckResult, ...] = field(default_factory=tuple)

    @property
    def all_passed(self) -> bool:
        return all(r.passed for r in self.results)

    @property
    def failures(self) -> tuple[InvariantCheckResult, ...]:
        return tuple(r for r in self.results if not r.passed)

    @property
    def has_errors(self) -> bool:
        return any(r.severity is Severity.ERROR for r in self.failures)
