"""
mis_reporting -- Funnel metrics and data invariants over stored MIS records.

Pure functions live in ``metrics`` and ``invariants``; ``ReportingService``
loads records through the kernel selector and delegates to them.
"""

from mis_reporting.invariants import (
    DEFAULT_EXPECTED_MONTHS,
    run_all_invariant_checks,
    validate_expected_months_present,
    validate_month_totals_stable,
    validate_no_null_application_date,
    validate_quality_sum,
)
from mis_reporting.metrics import compute_vkyc_funnel, summarize_records
from mis_reporting.models import (
    FunnelRow,
    FunnelSummary,
    InvariantCheckResult,
    InvariantValidation,
    KycBreakdown,
    QualityTotals,
    Severity,
    VkycFunnelMetrics,
)
from mis_reporting.service import ReportingService

__all__ = [
    "DEFAULT_EXPECTED_MONTHS",
    "FunnelRow",
    "FunnelSummary",
    "InvariantCheckResult",
    "InvariantValidation",
    "KycBreakdown",
    "QualityTotals",
    "ReportingService",
    "Severity",
    "VkycFunnelMetrics",
    "compute_vkyc_funnel",
    "run_all_invariant_checks",
    "summarize_records",
    "validate_expected_months_present",
    "validate_month_totals_stable",
    "validate_no_null_application_date",
    "validate_quality_sum",
]
