"""
Data invariant checks run before a dashboard is trusted.

Each check returns an ``InvariantCheckResult``; none of them raise. Errors
mean the numbers are wrong; warnings mean they deserve a look.

ZERO I/O.
"""

from __future__ import annotations

from typing import Mapping, Sequence

from mis_reporting.models import (
    InvariantCheckResult,
    InvariantValidation,
    QualityTotals,
    Severity,
)

DEFAULT_EXPECTED_MONTHS: tuple[str, ...] = ("Nov 2025", "Dec 2025", "Jan 2026")


def validate_quality_sum(totals: QualityTotals) -> InvariantCheckResult:
    """Good + Average + Rejected must equal the total."""
    quality_sum = totals.good + totals.average + totals.rejected
    passed = quality_sum == totals.total
    message = (
        f"Quality sum validated: {quality_sum} = {totals.total}"
        if passed
        else (
            f"QUALITY SUM MISMATCH: {quality_sum} != {totals.total} "
            f"(Good: {totals.good}, Avg: {totals.average}, Rej: {totals.rejected})"
        )
    )
    return InvariantCheckResult("quality_sum", passed, message, Severity.ERROR)


def validate_no_null_application_date(null_count: int) -> InvariantCheckResult:
    passed = null_count == 0
    message = (
        "All records have valid application_date"
        if passed
        else f"DATA QUALITY: {null_count} records have NULL application_date"
    )
    return InvariantCheckResult("no_null_application_date", passed, message, Severity.ERROR)


def validate_month_totals_stable(
    previous: Mapping[str, int],
    current: Mapping[str, int],
) -> InvariantCheckResult:
    """
    Month totals never decrease between uploads.

    Records are never deleted and ``month`` is written once, so a month can
    only gain applications. Growth is expected and passes.
    """
    decreased = [
        f"{month}: {count} -> {current.get(month, 0)} (decreased)"
        for month, count in previous.items()
        if current.get(month, 0) < count
    ]
    passed = not decreased
    message = "Month-wise totals stable" if passed else f"MONTH TOTAL CHANGES: {', '.join(decreased)}"
    return InvariantCheckResult("month_totals_stable", passed, message, Severity.WARNING)


def validate_expected_months_present(
    months: Sequence[str],
    expected: Sequence[str] = DEFAULT_EXPECTED_MONTHS,
) -> InvariantCheckResult:
    missing = [m for m in expected if m not in months]
    passed = not missing
    message = (
        f"All expected months present: {', '.join(expected)}"
        if passed
        else f"MISSING MONTHS: {', '.join(missing)}"
    )
    return InvariantCheckResult("expected_months_present", passed, message, Severity.WARNING)


def run_all_invariant_checks(
    quality_totals: QualityTotals,
    null_application_date_count: int,
    present_months: Sequence[str],
    expected_months: Sequence[str] = DEFAULT_EXPECTED_MONTHS,
    previous_month_totals: Mapping[str, int] | None = None,
    current_month_totals: Mapping[str, int] | None = None,
) -> InvariantValidation:
    """
    All checks in a fixed order. The month stability check runs only when
    both previous and current totals are supplied.
    """
    results = [
        validate_quality_sum(quality_totals),
        validate_no_null_application_date(null_application_date_count),
        validate_expected_months_present(present_months, expected_months),
    ]
    if previous_month_totals is not None and current_month_totals is not None:
        results.append(validate_month_totals_stable(previous_month_totals, current_month_totals))
    return InvariantValidation(results=tuple(results))
