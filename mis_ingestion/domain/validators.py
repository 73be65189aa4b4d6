"""
Schema and row validators for MIS extracts.

Schema-level failures (a required target column is not mapped) block the
whole batch. Row-level failures are collected as RowError values and the
offending rows are excluded; the rest of the batch continues.

Row numbers are spreadsheet row numbers: index + 2 (header is row 1).

Architecture: mis_ingestion/domain. ZERO I/O.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Mapping, Sequence

from mis_ingestion.domain.types import (
    KEY_FIELD,
    REQUIRED_TARGETS,
    STRICT_NON_EMPTY_TARGETS,
    ColumnMapping,
    RowError,
    RowErrorCode,
    ValidationReport,
    ValidationWarning,
    WarningCode,
    summarize_errors,
)
from mis_kernel.domain.dates import try_normalize_date
from mis_kernel.exceptions import UnmappedRequiredColumnError

HEADER_ROWS = 1

# Checked in this order within a row
_CHECKED_DATES = ("application_date", "last_updated_date")


def spreadsheet_row(index: int) -> int:
    """Spreadsheet row number for a 0-based data row index."""
    return index + HEADER_ROWS + 1


def _is_blank(value: Any) -> bool:
    return value is None or str(value).strip() == ""


def _is_valid_date(value: Any, day_first: bool) -> bool:
    if isinstance(value, date):
        return True
    return try_normalize_date(value, day_first=day_first) is not None


# -----------------------------------------------------------------------------
# Schema level
# -----------------------------------------------------------------------------


def validate_schema(
    mappings: Sequence[ColumnMapping],
    required: Sequence[str] = REQUIRED_TARGETS,
    raise_on_error: bool = False,
) -> list[RowError]:
    """
    One error per required target that no source column maps to.

    Raises:
        UnmappedRequiredColumnError: when ``raise_on_error`` and anything is unmapped.
    """
    mapped = {m.target_column for m in mappings if m.is_mapped}
    missing = [column for column in required if column not in mapped]
    if missing and raise_on_error:
        raise UnmappedRequiredColumnError(missing)
    return [
        RowError(
            code=RowErrorCode.UNMAPPED_REQUIRED_COLUMN,
            message=f'Required column "{column}" is not mapped',
            column=column,
        )
        for column in missing
    ]


# -----------------------------------------------------------------------------
# Row level
# -----------------------------------------------------------------------------


def validate_rows(
    rows: Sequence[Mapping[str, Any]],
    lookup: Mapping[str, str],
    strict: Sequence[str] = STRICT_NON_EMPTY_TARGETS,
    day_first: bool = True,
) -> list[RowError]:
    """
    Blank strict columns and unparseable dates, per row.

    A blank last_updated_date is allowed; a present but unparseable one
    excludes the row, since a stored unparseable date fails every later
    temporal comparison.
    """
    errors: list[RowError] = []
    strict_sources = [(target, lookup[target]) for target in strict if target in lookup]
    date_sources = [(target, lookup[target]) for target in _CHECKED_DATES if target in lookup]

    for index, row in enumerate(rows):
        row_number = spreadsheet_row(index)
        blank_targets = set()
        for target, source in strict_sources:
            if _is_blank(row.get(source)):
                blank_targets.add(target)
                errors.append(
                    RowError(
                        code=RowErrorCode.BLANK_VALUE,
                        message=f"Row {row_number}: {target} is NULL or empty",
                        row=row_number,
                        column=target,
                    )
                )

        for target, source in date_sources:
            if target in blank_targets:
                continue
            value = row.get(source)
            if not _is_blank(value) and not _is_valid_date(value, day_first):
                errors.append(
                    RowError(
                        code=RowErrorCode.INVALID_DATE_FORMAT,
                        message=f"Row {row_number}: {target} - Invalid date format",
                        row=row_number,
                        column=target,
                        value=str(value),
                    )
                )
    return errors


def find_duplicate_ids(rows: Sequence[Mapping[str, Any]], id_source: str) -> list[str]:
    """Application ids appearing more than once, in first-duplicate order."""
    seen: set[str] = set()
    duplicates: dict[str, None] = {}
    for row in rows:
        value = row.get(id_source)
        app_id = "" if value is None else str(value).strip()
        if not app_id:
            continue
        if app_id in seen:
            duplicates[app_id] = None
        else:
            seen.add(app_id)
    return list(duplicates)


def collect_warnings(
    rows: Sequence[Mapping[str, Any]],
    lookup: Mapping[str, str],
) -> list[ValidationWarning]:
    """Non-blocking findings: duplicate application ids."""
    warnings: list[ValidationWarning] = []

    id_source = lookup.get(KEY_FIELD)
    if id_source:
        duplicates = find_duplicate_ids(rows, id_source)
        if duplicates:
            warnings.append(
                ValidationWarning(
                    code=WarningCode.DUPLICATE_ID,
                    message=(
                        f"{len(duplicates)} duplicate application_id(s) found in file. "
                        "The most advanced row per application will be kept."
                    ),
                    column=KEY_FIELD,
                    count=len(duplicates),
                )
            )
    return warnings


# -----------------------------------------------------------------------------
# Whole file
# -----------------------------------------------------------------------------


def validate_batch(
    rows: Sequence[Mapping[str, Any]],
    mappings: Sequence[ColumnMapping],
    required: Sequence[str] = REQUIRED_TARGETS,
    strict: Sequence[str] = STRICT_NON_EMPTY_TARGETS,
    day_first: bool = True,
) -> ValidationReport:
    """
    Validate a parsed file against its column mappings.

    Schema errors stop validation: no row-level checks run and every row
    counts as invalid.
    """
    total = len(rows)
    schema_errors = validate_schema(mappings, required)
    if schema_errors:
        return ValidationReport(
            total_rows=total,
            valid_rows=0,
            invalid_rows=total,
            errors=tuple(schema_errors),
            error_summary=summarize_errors(schema_errors, total),
        )

    lookup = {m.target_column: m.source_column for m in mappings if m.target_column is not None}
    errors = validate_rows(rows, lookup, strict, day_first)
    warnings = collect_warnings(rows, lookup)
    invalid = len({e.row for e in errors if e.row is not None})
    return ValidationReport(
        total_rows=total,
        valid_rows=total - invalid,
        invalid_rows=invalid,
        errors=tuple(errors),
        warnings=tuple(warnings),
        error_summary=summarize_errors(errors, total),
    )
