"""
mis_ingestion.domain.types -- Pure frozen dataclasses for the MIS import flow.

ZERO I/O. Imports only from mis_kernel.domain.

Flow:
    source rows -> ColumnMapping -> ValidationReport -> IncomingRecord
    -> ChangeSet (new / updated / skipped) -> commit
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterable, Mapping

from mis_kernel.domain.dtos import RECORD_FIELDS
from mis_kernel.domain.transition_guard import GuardOutcome

# =============================================================================
# Target schema
# =============================================================================

TARGET_FIELDS: tuple[str, ...] = RECORD_FIELDS

# Must be mapped to some source column before a batch can proceed
REQUIRED_TARGETS: tuple[str, ...] = (
    "application_id",
    "blaze_output",
    "login_status",
    "final_status",
    "last_updated_date",
    "vkyc_status",
    "core_non_core",
)

# Must be non-empty in every row (when mapped)
STRICT_NON_EMPTY_TARGETS: tuple[str, ...] = ("application_id", "application_date")

DATE_TARGETS: frozenset[str] = frozenset({"last_updated_date", "application_date"})

KEY_FIELD = "application_id"


# =============================================================================
# Column mapping
# =============================================================================


@dataclass(frozen=True)
class ColumnMapping:
    """One source column and the target field it feeds (None if unmapped)."""

    source_column: str
    target_column: str | None
    is_required: bool = False

    @property
    def is_mapped(self) -> bool:
        return self.target_column is not None


# =============================================================================
# Validation
# =============================================================================


class RowErrorCode(str, Enum):
    UNMAPPED_REQUIRED_COLUMN = "UNMAPPED_REQUIRED_COLUMN"
    BLANK_VALUE = "BLANK_VALUE"
    INVALID_DATE_FORMAT = "INVALID_DATE_FORMAT"


class WarningCode(str, Enum):
    DUPLICATE_ID = "DUPLICATE_ID"


class FixAction(str, Enum):
    REMAP = "remap"
    REUPLOAD = "reupload"
    DROP = "drop"


@dataclass(frozen=True)
class RowError:
    """
    A validation failure. Not raised: the row is excluded, the batch goes on.

    ``row`` is the spreadsheet row number (header is row 1); None for
    schema-level errors that affect every row.
    """

    code: RowErrorCode
    message: str
    row: int | None = None
    column: str | None = None
    value: str | None = None


@dataclass(frozen=True)
class ValidationWarning:
    code: WarningCode
    message: str
    column: str | None = None
    count: int = 0


@dataclass(frozen=True)
class SampleError:
    row: int | None
    value: str | None = None


@dataclass(frozen=True)
class ColumnErrorSummary:
    column: str
    error_count: int
    error_type: RowErrorCode
    sample_errors: tuple[SampleError, ...]
    fix_action: FixAction


MAX_SAMPLE_ERRORS = 5


def summarize_errors(errors: Iterable[RowError], total_rows: int) -> tuple[ColumnErrorSummary, ...]:
    """Per-column error summary, largest first, with up to 5 samples each."""
    grouped: dict[str, list[RowError]] = {}
    for error in errors:
        if error.column is not None:
            grouped.setdefault(error.column, []).append(error)

    summaries = []
    for column, column_errors in grouped.items():
        first = column_errors[0]
        if first.code is RowErrorCode.UNMAPPED_REQUIRED_COLUMN:
            count = total_rows
            action = FixAction.REMAP
            samples: tuple[SampleError, ...] = ()
        else:
            count = len(column_errors)
            action = FixAction.REUPLOAD
            samples = tuple(
                SampleError(row=e.row, value=e.value)
                for e in column_errors[:MAX_SAMPLE_ERRORS]
            )
        summaries.append(
            ColumnErrorSummary(
                column=column,
                error_count=count,
                error_type=first.code,
                sample_errors=samples,
                fix_action=action,
            )
        )
    summaries.sort(key=lambda s: s.error_count, reverse=True)
    return tuple(summaries)


@dataclass(frozen=True)
class ValidationReport:
    """Outcome of schema and row validation for one file."""

    total_rows: int
    valid_rows: int
    invalid_rows: int
    errors: tuple[RowError, ...] = ()
    warnings: tuple[ValidationWarning, ...] = ()
    error_summary: tuple[ColumnErrorSummary, ...] = ()
    dropped_rows: frozenset[int] = frozenset()

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def has_schema_errors(self) -> bool:
        return any(e.code is RowErrorCode.UNMAPPED_REQUIRED_COLUMN for e in self.errors)

    @property
    def invalid_row_numbers(self) -> frozenset[int]:
        return frozenset(e.row for e in self.errors if e.row is not None)

    def without_rows(self, row_numbers: Iterable[int]) -> ValidationReport:
        """
        Report recomputed after the caller explicitly drops rows.

        Errors on dropped rows disappear; dropped rows count as neither valid
        nor invalid. Schema errors are never dropped.
        """
        dropped = self.dropped_rows | frozenset(row_numbers)
        errors = tuple(e for e in self.errors if e.row is None or e.row not in dropped)
        invalid = len({e.row for e in errors if e.row is not None})
        if any(e.code is RowErrorCode.UNMAPPED_REQUIRED_COLUMN for e in errors):
            valid = 0
            invalid = self.total_rows
        else:
            valid = self.total_rows - invalid - len(dropped)
        return replace(
            self,
            valid_rows=max(valid, 0),
            invalid_rows=invalid,
            errors=errors,
            error_summary=summarize_errors(errors, self.total_rows),
            dropped_rows=dropped,
        )


# =============================================================================
# Reconciliation
# =============================================================================


@dataclass(frozen=True)
class IncomingRecord:
    """One validated source row, keyed by target field name."""

    row_number: int
    values: Mapping[str, Any]

    @property
    def application_id(self) -> str:
        value = self.values.get(KEY_FIELD)
        return "" if value is None else str(value).strip()


class ChangeType(str, Enum):
    NEW = "new"
    UPDATED = "updated"


@dataclass(frozen=True)
class PreviewRecord:
    """A record the commit phase will insert or overwrite."""

    application_id: str
    change_type: ChangeType
    new_values: Mapping[str, Any]
    old_values: Mapping[str, Any] = field(default_factory=dict)
    changed_fields: tuple[str, ...] = ()


@dataclass(frozen=True)
class SkippedRecord:
    """An incoming record the transition guard rejected."""

    application_id: str
    reason_code: GuardOutcome
    reason: str


@dataclass(frozen=True)
class ChangeSet:
    """
    Everything reconciliation decided for one batch.

    Every distinct incoming application lands in exactly one bucket: new,
    updated, skipped, or accepted-but-identical (``vacuous_count``).
    ``unchanged_count`` reports the skipped ones too.
    """

    new_records: tuple[PreviewRecord, ...] = ()
    updated_records: tuple[PreviewRecord, ...] = ()
    skipped_records: tuple[SkippedRecord, ...] = ()
    vacuous_count: int = 0
    total_incoming: int = 0
    duplicates_collapsed: int = 0

    @property
    def unchanged_count(self) -> int:
        return self.vacuous_count + len(self.skipped_records)

    @property
    def has_changes(self) -> bool:
        return bool(self.new_records or self.updated_records)

    def skipped_by_reason(self) -> dict[GuardOutcome, int]:
        counts: dict[GuardOutcome, int] = {}
        for skipped in self.skipped_records:
            counts[skipped.reason_code] = counts.get(skipped.reason_code, 0) + 1
        return counts
