"""Tests for schema and row validators."""

import pytest

from mis_ingestion.domain.types import (
    ColumnMapping,
    FixAction,
    RowErrorCode,
    WarningCode,
)
from mis_ingestion.domain.validators import (
    collect_warnings,
    find_duplicate_ids,
    spreadsheet_row,
    validate_batch,
    validate_rows,
    validate_schema,
)
from mis_ingestion.mapping.engine import generate_column_mappings
from mis_kernel.exceptions import UnmappedRequiredColumnError

HEADERS = [
    "Application No",
    "Blaze Output",
    "Login Status",
    "Final Status",
    "Last Updated Date",
    "VKYC Status",
    "Core/NonCore",
    "Date",
]

LOOKUP = {
    "application_id": "Application No",
    "application_date": "Date",
    "last_updated_date": "Last Updated Date",
}


def _row(app_id="A1", date="10/01/2025", updated="15/01/2025", **extra):
    row = {"Application No": app_id, "Date": date, "Last Updated Date": updated}
    row.update(extra)
    return row


class TestSpreadsheetRow:
    def test_header_offset(self):
        assert spreadsheet_row(0) == 2
        assert spreadsheet_row(9) == 11


class TestValidateSchema:
    def test_all_required_mapped(self):
        assert validate_schema(generate_column_mappings(HEADERS)) == []

    def test_missing_required(self):
        errors = validate_schema(generate_column_mappings(HEADERS[:3]))
        assert [e.column for e in errors] == [
            "final_status",
            "last_updated_date",
            "vkyc_status",
            "core_non_core",
        ]
        assert all(e.code is RowErrorCode.UNMAPPED_REQUIRED_COLUMN for e in errors)
        assert all(e.row is None for e in errors)

    def test_raise_on_error(self):
        with pytest.raises(UnmappedRequiredColumnError) as exc_info:
            validate_schema([ColumnMapping("x", None)], raise_on_error=True)
        assert "application_id" in exc_info.value.columns


class TestValidateRows:
    def test_clean_rows(self):
        assert validate_rows([_row(), _row("A2")], LOOKUP) == []

    def test_blank_application_id(self):
        errors = validate_rows([_row(), _row(app_id="  ")], LOOKUP)
        assert len(errors) == 1
        assert errors[0].code is RowErrorCode.BLANK_VALUE
        assert errors[0].row == 3
        assert errors[0].column == "application_id"
        assert errors[0].message == "Row 3: application_id is NULL or empty"

    def test_blank_application_date_reported_once(self):
        errors = validate_rows([_row(date=None)], LOOKUP)
        assert [(e.code, e.column) for e in errors] == [(RowErrorCode.BLANK_VALUE, "application_date")]

    def test_invalid_application_date(self):
        errors = validate_rows([_row(date="32/13/2025")], LOOKUP)
        assert len(errors) == 1
        assert errors[0].code is RowErrorCode.INVALID_DATE_FORMAT
        assert errors[0].value == "32/13/2025"

    def test_unmapped_strict_column_not_checked(self):
        lookup = {"application_id": "Application No"}
        assert validate_rows([{"Application No": "A1"}], lookup) == []

    def test_invalid_last_updated_date_excludes_row(self):
        errors = validate_rows([_row(updated="someday"), _row("A2", updated="")], LOOKUP)
        assert [(e.code, e.row, e.column) for e in errors] == [
            (RowErrorCode.INVALID_DATE_FORMAT, 2, "last_updated_date")
        ]
        assert errors[0].message == "Row 2: last_updated_date - Invalid date format"
        assert errors[0].value == "someday"

    def test_both_dates_invalid(self):
        errors = validate_rows([_row(date="bad", updated="worse")], LOOKUP)
        assert [e.column for e in errors] == ["application_date", "last_updated_date"]


class TestWarnings:
    def test_duplicate_ids(self):
        rows = [_row("A1"), _row("A2"), _row("A1"), _row(" A2 "), _row("A1")]
        assert find_duplicate_ids(rows, "Application No") == ["A1", "A2"]
        warnings = collect_warnings(rows, LOOKUP)
        assert len(warnings) == 1
        assert warnings[0].code is WarningCode.DUPLICATE_ID
        assert warnings[0].count == 2

    def test_no_warnings(self):
        assert collect_warnings([_row()], LOOKUP) == []


class TestValidateBatch:
    def _rows(self):
        return [
            {h: v for h, v in zip(HEADERS, values)}
            for values in (
                ("A1", "STPK", "", "IPA", "15/01/2025", "", "Core", "10/01/2025"),
                ("", "STPK", "", "IPA", "15/01/2025", "", "Core", "10/01/2025"),
                ("A3", "STPT", "", "IPA", "15/01/2025", "", "Core", "bad"),
                ("A1", "STPK", "LOGIN", "IPA", "16/01/2025", "", "Core", "10/01/2025"),
            )
        ]

    def test_row_errors_exclude_rows(self):
        report = validate_batch(self._rows(), generate_column_mappings(HEADERS))
        assert report.total_rows == 4
        assert report.invalid_rows == 2
        assert report.valid_rows == 2
        assert report.invalid_row_numbers == {3, 4}
        assert not report.is_valid
        assert not report.has_schema_errors
        assert [w.code for w in report.warnings] == [WarningCode.DUPLICATE_ID]

    def test_error_summary(self):
        report = validate_batch(self._rows(), generate_column_mappings(HEADERS))
        by_column = {s.column: s for s in report.error_summary}
        assert by_column["application_id"].error_type is RowErrorCode.BLANK_VALUE
        assert by_column["application_id"].fix_action is FixAction.REUPLOAD
        assert by_column["application_date"].sample_errors[0].value == "bad"

    def test_schema_errors_block_batch(self):
        report = validate_batch(self._rows(), generate_column_mappings(HEADERS[:5]))
        assert report.has_schema_errors
        assert report.valid_rows == 0
        assert report.invalid_rows == 4
        summary = report.error_summary[0]
        assert summary.fix_action is FixAction.REMAP
        assert summary.error_count == 4
        assert summary.sample_errors == ()

    def test_dropping_rows_clears_their_errors(self):
        report = validate_batch(self._rows(), generate_column_mappings(HEADERS)).without_rows([3, 4])
        assert report.is_valid
        assert report.valid_rows == 2
        assert report.invalid_rows == 0
        assert report.dropped_rows == {3, 4}

    def test_dropping_a_valid_row(self):
        report = validate_batch(self._rows(), generate_column_mappings(HEADERS)).without_rows([2])
        assert report.valid_rows == 1
        assert report.invalid_rows == 2
