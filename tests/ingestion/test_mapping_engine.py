"""Tests for column mapping and record extraction."""

from datetime import datetime

from mis_ingestion.domain.types import ColumnMapping
from mis_ingestion.mapping.engine import (
    extract_record,
    generate_column_mappings,
    mapping_lookup,
    normalize_header,
    remap,
)


def _targets(mappings) -> dict[str, str | None]:
    return {m.source_column: m.target_column for m in mappings}


class TestNormalizeHeader:
    def test_strips_punctuation_and_case(self):
        assert normalize_header("Core/NonCore") == "corenoncore"
        assert normalize_header(" Application_No ") == "applicationno"


class TestGenerateColumnMappings:
    def test_standard_axis_headers(self):
        mappings = generate_column_mappings([
            "Application No",
            "Blaze Output",
            "Login Status",
            "Final Status",
            "Last Updated Date",
            "VKYC Status",
            "Core/NonCore",
            "Date",
            "Reason",
            "State",
            "Product",
        ])
        assert _targets(mappings) == {
            "Application No": "application_id",
            "Blaze Output": "blaze_output",
            "Login Status": "login_status",
            "Final Status": "final_status",
            "Last Updated Date": "last_updated_date",
            "VKYC Status": "vkyc_status",
            "Core/NonCore": "core_non_core",
            "Date": "application_date",
            "Reason": "rejection_reason",
            "State": "state",
            "Product": "product",
        }

    def test_alias_variants(self):
        mappings = generate_column_mappings(["APPLICATION_ID", "app id", "BLAZE"])
        assert _targets(mappings) == {
            "APPLICATION_ID": "application_id",
            "app id": None,  # application_id already claimed
            "BLAZE": "blaze_output",
        }

    def test_substring_fallback(self):
        mappings = generate_column_mappings(["Final Status (Bank)"])
        assert mappings[0].target_column == "final_status"

    def test_unknown_column_unmapped(self):
        mappings = generate_column_mappings(["Remarks"])
        assert mappings[0].target_column is None
        assert not mappings[0].is_mapped
        assert not mappings[0].is_required

    def test_required_flag(self):
        mappings = generate_column_mappings(["Final Status", "Product"])
        assert [m.is_required for m in mappings] == [True, False]

    def test_custom_aliases(self):
        mappings = generate_column_mappings(
            ["Bank Ref"],
            aliases={"application_id": ("bank ref",)},
        )
        assert mappings[0].target_column == "application_id"

    def test_blank_header_unmapped(self):
        assert generate_column_mappings([""])[0].target_column is None


class TestRemap:
    def test_remap_one_column(self):
        mappings = generate_column_mappings(["Remarks", "Final Status"])
        updated = remap(mappings, "Remarks", "vkyc_status")
        assert updated[0] == ColumnMapping("Remarks", "vkyc_status", True)
        assert updated[1] == mappings[1]

    def test_unmap(self):
        mappings = generate_column_mappings(["Product"])
        assert remap(mappings, "Product", None)[0].target_column is None

    def test_lookup(self):
        mappings = [ColumnMapping("A", "application_id"), ColumnMapping("B", None)]
        assert mapping_lookup(mappings) == {"application_id": "A"}


class TestExtractRecord:
    LOOKUP = {
        "application_id": "Application No",
        "final_status": "Final Status",
        "last_updated_date": "Last Updated Date",
        "application_date": "Date",
        "login_status": "Login Status",
    }

    def test_trims_and_blanks_to_none(self):
        record = extract_record(
            {"Application No": " A1 ", "Final Status": "IPA", "Login Status": "  "},
            self.LOOKUP,
        )
        assert record["application_id"] == "A1"
        assert record["login_status"] is None
        assert record["last_updated_date"] is None

    def test_whole_float_loses_decimal(self):
        record = extract_record({"Application No": 12345.0}, {"application_id": "Application No"})
        assert record["application_id"] == "12345"

    def test_dates_normalized(self):
        record = extract_record(
            {"Last Updated Date": "17/01/2025", "Date": datetime(2025, 1, 10, 0, 0)},
            self.LOOKUP,
        )
        assert record["last_updated_date"] == "2025-01-17"
        assert record["application_date"] == "2025-01-10"

    def test_month_first_option(self):
        record = extract_record({"Last Updated Date": "01/17/2025"}, self.LOOKUP, day_first=False)
        assert record["last_updated_date"] == "2025-01-17"

    def test_bad_date_kept_as_text(self):
        record = extract_record({"Last Updated Date": " soon "}, self.LOOKUP)
        assert record["last_updated_date"] == "soon"

    def test_only_mapped_targets(self):
        record = extract_record({"Application No": "A1", "Remarks": "x"}, {"application_id": "Application No"})
        assert record == {"application_id": "A1"}
