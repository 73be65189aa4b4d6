"""
Reconciliation tests.

Verifies:
- Unknown applications are NEW and bypass the guard.
- Guard rejections are skipped with their reason and counted as unchanged.
- Accepted updates list exactly the changed fields; identical ones are unchanged.
- In-batch duplicates collapse to one row before the guard runs.
- Every distinct application lands in exactly one bucket.
"""

import pytest

from mis_ingestion.domain.reconciliation import diff_fields, group_by_application, reconcile
from mis_ingestion.domain.types import ChangeType, IncomingRecord
from mis_kernel.domain.derived import derive_record_fields
from mis_kernel.domain.transition_guard import GuardOutcome
from mis_kernel.exceptions import UnmappedRequiredColumnError
from mis_kernel.logging_config import LogContext

FIELDS = (
    "application_id",
    "blaze_output",
    "login_status",
    "final_status",
    "last_updated_date",
    "vkyc_status",
    "core_non_core",
    "application_date",
)


def _assert_partitioned(change_set):
    assert (
        len(change_set.new_records)
        + len(change_set.updated_records)
        + change_set.unchanged_count
        == change_set.total_incoming
    )


class TestNewRecords:
    def test_unknown_application_is_new(self, incoming):
        record = incoming(
            "A1",
            blaze_output="STPK",
            login_status="Login",
            final_status="Approved",
            last_updated_date="2025-01-17",
        )
        change_set = reconcile([record], {}, FIELDS)

        assert len(change_set.new_records) == 1
        preview = change_set.new_records[0]
        assert preview.application_id == "A1"
        assert preview.change_type is ChangeType.NEW
        assert preview.old_values == {}

        derived = derive_record_fields(preview.new_values)
        assert derived.lead_quality == "Good"
        assert derived.kyc_completed is True
        _assert_partitioned(change_set)

    def test_new_records_only_carry_mapped_fields(self, incoming):
        change_set = reconcile([incoming("A1", product="Card")], {}, ("application_id", "final_status"))
        assert change_set.new_records[0].new_values == {"application_id": "A1", "final_status": "IPA"}

    def test_missing_key_field(self, incoming):
        with pytest.raises(UnmappedRequiredColumnError):
            reconcile([incoming("A1")], {}, ("final_status",))


class TestGuardedUpdates:
    def test_terminal_record_skipped(self, incoming, record_values):
        existing = {"A2": record_values("A2", login_status="LOGIN", final_status="Disbursed")}
        record = incoming(
            "A2",
            login_status="LOGIN",
            final_status="Rejected",
            last_updated_date="2025-02-01",
        )
        change_set = reconcile([record], existing, FIELDS)

        assert change_set.new_records == ()
        assert change_set.updated_records == ()
        assert len(change_set.skipped_records) == 1
        skipped = change_set.skipped_records[0]
        assert skipped.application_id == "A2"
        assert skipped.reason_code is GuardOutcome.TERMINAL_STATE
        assert skipped.reason == "Application in terminal state (DISBURSED). No updates allowed."
        assert change_set.unchanged_count == 1
        _assert_partitioned(change_set)

    def test_stale_record_skipped(self, incoming, record_values):
        existing = {"A1": record_values("A1", last_updated_date="2025-01-20")}
        change_set = reconcile(
            [incoming("A1", final_status="Sanctioned", last_updated_date="2025-01-10")],
            existing,
            FIELDS,
        )
        assert change_set.skipped_by_reason() == {GuardOutcome.STALE_DATE: 1}

    def test_backward_record_skipped(self, incoming, record_values):
        existing = {"A1": record_values("A1", login_status="LOGIN")}
        change_set = reconcile([incoming("A1", last_updated_date="2025-01-20")], existing, FIELDS)
        assert change_set.skipped_by_reason() == {GuardOutcome.BACKWARD_TRANSITION: 1}

    def test_forward_update_lists_changed_fields(self, incoming, record_values):
        existing = {"A1": record_values("A1")}
        change_set = reconcile(
            [incoming("A1", login_status="LOGIN", last_updated_date="2025-01-20")],
            existing,
            FIELDS,
        )
        assert len(change_set.updated_records) == 1
        update = change_set.updated_records[0]
        assert update.change_type is ChangeType.UPDATED
        assert update.changed_fields == ("login_status", "last_updated_date")
        assert update.old_values["login_status"] is None
        assert update.new_values["login_status"] == "LOGIN"

    def test_identical_record_unchanged(self, incoming, record_values):
        existing = {"A1": record_values("A1")}
        change_set = reconcile([incoming("A1")], existing, FIELDS)
        assert not change_set.has_changes
        assert change_set.vacuous_count == 1
        assert change_set.skipped_records == ()
        assert change_set.unchanged_count == 1

    def test_none_equals_empty_string(self, incoming, record_values):
        existing = {"A1": record_values("A1", vkyc_status="")}
        change_set = reconcile([incoming("A1", vkyc_status=None)], existing, FIELDS)
        assert change_set.vacuous_count == 1

    def test_unmapped_fields_not_compared(self, incoming, record_values):
        existing = {"A1": record_values("A1", product="Old")}
        change_set = reconcile([incoming("A1", product="New")], existing, FIELDS)
        assert change_set.vacuous_count == 1


class TestDuplicates:
    def test_stage_beats_date_within_batch(self, incoming):
        ipa = incoming("A3", final_status="IPA", blaze_output=None, last_updated_date="2025-01-20")
        login = incoming("A3", login_status="LOGIN", last_updated_date="2025-01-15")
        change_set = reconcile([ipa, login], {}, FIELDS)

        assert change_set.total_incoming == 1
        assert change_set.duplicates_collapsed == 1
        assert change_set.new_records[0].new_values["login_status"] == "LOGIN"

    def test_collapsed_before_guard(self, incoming, record_values):
        existing = {"A1": record_values("A1", last_updated_date="2025-01-15")}
        rows = [
            incoming("A1", final_status="Sanctioned", last_updated_date="2025-01-18"),
            incoming("A1", last_updated_date="2025-01-25"),
        ]
        change_set = reconcile(rows, existing, FIELDS)
        assert change_set.updated_records[0].new_values["final_status"] == "Sanctioned"


class TestMixedBatch:
    def test_every_application_in_one_bucket(self, incoming, record_values):
        existing = {
            "OLD1": record_values("OLD1"),
            "OLD2": record_values("OLD2", final_status="Approved"),
            "OLD3": record_values("OLD3"),
        }
        rows = [
            incoming("NEW1"),
            incoming("OLD1", login_status="LOGIN", last_updated_date="2025-01-20"),
            incoming("OLD2", last_updated_date="2025-01-20"),
            incoming("OLD3"),
            incoming("NEW1", last_updated_date="2025-01-01"),
            incoming(""),
        ]
        change_set = reconcile(rows, existing, FIELDS)

        assert [r.application_id for r in change_set.new_records] == ["NEW1"]
        assert [r.application_id for r in change_set.updated_records] == ["OLD1"]
        assert [r.application_id for r in change_set.skipped_records] == ["OLD2"]
        assert change_set.vacuous_count == 1
        assert change_set.total_incoming == 4
        _assert_partitioned(change_set)

    def test_completion_logged(self, incoming, captured_logs):
        reconcile([incoming("A1")], {}, FIELDS)
        completed = [r for r in captured_logs() if r["message"] == "reconciliation_completed"]
        assert len(completed) == 1
        assert completed[0]["new"] == 1
        assert completed[0]["unchanged"] == 0

    def test_skip_logged_with_application_id(self, incoming, record_values, captured_logs):
        existing = {"A2": record_values("A2", final_status="Disbursed")}
        reconcile([incoming("A1"), incoming("A2", last_updated_date="2025-02-01")], existing, FIELDS)

        (skipped,) = [r for r in captured_logs() if r["message"] == "record_skipped"]
        assert skipped["application_id"] == "A2"
        assert skipped["reason_code"] == GuardOutcome.TERMINAL_STATE.value
        assert "application_id" not in LogContext.get_all()


class TestHelpers:
    def test_group_drops_blank_ids(self):
        records = [
            IncomingRecord(2, {"application_id": " A1 "}),
            IncomingRecord(3, {"application_id": None}),
            IncomingRecord(4, {"application_id": "A1"}),
        ]
        groups = group_by_application(records)
        assert list(groups) == ["A1"]
        assert [r.row_number for r in groups["A1"]] == [2, 4]

    def test_diff_fields(self):
        assert diff_fields({"a": 1, "b": None}, {"a": "1", "b": ""}, ("a", "b")) == ()
        assert diff_fields({"a": "x"}, {"a": "y"}, ("a",)) == ("a",)
