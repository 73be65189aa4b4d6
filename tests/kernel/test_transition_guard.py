"""
Transition guard tests.

Verifies:
- Gate order: terminal, then temporal, then stage, then accept.
- Terminal records are frozen even against newer, further-along rows.
- Stale rows never overwrite newer stored data.
- Stage regressions are rejected; equal stages are accepted.
- Unparseable dates fail closed and are logged.
"""

from mis_kernel.domain.journey import JourneyStage
from mis_kernel.domain.transition_guard import (
    GuardOutcome,
    StatusSnapshot,
    is_newer_or_equal,
    is_transition_allowed,
    should_update_record,
)


def snap(final="IPA", login=None, vkyc=None, blaze="STPK", date="2025-01-15") -> StatusSnapshot:
    return StatusSnapshot(
        final_status=final,
        login_status=login,
        vkyc_status=vkyc,
        blaze_output=blaze,
        last_updated_date=date,
    )


class TestIsNewerOrEqual:
    def test_newer(self):
        assert is_newer_or_equal("2025-01-20", "2025-01-15")

    def test_equal(self):
        assert is_newer_or_equal("2025-01-15", "2025-01-15")

    def test_older(self):
        assert not is_newer_or_equal("2025-01-10", "2025-01-15")

    def test_mixed_formats(self):
        assert is_newer_or_equal("20/01/2025", "2025-01-15")
        assert not is_newer_or_equal("10-Jan-2025", "15/01/2025")

    def test_no_existing_date_accepts(self):
        assert is_newer_or_equal("2025-01-10", None)
        assert is_newer_or_equal(None, "")

    def test_no_incoming_date_rejects(self):
        assert not is_newer_or_equal(None, "2025-01-15")
        assert not is_newer_or_equal("  ", "2025-01-15")

    def test_unparseable_rejects_and_logs(self, captured_logs):
        assert not is_newer_or_equal("not a date", "2025-01-15")
        logs = captured_logs()
        failures = [r for r in logs if r["message"] == "date_comparison_failed"]
        assert len(failures) == 1
        assert failures[0]["level"] == "WARNING"
        assert failures[0]["error_code"] == "DATE_PARSE_ERROR"
        assert failures[0]["incoming_date"] == "not a date"


class TestIsTransitionAllowed:
    def test_forward(self):
        assert is_transition_allowed(JourneyStage.IPA, JourneyStage.LOGIN)

    def test_same(self):
        assert is_transition_allowed(JourneyStage.LOGIN, JourneyStage.LOGIN)

    def test_backward(self):
        assert not is_transition_allowed(JourneyStage.LOGIN, JourneyStage.IPA)

    def test_out_of_terminal(self):
        assert not is_transition_allowed(JourneyStage.APPROVED, JourneyStage.FINAL_REJECT)
        assert not is_transition_allowed(JourneyStage.FINAL_REJECT, JourneyStage.FINAL_REJECT)


class TestShouldUpdateRecord:
    def test_forward_newer_accepted(self):
        decision = should_update_record(
            snap(final="IPA", login="LOGIN", date="2025-01-20"),
            snap(final="IPA", date="2025-01-15"),
        )
        assert decision.should_update
        assert decision.reason_code is GuardOutcome.ACCEPTED
        assert decision.reason == "Update allowed: BUREAU_PASS -> LOGIN"
        assert decision.existing_stage is JourneyStage.BUREAU_PASS
        assert decision.incoming_stage is JourneyStage.LOGIN

    def test_same_stage_same_date_accepted(self):
        existing = snap()
        decision = should_update_record(existing, existing)
        assert decision.should_update
        assert decision.reason_code is GuardOutcome.ACCEPTED

    def test_terminal_state_frozen(self):
        decision = should_update_record(
            snap(final="Disbursed", date="2025-02-01"),
            snap(final="Approved", login="LOGIN", date="2025-01-15"),
        )
        assert not decision.should_update
        assert decision.reason_code is GuardOutcome.TERMINAL_STATE
        assert decision.reason == "Application in terminal state (APPROVED). No updates allowed."

    def test_terminal_checked_before_date(self):
        # Stale and terminal: terminal is reported
        decision = should_update_record(
            snap(date="2024-12-01"),
            snap(final="Rejected", login="LOGIN", date="2025-01-15"),
        )
        assert decision.reason_code is GuardOutcome.TERMINAL_STATE

    def test_stale_date_rejected(self):
        decision = should_update_record(
            snap(final="Sanctioned", date="2025-01-10"),
            snap(final="IPA", date="2025-01-15"),
        )
        assert not decision.should_update
        assert decision.reason_code is GuardOutcome.STALE_DATE
        assert decision.reason == (
            "Incoming date (2025-01-10) is older than existing (2025-01-15). Stale update ignored."
        )

    def test_date_checked_before_stage(self):
        decision = should_update_record(
            snap(final="IPA", blaze=None, date="2025-01-10"),
            snap(login="LOGIN", date="2025-01-15"),
        )
        assert decision.reason_code is GuardOutcome.STALE_DATE

    def test_backward_transition_rejected(self):
        decision = should_update_record(
            snap(final="IPA", date="2025-01-20"),
            snap(final="IPA", login="LOGIN", date="2025-01-15"),
        )
        assert not decision.should_update
        assert decision.reason_code is GuardOutcome.BACKWARD_TRANSITION
        assert decision.reason == (
            "Backward transition not allowed: LOGIN -> BUREAU_PASS. State regression ignored."
        )

    def test_unparseable_incoming_date_fails_closed(self):
        decision = should_update_record(
            snap(final="Sanctioned", date="garbage"),
            snap(date="2025-01-15"),
        )
        assert not decision.should_update
        assert decision.reason_code is GuardOutcome.STALE_DATE

    def test_first_write_without_stored_date(self):
        decision = should_update_record(snap(date="2025-01-15"), snap(date=None))
        assert decision.should_update


class TestStatusSnapshot:
    def test_from_mapping(self):
        snapshot = StatusSnapshot.from_mapping(
            {"final_status": "IPA", "login_status": None, "blaze_output": "STPK", "extra": 1}
        )
        assert snapshot.final_status == "IPA"
        assert snapshot.login_status is None
        assert snapshot.last_updated_date is None
        assert snapshot.stage is JourneyStage.BUREAU_PASS

    def test_from_mapping_stringifies(self):
        snapshot = StatusSnapshot.from_mapping({"last_updated_date": 45678})
        assert snapshot.last_updated_date == "45678"
