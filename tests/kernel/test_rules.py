"""Tests for lead quality, KYC completion and outcome rules."""

import pytest

from mis_kernel.domain.rules import (
    ConflictType,
    KycChannel,
    LeadQuality,
    derive_lead_quality,
    detect_conflict,
    has_login,
    is_card_approved,
    is_kyc_completed,
    is_non_core,
    is_rejected_post_kyc,
    is_vkyc_done,
    is_vkyc_redo_allowed,
    kyc_completion_channel,
    kyc_status_label,
    normalize,
    normalize_blaze_output,
    normalize_core_non_core,
    resolve_conflict,
)


class TestNormalize:
    def test_none_is_empty(self):
        assert normalize(None) == ""

    def test_trims_and_uppercases(self):
        assert normalize("  stpk ") == "STPK"

    def test_non_string(self):
        assert normalize(26) == "26"


class TestLeadQuality:
    @pytest.mark.parametrize(
        "blaze, expected",
        [
            ("STPK", LeadQuality.GOOD),
            ("stpk", LeadQuality.GOOD),
            ("STPT", LeadQuality.AVERAGE),
            (" stpi ", LeadQuality.AVERAGE),
            ("REJECT", LeadQuality.REJECTED),
            ("Reject", LeadQuality.REJECTED),
        ],
    )
    def test_known_values(self, blaze, expected):
        assert derive_lead_quality(blaze) is expected

    @pytest.mark.parametrize("blaze", [None, "", "   "])
    def test_empty_defaults_to_good(self, blaze):
        assert normalize_blaze_output(blaze) == "STPK"
        assert derive_lead_quality(blaze) is LeadQuality.GOOD

    def test_unknown_value_is_good(self):
        # Unknown codes are not a separate bucket
        assert derive_lead_quality("STPX") is LeadQuality.GOOD

    def test_values(self):
        assert [q.value for q in LeadQuality] == ["Good", "Average", "Rejected"]


class TestCoreNonCore:
    def test_empty_defaults_to_core(self):
        assert normalize_core_non_core(None) == "Core"
        assert normalize_core_non_core("  ") == "Core"

    def test_stored_value_kept(self):
        assert normalize_core_non_core(" Non-Core ") == "Non-Core"

    def test_is_non_core(self):
        assert is_non_core("non-core")
        assert not is_non_core("Core")
        assert not is_non_core(None)


class TestVkyc:
    def test_done(self):
        assert is_vkyc_done("Approved")
        assert is_vkyc_done("REJECTED")
        assert not is_vkyc_done("Pending")
        assert not is_vkyc_done(None)

    def test_redo_allowed(self):
        assert is_vkyc_redo_allowed(None)
        assert is_vkyc_redo_allowed("dropped")
        assert is_vkyc_redo_allowed("Intimation")
        assert not is_vkyc_redo_allowed("APPROVED")


class TestKycCompletion:
    def test_login_closes_kyc(self):
        assert kyc_completion_channel("Login", "IPA") is KycChannel.LOGIN
        assert kyc_completion_channel("LOGIN 26", "IPA") is KycChannel.LOGIN

    def test_login_rule_is_exact_match(self):
        # "Login Pending" is not an accepted login value
        assert kyc_completion_channel("Login Pending", "IPA") is None

    def test_vkyc_outcome_closes_kyc(self):
        assert kyc_completion_channel(None, "IPA", "Approved") is KycChannel.VKYC
        assert kyc_completion_channel(None, "IPA", "rejected") is KycChannel.VKYC

    def test_non_core_closes_kyc(self):
        assert kyc_completion_channel(None, "IPA", None, "NON-CORE") is KycChannel.NON_CORE

    def test_progressed_final_status_closes_kyc(self):
        assert kyc_completion_channel(None, "Sanctioned") is KycChannel.PROGRESSED

    def test_pending(self):
        assert kyc_completion_channel(None, "IPA", "Pending", "Core") is None
        assert kyc_completion_channel(None, None) is None
        assert kyc_completion_channel("", "", "", "") is None

    def test_rule_order(self):
        # Login wins over every later rule
        assert kyc_completion_channel("LOGIN", "Approved", "APPROVED", "NON-CORE") is KycChannel.LOGIN
        assert kyc_completion_channel(None, "Approved", "APPROVED", "NON-CORE") is KycChannel.VKYC

    def test_rejection_reason_ignored(self):
        assert not is_kyc_completed(None, "IPA", None, "Core", rejection_reason="Low score")
        assert is_kyc_completed("LOGIN", "IPA")

    def test_label(self):
        assert kyc_status_label(True) == "KYC Done"
        assert kyc_status_label(False) == "KYC Pending"


class TestOutcomes:
    @pytest.mark.parametrize(
        "final", ["Approved", "DISBURSED", "Card Dispatched", "sanctioned", "Card Approved - Pending"]
    )
    def test_card_approved(self, final):
        assert is_card_approved(final)

    @pytest.mark.parametrize("final", [None, "", "IPA", "Rejected", "Logged"])
    def test_card_not_approved(self, final):
        assert not is_card_approved(final)

    def test_rejected_post_kyc_requires_kyc(self):
        assert is_rejected_post_kyc("Rejected", kyc_completed=True)
        assert is_rejected_post_kyc("Credit Declined", kyc_completed=True)
        assert not is_rejected_post_kyc("Rejected", kyc_completed=False)
        assert not is_rejected_post_kyc("Approved", kyc_completed=True)


class TestConflicts:
    def test_has_login_is_substring(self):
        assert has_login("Login Pending")
        assert not has_login(None)

    def test_login_with_ipa(self):
        assert detect_conflict("LOGIN", "IPA", "STPK") is ConflictType.LOGIN_IPA_CONFLICT

    def test_post_kyc_outcome_without_login(self):
        assert detect_conflict(None, "Disbursed", "STPK") is ConflictType.POST_KYC_NO_LOGIN

    def test_reject_quality_with_login(self):
        assert detect_conflict("LOGIN", "Approved", "REJECT") is ConflictType.REJECT_WITH_LOGIN

    def test_no_conflict(self):
        assert detect_conflict(None, "IPA", "STPK") is None
        assert detect_conflict("LOGIN", "Approved", "STPK") is None

    def test_every_conflict_has_resolution(self):
        for conflict in ConflictType:
            resolution = resolve_conflict(conflict)
            assert resolution.kyc_completed is True
            assert resolution.resolution
