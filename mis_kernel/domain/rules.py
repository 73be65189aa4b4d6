"""
Business rule derivation for MIS application records.

Pure, stateless classification of raw status fields. Every comparison is
case-insensitive on trimmed values (see ``normalize``). These functions are
the single source of truth for lead quality and KYC completion: preview,
commit and reporting all call them, so the three paths agree by
construction.

Rule cascades are written as ordered tuples of (predicate, result). The
order is part of the rule; do not sort or regroup them.

ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable


def normalize(value: Any) -> str:
    """Upper-cased, trimmed string form of a raw cell value; None -> ""."""
    if value is None:
        return ""
    return str(value).strip().upper()


# -----------------------------------------------------------------------------
# Lead quality
# -----------------------------------------------------------------------------


class LeadQuality(str, Enum):
    """Entry-level quality bucket derived once from blaze_output."""

    GOOD = "Good"
    AVERAGE = "Average"
    REJECTED = "Rejected"


DEFAULT_BLAZE_OUTPUT = "STPK"

_QUALITY_RULES: tuple[tuple[Callable[[str], bool], LeadQuality], ...] = (
    (lambda blaze: blaze in ("STPT", "STPI"), LeadQuality.AVERAGE),
    (lambda blaze: blaze == "REJECT", LeadQuality.REJECTED),
)


def normalize_blaze_output(blaze_output: Any) -> str:
    """Normalized blaze_output with empty values defaulted to STPK."""
    return normalize(blaze_output) or DEFAULT_BLAZE_OUTPUT


def derive_lead_quality(blaze_output: Any) -> LeadQuality:
    """
    Lead quality from blaze_output. Total; never raises.

    Empty -> STPK. STPT/STPI -> Average. REJECT -> Rejected. Anything else,
    STPK included, -> Good.
    """
    blaze = normalize_blaze_output(blaze_output)
    for predicate, quality in _QUALITY_RULES:
        if predicate(blaze):
            return quality
    return LeadQuality.GOOD


# -----------------------------------------------------------------------------
# Core / Non-Core
# -----------------------------------------------------------------------------

DEFAULT_CORE_NON_CORE = "Core"


def normalize_core_non_core(core_non_core: Any) -> str:
    """Stored core_non_core value with empty values defaulted to Core."""
    text = "" if core_non_core is None else str(core_non_core).strip()
    return text or DEFAULT_CORE_NON_CORE


def is_non_core(core_non_core: Any) -> bool:
    return normalize(core_non_core) == "NON-CORE"


# -----------------------------------------------------------------------------
# VKYC / KYC
# -----------------------------------------------------------------------------

VALID_LOGIN_STATUSES = frozenset({"LOGIN", "LOGIN 26"})
VKYC_DONE_STATUSES = frozenset({"APPROVED", "REJECTED"})
VKYC_REDO_ALLOWED_STATUSES = frozenset({"", "DROPPED", "PENDING", "DROPOFF", "INTIMATION"})


def is_vkyc_done(vkyc_status: Any) -> bool:
    """Digital KYC reached a final outcome (Approved or Rejected)."""
    return normalize(vkyc_status) in VKYC_DONE_STATUSES


def is_vkyc_redo_allowed(vkyc_status: Any) -> bool:
    """VKYC may be re-attempted: no status yet, dropped or pending."""
    return normalize(vkyc_status) in VKYC_REDO_ALLOWED_STATUSES


class KycChannel(str, Enum):
    """Which rule closed the KYC journey."""

    LOGIN = "login"
    VKYC = "vkyc"
    NON_CORE = "non_core"
    PROGRESSED = "progressed"


_KYC_RULES: tuple[tuple[Callable[[str, str, str, str], bool], KycChannel], ...] = (
    (lambda login, final, vkyc, core: login in VALID_LOGIN_STATUSES, KycChannel.LOGIN),
    (lambda login, final, vkyc, core: vkyc in VKYC_DONE_STATUSES, KycChannel.VKYC),
    # Non-core cities cannot complete KYC digitally; the journey is closed
    (lambda login, final, vkyc, core: core == "NON-CORE", KycChannel.NON_CORE),
    (lambda login, final, vkyc, core: final != "" and final != "IPA", KycChannel.PROGRESSED),
)


def kyc_completion_channel(
    login_status: Any,
    final_status: Any,
    vkyc_status: Any = None,
    core_non_core: Any = None,
) -> KycChannel | None:
    """First KYC rule that matches, or None when KYC is genuinely pending."""
    args = (
        normalize(login_status),
        normalize(final_status),
        normalize(vkyc_status),
        normalize(core_non_core),
    )
    for predicate, channel in _KYC_RULES:
        if predicate(*args):
            return channel
    return None


def is_kyc_completed(
    login_status: Any,
    final_status: Any,
    vkyc_status: Any = None,
    core_non_core: Any = None,
    rejection_reason: Any = None,
) -> bool:
    """
    KYC journey is closed.

    True if login is achieved, VKYC reached an outcome, the application is
    Non-Core, or final_status moved past IPA. ``rejection_reason`` is
    accepted for call-site compatibility and deliberately ignored.
    """
    return kyc_completion_channel(login_status, final_status, vkyc_status, core_non_core) is not None


def kyc_status_label(kyc_completed: bool) -> str:
    return "KYC Done" if kyc_completed else "KYC Pending"


# -----------------------------------------------------------------------------
# Outcomes
# -----------------------------------------------------------------------------

CARD_APPROVED_OUTCOMES = ("APPROVED", "DISBURSED", "CARD DISPATCHED", "SANCTIONED")
POST_KYC_OUTCOMES = ("APPROVED", "DISBURSED", "LOGGED", "CARD DISPATCHED", "SANCTIONED")
POST_KYC_REJECTIONS = ("REJECTED", "DECLINED")


def is_card_approved(final_status: Any) -> bool:
    final = normalize(final_status)
    return any(outcome in final for outcome in CARD_APPROVED_OUTCOMES)


def is_rejected_post_kyc(final_status: Any, kyc_completed: bool) -> bool:
    """Rejected after KYC closed. Pre-KYC rejections do not count."""
    if not kyc_completed:
        return False
    final = normalize(final_status)
    return any(outcome in final for outcome in POST_KYC_REJECTIONS)


# -----------------------------------------------------------------------------
# Conflicts between raw signals
# -----------------------------------------------------------------------------


class ConflictType(str, Enum):
    LOGIN_IPA_CONFLICT = "LOGIN_IPA_CONFLICT"  # Login present but status is IPA
    POST_KYC_NO_LOGIN = "POST_KYC_NO_LOGIN"  # Post-KYC outcome without login
    REJECT_WITH_LOGIN = "REJECT_WITH_LOGIN"  # Rejected quality but has login


@dataclass(frozen=True)
class ConflictResolution:
    """Fixed policy applied to a detected conflict."""

    resolution: str
    kyc_completed: bool


CONFLICT_RESOLUTIONS: dict[ConflictType, ConflictResolution] = {
    ConflictType.LOGIN_IPA_CONFLICT: ConflictResolution(
        resolution=(
            "Login presence takes precedence. KYC marked as Done per rule: "
            "Login present = KYC Completed."
        ),
        kyc_completed=True,
    ),
    ConflictType.POST_KYC_NO_LOGIN: ConflictResolution(
        resolution=(
            "Post-KYC outcome confirms KYC completion. "
            "Login field may have data quality issue."
        ),
        kyc_completed=True,
    ),
    ConflictType.REJECT_WITH_LOGIN: ConflictResolution(
        resolution=(
            "Lead quality remains Rejected (frozen at derivation). "
            "KYC is Done but excluded from conversion denominator."
        ),
        kyc_completed=True,
    ),
}


def has_login(login_status: Any) -> bool:
    """Any login signal at all (substring match, unlike the KYC login rule)."""
    return "LOGIN" in normalize(login_status)


_CONFLICT_RULES: tuple[tuple[Callable[[bool, str, LeadQuality], bool], ConflictType], ...] = (
    (lambda login, final, quality: login and final == "IPA", ConflictType.LOGIN_IPA_CONFLICT),
    (
        lambda login, final, quality: not login and any(o in final for o in POST_KYC_OUTCOMES),
        ConflictType.POST_KYC_NO_LOGIN,
    ),
    (lambda login, final, quality: login and quality is LeadQuality.REJECTED, ConflictType.REJECT_WITH_LOGIN),
)


def detect_conflict(login_status: Any, final_status: Any, blaze_output: Any) -> ConflictType | None:
    """Classify contradictory raw signals; None when nothing contradicts."""
    args = (has_login(login_status), normalize(final_status), derive_lead_quality(blaze_output))
    for predicate, conflict in _CONFLICT_RULES:
        if predicate(*args):
            return conflict
    return None


def resolve_conflict(conflict_type: ConflictType) -> ConflictResolution:
    return CONFLICT_RESOLUTIONS[conflict_type]
