"""
Journey stage calculation.

Maps an application's raw status fields to one ordinal stage describing how
far it has progressed. Stages are ordered by an explicit rank table with
gaps (0, 10, 20, ...) so intermediate stages can be added without
renumbering; never compare stages by declaration order.

Terminal stages (APPROVED, DISBURSED, CARD_DISPATCHED, FINAL_REJECT) freeze
the stored record: once reached, nothing may overwrite it.

ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from mis_kernel.domain.rules import normalize


class JourneyStage(str, Enum):
    NEW = "NEW"
    IPA = "IPA"
    DEDUPE_PASS = "DEDUPE_PASS"
    BUREAU_PASS = "BUREAU_PASS"
    VKYC_ELIGIBLE = "VKYC_ELIGIBLE"
    VKYC_INITIATED = "VKYC_INITIATED"
    VKYC_ATTEMPTED = "VKYC_ATTEMPTED"
    VKYC_REJECTED = "VKYC_REJECTED"
    VKYC_APPROVED = "VKYC_APPROVED"
    LOGIN = "LOGIN"
    UNDERWRITING = "UNDERWRITING"
    SANCTIONED = "SANCTIONED"
    APPROVED = "APPROVED"
    DISBURSED = "DISBURSED"
    CARD_DISPATCHED = "CARD_DISPATCHED"
    FINAL_REJECT = "FINAL_REJECT"

    @property
    def rank(self) -> int:
        return STAGE_RANKS[self]


# Rank order reflects irreversible real-world progression
_RANK_TABLE: tuple[tuple[JourneyStage, int], ...] = (
    (JourneyStage.NEW, 0),
    (JourneyStage.IPA, 10),
    (JourneyStage.DEDUPE_PASS, 20),
    (JourneyStage.BUREAU_PASS, 30),
    (JourneyStage.VKYC_ELIGIBLE, 40),
    (JourneyStage.VKYC_INITIATED, 50),
    (JourneyStage.VKYC_ATTEMPTED, 55),
    (JourneyStage.VKYC_REJECTED, 60),
    (JourneyStage.VKYC_APPROVED, 65),
    (JourneyStage.LOGIN, 70),
    (JourneyStage.UNDERWRITING, 80),
    (JourneyStage.SANCTIONED, 85),
    (JourneyStage.APPROVED, 90),
    (JourneyStage.DISBURSED, 95),
    (JourneyStage.CARD_DISPATCHED, 96),
    (JourneyStage.FINAL_REJECT, 100),
)

STAGE_RANKS: dict[JourneyStage, int] = dict(_RANK_TABLE)

TERMINAL_STAGES: frozenset[JourneyStage] = frozenset({
    JourneyStage.APPROVED,
    JourneyStage.DISBURSED,
    JourneyStage.CARD_DISPATCHED,
    JourneyStage.FINAL_REJECT,
})


def stage_rank(stage: JourneyStage) -> int:
    return STAGE_RANKS[stage]


def is_terminal_stage(stage: JourneyStage) -> bool:
    return stage in TERMINAL_STAGES


# -----------------------------------------------------------------------------
# Stage rules (first match wins; order is the algorithm)
# -----------------------------------------------------------------------------

_VKYC_OUTCOME = frozenset({"APPROVED", "REJECTED", "HARD_ACCEPT", "HARD_REJECT"})
_VKYC_NOT_STARTED = frozenset({"NOT_ELIGIBLE", "DROPOFF", "DROPPED"})


@dataclass(frozen=True)
class _Signals:
    final: str
    login: str
    vkyc: str
    blaze: str


def _final_reject(s: _Signals) -> bool:
    # A rejection only counts as terminal once KYC was attempted; earlier
    # rejections fall through to the pre-KYC stages below.
    rejected = "REJECTED" in s.final or s.final == "DECLINED"
    return rejected and ("LOGIN" in s.login or s.vkyc in _VKYC_OUTCOME)


_STAGE_RULES: tuple[tuple[Callable[[_Signals], bool], JourneyStage], ...] = (
    (lambda s: "DISBURSED" in s.final, JourneyStage.DISBURSED),
    (lambda s: "CARD DISPATCH" in s.final, JourneyStage.CARD_DISPATCHED),
    (lambda s: "APPROVED" in s.final, JourneyStage.APPROVED),
    (_final_reject, JourneyStage.FINAL_REJECT),
    (lambda s: "SANCTION" in s.final, JourneyStage.SANCTIONED),
    (lambda s: s.final == "LOGGED" or "UNDERWRITING" in s.final, JourneyStage.UNDERWRITING),
    (lambda s: "LOGIN" in s.login, JourneyStage.LOGIN),
    (lambda s: s.vkyc in ("APPROVED", "HARD_ACCEPT"), JourneyStage.VKYC_APPROVED),
    (lambda s: s.vkyc in ("REJECTED", "HARD_REJECT"), JourneyStage.VKYC_REJECTED),
    (lambda s: s.vkyc in ("ATTEMPTED", "IN_PROGRESS"), JourneyStage.VKYC_ATTEMPTED),
    (lambda s: s.vkyc in ("INITIATED", "PENDING"), JourneyStage.VKYC_INITIATED),
    (lambda s: s.vkyc != "" and s.vkyc not in _VKYC_NOT_STARTED, JourneyStage.VKYC_ELIGIBLE),
    (lambda s: s.blaze == "STPK", JourneyStage.BUREAU_PASS),
    (lambda s: s.blaze in ("STPT", "STPI", "REJECT"), JourneyStage.DEDUPE_PASS),
    (lambda s: s.final == "IPA", JourneyStage.IPA),
)


def calculate_journey_stage(
    final_status: Any,
    login_status: Any,
    vkyc_status: Any,
    blaze_output: Any,
) -> JourneyStage:
    """Journey stage for raw status fields. Deterministic and total."""
    signals = _Signals(
        final=normalize(final_status),
        login=normalize(login_status),
        vkyc=normalize(vkyc_status),
        blaze=normalize(blaze_output),
    )
    for predicate, stage in _STAGE_RULES:
        if predicate(signals):
            return stage
    return JourneyStage.NEW
