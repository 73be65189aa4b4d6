"""
Transition guard -- forward-only reconciliation state machine.

Decides whether an incoming record may overwrite a stored one. Gates run in
a fixed order, each one final:

    1. Terminal guard  -- a stored terminal stage is frozen, even for a newer row.
    2. Temporal guard  -- incoming last_updated_date must be >= the stored one.
    3. Stage guard     -- the incoming stage must not rank below the stored one.
    4. Accept          -- equal stages are accepted (idempotent re-ingestion).

Rejections are expected outcomes, returned as UpdateDecision values; nothing
here raises for malformed business data. An unparseable date fails closed
(reject) and is logged.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from mis_kernel.domain.dates import parse_date
from mis_kernel.domain.journey import (
    JourneyStage,
    calculate_journey_stage,
    is_terminal_stage,
)
from mis_kernel.exceptions import DateParseError
from mis_kernel.logging_config import get_logger

logger = get_logger("domain.transition_guard")


@dataclass(frozen=True)
class StatusSnapshot:
    """The status fields and ordering date the guard reasons over."""

    final_status: str | None = None
    login_status: str | None = None
    vkyc_status: str | None = None
    blaze_output: str | None = None
    last_updated_date: str | None = None

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> StatusSnapshot:
        """Build from a target-field keyed mapping (incoming row or stored record)."""

        def _text(key: str) -> str | None:
            value = values.get(key)
            return None if value is None else str(value)

        return cls(
            final_status=_text("final_status"),
            login_status=_text("login_status"),
            vkyc_status=_text("vkyc_status"),
            blaze_output=_text("blaze_output"),
            last_updated_date=_text("last_updated_date"),
        )

    @property
    def stage(self) -> JourneyStage:
        return calculate_journey_stage(
            self.final_status, self.login_status, self.vkyc_status, self.blaze_output
        )


class GuardOutcome(str, Enum):
    """Machine-readable outcome of ``should_update_record``."""

    ACCEPTED = "ACCEPTED"
    TERMINAL_STATE = "TERMINAL_STATE"
    STALE_DATE = "STALE_DATE"
    BACKWARD_TRANSITION = "BACKWARD_TRANSITION"


@dataclass(frozen=True)
class UpdateDecision:
    should_update: bool
    reason: str
    reason_code: GuardOutcome
    incoming_stage: JourneyStage
    existing_stage: JourneyStage


def is_transition_allowed(current_stage: JourneyStage, new_stage: JourneyStage) -> bool:
    """Forward or same-stage moves only, and never out of a terminal stage."""
    if is_terminal_stage(current_stage):
        return False
    return new_stage.rank >= current_stage.rank


def _has_date(value: Any) -> bool:
    return value is not None and str(value).strip() != ""


def is_newer_or_equal(incoming_date: Any, existing_date: Any) -> bool:
    """
    Incoming date is at or after the existing one.

    No existing date: accept (first write wins). No incoming date: reject.
    Either date unparseable: reject.
    """
    if not _has_date(existing_date):
        return True
    if not _has_date(incoming_date):
        return False
    try:
        return parse_date(incoming_date) >= parse_date(existing_date)
    except DateParseError as exc:
        logger.warning(
            "date_comparison_failed",
            extra={
                "incoming_date": str(incoming_date),
                "existing_date": str(existing_date),
                "error_code": exc.code,
            },
        )
        return False


def should_update_record(incoming: StatusSnapshot, existing: StatusSnapshot) -> UpdateDecision:
    """Run the terminal, temporal and stage gates in that order."""
    incoming_stage = incoming.stage
    existing_stage = existing.stage

    if is_terminal_stage(existing_stage):
        return UpdateDecision(
            should_update=False,
            reason=f"Application in terminal state ({existing_stage.value}). No updates allowed.",
            reason_code=GuardOutcome.TERMINAL_STATE,
            incoming_stage=incoming_stage,
            existing_stage=existing_stage,
        )

    if not is_newer_or_equal(incoming.last_updated_date, existing.last_updated_date):
        return UpdateDecision(
            should_update=False,
            reason=(
                f"Incoming date ({incoming.last_updated_date}) is older than existing "
                f"({existing.last_updated_date}). Stale update ignored."
            ),
            reason_code=GuardOutcome.STALE_DATE,
            incoming_stage=incoming_stage,
            existing_stage=existing_stage,
        )

    if not is_transition_allowed(existing_stage, incoming_stage):
        return UpdateDecision(
            should_update=False,
            reason=(
                f"Backward transition not allowed: {existing_stage.value} -> "
                f"{incoming_stage.value}. State regression ignored."
            ),
            reason_code=GuardOutcome.BACKWARD_TRANSITION,
            incoming_stage=incoming_stage,
            existing_stage=existing_stage,
        )

    return UpdateDecision(
        should_update=True,
        reason=f"Update allowed: {existing_stage.value} -> {incoming_stage.value}",
        reason_code=GuardOutcome.ACCEPTED,
        incoming_stage=incoming_stage,
        existing_stage=existing_stage,
    )
