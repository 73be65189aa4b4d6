"""
Intra-batch deduplication.

An extract can carry several rows for the same application. Exactly one
survives: the row furthest along the journey, and among rows at the same
stage the most recent one (later rows win exact ties).
"""

from __future__ import annotations

from typing import Callable, Sequence, TypeVar

from mis_kernel.domain.transition_guard import StatusSnapshot, is_newer_or_equal
from mis_kernel.exceptions import EmptyRecordGroupError

T = TypeVar("T")


def select_best_record(
    records: Sequence[T],
    snapshot: Callable[[T], StatusSnapshot] | None = None,
) -> T:
    """
    Pick the surviving row from a group sharing one application key.

    Args:
        records: Rows for one application, in file order.
        snapshot: Extracts the status fields from a row. Defaults to reading a
            target-field keyed mapping.

    Returns:
        One element of ``records`` (the same object, not a copy).

    Raises:
        EmptyRecordGroupError: ``records`` is empty.
    """
    if not records:
        raise EmptyRecordGroupError()
    snapshot = snapshot or StatusSnapshot.from_mapping

    best = records[0]
    if len(records) == 1:
        return best

    best_snapshot = snapshot(best)
    for candidate in records[1:]:
        candidate_snapshot = snapshot(candidate)
        candidate_rank = candidate_snapshot.stage.rank
        best_rank = best_snapshot.stage.rank
        if candidate_rank > best_rank or (
            candidate_rank == best_rank
            and is_newer_or_equal(
                candidate_snapshot.last_updated_date, best_snapshot.last_updated_date
            )
        ):
            best, best_snapshot = candidate, candidate_snapshot
    return best
