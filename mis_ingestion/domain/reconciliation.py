"""
Reconciliation pipeline: incoming batch + stored state -> ChangeSet.

Steps:
    1. Group incoming records by application_id, first-seen order kept.
    2. Collapse each multi-row group to its best row (deduplicator).
    3. No stored record: NEW, guard bypassed.
       Stored record: run the transition guard.
         reject -> skipped (reason kept), counted as unchanged
         accept -> diff every mapped target field (text compare, None == "");
                   any difference -> UPDATED, none -> unchanged
    4. Return the ChangeSet.

The stored snapshot must be complete before this runs; nothing here reads
or writes the store. ZERO I/O apart from structured log events.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence

from mis_ingestion.domain.types import (
    KEY_FIELD,
    ChangeSet,
    ChangeType,
    IncomingRecord,
    PreviewRecord,
    SkippedRecord,
)
from mis_kernel.domain.dedup import select_best_record
from mis_kernel.domain.transition_guard import StatusSnapshot, should_update_record
from mis_kernel.exceptions import UnmappedRequiredColumnError
from mis_kernel.logging_config import LogContext, get_logger

logger = get_logger("ingestion.reconciliation")


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


def _incoming_snapshot(record: IncomingRecord) -> StatusSnapshot:
    return StatusSnapshot.from_mapping(record.values)


def group_by_application(records: Iterable[IncomingRecord]) -> dict[str, list[IncomingRecord]]:
    """application_id -> rows, in first-seen order. Rows without an id are dropped."""
    groups: dict[str, list[IncomingRecord]] = {}
    for record in records:
        app_id = record.application_id
        if app_id:
            groups.setdefault(app_id, []).append(record)
    return groups


def diff_fields(
    incoming: Mapping[str, Any],
    existing: Mapping[str, Any],
    target_fields: Iterable[str],
) -> tuple[str, ...]:
    """Target fields whose text differs between incoming and stored values."""
    return tuple(
        name
        for name in target_fields
        if _as_text(incoming.get(name)) != _as_text(existing.get(name))
    )


def reconcile(
    records: Sequence[IncomingRecord],
    existing: Mapping[str, Mapping[str, Any]],
    target_fields: Sequence[str],
) -> ChangeSet:
    """
    Classify every incoming application as new, updated, skipped or unchanged.

    Args:
        records: Validated incoming rows.
        existing: Stored raw field values keyed by application_id.
        target_fields: Mapped target fields; only these are compared.

    Raises:
        UnmappedRequiredColumnError: application_id is not a mapped target.
    """
    if KEY_FIELD not in target_fields:
        raise UnmappedRequiredColumnError([KEY_FIELD])

    logger.info(
        "reconciliation_started",
        extra={"incoming_rows": len(records), "existing_records": len(existing)},
    )

    groups = group_by_application(records)

    new_records: list[PreviewRecord] = []
    updated_records: list[PreviewRecord] = []
    skipped_records: list[SkippedRecord] = []
    vacuous = 0
    collapsed = 0

    for app_id, group in groups.items():
        if len(group) > 1:
            collapsed += len(group) - 1
        best = select_best_record(group, _incoming_snapshot)
        new_values = {name: best.values.get(name) for name in target_fields}

        stored = existing.get(app_id)
        if stored is None:
            new_records.append(
                PreviewRecord(
                    application_id=app_id,
                    change_type=ChangeType.NEW,
                    new_values=new_values,
                )
            )
            continue

        decision = should_update_record(
            _incoming_snapshot(best), StatusSnapshot.from_mapping(stored)
        )
        if not decision.should_update:
            skipped_records.append(
                SkippedRecord(
                    application_id=app_id,
                    reason_code=decision.reason_code,
                    reason=decision.reason,
                )
            )
            with LogContext.bind(application_id=app_id):
                logger.info(
                    "record_skipped",
                    extra={
                        "reason_code": decision.reason_code.value,
                        "existing_stage": decision.existing_stage.value,
                        "incoming_stage": decision.incoming_stage.value,
                    },
                )
            continue

        changed = diff_fields(new_values, stored, target_fields)
        if not changed:
            vacuous += 1
            continue

        updated_records.append(
            PreviewRecord(
                application_id=app_id,
                change_type=ChangeType.UPDATED,
                new_values=new_values,
                old_values={name: stored.get(name) for name in target_fields},
                changed_fields=changed,
            )
        )

    if collapsed:
        logger.info("duplicates_collapsed", extra={"duplicates_collapsed": collapsed})

    change_set = ChangeSet(
        new_records=tuple(new_records),
        updated_records=tuple(updated_records),
        skipped_records=tuple(skipped_records),
        vacuous_count=vacuous,
        total_incoming=len(groups),
        duplicates_collapsed=collapsed,
    )
    logger.info(
        "reconciliation_completed",
        extra={
            "total_incoming": change_set.total_incoming,
            "new": len(change_set.new_records),
            "updated": len(change_set.updated_records),
            "skipped": len(change_set.skipped_records),
            "unchanged": change_set.unchanged_count,
        },
    )
    return change_set
