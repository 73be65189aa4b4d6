"""
Mapping engine: source headers -> target fields, raw rows -> target records.

Bank extracts name the same column many ways ("Application no",
"APPLICATION_ID", "app id"). Headers are compared after normalization
(lowercase, alphanumerics only) against an alias table, with a substring
fallback for anything the table misses. ZERO I/O.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Any, Iterable, Mapping, Sequence

from mis_ingestion.domain.types import (
    DATE_TARGETS,
    REQUIRED_TARGETS,
    TARGET_FIELDS,
    ColumnMapping,
)
from mis_kernel.domain.dates import normalize_date, try_normalize_date

DEFAULT_COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "application_id": (
        "application no", "application_id", "app_id", "applicationid", "appid",
        "application id", "app id",
    ),
    "application_date": ("date", "application_date", "application date"),
    "blaze_output": ("blaze_output", "blaze output", "blaze"),
    "login_status": ("login status", "login_status", "login"),
    "final_status": ("final status", "final_status"),
    "vkyc_status": ("vkyc status", "vkyc_status"),
    "core_non_core": (
        "core/noncore", "core_non_core", "core non core", "core/non-core",
    ),
    "rejection_reason": (
        "reason", "rejection_reason", "rejection reason", "reject_reason",
        "decline_reason",
    ),
    "vkyc_eligible": ("vkyc_eligible", "vkyc eligible", "vkyc_elig", "eligibility"),
    "state": ("state", "location_state"),
    "product": ("product", "product_name"),
    "last_updated_date": (
        "last_updated_date", "last updated date", "update_date", "updatedate",
    ),
}

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def normalize_header(header: Any) -> str:
    """Lowercase alphanumerics only: ``"Login Status"`` -> ``"loginstatus"``."""
    return _NON_ALNUM.sub("", str(header).lower())


def _match_alias(normalized: str, aliases: Mapping[str, Sequence[str]]) -> str | None:
    for target, names in aliases.items():
        if normalized in {normalize_header(name) for name in names}:
            return target
    return None


def _match_substring(normalized: str, targets: Sequence[str]) -> str | None:
    for target in targets:
        target_norm = normalize_header(target)
        if normalized in target_norm or target_norm in normalized:
            return target
    return None


def generate_column_mappings(
    source_columns: Iterable[str],
    aliases: Mapping[str, Sequence[str]] | None = None,
    targets: Sequence[str] = TARGET_FIELDS,
    required: Sequence[str] = REQUIRED_TARGETS,
) -> list[ColumnMapping]:
    """
    Propose a target field for every source column.

    Alias match first, substring match second. Each target is claimed by
    at most one source column (the first in file order); later columns that
    would map to a claimed target stay unmapped.
    """
    aliases = DEFAULT_COLUMN_ALIASES if aliases is None else aliases
    ordered_targets = list(required) + [t for t in targets if t not in required]
    claimed: set[str] = set()
    mappings = []
    for source in source_columns:
        normalized = normalize_header(source)
        target = None
        if normalized:
            target = _match_alias(normalized, aliases) or _match_substring(
                normalized, ordered_targets
            )
        if target in claimed:
            target = None
        if target is not None:
            claimed.add(target)
        mappings.append(
            ColumnMapping(
                source_column=source,
                target_column=target,
                is_required=target in required,
            )
        )
    return mappings


def remap(mappings: Sequence[ColumnMapping], source_column: str, target: str | None,
          required: Sequence[str] = REQUIRED_TARGETS) -> list[ColumnMapping]:
    """Mappings with one source column pointed at a different target (or none)."""
    return [
        ColumnMapping(m.source_column, target, target in required)
        if m.source_column == source_column
        else m
        for m in mappings
    ]


def mapping_lookup(mappings: Iterable[ColumnMapping]) -> dict[str, str]:
    """target field -> source column, mapped columns only."""
    return {m.target_column: m.source_column for m in mappings if m.target_column is not None}


def _coerce(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, date):
        return normalize_date(value)
    if isinstance(value, bool):
        return str(value).upper()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    text = str(value).strip()
    return text or None


def extract_record(
    row: Mapping[str, Any],
    lookup: Mapping[str, str],
    *,
    day_first: bool = True,
) -> dict[str, str | None]:
    """
    Target-field record from one source row.

    Text is trimmed and empty cells become None. Numbers that are whole
    lose their ``.0``. Date targets are normalized to ISO form; a date that
    cannot be parsed is kept as trimmed text for validation to report.
    """
    record: dict[str, str | None] = {}
    for target, source in lookup.items():
        raw = row.get(source)
        value = _coerce(raw)
        if value is not None and target in DATE_TARGETS and not isinstance(raw, date):
            value = try_normalize_date(raw, day_first=day_first) or value
        record[target] = value
    return record
