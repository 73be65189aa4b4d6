"""
mis_ingestion.domain -- Pure types, validators and reconciliation.

ZERO I/O. Imports only from mis_kernel/domain/.
"""

from mis_ingestion.domain.reconciliation import reconcile
from mis_ingestion.domain.types import (
    ChangeSet,
    ChangeType,
    ColumnMapping,
    IncomingRecord,
    PreviewRecord,
    RowError,
    RowErrorCode,
    SkippedRecord,
    ValidationReport,
    ValidationWarning,
)

__all__ = [
    "ChangeSet",
    "ChangeType",
    "ColumnMapping",
    "IncomingRecord",
    "PreviewRecord",
    "RowError",
    "RowErrorCode",
    "SkippedRecord",
    "ValidationReport",
    "ValidationWarning",
    "reconcile",
]
