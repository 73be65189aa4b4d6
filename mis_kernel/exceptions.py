"""
Typed Exception Hierarchy for the MIS Kernel.

===============================================================================
WHAT RAISES AND WHAT DOES NOT
===============================================================================

Malformed *business data* never raises. Rows that fail validation become
RowError values; guard rejections become SkippedRecord values; unparseable
dates on the guard path become a logged reject. Exceptions are reserved for:

  1. Schema problems that block a whole batch (required column unmapped).
  2. Programmer errors (empty duplicate group, missing key column).
  3. Infrastructure failures (commit rolled back, bad configuration).

Every exception carries a class-level ``code`` (machine-readable) and keeps
its context as attributes so structured logging can serialize it.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    MisKernelError (base)
    |
    +-- IngestionError
    |   +-- SchemaError
    |   |   +-- UnmappedRequiredColumnError
    |   +-- EmptyRecordGroupError
    |   +-- SourceFileError
    |
    +-- DateParseError
    |
    +-- PersistenceError
    |   +-- CommitFailedError
    |
    +-- ConfigError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                        | When Raised
-------------|-----------------------------|--------------------------------------
Ingestion    | SCHEMA_ERROR                | Column mapping unusable for the batch
             | UNMAPPED_REQUIRED_COLUMN    | Required target column not mapped
             | EMPTY_RECORD_GROUP          | Deduplicator called with no rows
             | SOURCE_FILE_ERROR           | Source file missing or unreadable
-------------|-----------------------------|--------------------------------------
Dates        | DATE_PARSE_ERROR            | Value is not a recognizable date
-------------|-----------------------------|--------------------------------------
Persistence  | COMMIT_FAILED               | Change-set could not be applied
-------------|-----------------------------|--------------------------------------
Config       | CONFIG_ERROR                | Invalid or unknown configuration
"""

from typing import Any


class MisKernelError(Exception):
    """
    Base exception for all MIS kernel errors.

    All subclasses have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "MIS_KERNEL_ERROR"


# Ingestion


class IngestionError(MisKernelError):
    """Base exception for ingestion errors."""

    code: str = "INGESTION_ERROR"


class SchemaError(IngestionError):
    """Column mapping cannot be used for this batch."""

    code: str = "SCHEMA_ERROR"


class UnmappedRequiredColumnError(SchemaError):
    """One or more required target columns are not mapped to a source column."""

    code: str = "UNMAPPED_REQUIRED_COLUMN"

    def __init__(self, columns: tuple[str, ...] | list[str]):
        self.columns = tuple(columns)
        super().__init__(
            f"Required column(s) not mapped: {', '.join(self.columns)}"
        )


class EmptyRecordGroupError(IngestionError):
    """Deduplicator was asked to pick from an empty group."""

    code: str = "EMPTY_RECORD_GROUP"

    def __init__(self) -> None:
        super().__init__("Cannot select a best record from an empty group")


class SourceFileError(IngestionError):
    """Source file is missing, empty or cannot be decoded."""

    code: str = "SOURCE_FILE_ERROR"

    def __init__(self, path: str, detail: str):
        self.path = path
        self.detail = detail
        super().__init__(f"{path}: {detail}")


# Dates


class DateParseError(MisKernelError):
    """Value could not be read as a date."""

    code: str = "DATE_PARSE_ERROR"

    def __init__(self, value: Any, detail: str = "unrecognized date format"):
        self.value = value
        self.detail = detail
        super().__init__(f"Cannot parse date {value!r}: {detail}")


# Persistence


class PersistenceError(MisKernelError):
    """Base exception for store failures."""

    code: str = "PERSISTENCE_ERROR"


class CommitFailedError(PersistenceError):
    """Applying a change-set failed; the transaction was rolled back."""

    code: str = "COMMIT_FAILED"

    def __init__(self, upload_id: str | None, detail: str):
        self.upload_id = upload_id
        self.detail = detail
        super().__init__(f"Commit failed for upload {upload_id}: {detail}")


# Configuration


class ConfigError(MisKernelError):
    """Configuration file or value is invalid."""

    code: str = "CONFIG_ERROR"

    def __init__(self, message: str, key: str | None = None):
        self.key = key
        super().__init__(message)
