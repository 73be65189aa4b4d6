"""
Import service: read -> map -> validate -> preview.

Orchestrates source adapters, the mapping engine, validators and the pure
reconciliation pipeline. The lookup of stored state is completed in full
before any guard runs; nothing here writes. Persisting the resulting
ChangeSet is ``CommitService``'s job.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

from sqlalchemy.orm import Session

from mis_config.schema import IngestionConfig
from mis_ingestion.adapters import adapter_for_path
from mis_ingestion.adapters.base import SourceAdapter, SourceProbe
from mis_ingestion.domain.reconciliation import reconcile
from mis_ingestion.domain.types import (
    KEY_FIELD,
    REQUIRED_TARGETS,
    STRICT_NON_EMPTY_TARGETS,
    ChangeSet,
    ColumnMapping,
    IncomingRecord,
    ValidationReport,
)
from mis_ingestion.domain.validators import spreadsheet_row, validate_batch
from mis_ingestion.mapping.engine import (
    DEFAULT_COLUMN_ALIASES,
    extract_record,
    generate_column_mappings,
    mapping_lookup,
)
from mis_kernel.exceptions import UnmappedRequiredColumnError
from mis_kernel.logging_config import LogContext, get_logger
from mis_kernel.selectors.record_selector import DEFAULT_PAGE_SIZE, MisRecordSelector

logger = get_logger("ingestion.import_service")


@dataclass(frozen=True)
class ImportPreview:
    """Everything the operator sees before deciding to commit."""

    source_path: str
    probe: SourceProbe
    mappings: tuple[ColumnMapping, ...]
    report: ValidationReport
    change_set: ChangeSet | None

    @property
    def can_commit(self) -> bool:
        return self.change_set is not None and not self.report.has_schema_errors


def merge_aliases(
    overrides: Mapping[str, Sequence[str]] | None,
) -> dict[str, tuple[str, ...]]:
    """Built-in alias table with configured aliases tried first per target."""
    merged = {target: tuple(names) for target, names in DEFAULT_COLUMN_ALIASES.items()}
    for target, names in (overrides or {}).items():
        merged[target] = tuple(names) + tuple(
            n for n in merged.get(target, ()) if n not in names
        )
    return merged


class ImportService:
    """
    Prepares an MIS file for commit.

    Args:
        session: Read access for the stored-state lookup.
        config: ``IngestionConfig``; None uses built-in defaults.
        adapters: Optional suffix -> adapter overrides (mostly for tests).
    """

    def __init__(
        self,
        session: Session,
        config: IngestionConfig | None = None,
        adapters: Mapping[str, SourceAdapter] | None = None,
    ):
        self._session = session
        self._config = config
        self._adapters = {k.lower(): v for k, v in (adapters or {}).items()}
        self._selector = MisRecordSelector(session)

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    @property
    def required_columns(self) -> tuple[str, ...]:
        return tuple(self._config.required_columns) if self._config else REQUIRED_TARGETS

    @property
    def strict_columns(self) -> tuple[str, ...]:
        return (
            tuple(self._config.strict_non_empty_columns)
            if self._config
            else STRICT_NON_EMPTY_TARGETS
        )

    @property
    def day_first(self) -> bool:
        return self._config.day_first if self._config else True

    @property
    def page_size(self) -> int:
        return self._config.lookup_page_size if self._config else DEFAULT_PAGE_SIZE

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def _adapter(self, source_path: Path) -> SourceAdapter:
        override = self._adapters.get(source_path.suffix.lower())
        return override if override is not None else adapter_for_path(source_path)

    def probe(self, source_path: Path | str, options: dict[str, Any] | None = None) -> SourceProbe:
        path = Path(source_path)
        return self._adapter(path).probe(path, options or {})

    def read_rows(
        self, source_path: Path | str, options: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        path = Path(source_path)
        return list(self._adapter(path).read(path, options or {}))

    # ------------------------------------------------------------------
    # Mapping and validation
    # ------------------------------------------------------------------

    def propose_mappings(self, source_columns: Iterable[str]) -> list[ColumnMapping]:
        aliases = merge_aliases(self._config.column_aliases if self._config else None)
        return generate_column_mappings(
            source_columns, aliases=aliases, required=self.required_columns
        )

    def validate(
        self,
        rows: Sequence[Mapping[str, Any]],
        mappings: Sequence[ColumnMapping],
        dropped_rows: Iterable[int] = (),
    ) -> ValidationReport:
        report = validate_batch(
            rows,
            mappings,
            required=self.required_columns,
            strict=self.strict_columns,
            day_first=self.day_first,
        )
        dropped = frozenset(dropped_rows)
        if dropped:
            report = report.without_rows(dropped)
        logger.info(
            "validation_completed",
            extra={
                "total_rows": report.total_rows,
                "valid_rows": report.valid_rows,
                "invalid_rows": report.invalid_rows,
                "dropped_rows": len(report.dropped_rows),
                "warnings": len(report.warnings),
            },
        )
        return report

    def build_incoming(
        self,
        rows: Sequence[Mapping[str, Any]],
        mappings: Sequence[ColumnMapping],
        report: ValidationReport,
    ) -> list[IncomingRecord]:
        """Target-field records for every row that is neither invalid nor dropped."""
        lookup = mapping_lookup(mappings)
        excluded = report.invalid_row_numbers | report.dropped_rows
        incoming = []
        for index, row in enumerate(rows):
            row_number = spreadsheet_row(index)
            if row_number in excluded:
                continue
            incoming.append(
                IncomingRecord(
                    row_number=row_number,
                    values=extract_record(row, lookup, day_first=self.day_first),
                )
            )
        return incoming

    # ------------------------------------------------------------------
    # Preview
    # ------------------------------------------------------------------

    def preview(
        self,
        rows: Sequence[Mapping[str, Any]],
        mappings: Sequence[ColumnMapping],
        report: ValidationReport,
    ) -> ChangeSet:
        """
        Reconcile valid rows against stored state.

        Raises:
            UnmappedRequiredColumnError: the report carries schema errors.
        """
        if report.has_schema_errors:
            missing = [e.column for e in report.errors if e.column is not None and e.row is None]
            raise UnmappedRequiredColumnError(missing)

        incoming = self.build_incoming(rows, mappings, report)
        target_fields = tuple(mapping_lookup(mappings))
        keys = [record.application_id for record in incoming if record.application_id]

        stored = self._selector.fetch_snapshot(keys, page_size=self.page_size)
        existing = {dto.application_id: dto.field_values() for dto in stored}

        return reconcile(incoming, existing, target_fields)

    def prepare(
        self,
        source_path: Path | str,
        dropped_rows: Iterable[int] = (),
        options: dict[str, Any] | None = None,
    ) -> ImportPreview:
        """
        Probe, read, map, validate and preview one file.

        A schema failure still returns a preview (with ``change_set`` None)
        so the caller can show the unmapped columns.
        """
        path = Path(source_path)
        with LogContext.bind(producer="ingestion.import"):
            logger.info("import_started", extra={"source_path": str(path)})
            probe = self.probe(path, options)
            rows = self.read_rows(path, options)
            mappings = tuple(self.propose_mappings(probe.columns))
            report = self.validate(rows, mappings, dropped_rows)

            if report.has_schema_errors:
                logger.warning(
                    "import_schema_invalid",
                    extra={
                        "unmapped_columns": [
                            e.column for e in report.errors if e.row is None
                        ],
                    },
                )
                return ImportPreview(str(path), probe, mappings, report, None)

            change_set = self.preview(rows, mappings, report)
            logger.info(
                "import_prepared",
                extra={
                    "source_path": str(path),
                    "key_field": KEY_FIELD,
                    "new": len(change_set.new_records),
                    "updated": len(change_set.updated_records),
                    "unchanged": change_set.unchanged_count,
                },
            )
            return ImportPreview(str(path), probe, mappings, report, change_set)
