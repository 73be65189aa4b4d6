#!/usr/bin/env python3
"""
Run the MIS ingestion pipeline: probe, map, validate, preview and commit one extract.

Uses the active configuration (defaults.yaml, then --config or MIS_CONFIG_PATH,
then MIS_DATABASE_URL). The whole commit runs in a single transaction.

Usage:
    python3 scripts/run_mis_import.py --file <path> [options]

Examples:
    # Probe source file (row count, columns, sample) without touching the DB
    python3 scripts/run_mis_import.py --file axis_mis.xlsx --probe-only

    # Validate and preview the change set, no writes
    python3 scripts/run_mis_import.py --file axis_mis.xlsx --preview-only

    # Full pipeline against a fresh SQLite file
    python3 scripts/run_mis_import.py --file axis_mis.csv --db-url sqlite:///mis.db --create-tables
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run MIS import: probe -> map -> validate -> preview -> [commit].",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--file",
        required=True,
        type=Path,
        help="Path to the MIS extract (CSV or XLSX).",
    )
    parser.add_argument(
        "--db-url",
        default=None,
        help="Database URL (default: from configuration).",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Override YAML merged over the packaged defaults.",
    )
    parser.add_argument(
        "--probe-only",
        action="store_true",
        help="Probe source file (row count, columns, sample rows) and exit. No DB access.",
    )
    parser.add_argument(
        "--preview-only",
        action="store_true",
        help="Validate and preview the change set; do not commit.",
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create the MIS tables before importing.",
    )
    parser.add_argument(
        "--drop-row",
        type=int,
        action="append",
        default=[],
        metavar="ROW",
        help="Spreadsheet row number to drop before preview (repeatable).",
    )
    parser.add_argument(
        "--uploaded-by",
        default=None,
        help="Name recorded on the upload (default: from configuration).",
    )
    return parser.parse_args(argv)


def _print_report(report) -> None:
    print(f"  Rows: {report.total_rows}  Valid: {report.valid_rows}  Invalid: {report.invalid_rows}")
    for summary in report.error_summary:
        print(
            f"  {summary.column}: {summary.error_count} x {summary.error_type.value} "
            f"(fix: {summary.fix_action.value})"
        )
        for sample in summary.sample_errors:
            print(f"    row {sample.row}: {sample.value!r}")
    for warning in report.warnings:
        print(f"  WARNING: {warning.message}")


def _print_change_set(change_set) -> None:
    print(f"  New: {len(change_set.new_records)}")
    print(f"  Updated: {len(change_set.updated_records)}")
    print(f"  Unchanged: {change_set.unchanged_count} (skipped by guard: {len(change_set.skipped_records)})")
    if change_set.duplicates_collapsed:
        print(f"  Duplicate rows collapsed: {change_set.duplicates_collapsed}")
    for reason, count in sorted(change_set.skipped_by_reason().items(), key=lambda kv: kv[0].value):
        print(f"    {reason.value}: {count}")


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    source_path = args.file.resolve()
    if not source_path.is_file():
        print(f"ERROR: File not found: {source_path}", file=sys.stderr)
        return 1

    # Lazy imports so we fail fast on args first
    from mis_config import get_active_config
    from mis_ingestion.services import CommitService, ImportService
    from mis_kernel.db.engine import create_tables, get_session, init_engine_from_url, session_scope
    from mis_kernel.exceptions import MisKernelError
    from mis_kernel.logging_config import configure_logging

    configure_logging()

    try:
        config = get_active_config(args.config)
    except MisKernelError as e:
        print(f"ERROR: Failed to load config: {e}", file=sys.stderr)
        return 1

    ingestion = config.ingestion

    if args.probe_only:
        svc = ImportService(session=None, config=ingestion)
        try:
            probe = svc.probe(source_path)
        except MisKernelError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 1
        print(f"Rows: {probe.row_count}")
        print(f"Columns: {list(probe.columns)}")
        print("Sample (first 3):")
        for i, row in enumerate(probe.sample_rows[:3], 1):
            print(f"  {i}: {row}")
        return 0

    try:
        init_engine_from_url(args.db_url or config.database.url)
        if args.create_tables:
            create_tables()
    except Exception as e:
        print(f"ERROR: Database init failed: {e}", file=sys.stderr)
        return 1

    session = get_session()
    try:
        print(f"Reading {source_path}...")
        try:
            preview = ImportService(session, config=ingestion).prepare(
                source_path, dropped_rows=args.drop_row
            )
        except MisKernelError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 1

        print("Column mappings:")
        for m in preview.mappings:
            marker = "*" if m.is_required else " "
            print(f"  {marker} {m.source_column!r} -> {m.target_column or '(unmapped)'}")

        print("Validation:")
        _print_report(preview.report)
        if preview.report.has_schema_errors or preview.change_set is None:
            print("ERROR: Required columns are not mapped; nothing imported.", file=sys.stderr)
            return 1

        print("Preview:")
        _print_change_set(preview.change_set)
    finally:
        session.close()

    if args.preview_only:
        print("Skipping commit (--preview-only).")
        return 0

    if not preview.change_set.has_changes:
        print("No new or changed records; nothing to commit.")
        return 0

    print("Committing...")
    try:
        with session_scope() as session:
            result = CommitService(
                session,
                uploaded_by=args.uploaded_by or ingestion.uploaded_by,
                day_first=ingestion.day_first,
            ).apply(
                preview.change_set,
                file_name=source_path.name,
                record_count=preview.report.total_rows,
            )
    except MisKernelError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    print(f"  Upload {result.upload_id}")
    print(f"  Inserted: {result.inserted}  Updated: {result.updated}  Unchanged: {result.unchanged}")
    print(f"  Conflicts logged: {result.conflicts_logged}  Pending review: {result.pending_conflicts}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
