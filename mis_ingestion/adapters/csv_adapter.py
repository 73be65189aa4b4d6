"""
CSV source adapter.

Uses csv.DictReader. Configurable: delimiter, encoding, quoting, skip_rows.
Handles BOM via utf-8-sig when encoding is utf-8. Streams rows. Rows that are
entirely blank are skipped.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, Iterator

from mis_ingestion.adapters.base import SourceProbe
from mis_kernel.exceptions import SourceFileError

_QUOTING = {
    "minimal": csv.QUOTE_MINIMAL,
    "all": csv.QUOTE_ALL,
    "nonnumeric": csv.QUOTE_NONNUMERIC,
    "none": csv.QUOTE_NONE,
}

_SAMPLE_SIZE = 5


def _get_encoding(options: dict[str, Any]) -> str:
    enc = options.get("encoding", "utf-8")
    if enc.lower() == "utf-8":
        return "utf-8-sig"  # Strip BOM if present
    return enc


def _get_quoting(options: dict[str, Any]) -> int:
    q = options.get("quoting", "minimal")
    if isinstance(q, int):
        return q
    return _QUOTING.get(str(q).lower(), csv.QUOTE_MINIMAL)


def _clean(row: dict[Any, Any]) -> dict[str, Any] | None:
    """Drop overflow cells; None for an entirely blank row."""
    row.pop(None, None)
    if all(v is None or str(v).strip() == "" for v in row.values()):
        return None
    return row


def _check_file(source_path: Path) -> None:
    if not source_path.is_file():
        raise SourceFileError(str(source_path), "file not found")


class CsvSourceAdapter:
    """Read CSV extracts as one dict per row. Streams; does not load entire file."""

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        _check_file(source_path)
        encoding = _get_encoding(options)
        skip_rows = int(options.get("skip_rows", 0))
        try:
            with source_path.open("r", encoding=encoding, newline="") as f:
                for _ in range(skip_rows):
                    next(f, None)
                reader = csv.DictReader(
                    f,
                    delimiter=options.get("delimiter", ","),
                    quoting=_get_quoting(options),
                )
                for raw in reader:
                    row = _clean(raw)
                    if row is not None:
                        yield row
        except UnicodeDecodeError as exc:
            raise SourceFileError(str(source_path), f"cannot decode as {encoding}") from exc

    def probe(self, source_path: Path, options: dict[str, Any]) -> SourceProbe:
        _check_file(source_path)
        encoding = _get_encoding(options)
        delimiter = options.get("delimiter", ",")
        skip_rows = int(options.get("skip_rows", 0))

        sample: list[dict[str, Any]] = []
        count = 0
        try:
            with source_path.open("r", encoding=encoding, newline="") as f:
                for _ in range(skip_rows):
                    next(f, None)
                reader = csv.DictReader(f, delimiter=delimiter, quoting=_get_quoting(options))
                columns = tuple(reader.fieldnames or ())
                for raw in reader:
                    row = _clean(raw)
                    if row is None:
                        continue
                    count += 1
                    if len(sample) < _SAMPLE_SIZE:
                        sample.append(row)
        except UnicodeDecodeError as exc:
            raise SourceFileError(str(source_path), f"cannot decode as {encoding}") from exc

        return SourceProbe(
            row_count=count,
            columns=columns,
            sample_rows=tuple(sample),
            encoding=encoding,
            detected_delimiter=delimiter,
        )
