"""
XLSX source adapter for bank MIS extracts.

Supports flexible layout:
  - sheet by index (0-based) or name; first sheet by default
  - header row by index or auto-detect (scans first N rows for MIS column names)
  - skip_rows before header
  - normalizes cell values (strip text, integral floats -> int, blank -> "")

Date cells are returned as ``datetime`` objects so the date normalizer never
has to guess their day/month order.

Auto-detect looks for a row containing at least 2 of the MIS keywords
(application, blaze, login, final status, vkyc, core, date, ...), since
some extracts carry a title block above the real header.
"""

from __future__ import annotations

import re
import zipfile
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterator

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from mis_ingestion.adapters.base import SourceProbe
from mis_kernel.exceptions import SourceFileError

_HEADER_KEYWORDS = frozenset({
    "application no", "application id", "application_id", "app id",
    "blaze_output", "blaze output", "blaze",
    "login status", "login_status",
    "final status", "final_status",
    "vkyc status", "vkyc_status",
    "core/noncore", "core_non_core",
    "date", "last_updated_date", "reason", "state", "product",
})

_MAX_HEADER_SEARCH = 15
_MIN_HEADER_KEYWORDS = 2
_MAX_COLUMNS = 80
_SAMPLE_SIZE = 5


def _normalize_header_cell(value: Any) -> str:
    if value is None:
        return ""
    return re.sub(r"\s+", " ", str(value)).strip()


def _cell_value(row: Any, col_idx: int) -> Any:
    """Value of a cell in an openpyxl row (0-based column index)."""
    if col_idx >= len(row):
        return ""
    v = row[col_idx].value
    if v is None:
        return ""
    if isinstance(v, (datetime, date)):
        return v
    if isinstance(v, bool):
        return str(v).upper()
    if isinstance(v, float) and v.is_integer():
        return int(v)
    if isinstance(v, (int, float)):
        return v
    return str(v).strip()


def _row_to_keywords(row: Any) -> set[str]:
    keywords = set()
    for c in range(min(len(row), _MAX_COLUMNS)):
        v = _cell_value(row, c)
        if not isinstance(v, str) or not v:
            continue
        text = _normalize_header_cell(v).lower()
        if text in _HEADER_KEYWORDS:
            keywords.add(text)
    return keywords


def _detect_header_row(rows: list) -> int:
    """0-based index of the first row that looks like an MIS header."""
    for i, row in enumerate(rows[:_MAX_HEADER_SEARCH]):
        if len(_row_to_keywords(row)) >= _MIN_HEADER_KEYWORDS:
            return i
    return 0


def _column_count(row: Any) -> int:
    n = 0
    for c in range(min(len(row), _MAX_COLUMNS)):
        if _cell_value(row, c) != "":
            n = c + 1
    return max(n, 1)


def _headers(header_row: Any) -> list[str]:
    headers: list[str] = []
    for c in range(_column_count(header_row)):
        key = _normalize_header_cell(_cell_value(header_row, c)) or f"Column_{c + 1}"
        base = key
        cnt = 0
        while key in headers:
            cnt += 1
            key = f"{base}_{cnt}"
        headers.append(key)
    return headers


class XlsxSourceAdapter:
    """
    Read .xlsx extracts as one dict per row.

    source_options:
      sheet: 0-based sheet index (int) or sheet name (str). Default: first sheet.
      skip_rows: rows to skip at the top of the sheet. Default: 0.
      header_row: 0-based row index (after skip_rows) used as header when
        auto_detect_header is false.
      auto_detect_header: scan the first 15 rows for the header. Default: true.
    """

    def _open(self, source_path: Path) -> Any:
        if not source_path.is_file():
            raise SourceFileError(str(source_path), "file not found")
        try:
            return openpyxl.load_workbook(source_path, read_only=True, data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, OSError, KeyError, ValueError) as exc:
            raise SourceFileError(str(source_path), f"not a readable workbook: {exc}") from exc

    def _get_sheet(self, wb: Any, options: dict[str, Any]) -> Any:
        sheet_ref = options.get("sheet")
        if sheet_ref is None:
            return wb.worksheets[0]
        if isinstance(sheet_ref, int):
            return wb.worksheets[sheet_ref]
        return wb[sheet_ref]

    def _header_index(self, rows: list, options: dict[str, Any]) -> int:
        if options.get("auto_detect_header", True):
            return _detect_header_row(rows)
        return int(options.get("header_row") or 0)

    def _load(self, source_path: Path, options: dict[str, Any]) -> tuple[str, list[str], list[dict[str, Any]]]:
        wb = self._open(source_path)
        try:
            sheet = self._get_sheet(wb, options)
            skip_rows = int(options.get("skip_rows", 0))
            rows = list(sheet.iter_rows(min_row=1 + skip_rows))
            if not rows:
                return sheet.title, [], []
            hi = self._header_index(rows, options)
            headers = _headers(rows[hi])
            records = []
            for row in rows[hi + 1:]:
                vals = [_cell_value(row, c) for c in range(len(headers))]
                if all(v == "" for v in vals):
                    continue
                records.append(dict(zip(headers, vals)))
            return sheet.title, headers, records
        finally:
            wb.close()

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        _, _, records = self._load(source_path, options)
        yield from records

    def probe(self, source_path: Path, options: dict[str, Any]) -> SourceProbe:
        title, headers, records = self._load(source_path, options)
        return SourceProbe(
            row_count=len(records),
            columns=tuple(headers),
            sample_rows=tuple(records[:_SAMPLE_SIZE]),
            sheet_name=title,
        )
