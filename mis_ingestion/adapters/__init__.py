"""Source adapters for MIS extracts (file I/O only, no DB)."""

from pathlib import Path

from mis_ingestion.adapters.base import SourceAdapter, SourceProbe
from mis_ingestion.adapters.csv_adapter import CsvSourceAdapter
from mis_ingestion.adapters.xlsx_adapter import XlsxSourceAdapter
from mis_kernel.exceptions import SourceFileError

_ADAPTERS_BY_SUFFIX: dict[str, type] = {
    ".csv": CsvSourceAdapter,
    ".txt": CsvSourceAdapter,
    ".xlsx": XlsxSourceAdapter,
    ".xlsm": XlsxSourceAdapter,
}


def adapter_for_path(path: Path | str) -> SourceAdapter:
    """Adapter for a source file, chosen by its suffix."""
    suffix = Path(path).suffix.lower()
    adapter_cls = _ADAPTERS_BY_SUFFIX.get(suffix)
    if adapter_cls is None:
        raise SourceFileError(str(path), f"unsupported file type {suffix or '(none)'}")
    return adapter_cls()


__all__ = [
    "SourceAdapter",
    "SourceProbe",
    "CsvSourceAdapter",
    "XlsxSourceAdapter",
    "adapter_for_path",
]
