"""
Configuration schema.

Frozen dataclasses the YAML files are parsed into. The loader rejects
unknown keys, so every accepted setting appears here.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DatabaseConfig:
    url: str


@dataclass(frozen=True)
class IngestionConfig:
    """How extracts are mapped, validated and looked up."""

    required_columns: tuple[str, ...]
    strict_non_empty_columns: tuple[str, ...]
    column_aliases: dict[str, tuple[str, ...]] = field(default_factory=dict)
    day_first: bool = True
    lookup_page_size: int = 1000
    uploaded_by: str = "Manual Upload"


@dataclass(frozen=True)
class ReportingConfig:
    expected_months: tuple[str, ...] = ()


@dataclass(frozen=True)
class MisConfig:
    """Root configuration object returned by ``get_active_config()``."""

    bank_label: str
    database: DatabaseConfig
    ingestion: IngestionConfig
    reporting: ReportingConfig
    checksum: str = ""
    source_paths: tuple[str, ...] = ()
