"""Mapping engine: column matching and record extraction."""

from mis_ingestion.mapping.engine import (
    DEFAULT_COLUMN_ALIASES,
    extract_record,
    generate_column_mappings,
    mapping_lookup,
    normalize_header,
    remap,
)

__all__ = [
    "DEFAULT_COLUMN_ALIASES",
    "extract_record",
    "generate_column_mappings",
    "mapping_lookup",
    "normalize_header",
    "remap",
]
