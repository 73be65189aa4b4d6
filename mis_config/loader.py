"""
Configuration Loader (``mis_config.loader``).

Responsibility
--------------
Loads the packaged ``defaults.yaml``, merges an optional override file over
it and parses the result into the frozen ``mis_config.schema`` dataclasses.
Runtime code obtains configuration through ``mis_config.get_active_config()``;
``load_config`` is here for tooling and tests.

Invariants enforced
-------------------
* Unknown keys are rejected, so a misspelt setting never silently falls
  back to its default.
* Column names must be known record fields; ``application_id`` is always
  required.
* ``compute_checksum`` is deterministic for identical merged settings.

Failure modes
-------------
* Missing override file  -> ``ConfigError``.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid or unknown settings  -> ``ConfigError`` naming the key.
"""

from __future__ import annotations

import hashlib
import json
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from mis_config.schema import DatabaseConfig, IngestionConfig, MisConfig, ReportingConfig
from mis_kernel.domain.dates import MONTH_ABBREVIATIONS
from mis_kernel.domain.dtos import RECORD_FIELDS
from mis_kernel.exceptions import ConfigError

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"

CONFIG_PATH_ENV = "MIS_CONFIG_PATH"
DATABASE_URL_ENV = "MIS_DATABASE_URL"

_ROOT_KEYS = frozenset({"bank_label", "database", "ingestion", "reporting"})
_DATABASE_KEYS = frozenset({"url"})
_INGESTION_KEYS = frozenset({
    "required_columns",
    "strict_non_empty_columns",
    "column_aliases",
    "day_first",
    "lookup_page_size",
    "uploaded_by",
})
_REPORTING_KEYS = frozenset({"expected_months"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        ConfigError: file missing or top level is not a mapping.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    if not path.is_file():
        raise ConfigError(f"Configuration file not found: {path}")
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file {path} must contain a mapping")
    return data


def merge_settings(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Recursive merge; mappings merge key by key, everything else is replaced."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = merge_settings(merged[key], value)
        else:
            merged[key] = value
    return merged


def compute_checksum(data: Mapping[str, Any]) -> str:
    """SHA-256 of the canonical JSON form of the merged settings."""
    canonical = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _section(data: Mapping[str, Any], key: str, allowed: frozenset[str]) -> Mapping[str, Any]:
    section = data.get(key) or {}
    if not isinstance(section, Mapping):
        raise ConfigError(f"'{key}' must be a mapping", key=key)
    unknown = sorted(set(section) - allowed)
    if unknown:
        raise ConfigError(f"Unknown key(s) in '{key}': {', '.join(unknown)}", key=key)
    return section


def _columns(value: Any, key: str) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"'{key}' must be a list of column names", key=key)
    unknown = [v for v in value if v not in RECORD_FIELDS]
    if unknown:
        raise ConfigError(f"'{key}' names unknown column(s): {', '.join(unknown)}", key=key)
    return tuple(value)


def _aliases(value: Any) -> dict[str, tuple[str, ...]]:
    key = "ingestion.column_aliases"
    if not isinstance(value, Mapping):
        raise ConfigError(f"'{key}' must be a mapping", key=key)
    unknown = [target for target in value if target not in RECORD_FIELDS]
    if unknown:
        raise ConfigError(f"'{key}' names unknown column(s): {', '.join(unknown)}", key=key)
    aliases = {}
    for target, names in value.items():
        if not isinstance(names, (list, tuple)) or not all(isinstance(n, str) for n in names):
            raise ConfigError(f"'{key}.{target}' must be a list of header names", key=key)
        aliases[target] = tuple(names)
    return aliases


def _is_month_label(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    parts = value.split()
    return (
        len(parts) == 2
        and parts[0] in MONTH_ABBREVIATIONS
        and parts[1].isdigit()
        and len(parts[1]) == 4
    )


def parse_ingestion(data: Mapping[str, Any]) -> IngestionConfig:
    section = _section(data, "ingestion", _INGESTION_KEYS)

    required = _columns(section.get("required_columns", ()), "ingestion.required_columns")
    if "application_id" not in required:
        raise ConfigError(
            "'ingestion.required_columns' must include application_id",
            key="ingestion.required_columns",
        )

    day_first = section.get("day_first", True)
    if not isinstance(day_first, bool):
        raise ConfigError("'ingestion.day_first' must be true or false", key="ingestion.day_first")

    page_size = section.get("lookup_page_size", 1000)
    if isinstance(page_size, bool) or not isinstance(page_size, int) or page_size < 1:
        raise ConfigError(
            "'ingestion.lookup_page_size' must be a positive integer",
            key="ingestion.lookup_page_size",
        )

    return IngestionConfig(
        required_columns=required,
        strict_non_empty_columns=_columns(
            section.get("strict_non_empty_columns", ()), "ingestion.strict_non_empty_columns"
        ),
        column_aliases=_aliases(section.get("column_aliases") or {}),
        day_first=day_first,
        lookup_page_size=page_size,
        uploaded_by=str(section.get("uploaded_by", "Manual Upload")),
    )


def parse_reporting(data: Mapping[str, Any]) -> ReportingConfig:
    section = _section(data, "reporting", _REPORTING_KEYS)
    months = section.get("expected_months") or ()
    bad = [m for m in months if not _is_month_label(m)]
    if bad:
        raise ConfigError(
            f"'reporting.expected_months' entries must look like 'Jan 2025': {bad}",
            key="reporting.expected_months",
        )
    return ReportingConfig(expected_months=tuple(months))


def parse_config(data: Mapping[str, Any], source_paths: tuple[str, ...] = ()) -> MisConfig:
    """Build a MisConfig from merged settings."""
    unknown = sorted(set(data) - _ROOT_KEYS)
    if unknown:
        raise ConfigError(f"Unknown top-level key(s): {', '.join(unknown)}")

    database = _section(data, "database", _DATABASE_KEYS)
    url = database.get("url")
    if not isinstance(url, str) or not url.strip():
        raise ConfigError("'database.url' must be a non-empty string", key="database.url")

    return MisConfig(
        bank_label=str(data.get("bank_label", "")),
        database=DatabaseConfig(url=url),
        ingestion=parse_ingestion(data),
        reporting=parse_reporting(data),
        checksum=compute_checksum(data),
        source_paths=source_paths,
    )


def load_config(
    path: Path | str | None = None,
    env: Mapping[str, str] | None = None,
) -> MisConfig:
    """
    Defaults, then the override file, then environment overrides.

    Args:
        path: Override YAML file. Falls back to ``MIS_CONFIG_PATH``.
        env: Environment mapping (defaults to ``os.environ``).
    """
    env = os.environ if env is None else env
    data = load_yaml_file(DEFAULTS_PATH)
    sources = [str(DEFAULTS_PATH)]

    override_path = path or env.get(CONFIG_PATH_ENV)
    if override_path:
        data = merge_settings(data, load_yaml_file(Path(override_path)))
        sources.append(str(override_path))

    database_url = env.get(DATABASE_URL_ENV)
    if database_url:
        data = merge_settings(data, {"database": {"url": database_url}})

    return parse_config(data, tuple(sources))
