"""
mis_config -- single public entrypoint for MIS configuration.

Runtime code obtains settings through ``get_active_config()`` and nothing
else; it never reads YAML files or ``MIS_*`` environment variables itself.
The kernel never imports from this package.

Failure modes:
    - ``ConfigError`` for unknown keys, invalid values or a missing override file.
    - ``yaml.YAMLError`` for malformed YAML.
"""

from __future__ import annotations

from pathlib import Path

from mis_config.loader import load_config
from mis_config.schema import DatabaseConfig, IngestionConfig, MisConfig, ReportingConfig
from mis_kernel.logging_config import get_logger

_logger = get_logger("config")

_active: MisConfig | None = None


def get_active_config(path: Path | str | None = None) -> MisConfig:
    """
    The active configuration, loaded once and cached.

    Passing ``path`` reloads from that override file and replaces the
    cached configuration.
    """
    global _active
    if _active is None or path is not None:
        _active = load_config(path)
        _logger.info(
            "MIS_CONFIG_TRACE",
            extra={
                "checksum": _active.checksum,
                "sources": list(_active.source_paths),
                "bank_label": _active.bank_label,
            },
        )
    return _active


def reset_active_config() -> None:
    """Forget the cached configuration. FOR TESTING ONLY."""
    global _active
    _active = None


__all__ = [
    "get_active_config",
    "reset_active_config",
    "load_config",
    "MisConfig",
    "IngestionConfig",
    "ReportingConfig",
    "DatabaseConfig",
]
