"""
fair_config -- single public entrypoint for runtime configuration.

Responsibility:
    ``get_active_config()`` loads a YAML settings file (PyYAML) into a frozen
    ``FairSettings``.  Bridges in ``fair_config.bridges`` translate settings
    into kernel inputs (LedgerPolicy, engine).

Architecture position:
    Configuration sits above ``fair_kernel`` and below ``fair_services``.
    The kernel MUST NEVER import from ``fair_config``.

Failure modes:
    - ``FileNotFoundError`` -- the settings file does not exist.
    - ``ValueError`` -- unknown key or invalid value.
    - ``yaml.YAMLError`` -- malformed YAML.
"""

from __future__ import annotations

from pathlib import Path

from fair_config.loader import load_yaml_file, parse_settings
from fair_config.schema import FairSettings
from fair_kernel.logging_config import get_logger

_logger = get_logger("config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(path: Path | str | None = None) -> FairSettings:
    """
    Load and validate the active settings.

    Args:
        path: Settings file.  Defaults to fair_config/sets/default.yaml.

    Returns:
        FairSettings with ``checksum`` set to the SHA-256 of its content.
    """
    config_path = Path(path) if path is not None else _DEFAULT_CONFIG_PATH
    settings = parse_settings(load_yaml_file(config_path))

    _logger.info(
        "FAIR_CONFIG_TRACE",
        extra={
            "trace_type": "FAIR_CONFIG_TRACE",
            "config_id": settings.config_id,
            "config_path": str(config_path),
            "checksum": settings.checksum,
            "block_sales_after_end_date": settings.block_sales_after_end_date,
        },
    )
    return settings


__all__ = ["FairSettings", "get_active_config"]
