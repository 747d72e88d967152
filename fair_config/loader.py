"""
Configuration Loader (``fair_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into a ``FairSettings``.  The
single public entry point for runtime config is
``fair_config.get_active_config()``.

Invariants enforced
-------------------
* Unknown keys are rejected; a typo never silently falls back to a default.
* Every value is type-checked; bad values raise ``ValueError`` naming the key.
* ``compute_checksum`` is deterministic for identical content.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown key or bad value  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from fair_config.schema import LOG_LEVELS, ROUNDING_MODES, FairSettings

_SETTING_KEYS = frozenset(f.name for f in fields(FairSettings)) - {"checksum"}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def _int(data: dict[str, Any], key: str, minimum: int) -> None:
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise ValueError(f"{key} must be an integer >= {minimum}, got {value!r}")


def parse_settings(data: dict[str, Any]) -> FairSettings:
    """Parse and validate a settings mapping."""
    unknown = set(data) - _SETTING_KEYS
    if unknown:
        raise ValueError(f"Unknown configuration key(s): {', '.join(sorted(unknown))}")

    if "config_id" in data and not isinstance(data["config_id"], str):
        raise ValueError("config_id must be a string")
    if "database_url" in data and (
        not isinstance(data["database_url"], str) or not data["database_url"]
    ):
        raise ValueError("database_url must be a non-empty string")
    if "money_decimal_places" in data:
        _int(data, "money_decimal_places", 0)
        if data["money_decimal_places"] > 9:
            raise ValueError("money_decimal_places cannot exceed the storage scale (9)")
    if "rounding" in data and data["rounding"] not in ROUNDING_MODES:
        raise ValueError(f"rounding must be one of {sorted(ROUNDING_MODES)}")
    if "block_sales_after_end_date" in data and not isinstance(
        data["block_sales_after_end_date"], bool
    ):
        raise ValueError("block_sales_after_end_date must be true or false")
    if "movement_reason_max_length" in data:
        _int(data, "movement_reason_max_length", 1)
    if "sqlite_busy_timeout_seconds" in data:
        value = data["sqlite_busy_timeout_seconds"]
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            raise ValueError("sqlite_busy_timeout_seconds must be a positive number")
    if "log_level" in data:
        level = str(data["log_level"]).upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(LOG_LEVELS)}")
        data = {**data, "log_level": level}

    return FairSettings(**data, checksum=compute_checksum(data))


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
