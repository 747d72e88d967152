"""
FairSettings schema.

The human-authored source is a YAML file under ``fair_config/sets/``; the
loader parses it into this frozen dataclass.  Nothing outside fair_config
reads the YAML directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP

# decimal module rounding modes accepted in configuration
ROUNDING_MODES = frozenset({
    "ROUND_UP",
    "ROUND_DOWN",
    "ROUND_CEILING",
    "ROUND_FLOOR",
    "ROUND_HALF_UP",
    "ROUND_HALF_DOWN",
    "ROUND_HALF_EVEN",
    "ROUND_05UP",
})

LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


@dataclass(frozen=True)
class FairSettings:
    """Runtime settings for the fair kernel."""

    config_id: str = "default"
    database_url: str = "sqlite:///fair.db"
    money_decimal_places: int = 2
    rounding: str = ROUND_HALF_UP
    block_sales_after_end_date: bool = False
    movement_reason_max_length: int = 255
    sqlite_busy_timeout_seconds: float = 30
    log_level: str = "INFO"
    checksum: str = ""
