"""
Config -> Kernel Bridges.

Functions that convert FairSettings into kernel inputs.  They live in
fair_config (the producer) because the kernel must NEVER import fair_config.

Usage:
    from fair_config import get_active_config
    from fair_config.bridges import build_ledger_policy, init_engine_from_settings

    settings = get_active_config()
    init_engine_from_settings(settings)
    policy = build_ledger_policy(settings)
"""

from __future__ import annotations

from sqlalchemy.engine import Engine

from fair_config.schema import FairSettings
from fair_kernel.db.engine import init_engine_from_url
from fair_kernel.domain.policy import LedgerPolicy
from fair_kernel.logging_config import configure_logging


def build_ledger_policy(settings: FairSettings) -> LedgerPolicy:
    return LedgerPolicy(
        money_decimal_places=settings.money_decimal_places,
        rounding=settings.rounding,
        block_sales_after_end_date=settings.block_sales_after_end_date,
        movement_reason_max_length=settings.movement_reason_max_length,
    )


def init_engine_from_settings(settings: FairSettings, echo: bool = False) -> Engine:
    """Configure logging and the database engine from settings."""
    configure_logging(level=settings.log_level)
    return init_engine_from_url(
        settings.database_url,
        echo=echo,
        sqlite_busy_timeout=settings.sqlite_busy_timeout_seconds,
    )
