"""
LedgerPolicy -- runtime knobs the kernel reads but never loads.

The kernel does not import fair_config.  Configuration is translated into a
LedgerPolicy by ``fair_config.bridges.build_ledger_policy`` and injected into
services; tests construct one directly.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP


@dataclass(frozen=True)
class LedgerPolicy:
    """
    Immutable policy values.

    Attributes:
        money_decimal_places: Precision of reported amounts and fee shares.
        rounding: decimal rounding mode name, e.g. ``ROUND_HALF_UP``.
        block_sales_after_end_date: When True, sales and exchanges past an
            event's end_date are rejected even if the event is not closed.
        movement_reason_max_length: Longest accepted movement reason.
    """

    money_decimal_places: int = 2
    rounding: str = ROUND_HALF_UP
    block_sales_after_end_date: bool = False
    movement_reason_max_length: int = 255

    def __post_init__(self) -> None:
        if self.money_decimal_places < 0:
            raise ValueError("money_decimal_places must be >= 0")
        if self.movement_reason_max_length < 1:
            raise ValueError("movement_reason_max_length must be >= 1")


DEFAULT_POLICY = LedgerPolicy()
